"""
Utils package - Kubernetes client helpers for the kube-policy operator.
"""

from kube_policy.utils.kubernetes import (
    TLSClientConfig,
    get_kubernetes_client,
    load_kubernetes_configuration,
)

__all__ = [
    "TLSClientConfig",
    "get_kubernetes_client",
    "load_kubernetes_configuration",
]
