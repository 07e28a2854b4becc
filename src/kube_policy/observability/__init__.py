"""
Observability package - logging support for the kube-policy operator.
"""

from kube_policy.observability.logging import (
    get_correlation_id,
    set_correlation_id,
    setup_structured_logging,
)

__all__ = [
    "setup_structured_logging",
    "set_correlation_id",
    "get_correlation_id",
]
