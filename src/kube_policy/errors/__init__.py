"""
Error handling module for the kube-policy operator.

This module provides the error hierarchy used by webhook registration. The
kopf startup handler surfaces any of these errors as a permanent failure.
"""

from .operator_errors import (
    BuildError,
    CAResolutionError,
    ExternalServiceError,
    KubernetesAPIError,
    OperatorError,
)

__all__ = [
    "OperatorError",
    "CAResolutionError",
    "BuildError",
    "ExternalServiceError",
    "KubernetesAPIError",
]
