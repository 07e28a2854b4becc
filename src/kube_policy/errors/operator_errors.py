"""
Operator error hierarchy with categorization and user guidance.

This module defines the error types raised while registering admission
webhooks. Registration failures are fatal to operator startup, so the errors
carry a category and a suggested action rather than retry hints.
"""

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError


class OperatorError(Exception):
    """
    Base error class for all operator-related exceptions.

    Provides categorization and user guidance for resolution.
    """

    def __init__(
        self,
        message: str,
        category: str,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        """
        Initialize operator error.

        Args:
            message: Human-readable error description
            category: Error category (ca, build, external)
            user_action: What user should do to resolve the issue
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.category = category
        self.user_action = user_action
        self.cause = cause

    def __str__(self) -> str:
        """Enhanced string representation with user guidance."""
        base_msg = super().__str__()
        if self.user_action:
            return f"{base_msg}\nAction required: {self.user_action}"
        return base_msg


class CAResolutionError(OperatorError):
    """No CA bundle could be obtained for the webhook configurations."""

    def __init__(self, message: str, user_action: str | None = None):
        super().__init__(
            message=message,
            category="ca",
            user_action=user_action
            or "Create the root CA secret or configure a CA in the kubeconfig",
        )


class BuildError(OperatorError):
    """A webhook configuration could not be assembled."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        user_action: str | None = None,
    ):
        super().__init__(
            message=message,
            category="build",
            user_action=user_action,
            cause=cause,
        )


class ExternalServiceError(OperatorError):
    """Error communicating with external services."""

    def __init__(
        self,
        service: str,
        message: str,
        user_action: str | None = None,
        cause: Exception | None = None,
    ):
        action = user_action or f"Check {service} connectivity and credentials"
        super().__init__(
            message=f"{service} error: {message}",
            category="external",
            user_action=action,
            cause=cause,
        )


class KubernetesAPIError(ExternalServiceError):
    """Error communicating with Kubernetes API.

    ``status`` is the HTTP status of the API response, or None when the
    request never got a response (connection refused, TLS failure).
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        status: int | None = None,
        cause: Exception | None = None,
    ):
        if reason:
            message = f"{message} (reason: {reason})"

        self.reason = reason
        self.status = status

        super().__init__(
            service="Kubernetes API",
            message=message,
            user_action="Check RBAC permissions and cluster connectivity",
            cause=cause,
        )

    @classmethod
    def from_api_exception(cls, message: str, exc: ApiException) -> "KubernetesAPIError":
        """Wrap a kubernetes client ApiException."""
        return cls(message, reason=exc.reason, status=exc.status, cause=exc)

    @classmethod
    def from_transport_error(cls, message: str, exc: HTTPError) -> "KubernetesAPIError":
        """Wrap a urllib3 error raised before the API server answered."""
        return cls(message, reason=type(exc).__name__, cause=exc)

    @classmethod
    def wrap(cls, message: str, exc: ApiException | HTTPError) -> "KubernetesAPIError":
        if isinstance(exc, ApiException):
            return cls.from_api_exception(message, exc)
        return cls.from_transport_error(message, exc)

    @property
    def is_not_found(self) -> bool:
        return self.status == 404
