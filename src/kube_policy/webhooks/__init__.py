"""
Admission webhook registration for the kube-policy controller.

This package creates the MutatingWebhookConfiguration and
ValidatingWebhookConfiguration that route object creation requests to the
controller's webhook server, and removes them again on shutdown.
"""

from kube_policy.webhooks.builder import WebhookConfigBuilder
from kube_policy.webhooks.ca import CAResolver
from kube_policy.webhooks.owner import (
    OwnerReferenceResolver,
    OwnerResolution,
    OwnerStatus,
)
from kube_policy.webhooks.registration import (
    RegistrationConfig,
    WebhookRegistrationClient,
)

__all__ = [
    "CAResolver",
    "OwnerReferenceResolver",
    "OwnerResolution",
    "OwnerStatus",
    "RegistrationConfig",
    "WebhookConfigBuilder",
    "WebhookRegistrationClient",
]
