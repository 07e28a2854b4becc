"""
Builder for the kube-policy admission webhook configurations.

Two shapes are produced:
- Production: the API server reaches the webhook through the in-cluster
  service, and the configuration is owned by the controller deployment.
- Debug: the API server calls a direct URL on an out-of-cluster server. Debug
  configurations have no owner and must be removed explicitly.

Both shapes intercept CREATE of every resource in every API group and
version. UPDATE and DELETE are not intercepted.
"""

import base64
import logging

from kubernetes import client

from kube_policy.constants import (
    ADMISSION_REVIEW_VERSIONS,
    ERROR_NO_CA_DATA,
    KUBE_POLICY_APP_LABELS,
    MUTATING_WEBHOOK_CONFIGURATION_DEBUG,
    MUTATING_WEBHOOK_CONFIGURATION_NAME,
    MUTATING_WEBHOOK_NAME,
    MUTATING_WEBHOOK_SERVICE_PATH,
    VALIDATING_WEBHOOK_CONFIGURATION_DEBUG,
    VALIDATING_WEBHOOK_CONFIGURATION_NAME,
    VALIDATING_WEBHOOK_NAME,
    VALIDATING_WEBHOOK_SERVICE_PATH,
    WEBHOOK_RULE_API_GROUPS,
    WEBHOOK_RULE_API_VERSIONS,
    WEBHOOK_RULE_OPERATIONS,
    WEBHOOK_RULE_RESOURCES,
    WEBHOOK_SIDE_EFFECTS,
)
from kube_policy.errors import BuildError, CAResolutionError
from kube_policy.webhooks.owner import OwnerReferenceResolver, OwnerResolution

logger = logging.getLogger(__name__)


def mutating_configuration_name(debug: bool) -> str:
    return MUTATING_WEBHOOK_CONFIGURATION_DEBUG if debug else MUTATING_WEBHOOK_CONFIGURATION_NAME


def validating_configuration_name(debug: bool) -> str:
    return (
        VALIDATING_WEBHOOK_CONFIGURATION_DEBUG
        if debug
        else VALIDATING_WEBHOOK_CONFIGURATION_NAME
    )


def build_rules() -> list[client.V1RuleWithOperations]:
    """Rule set shared by every kube-policy webhook: CREATE on anything."""
    return [
        client.V1RuleWithOperations(
            operations=list(WEBHOOK_RULE_OPERATIONS),
            api_groups=list(WEBHOOK_RULE_API_GROUPS),
            api_versions=list(WEBHOOK_RULE_API_VERSIONS),
            resources=list(WEBHOOK_RULE_RESOURCES),
        )
    ]


class WebhookConfigBuilder:
    """Assembles mutating and validating webhook configurations."""

    def __init__(
        self,
        namespace: str,
        service_name: str,
        server_ip: str = "",
        owner_resolver: OwnerReferenceResolver | None = None,
        labels: dict[str, str] | None = None,
    ):
        """
        Initialize webhook configuration builder.

        Args:
            namespace: Namespace of the webhook service
            service_name: Name of the webhook service
            server_ip: Address of an out-of-cluster webhook server (debug mode when set)
            owner_resolver: Resolver for the controller deployment owner reference
            labels: Labels applied to every configuration
        """
        self.namespace = namespace
        self.service_name = service_name
        self.server_ip = server_ip
        self.owner_resolver = owner_resolver
        self.labels = dict(labels if labels is not None else KUBE_POLICY_APP_LABELS)
        self.last_owner_resolution: OwnerResolution | None = None

    @property
    def is_debug(self) -> bool:
        return bool(self.server_ip)

    def debug_url(self, path: str) -> str:
        """Direct URL of the out-of-cluster webhook server for ``path``."""
        return f"https://{self.server_ip}{path}"

    def build_mutating(
        self, ca_bundle: bytes, owner: OwnerResolution | None = None
    ) -> client.V1MutatingWebhookConfiguration:
        """
        Build the mutating webhook configuration.

        Args:
            ca_bundle: CA certificate bytes trusted for the webhook server
            owner: Owner resolution to reuse; resolved on demand when omitted

        Returns:
            Configuration in production or debug shape

        Raises:
            BuildError: If the CA bundle is empty
        """
        metadata = self._build_metadata(
            mutating_configuration_name(self.is_debug), ca_bundle, owner
        )
        webhook = client.V1MutatingWebhook(
            name=MUTATING_WEBHOOK_NAME,
            client_config=self._build_client_config(MUTATING_WEBHOOK_SERVICE_PATH, ca_bundle),
            rules=build_rules(),
            admission_review_versions=list(ADMISSION_REVIEW_VERSIONS),
            side_effects=WEBHOOK_SIDE_EFFECTS,
        )
        return client.V1MutatingWebhookConfiguration(
            api_version="admissionregistration.k8s.io/v1",
            kind="MutatingWebhookConfiguration",
            metadata=metadata,
            webhooks=[webhook],
        )

    def build_validating(
        self, ca_bundle: bytes, owner: OwnerResolution | None = None
    ) -> client.V1ValidatingWebhookConfiguration:
        """
        Build the validating webhook configuration.

        Args:
            ca_bundle: CA certificate bytes trusted for the webhook server
            owner: Owner resolution to reuse; resolved on demand when omitted

        Returns:
            Configuration in production or debug shape

        Raises:
            BuildError: If the CA bundle is empty
        """
        metadata = self._build_metadata(
            validating_configuration_name(self.is_debug), ca_bundle, owner
        )
        webhook = client.V1ValidatingWebhook(
            name=VALIDATING_WEBHOOK_NAME,
            client_config=self._build_client_config(
                VALIDATING_WEBHOOK_SERVICE_PATH, ca_bundle
            ),
            rules=build_rules(),
            admission_review_versions=list(ADMISSION_REVIEW_VERSIONS),
            side_effects=WEBHOOK_SIDE_EFFECTS,
        )
        return client.V1ValidatingWebhookConfiguration(
            api_version="admissionregistration.k8s.io/v1",
            kind="ValidatingWebhookConfiguration",
            metadata=metadata,
            webhooks=[webhook],
        )

    def _build_metadata(
        self, name: str, ca_bundle: bytes, owner: OwnerResolution | None
    ) -> client.V1ObjectMeta:
        if not ca_bundle:
            raise BuildError(
                f"Cannot build webhook configuration {name}: {ERROR_NO_CA_DATA}",
                cause=CAResolutionError(ERROR_NO_CA_DATA),
            )

        if owner is None:
            owner = self.resolve_owner()
        self.last_owner_resolution = owner

        return client.V1ObjectMeta(
            name=name,
            labels=dict(self.labels),
            owner_references=owner.owner_references(),
        )

    def resolve_owner(self) -> OwnerResolution:
        """Owner of the configurations; debug configurations are never owned."""
        if self.is_debug or self.owner_resolver is None:
            return OwnerResolution.not_applicable()
        return self.owner_resolver.resolve()

    def _build_client_config(
        self, path: str, ca_bundle: bytes
    ) -> client.AdmissionregistrationV1WebhookClientConfig:
        encoded_ca = base64.b64encode(ca_bundle).decode()

        if self.is_debug:
            url = self.debug_url(path)
            logger.debug(
                f"Debug webhook configured with url {url}",
                extra={"mode": "debug", "url": url},
            )
            return client.AdmissionregistrationV1WebhookClientConfig(
                url=url, ca_bundle=encoded_ca
            )

        return client.AdmissionregistrationV1WebhookClientConfig(
            service=client.AdmissionregistrationV1ServiceReference(
                namespace=self.namespace,
                name=self.service_name,
                path=path,
            ),
            ca_bundle=encoded_ca,
        )
