"""
Registration of the kube-policy admission webhooks with the cluster.

``register`` is called once when the controller starts and ``deregister`` when
it stops. Registration is idempotent by reset: existing configurations are
deleted before new ones are created, so no update path exists.
"""

import logging
from dataclasses import dataclass, field

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kube_policy.constants import (
    ERROR_CREATE_FAILED,
    ERROR_DELETE_FAILED,
    KUBE_POLICY_APP_LABELS,
    root_ca_secret_name,
)
from kube_policy.errors import KubernetesAPIError
from kube_policy.settings import Settings
from kube_policy.utils.kubernetes import TLSClientConfig
from kube_policy.webhooks.builder import (
    WebhookConfigBuilder,
    mutating_configuration_name,
    validating_configuration_name,
)
from kube_policy.webhooks.ca import CAResolver
from kube_policy.webhooks.owner import OwnerReferenceResolver

logger = logging.getLogger(__name__)


@dataclass
class RegistrationConfig:
    """Dependencies and static configuration of webhook registration.

    Attributes:
        registration_api: API for mutating/validating webhook configurations
        core_api: API used to read the root CA secret
        apps_api: API used to read the controller deployment
        tls_config: CA material of the local API client
        namespace: Namespace of the controller, its service and the CA secret
        service_name: Name of the webhook service
        deployment_name: Name of the controller deployment
        server_ip: Address of an out-of-cluster webhook server; empty in production
        labels: Labels applied to the configurations
    """

    registration_api: client.AdmissionregistrationV1Api
    core_api: client.CoreV1Api
    apps_api: client.AppsV1Api
    tls_config: TLSClientConfig
    namespace: str
    service_name: str
    deployment_name: str
    server_ip: str = ""
    labels: dict[str, str] = field(default_factory=lambda: dict(KUBE_POLICY_APP_LABELS))

    @property
    def root_ca_secret_name(self) -> str:
        return root_ca_secret_name(self.service_name, self.namespace)


class WebhookRegistrationClient:
    """Registers and deregisters admission webhook configurations."""

    def __init__(self, registration_config: RegistrationConfig):
        self.config = registration_config
        self.registration_api = registration_config.registration_api
        self.ca_resolver = CAResolver(
            core_api=registration_config.core_api,
            secret_name=registration_config.root_ca_secret_name,
            namespace=registration_config.namespace,
            tls_config=registration_config.tls_config,
        )
        self.builder = WebhookConfigBuilder(
            namespace=registration_config.namespace,
            service_name=registration_config.service_name,
            server_ip=registration_config.server_ip,
            owner_resolver=OwnerReferenceResolver(
                apps_api=registration_config.apps_api,
                deployment_name=registration_config.deployment_name,
                namespace=registration_config.namespace,
            ),
            labels=registration_config.labels,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        api_client: client.ApiClient,
        configuration: client.Configuration,
    ) -> "WebhookRegistrationClient":
        """
        Create a registration client from operator settings.

        Args:
            settings: Operator settings providing names and the debug address
            api_client: Kubernetes API client shared by all API groups
            configuration: Configuration the API client was built from

        Returns:
            Configured registration client
        """
        return cls(
            RegistrationConfig(
                registration_api=client.AdmissionregistrationV1Api(api_client),
                core_api=client.CoreV1Api(api_client),
                apps_api=client.AppsV1Api(api_client),
                tls_config=TLSClientConfig.from_configuration(configuration),
                namespace=settings.namespace,
                service_name=settings.service_name,
                deployment_name=settings.deployment_name,
                server_ip=settings.server_ip,
            )
        )

    @property
    def is_debug(self) -> bool:
        return self.builder.is_debug

    @property
    def mutating_configuration_name(self) -> str:
        return mutating_configuration_name(self.is_debug)

    @property
    def validating_configuration_name(self) -> str:
        return validating_configuration_name(self.is_debug)

    def register(self) -> None:
        """
        Create the admission webhook configurations on the cluster.

        Existing configurations are deleted first. There is no rollback: if the
        validating configuration cannot be created the mutating one stays
        registered. Any failure should abort controller startup.

        Raises:
            CAResolutionError: If no CA bundle is available
            BuildError: If a configuration cannot be assembled
            KubernetesAPIError: If a create call fails
        """
        mode = "debug" if self.is_debug else "production"
        if self.is_debug:
            logger.info(
                f"Registering webhook with url https://{self.config.server_ip}",
                extra={"mode": mode},
            )
        else:
            logger.info(
                f"Registering webhook with service "
                f"{self.config.namespace}/{self.config.service_name}",
                extra={"mode": mode, "namespace": self.config.namespace},
            )

        # Clear configurations left behind by a previous run
        self.deregister()

        ca_bundle = self.ca_resolver.resolve()
        owner = self.builder.resolve_owner()

        mutating_config = self.builder.build_mutating(ca_bundle, owner=owner)
        self._create(
            "MutatingWebhookConfiguration",
            mutating_config.metadata.name,
            self.registration_api.create_mutating_webhook_configuration,
            mutating_config,
        )

        validating_config = self.builder.build_validating(ca_bundle, owner=owner)
        self._create(
            "ValidatingWebhookConfiguration",
            validating_config.metadata.name,
            self.registration_api.create_validating_webhook_configuration,
            validating_config,
        )

        logger.info(
            f"Registered admission webhooks {mutating_config.metadata.name} "
            f"and {validating_config.metadata.name}",
            extra={"mode": mode, "operation": "register"},
        )

    def deregister(self) -> list[KubernetesAPIError]:
        """
        Delete the admission webhook configurations from the cluster.

        Best effort: errors, including not-found, never propagate. They are
        returned so callers can log them.

        Returns:
            Errors encountered while deleting, empty when both deletes succeeded
        """
        errors: list[KubernetesAPIError] = []
        deletions = (
            (
                "MutatingWebhookConfiguration",
                self.mutating_configuration_name,
                self.registration_api.delete_mutating_webhook_configuration,
            ),
            (
                "ValidatingWebhookConfiguration",
                self.validating_configuration_name,
                self.registration_api.delete_validating_webhook_configuration,
            ),
        )

        for resource_type, name, delete in deletions:
            try:
                delete(name=name, body=client.V1DeleteOptions())
                logger.debug(
                    f"Deleted {resource_type} {name}",
                    extra={"resource_type": resource_type, "resource_name": name},
                )
            except (ApiException, HTTPError) as e:
                error = KubernetesAPIError.wrap(
                    ERROR_DELETE_FAILED.format(resource_type, name), e
                )
                logger.debug(
                    str(error),
                    extra={
                        "resource_type": resource_type,
                        "resource_name": name,
                        "operation": "delete",
                        "http_status": error.status,
                    },
                )
                errors.append(error)

        return errors

    def _create(self, resource_type: str, name: str, create, body) -> None:
        try:
            create(body=body)
        except (ApiException, HTTPError) as e:
            error = KubernetesAPIError.wrap(ERROR_CREATE_FAILED.format(resource_type, name), e)
            logger.error(
                f"Failed to create {resource_type} {name}: {error.reason}",
                extra={
                    "resource_type": resource_type,
                    "resource_name": name,
                    "operation": "create",
                    "http_status": error.status,
                },
            )
            raise error from e

        logger.info(
            f"Created {resource_type} {name}",
            extra={"resource_type": resource_type, "resource_name": name},
        )
