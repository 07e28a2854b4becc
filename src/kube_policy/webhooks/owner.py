"""
Owner reference resolution for webhook configurations.

Production webhook configurations are owned by the controller deployment so
that Kubernetes garbage-collects them when the controller is uninstalled.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from kubernetes import client
from kubernetes.client.rest import ApiException

from kube_policy.constants import DEPLOYMENT_API_VERSION, DEPLOYMENT_KIND

logger = logging.getLogger(__name__)


class OwnerStatus(str, Enum):
    """Outcome of an owner reference lookup."""

    RESOLVED = "resolved"
    LOOKUP_FAILED = "lookup_failed"
    NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class OwnerResolution:
    """Result of resolving the owner of the webhook configurations.

    ``reference`` is only set when the lookup succeeded and ``error`` only when
    it failed. Debug registrations are never owned and report
    ``NOT_APPLICABLE``.
    """

    status: OwnerStatus
    reference: client.V1OwnerReference | None = None
    error: Exception | None = None

    @classmethod
    def not_applicable(cls) -> "OwnerResolution":
        return cls(status=OwnerStatus.NOT_APPLICABLE)

    @property
    def resolved(self) -> bool:
        return self.status is OwnerStatus.RESOLVED

    def owner_references(self) -> list[client.V1OwnerReference] | None:
        """Owner references to put on configuration metadata.

        Returns None when ownership does not apply, an empty list when the
        lookup failed and a single reference otherwise.
        """
        if self.status is OwnerStatus.NOT_APPLICABLE:
            return None
        if self.reference is None:
            return []
        return [self.reference]


class OwnerReferenceResolver:
    """Looks up the controller deployment to build an owner reference."""

    def __init__(self, apps_api: client.AppsV1Api, deployment_name: str, namespace: str):
        self.apps_api = apps_api
        self.deployment_name = deployment_name
        self.namespace = namespace

    def resolve(self) -> OwnerResolution:
        """
        Resolve the owner reference of the controller deployment.

        Never raises: a failed lookup is reported as ``LOOKUP_FAILED`` and
        registration proceeds without ownership metadata.
        """
        try:
            deployment = self.apps_api.read_namespaced_deployment(
                name=self.deployment_name, namespace=self.namespace
            )
        except Exception as e:
            reason = e.reason if isinstance(e, ApiException) else e
            logger.warning(
                f"Failed to read deployment {self.namespace}/{self.deployment_name}, "
                f"webhook configurations will have no owner: {reason}",
                extra={"owner_status": OwnerStatus.LOOKUP_FAILED.value},
            )
            return OwnerResolution(status=OwnerStatus.LOOKUP_FAILED, error=e)

        metadata = deployment.metadata
        if metadata is None or not metadata.name or not metadata.uid:
            logger.warning(
                f"Deployment {self.namespace}/{self.deployment_name} has no name/uid, "
                "webhook configurations will have no owner",
                extra={"owner_status": OwnerStatus.LOOKUP_FAILED.value},
            )
            return OwnerResolution(
                status=OwnerStatus.LOOKUP_FAILED,
                error=ValueError("deployment metadata is missing name or uid"),
            )

        reference = client.V1OwnerReference(
            api_version=DEPLOYMENT_API_VERSION,
            kind=DEPLOYMENT_KIND,
            name=metadata.name,
            uid=metadata.uid,
        )
        return OwnerResolution(status=OwnerStatus.RESOLVED, reference=reference)
