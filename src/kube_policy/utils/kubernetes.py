"""
Kubernetes utilities for the kube-policy operator.

This module loads the Kubernetes client configuration (in-cluster first,
kubeconfig second) and exposes the TLS trust material of that configuration
so it can serve as a CA bundle fallback for webhook registration.
"""

import logging
from dataclasses import dataclass

from kubernetes import client, config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TLSClientConfig:
    """CA material of the local API client.

    Attributes:
        ca_file: Path to a CA certificate file, if the client uses one
        ca_data: Inline CA certificate bytes, used when no file is configured
    """

    ca_file: str | None = None
    ca_data: bytes | None = None

    @classmethod
    def from_configuration(cls, configuration: client.Configuration) -> "TLSClientConfig":
        """Extract CA material from a loaded kubernetes client configuration.

        The kubeconfig loader materializes ``certificate-authority-data`` into a
        temporary file, so both inline and file based kubeconfigs end up in
        ``ssl_ca_cert``.
        """
        return cls(ca_file=configuration.ssl_ca_cert or None)


def load_kubernetes_configuration(kubeconfig: str | None = None) -> client.Configuration:
    """
    Load the Kubernetes client configuration.

    Tries the in-cluster service account first (when running in a pod) and
    falls back to a kubeconfig file for local development.

    Args:
        kubeconfig: Optional kubeconfig path; the default location is used when empty

    Returns:
        Loaded client configuration

    Raises:
        kubernetes.config.ConfigException: If neither source is available
    """
    configuration = client.Configuration()
    try:
        config.load_incluster_config(client_configuration=configuration)
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            config.load_kube_config(
                config_file=kubeconfig or None, client_configuration=configuration
            )
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            logger.error(f"Failed to load Kubernetes configuration: {e}")
            raise

    return configuration


def get_kubernetes_client(configuration: client.Configuration) -> client.ApiClient:
    """Get a Kubernetes API client bound to the given configuration."""
    return client.ApiClient(configuration)
