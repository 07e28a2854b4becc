"""
CA bundle resolution for admission webhook configurations.

The API server needs the CA that signed the webhook server certificate. It is
looked up in the root CA secret first; when the secret is missing or empty the
CA of the local API client configuration is used instead.
"""

import base64
import binascii
import logging

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kube_policy.constants import ERROR_NO_CA_DATA, ROOT_CA_SECRET_KEY
from kube_policy.errors import CAResolutionError
from kube_policy.utils.kubernetes import TLSClientConfig

logger = logging.getLogger(__name__)


class CAResolver:
    """Resolves the CA bundle embedded in webhook configurations."""

    def __init__(
        self,
        core_api: client.CoreV1Api,
        secret_name: str,
        namespace: str,
        tls_config: TLSClientConfig,
    ):
        """
        Initialize CA resolver.

        Args:
            core_api: CoreV1Api used to read the root CA secret
            secret_name: Name of the root CA secret
            namespace: Namespace of the root CA secret
            tls_config: CA material of the local API client
        """
        self.core_api = core_api
        self.secret_name = secret_name
        self.namespace = namespace
        self.tls_config = tls_config

    def resolve(self) -> bytes:
        """
        Return the CA bundle for the webhook configurations.

        Returns:
            Non-empty CA certificate bytes

        Raises:
            CAResolutionError: If neither the secret nor the client configuration
                provides CA data
        """
        ca_data = self.read_root_ca_secret()
        if ca_data:
            logger.debug(
                f"Using CA from secret {self.namespace}/{self.secret_name}",
                extra={"ca_source": "secret"},
            )
            return ca_data

        ca_data = self.extract_client_ca()
        if ca_data:
            logger.debug(
                "Using CA from the API client configuration",
                extra={"ca_source": "client_config"},
            )
            return ca_data

        raise CAResolutionError(ERROR_NO_CA_DATA)

    def read_root_ca_secret(self) -> bytes:
        """Read the root CA from the cluster secret, empty bytes if unavailable."""
        try:
            secret = self.core_api.read_namespaced_secret(
                name=self.secret_name, namespace=self.namespace
            )
        except ApiException as e:
            if e.status == 404:
                logger.debug(
                    f"Root CA secret {self.namespace}/{self.secret_name} not found"
                )
            else:
                logger.warning(
                    f"Failed to read root CA secret {self.namespace}/{self.secret_name}: "
                    f"{e.reason}"
                )
            return b""
        except HTTPError as e:
            logger.warning(
                f"Failed to reach API server for root CA secret "
                f"{self.namespace}/{self.secret_name}: {e}"
            )
            return b""

        encoded = (secret.data or {}).get(ROOT_CA_SECRET_KEY)
        if not encoded:
            logger.debug(
                f"Secret {self.namespace}/{self.secret_name} has no "
                f"'{ROOT_CA_SECRET_KEY}' entry"
            )
            return b""

        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.warning(
                f"Secret {self.namespace}/{self.secret_name} holds invalid base64 "
                f"under '{ROOT_CA_SECRET_KEY}': {e}"
            )
            return b""

    def extract_client_ca(self) -> bytes:
        """
        Extract the CA from the local API client configuration.

        A configured CA file takes precedence; if it cannot be read the result is
        empty and inline CA data is not consulted.
        """
        ca_file = self.tls_config.ca_file
        if ca_file:
            try:
                with open(ca_file, "rb") as f:
                    return f.read()
            except OSError as e:
                logger.warning(f"Failed to read CA file {ca_file}: {e}")
                return b""

        return self.tls_config.ca_data or b""
