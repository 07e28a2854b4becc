"""Shared pytest fixtures for webhook registration tests."""

from unittest.mock import MagicMock

import pytest

from kube_policy.utils.kubernetes import TLSClientConfig
from kube_policy.webhooks.registration import RegistrationConfig
from tests.fixtures.admission import (
    DEPLOYMENT_NAME,
    NAMESPACE,
    SERVICE_NAME,
    FakeAdmissionRegistrationApi,
    make_ca_secret,
    make_deployment,
)


@pytest.fixture
def admission_api():
    return FakeAdmissionRegistrationApi()


@pytest.fixture
def core_api():
    """CoreV1Api mock serving a root CA secret containing b"ABC"."""
    api = MagicMock()
    api.read_namespaced_secret.return_value = make_ca_secret(b"ABC")
    return api


@pytest.fixture
def apps_api():
    """AppsV1Api mock serving the controller deployment."""
    api = MagicMock()
    api.read_namespaced_deployment.return_value = make_deployment()
    return api


@pytest.fixture
def make_registration_config(admission_api, core_api, apps_api):
    """Factory for RegistrationConfig wired to the fake APIs."""

    def _make(server_ip: str = "", tls_config: TLSClientConfig | None = None):
        return RegistrationConfig(
            registration_api=admission_api,
            core_api=core_api,
            apps_api=apps_api,
            tls_config=tls_config or TLSClientConfig(),
            namespace=NAMESPACE,
            service_name=SERVICE_NAME,
            deployment_name=DEPLOYMENT_NAME,
            server_ip=server_ip,
        )

    return _make
