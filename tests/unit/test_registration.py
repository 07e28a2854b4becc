"""Unit tests for admission webhook registration lifecycle."""

import base64
from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import MaxRetryError

from kube_policy.constants import (
    MUTATING_WEBHOOK_CONFIGURATION_DEBUG,
    MUTATING_WEBHOOK_CONFIGURATION_NAME,
    VALIDATING_WEBHOOK_CONFIGURATION_DEBUG,
    VALIDATING_WEBHOOK_CONFIGURATION_NAME,
)
from kube_policy.errors import CAResolutionError, KubernetesAPIError
from kube_policy.settings import Settings
from kube_policy.webhooks.registration import WebhookRegistrationClient
from tests.fixtures.admission import DEPLOYMENT_UID


def all_rules(configuration):
    return [rule for webhook in configuration.webhooks for rule in webhook.rules]


class TestRegisterProduction:
    """Registration against the in-cluster webhook service."""

    def test_creates_both_configurations(self, admission_api, make_registration_config):
        registration = WebhookRegistrationClient(make_registration_config())

        registration.register()

        assert set(admission_api.mutating) == {MUTATING_WEBHOOK_CONFIGURATION_NAME}
        assert set(admission_api.validating) == {VALIDATING_WEBHOOK_CONFIGURATION_NAME}

        for configuration in (
            admission_api.mutating[MUTATING_WEBHOOK_CONFIGURATION_NAME],
            admission_api.validating[VALIDATING_WEBHOOK_CONFIGURATION_NAME],
        ):
            assert len(configuration.webhooks) == 1
            webhook = configuration.webhooks[0]
            assert base64.b64decode(webhook.client_config.ca_bundle) == b"ABC"
            assert webhook.client_config.service is not None
            rules = all_rules(configuration)
            assert len(rules) == 1
            assert rules[0].operations == ["CREATE"]
            assert rules[0].api_groups == ["*"]
            assert rules[0].api_versions == ["*"]
            assert rules[0].resources == ["*/*"]
            assert configuration.metadata.owner_references[0].kind == "Deployment"

    def test_deregisters_before_creating(self, admission_api, make_registration_config):
        WebhookRegistrationClient(make_registration_config()).register()

        assert admission_api.calls == [
            ("delete_mutating", MUTATING_WEBHOOK_CONFIGURATION_NAME),
            ("delete_validating", VALIDATING_WEBHOOK_CONFIGURATION_NAME),
            ("create_mutating", MUTATING_WEBHOOK_CONFIGURATION_NAME),
            ("create_validating", VALIDATING_WEBHOOK_CONFIGURATION_NAME),
        ]

    def test_register_twice_never_conflicts(self, admission_api, make_registration_config):
        registration = WebhookRegistrationClient(make_registration_config())

        registration.register()
        registration.register()

        assert len(admission_api.mutating) == 1
        assert len(admission_api.validating) == 1

    def test_registers_without_owner_when_deployment_missing(
        self, admission_api, apps_api, make_registration_config
    ):
        apps_api.read_namespaced_deployment.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        WebhookRegistrationClient(make_registration_config()).register()

        configuration = admission_api.mutating[MUTATING_WEBHOOK_CONFIGURATION_NAME]
        assert configuration.metadata.owner_references == []

    def test_owner_looked_up_once_for_both_configurations(
        self, admission_api, apps_api, make_registration_config
    ):
        WebhookRegistrationClient(make_registration_config()).register()

        assert apps_api.read_namespaced_deployment.call_count == 1
        mutating_owner = admission_api.mutating[
            MUTATING_WEBHOOK_CONFIGURATION_NAME
        ].metadata.owner_references
        validating_owner = admission_api.validating[
            VALIDATING_WEBHOOK_CONFIGURATION_NAME
        ].metadata.owner_references
        assert mutating_owner == validating_owner
        assert mutating_owner[0].uid == DEPLOYMENT_UID


class TestRegisterDebug:
    """Registration against an out-of-cluster webhook server."""

    def test_creates_debug_configurations(self, admission_api, apps_api, make_registration_config):
        registration = WebhookRegistrationClient(make_registration_config(server_ip="1.2.3.4"))

        registration.register()

        assert set(admission_api.mutating) == {MUTATING_WEBHOOK_CONFIGURATION_DEBUG}
        assert set(admission_api.validating) == {VALIDATING_WEBHOOK_CONFIGURATION_DEBUG}
        for configuration in (
            admission_api.mutating[MUTATING_WEBHOOK_CONFIGURATION_DEBUG],
            admission_api.validating[VALIDATING_WEBHOOK_CONFIGURATION_DEBUG],
        ):
            assert "1.2.3.4" in configuration.webhooks[0].client_config.url
            assert configuration.metadata.owner_references is None
        apps_api.read_namespaced_deployment.assert_not_called()

    def test_debug_mode_properties(self, make_registration_config):
        registration = WebhookRegistrationClient(make_registration_config(server_ip="1.2.3.4"))

        assert registration.is_debug
        assert registration.mutating_configuration_name == MUTATING_WEBHOOK_CONFIGURATION_DEBUG
        assert (
            registration.validating_configuration_name
            == VALIDATING_WEBHOOK_CONFIGURATION_DEBUG
        )


class TestRegisterFailures:
    """Failures abort registration without rollback."""

    def test_ca_resolution_failure_creates_nothing(
        self, admission_api, core_api, make_registration_config
    ):
        core_api.read_namespaced_secret.side_effect = ApiException(
            status=404, reason="Not Found"
        )
        registration = WebhookRegistrationClient(make_registration_config())

        with pytest.raises(CAResolutionError):
            registration.register()

        assert admission_api.mutating == {}
        assert admission_api.validating == {}

    def test_validating_failure_keeps_mutating(self, admission_api, make_registration_config):
        admission_api.fail_create_validating = ApiException(
            status=500, reason="Internal Server Error"
        )
        registration = WebhookRegistrationClient(make_registration_config())

        with pytest.raises(KubernetesAPIError) as exc_info:
            registration.register()

        assert exc_info.value.status == 500
        assert isinstance(exc_info.value.cause, ApiException)
        assert MUTATING_WEBHOOK_CONFIGURATION_NAME in admission_api.mutating
        assert admission_api.validating == {}

    def test_mutating_failure_stops_before_validating(self, make_registration_config):
        registration_api = MagicMock()
        registration_api.create_mutating_webhook_configuration.side_effect = ApiException(
            status=403, reason="Forbidden"
        )
        config = make_registration_config()
        config.registration_api = registration_api
        registration = WebhookRegistrationClient(config)

        with pytest.raises(KubernetesAPIError) as exc_info:
            registration.register()

        assert exc_info.value.status == 403
        assert exc_info.value.reason == "Forbidden"
        registration_api.create_validating_webhook_configuration.assert_not_called()

    def test_unreachable_api_server_on_create(self, make_registration_config):
        registration_api = MagicMock()
        registration_api.create_mutating_webhook_configuration.side_effect = MaxRetryError(
            None, "/apis", "connection refused"
        )
        config = make_registration_config()
        config.registration_api = registration_api

        with pytest.raises(KubernetesAPIError) as exc_info:
            WebhookRegistrationClient(config).register()

        assert exc_info.value.status is None
        assert isinstance(exc_info.value.cause, MaxRetryError)
        registration_api.create_validating_webhook_configuration.assert_not_called()


class TestDeregister:
    """Best-effort deletion of the configurations."""

    def test_never_raises_when_nothing_exists(self, make_registration_config):
        registration = WebhookRegistrationClient(make_registration_config())

        errors = registration.deregister()

        assert len(errors) == 2
        assert all(isinstance(error, KubernetesAPIError) for error in errors)
        assert all(error.is_not_found for error in errors)

    def test_deletes_registered_configurations(self, admission_api, make_registration_config):
        registration = WebhookRegistrationClient(make_registration_config())
        registration.register()

        errors = registration.deregister()

        assert errors == []
        assert admission_api.mutating == {}
        assert admission_api.validating == {}

    def test_uses_debug_names_in_debug_mode(self, admission_api, make_registration_config):
        WebhookRegistrationClient(make_registration_config(server_ip="1.2.3.4")).deregister()

        assert admission_api.calls == [
            ("delete_mutating", MUTATING_WEBHOOK_CONFIGURATION_DEBUG),
            ("delete_validating", VALIDATING_WEBHOOK_CONFIGURATION_DEBUG),
        ]

    def test_continues_after_first_delete_fails(self, make_registration_config):
        registration_api = MagicMock()
        registration_api.delete_mutating_webhook_configuration.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )
        config = make_registration_config()
        config.registration_api = registration_api

        errors = WebhookRegistrationClient(config).deregister()

        assert len(errors) == 1
        assert errors[0].status == 500
        registration_api.delete_validating_webhook_configuration.assert_called_once()
        kwargs = registration_api.delete_validating_webhook_configuration.call_args.kwargs
        assert kwargs["name"] == VALIDATING_WEBHOOK_CONFIGURATION_NAME
        assert isinstance(kwargs["body"], client.V1DeleteOptions)

    def test_unreachable_api_server_is_collected(self, make_registration_config):
        registration_api = MagicMock()
        registration_api.delete_mutating_webhook_configuration.side_effect = MaxRetryError(
            None, "/apis", "connection refused"
        )
        registration_api.delete_validating_webhook_configuration.side_effect = MaxRetryError(
            None, "/apis", "connection refused"
        )
        config = make_registration_config()
        config.registration_api = registration_api

        errors = WebhookRegistrationClient(config).deregister()

        assert len(errors) == 2
        assert all(isinstance(error, KubernetesAPIError) for error in errors)
        assert all(error.status is None for error in errors)
        assert all(isinstance(error.cause, MaxRetryError) for error in errors)

    def test_register_proceeds_when_reset_cannot_reach_api_server(
        self, admission_api, make_registration_config
    ):
        admission_api.delete_mutating_webhook_configuration = MagicMock(
            side_effect=MaxRetryError(None, "/apis", "connection refused")
        )

        WebhookRegistrationClient(make_registration_config()).register()

        assert MUTATING_WEBHOOK_CONFIGURATION_NAME in admission_api.mutating
        assert VALIDATING_WEBHOOK_CONFIGURATION_NAME in admission_api.validating


class TestFromSettings:
    """Construction from operator settings."""

    def test_builds_client_from_settings(self):
        settings = Settings(
            KUBE_POLICY_NAMESPACE="policy-system",
            KUBE_POLICY_SERVICE_NAME="policy-svc",
            KUBE_POLICY_DEPLOYMENT_NAME="policy-deployment",
            KUBE_POLICY_SERVER_IP="",
        )
        configuration = client.Configuration()
        configuration.ssl_ca_cert = "/var/run/secrets/ca.crt"

        with patch("kube_policy.webhooks.registration.client") as mock_client:
            registration = WebhookRegistrationClient.from_settings(
                settings, MagicMock(), configuration
            )

        assert not registration.is_debug
        assert registration.config.namespace == "policy-system"
        assert registration.config.service_name == "policy-svc"
        assert registration.config.deployment_name == "policy-deployment"
        assert registration.config.tls_config.ca_file == "/var/run/secrets/ca.crt"
        assert (
            registration.config.root_ca_secret_name
            == "policy-svc.policy-system.svc.kube-policy-tls-ca"
        )
        mock_client.AdmissionregistrationV1Api.assert_called_once()
