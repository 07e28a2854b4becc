#!/usr/bin/env python3
"""
Kube Policy Operator - entry point wiring webhook registration into kopf.

On startup the admission webhook configurations are registered with the
cluster; a failure aborts the operator. On shutdown they are removed again.

Usage:
    python -m kube_policy.operator
    # Or with kopf directly:
    kopf run -m kube_policy.operator --all-namespaces

Environment Variables:
    KUBE_POLICY_NAMESPACE: Namespace of the controller and webhook service
    KUBE_POLICY_SERVER_IP: Address of an out-of-cluster webhook server (debug mode)
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

import asyncio
import logging
import sys

import kopf
from kubernetes import config

from kube_policy.errors import OperatorError
from kube_policy.observability.logging import setup_structured_logging
from kube_policy.settings import settings as operator_settings
from kube_policy.utils.kubernetes import (
    get_kubernetes_client,
    load_kubernetes_configuration,
)
from kube_policy.webhooks.registration import WebhookRegistrationClient

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.log_level.upper(),
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
    )


def create_registration_client() -> WebhookRegistrationClient:
    """Load the Kubernetes configuration and build the registration client."""
    configuration = load_kubernetes_configuration(operator_settings.kubeconfig)
    api_client = get_kubernetes_client(configuration)
    return WebhookRegistrationClient.from_settings(
        operator_settings, api_client, configuration
    )


@kopf.on.startup()
async def startup_handler(memo: kopf.Memo, **_) -> None:
    """
    Register the admission webhooks when the operator starts.

    Registration failures are permanent: the operator stops and the
    supervising process decides whether to restart it.
    """
    logger.info("Starting kube-policy operator...")

    if operator_settings.debug_mode:
        logger.info(
            f"Debug mode: webhooks point at https://{operator_settings.server_ip}"
        )

    try:
        registration_client = create_registration_client()
    except config.ConfigException as e:
        logger.error(f"Failed to load Kubernetes configuration: {e}")
        raise kopf.PermanentError(f"Kubernetes configuration unavailable: {e}") from e

    try:
        await asyncio.to_thread(registration_client.register)
    except OperatorError as e:
        logger.error(
            f"Webhook registration failed: {e}",
            extra={"error_type": type(e).__name__},
        )
        raise kopf.PermanentError(f"Webhook registration failed: {e}") from e

    memo.registration_client = registration_client


@kopf.on.cleanup()
async def cleanup_handler(memo: kopf.Memo, **_) -> None:
    """Remove the admission webhooks when the operator shuts down."""
    logger.info("Shutting down kube-policy operator...")

    registration_client = getattr(memo, "registration_client", None)
    if registration_client is None:
        logger.info("No webhooks were registered, nothing to clean up")
        return

    errors = await asyncio.to_thread(registration_client.deregister)
    for error in errors:
        logger.warning(f"Ignoring webhook deregistration error: {error}")
    if not errors:
        logger.info("Admission webhooks deregistered")


def main() -> None:
    """
    Main entry point for the operator.

    This function:
    1. Configures logging
    2. Runs kopf, whose startup and cleanup handlers manage the webhooks
    """
    configure_logging()

    # The webhook server runs outside kopf; kopf must not manage admission itself
    settings_obj = kopf.OperatorSettings()
    settings_obj.admission.server = None
    settings_obj.admission.managed = None

    try:
        kopf.run(clusterwide=True, settings=settings_obj)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Operator failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
