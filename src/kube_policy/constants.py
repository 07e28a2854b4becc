"""
Constants used throughout the kube-policy operator.

This module defines the fixed identifiers of the admission webhook
registration:
- Webhook configuration and webhook names
- Service paths served by the webhook server
- Labels applied to every configuration
- Root CA secret naming
- Owner reference kind for the controller deployment
"""

# Label constants for resource identification
APP_LABEL_KEY = "app"
APP_LABEL_VALUE = "kube-policy"
KUBE_POLICY_APP_LABELS = {APP_LABEL_KEY: APP_LABEL_VALUE}

# Webhook configuration names (cluster-scoped resources)
MUTATING_WEBHOOK_CONFIGURATION_NAME = "kube-policy-mutating-webhook-cfg"
MUTATING_WEBHOOK_CONFIGURATION_DEBUG = "kube-policy-mutating-webhook-cfg-debug"
VALIDATING_WEBHOOK_CONFIGURATION_NAME = "kube-policy-validating-webhook-cfg"
VALIDATING_WEBHOOK_CONFIGURATION_DEBUG = "kube-policy-validating-webhook-cfg-debug"

# Webhook entry names (must be fully qualified)
MUTATING_WEBHOOK_NAME = "mutate.kube-policy.io"
VALIDATING_WEBHOOK_NAME = "validate.kube-policy.io"

# Paths served by the webhook server
MUTATING_WEBHOOK_SERVICE_PATH = "/mutate"
VALIDATING_WEBHOOK_SERVICE_PATH = "/validate"

# Admission review settings required by admissionregistration.k8s.io/v1
ADMISSION_REVIEW_VERSIONS = ["v1"]
WEBHOOK_SIDE_EFFECTS = "None"

# Rule shared by every webhook: intercept creation of any object
WEBHOOK_RULE_OPERATIONS = ["CREATE"]
WEBHOOK_RULE_API_GROUPS = ["*"]
WEBHOOK_RULE_API_VERSIONS = ["*"]
WEBHOOK_RULE_RESOURCES = ["*/*"]

# Root CA secret, named after the service DNS name it signs
ROOT_CA_SECRET_SUFFIX = "kube-policy-tls-ca"
ROOT_CA_SECRET_KEY = "rootCA.crt"

# Owner reference to the controller deployment
DEPLOYMENT_API_VERSION = "apps/v1"
DEPLOYMENT_KIND = "Deployment"

# Error message templates
ERROR_NO_CA_DATA = "Unable to extract CA data from configuration"
ERROR_CREATE_FAILED = "Failed to create {} {}"
ERROR_DELETE_FAILED = "Failed to delete {} {}"


def root_ca_secret_name(service_name: str, namespace: str) -> str:
    """Name of the secret holding the root CA for the webhook service."""
    return f"{service_name}.{namespace}.svc.{ROOT_CA_SECRET_SUFFIX}"
