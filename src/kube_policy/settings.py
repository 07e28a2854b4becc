"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for the operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for an in-cluster deployment. Override
    via environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Controller identification
    namespace: str = Field(
        default="kube-policy",
        description="Namespace where the controller and its webhook service run",
        validation_alias="KUBE_POLICY_NAMESPACE",
    )
    deployment_name: str = Field(
        default="kube-policy-deployment",
        description="Name of the controller deployment (owner of the webhook configurations)",
        validation_alias="KUBE_POLICY_DEPLOYMENT_NAME",
    )
    service_name: str = Field(
        default="kube-policy-svc",
        description="Name of the service exposing the webhook server",
        validation_alias="KUBE_POLICY_SERVICE_NAME",
    )

    # Out-of-cluster debugging
    server_ip: str = Field(
        default="",
        description=(
            "Address (host[:port]) of a webhook server running outside the cluster. "
            "When set, webhooks are registered in debug mode with a direct URL"
        ),
        validation_alias="KUBE_POLICY_SERVER_IP",
    )
    kubeconfig: str = Field(
        default="",
        description="Path to a kubeconfig file used when not running in-cluster",
        validation_alias="KUBECONFIG",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    @field_validator("server_ip")
    @classmethod
    def strip_server_ip(cls, value: str) -> str:
        """Drop surrounding whitespace so a blank value means production mode."""
        return value.strip()

    @property
    def debug_mode(self) -> bool:
        """Whether webhooks point at an out-of-cluster server."""
        return bool(self.server_ip)


# Global settings instance - initialized once at module import
settings = Settings()
