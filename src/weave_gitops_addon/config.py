# ABOUTME: Configuration management for the Weave GitOps add-on
# ABOUTME: Handles environment variables, chart pins, secret store and logging settings

"""
Configuration management using pydantic-settings.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

When the add-on is driven by its own entry point (see runner.py) every knob
comes from the environment. This module:

1. READS environment variables (like WEGO_NAMESPACE, WEGO_CLUSTER_NAME)
2. VALIDATES them (chart repository URLs, log levels, timeouts)
3. PROVIDES typed access to settings throughout the package

A host framework that constructs WeaveGitOpsAddOn itself never has to touch
this module: the add-on's defaults match the settings' defaults.

=============================================================================
ARCHITECTURE: THREE CONFIGURATION CLASSES
=============================================================================

1. ChartSettings: Identity of ONE Helm chart (release, chart, repo, version)
   - Used twice: the core controller and the bootstrap application

2. SecretStoreSettings: AWS Secrets Manager client settings (WEGO_SECRETS_ prefix)
   - Region, endpoint override, timeouts, attempt count

3. AddOnSettings: Main configuration container (WEGO_ prefix)
   - Namespace, cluster, Helm invocation, bootstrap repository, logging
   - Contains SecretStoreSettings as nested object

=============================================================================
ENVIRONMENT VARIABLE MAPPING
=============================================================================

Add-on:
    WEGO_NAMESPACE          -> Target namespace (default: wego-system)
    WEGO_CLUSTER_NAME       -> Cluster name, becomes the application name
    WEGO_KUBECONFIG         -> kubeconfig passed to helm
    WEGO_KUBE_CONTEXT       -> kube context passed to helm
    WEGO_HELM_BINARY        -> helm executable (default: helm)
    WEGO_HELM_TIMEOUT       -> helm --timeout value, e.g. 90s or 5m30s (default: 5m)
    WEGO_BOOTSTRAP          -> JSON object describing the bootstrap repository
    WEGO_BOOTSTRAP__URL     -> ...or one nested variable per field
    WEGO_LOG_LEVEL          -> DEBUG, INFO, WARNING, ERROR, CRITICAL
    WEGO_JSON_LOGS          -> Emit JSON log lines
    WEGO_AUDIT_LOG          -> Path to audit log file

Secret store (WEGO_SECRETS_ prefix):
    WEGO_SECRETS_REGION           -> AWS region (default: boto3 resolution)
    WEGO_SECRETS_ENDPOINT_URL     -> Endpoint override (e.g. localstack)
    WEGO_SECRETS_CONNECT_TIMEOUT  -> Seconds (default: 5)
    WEGO_SECRETS_READ_TIMEOUT     -> Seconds (default: 10)
    WEGO_SECRETS_MAX_ATTEMPTS     -> Attempts on transport errors (default: 3)
"""

# =============================================================================
# IMPORTS
# =============================================================================

from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003 - Required at runtime for Pydantic
from typing import Annotated

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from weave_gitops_addon.cluster import HELM_DURATION_PATTERN
from weave_gitops_addon.models import BootstrapRepository  # noqa: TC001 - Required at runtime for Pydantic

DEFAULT_NAMESPACE = "wego-system"
WEGO_HELM_REPOSITORY = "https://murillodigital.github.io/wego-helm"

# =============================================================================
# CHART CONFIGURATION
# =============================================================================


class ChartSettings(BaseModel):
    """
    Identity of one Helm chart the add-on installs.

    WHY BaseModel NOT BaseSettings?
    -------------------------------
    Charts are nested inside AddOnSettings and overridden as a whole, e.g.
    WEGO_CORE_CHART='{"release": "weave-gitops-core", "chart": "wego-core",
    "version": "0.0.6"}'. They are never read from the environment on their own.
    """

    model_config = {"extra": "ignore"}

    release: str = Field(description="Helm release name")
    chart: str = Field(description="Chart name in the repository")
    repository: str = Field(default=WEGO_HELM_REPOSITORY, description="Chart repository URL")
    version: str = Field(description="Pinned chart version")

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        """
        Ensure the repository URL has a scheme and no trailing slash.

        "murillodigital.github.io/wego-helm/" becomes
        "https://murillodigital.github.io/wego-helm".
        """
        if not v.startswith(("http://", "https://", "oci://")):
            v = f"https://{v}"
        return v.rstrip("/")


def default_core_chart() -> ChartSettings:
    """Pinned chart for the core GitOps controller."""
    return ChartSettings(release="weave-gitops-core", chart="wego-core", version="0.0.5")


def default_app_chart() -> ChartSettings:
    """Pinned chart for the bootstrap application."""
    return ChartSettings(release="weave-gitops-application", chart="wego-app", version="0.0.1")


# =============================================================================
# SECRET STORE SETTINGS
# =============================================================================


class SecretStoreSettings(BaseSettings):
    """
    AWS Secrets Manager client settings.

    TIMEOUTS:
    ---------
    A provisioning run should not hang on an unreachable endpoint. The two
    timeouts bound each attempt; max_attempts bounds how often a transport
    failure is retried before the store is declared unavailable.
    """

    model_config = SettingsConfigDict(env_prefix="WEGO_SECRETS_")

    region: str | None = Field(
        default=None,
        description="AWS region; None defers to the boto3 credential chain",
    )

    endpoint_url: str | None = Field(
        default=None,
        description="Endpoint override, e.g. http://localhost:4566 for localstack",
    )

    connect_timeout: float = Field(default=5.0, gt=0, description="Connect timeout in seconds")
    read_timeout: float = Field(default=10.0, gt=0, description="Read timeout in seconds")

    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts on timeouts and connection errors",
    )


# =============================================================================
# MAIN ADD-ON SETTINGS
# =============================================================================


class AddOnSettings(BaseSettings):
    """
    Main add-on configuration.

    USAGE:
    ------
        settings = load_settings()
        print(settings.namespace)               # wego-system
        print(settings.core_chart.version)      # 0.0.5
        print(settings.secrets.read_timeout)    # 10.0
    """

    model_config = SettingsConfigDict(
        env_prefix="WEGO_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # TARGET CLUSTER
    # -------------------------------------------------------------------------

    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Namespace for both charts")

    cluster_name: str = Field(
        default="",  # Empty string = not configured
        description="Cluster name, used as the bootstrap application name",
    )

    kubeconfig: Path | None = Field(default=None, description="kubeconfig passed to helm")
    kube_context: str | None = Field(default=None, description="kube context passed to helm")

    helm_binary: str = Field(default="helm", description="helm executable")

    helm_timeout: Annotated[str, Field(pattern=HELM_DURATION_PATTERN)] = Field(
        default="5m",
        description="Value of helm --timeout",
    )

    # -------------------------------------------------------------------------
    # BOOTSTRAP
    # -------------------------------------------------------------------------

    bootstrap: BootstrapRepository | None = Field(
        default=None,
        description="Repository the controller is bootstrapped against",
    )
    # Unset means only the core controller is installed.

    core_chart: ChartSettings = Field(default_factory=default_core_chart)
    app_chart: ChartSettings = Field(default_factory=default_app_chart)

    # -------------------------------------------------------------------------
    # OBSERVABILITY
    # -------------------------------------------------------------------------

    log_level: Annotated[str, Field(pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")] = Field(
        default="INFO",
        description="Logging level",
    )

    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    audit_log: Path | None = Field(default=None, description="Path to audit log file")

    # -------------------------------------------------------------------------
    # NESTED SECRET STORE SETTINGS
    # -------------------------------------------------------------------------

    secrets: SecretStoreSettings = Field(default_factory=SecretStoreSettings)

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        """Fall back to the default namespace when given a blank value."""
        return v.strip() or DEFAULT_NAMESPACE


# =============================================================================
# SETTINGS LOADER
# =============================================================================


def load_settings() -> AddOnSettings:
    """
    Load settings from environment with validation.

    If WEGO_ENV_FILE is set, additional variables are read from that file,
    which is handy for local runs:

        WEGO_CLUSTER_NAME=dev-blue
        WEGO_BOOTSTRAP__URL=ssh://git@github.com/example/fleet.git
        WEGO_BOOTSTRAP__BRANCH=main
        WEGO_BOOTSTRAP__PATH=./clusters/dev-blue
        WEGO_BOOTSTRAP__SECRET_NAME=wego/github-ssh

    Returns:
        Fully validated AddOnSettings instance.

    Raises:
        pydantic.ValidationError: If configuration is invalid.
    """
    return AddOnSettings(
        _env_file=os.environ.get("WEGO_ENV_FILE"),
    )
