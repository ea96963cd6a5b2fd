# ABOUTME: Standalone entry point running the Weave GitOps add-on against a cluster via helm
# ABOUTME: Loads settings, configures logging and drives the deploy and post_deploy hooks

"""Run the add-on outside a host framework, configured from the environment."""

from __future__ import annotations

import sys

import structlog
from pydantic import ValidationError

from weave_gitops_addon.addon import WeaveGitOpsAddOn
from weave_gitops_addon.cluster import ClusterInfo, HelmCluster
from weave_gitops_addon.config import AddOnSettings, load_settings
from weave_gitops_addon.models import BootstrapRepository
from weave_gitops_addon.secrets import AwsSecretsManagerStore
from weave_gitops_addon.utils.logging import AuditLogger, configure_logging, set_run_id

logger = structlog.get_logger(__name__)

# Stands in when only the core controller is installed; post_deploy never runs then.
PLACEHOLDER_REPOSITORY = BootstrapRepository(url="-", branch="-", path="-")


def build_addon(settings: AddOnSettings) -> WeaveGitOpsAddOn:
    """Create the add-on described by settings."""
    repository = settings.bootstrap or PLACEHOLDER_REPOSITORY.model_copy()
    secret_store = None
    if repository.secret_name:
        secret_store = AwsSecretsManagerStore(settings.secrets)

    return WeaveGitOpsAddOn(
        repository,
        settings.namespace,
        secret_store=secret_store,
        core_chart=settings.core_chart,
        app_chart=settings.app_chart,
        audit_logger=AuditLogger(settings.audit_log),
    )


def build_cluster(settings: AddOnSettings) -> HelmCluster:
    """Create the helm-backed cluster described by settings."""
    return HelmCluster(
        settings.cluster_name,
        kubeconfig=settings.kubeconfig,
        kube_context=settings.kube_context,
        helm_binary=settings.helm_binary,
        timeout=settings.helm_timeout,
    )


def run(settings: AddOnSettings) -> None:
    """
    Run one provisioning pass.

    deploy always runs; post_deploy only when a bootstrap repository is
    configured. Neither raises, outcomes land in the log and audit trail.
    """
    cluster_info = ClusterInfo(cluster=build_cluster(settings))
    addon = build_addon(settings)

    addon.deploy(cluster_info)

    if settings.bootstrap is None:
        logger.info("No bootstrap repository configured, skipping post_deploy")
        return

    addon.post_deploy(cluster_info, [])


def main() -> None:
    """Run the Weave GitOps add-on."""
    try:
        settings = load_settings()
    except ValidationError as e:
        configure_logging(level="INFO")
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors(include_input=False)]
        logger.error("Invalid configuration", errors=e.error_count(), fields=fields)
        sys.exit(1)

    configure_logging(level=settings.log_level, json_output=settings.json_logs)
    set_run_id("")
    logger.info("Weave GitOps add-on starting", namespace=settings.namespace)

    if not settings.cluster_name:
        logger.error("WEGO_CLUSTER_NAME is required")
        sys.exit(1)

    try:
        run(settings)
    except KeyboardInterrupt:
        logger.info("Run interrupted")
        sys.exit(0)

    logger.info("Weave GitOps add-on finished")


if __name__ == "__main__":
    main()
