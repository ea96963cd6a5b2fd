# ABOUTME: Weave GitOps add-on installing the controller and bootstrapping it against a repository
# ABOUTME: Implements the deploy and post_deploy lifecycle hooks called by the host framework

"""
Weave GitOps cluster add-on.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

The add-on plugs into a cluster provisioning framework through two hooks:

1. deploy(cluster_info)
   Installs the core controller chart (wego-core) into the namespace.

2. post_deploy(cluster_info, teams)
   Runs after the cluster and its teams exist. Resolves SSH credentials from
   the secret store when a secret name is configured, then installs the
   application chart (wego-app) that points the controller at the bootstrap
   repository.

=============================================================================
FAILURE POLICY
=============================================================================

Both hooks are best effort: ANY exception inside a hook is caught at the top
of that hook, logged with the step name, recorded in the audit log and then
dropped. The provisioning run carries on.

That is a weak guarantee. A failed core install means the bootstrap install
will fail as well, and nothing but the log says so. Pipelines that need a
hard failure must check the audit log (result == "error") or the cluster.

=============================================================================
WHAT THE CONTROLLER RECEIVES
=============================================================================

The application chart gets one entry per bootstrapped application:

    {"applications": [{
        "applicationName": "<cluster name>",
        "gitRepository": "ssh://git@github.com/example/fleet.git",
        "privateKey": "<base64 of the private key bytes>",
        "knownHosts": "<base64 of the known_hosts bytes>",
        "path": "./clusters/dev",
        "branch": "main",
    }]}

Key material is base64-encoded so multi-line PEM blocks survive the trip
through chart values untouched.
"""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING, Any

import structlog

from weave_gitops_addon.cluster import HelmChart
from weave_gitops_addon.config import (
    DEFAULT_NAMESPACE,
    ChartSettings,
    default_app_chart,
    default_core_chart,
)
from weave_gitops_addon.errors import AddOnError, ErrorKind
from weave_gitops_addon.secrets import AwsSecretsManagerStore, CredentialResolver
from weave_gitops_addon.utils.logging import AuditLogger
from weave_gitops_addon.utils.masking import mask_sensitive_data

if TYPE_CHECKING:
    from collections.abc import Sequence

    from weave_gitops_addon.cluster import ClusterInfo, Team
    from weave_gitops_addon.models import BootstrapRepository
    from weave_gitops_addon.secrets import SecretStore

logger = structlog.get_logger(__name__)


def base64_encode_contents(contents: str | bytes) -> str:
    """
    Base64-encode contents as raw bytes.

    Text is taken as its UTF-8 bytes; bytes are encoded untouched. Decoding
    the result yields exactly those bytes again.
    """
    raw = contents.encode("utf-8") if isinstance(contents, str) else contents
    return base64.b64encode(raw).decode("ascii")


class WeaveGitOpsAddOn:
    """
    Installs Weave GitOps and bootstraps it against a Git repository.

    USAGE EXAMPLE:
    --------------
        addon = WeaveGitOpsAddOn(
            BootstrapRepository(
                url="ssh://git@github.com/example/fleet.git",
                branch="main",
                path="./clusters/dev",
                secret_name="wego/github-ssh",
            ),
        )
        addon.deploy(cluster_info)
        addon.post_deploy(cluster_info, teams)
    """

    def __init__(
        self,
        bootstrap_repository: BootstrapRepository,
        namespace: str | None = None,
        *,
        secret_store: SecretStore | None = None,
        core_chart: ChartSettings | None = None,
        app_chart: ChartSettings | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        """
        Initialize the add-on.

        Args:
            bootstrap_repository: Repository to bootstrap; mutated in place
                when credentials are resolved from a secret
            namespace: Namespace for both charts (default: wego-system)
            secret_store: Store used to resolve secret_name. When omitted, an
                AWS Secrets Manager store is created on first use
            core_chart: Override for the pinned core controller chart
            app_chart: Override for the pinned bootstrap application chart
            audit_logger: Audit sink (default: structlog "audit" events)
        """
        self.namespace = namespace or DEFAULT_NAMESPACE
        self.bootstrap_repository = bootstrap_repository
        self._secret_store = secret_store
        self._core_chart = core_chart or default_core_chart()
        self._app_chart = app_chart or default_app_chart()
        self._audit = audit_logger or AuditLogger()

    # =========================================================================
    # CREDENTIALS
    # =========================================================================

    def resolve_credentials(self, secret_name: str) -> None:
        """
        Populate the repository's SSH credentials from a secret.

        Blocks until the store answers; the repository is only touched once
        the payload has been fetched and validated.

        Raises:
            SecretStoreError: The store could not produce the secret
            AddOnError: The secret is not a valid credential bundle
        """
        if self._secret_store is None:
            self._secret_store = AwsSecretsManagerStore()
        CredentialResolver(self._secret_store).resolve(secret_name, self.bootstrap_repository)
        self._audit.log_success("resolve_credentials", secret_name)

    # =========================================================================
    # INSTALL REQUESTS
    # =========================================================================

    def core_chart_request(self) -> HelmChart:
        """Install request for the core controller. Carries no values."""
        return HelmChart(
            chart=self._core_chart.chart,
            repository=self._core_chart.repository,
            version=self._core_chart.version,
            namespace=self.namespace,
        )

    def application_chart_request(self, cluster_name: str) -> HelmChart:
        """
        Install request for the bootstrap application.

        Raises:
            AddOnError: MISSING_CREDENTIALS unless both the private key and
                the known hosts are non-empty
        """
        repository = self.bootstrap_repository
        if not repository.has_credentials():
            raise AddOnError(
                ErrorKind.MISSING_CREDENTIALS,
                "Required details for bootstrap repository access are missing",
                "both private_key and known_hosts must be set",
            )

        application: dict[str, Any] = {
            "applicationName": cluster_name,
            "gitRepository": repository.url,
            "privateKey": base64_encode_contents(repository.private_key.get_secret_value()),
            "knownHosts": base64_encode_contents(repository.known_hosts.get_secret_value()),
            "path": repository.path,
            "branch": repository.branch,
        }
        return HelmChart(
            chart=self._app_chart.chart,
            repository=self._app_chart.repository,
            version=self._app_chart.version,
            namespace=self.namespace,
            values={"applications": [application]},
        )

    # =========================================================================
    # LIFECYCLE HOOKS
    # =========================================================================

    def deploy(self, cluster_info: ClusterInfo) -> None:
        """
        Install the core controller chart.

        Never raises: failures are logged and audited, then dropped.
        """
        release = self._core_chart.release
        try:
            chart = self.core_chart_request()
            cluster_info.cluster.add_helm_chart(release, chart)
        except Exception as e:  # noqa: BLE001 - hook boundary, provisioning must continue
            self._report_failure("deploy", release, e)
            return

        logger.info("Weave GitOps core deployed", release=release, **chart.describe())
        self._audit.log_success("deploy", release, {"version": chart.version})

    def post_deploy(self, cluster_info: ClusterInfo, teams: Sequence[Team]) -> None:
        """
        Resolve credentials if needed, then install the bootstrap application chart.

        teams is accepted for the host framework's hook signature; it does
        not change what gets installed.

        Never raises: failures are logged and audited, then dropped.
        """
        release = self._app_chart.release
        try:
            secret_name = self.bootstrap_repository.secret_name
            if secret_name:
                self.resolve_credentials(secret_name)
            else:
                self._audit.log_skipped("resolve_credentials", "-", "no secret name configured")

            cluster_name = cluster_info.cluster.cluster_name
            chart = self.application_chart_request(cluster_name)
            cluster_info.cluster.add_helm_chart(release, chart)
        except Exception as e:  # noqa: BLE001 - hook boundary, provisioning must continue
            self._report_failure("post_deploy", release, e)
            return

        logger.info(
            "Weave GitOps bootstrap deployed",
            release=release,
            application=cluster_name,
            teams=len(teams),
            **chart.describe(),
        )
        self._audit.log_success(
            "post_deploy",
            release,
            {"application": cluster_name, "branch": self.bootstrap_repository.branch},
        )

    def _report_failure(self, step: str, release: str, error: Exception) -> None:
        message = mask_sensitive_data(str(error))
        kind = error.kind.value if isinstance(error, AddOnError) else None
        logger.error(
            "Unable to complete Weave GitOps AddOn step - aborting",
            step=step,
            release=release,
            kind=kind,
            error_type=type(error).__name__,
            error=message,
        )
        self._audit.log_error(step, release, message, kind)
