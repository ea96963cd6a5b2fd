# ABOUTME: Deployment target interfaces and a helm-backed cluster for the add-on
# ABOUTME: Defines the host framework hooks and installs charts via helm upgrade --install

"""
Deployment target interfaces.

=============================================================================
WHAT IS THIS FILE?
=============================================================================

The add-on is a plugin: a host provisioning framework owns the cluster and
calls the add-on's lifecycle hooks. The add-on only needs a very small slice
of the host:

    cluster_info.cluster.cluster_name          # name of the cluster
    cluster_info.cluster.add_helm_chart(...)   # install one chart

The Protocols below spell out that slice, so any framework object with the
same shape works. HelmCluster is a concrete implementation that drives the
helm binary directly, used by the standalone entry point and handy for
local clusters (kind, k3d) without a host framework.

=============================================================================
HOW HelmCluster PASSES VALUES
=============================================================================

Chart values can hold SSH key material. They are handed to helm as JSON on
stdin (`--values -`, JSON being valid YAML), never as `--set` arguments:
argv is visible to every user on the machine through the process table.
"""

from __future__ import annotations

import json
import re
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import structlog
from pydantic import BaseModel, Field

from weave_gitops_addon.errors import AddOnError, ErrorKind
from weave_gitops_addon.utils.masking import mask_sensitive_data

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = structlog.get_logger(__name__)

# helm --timeout durations: 90s, 5m, 5m30s, 1h, 1h30m
HELM_DURATION_PATTERN = r"^(\d+h(\d+m)?(\d+s)?|\d+m(\d+s)?|\d+s)$"


# =============================================================================
# INSTALL REQUEST
# =============================================================================


class HelmChart(BaseModel):
    """Declarative request to install one chart."""

    chart: str = Field(description="Chart name")
    repository: str = Field(description="Chart repository URL")
    version: str = Field(description="Chart version")
    namespace: str = Field(description="Release namespace")
    values: dict[str, Any] = Field(default_factory=dict, description="Chart values")

    def describe(self) -> dict[str, str]:
        """Chart identity without values, safe to log."""
        return {
            "chart": self.chart,
            "repository": self.repository,
            "version": self.version,
            "namespace": self.namespace,
        }


# =============================================================================
# HOST FRAMEWORK INTERFACES
# =============================================================================


@runtime_checkable
class Cluster(Protocol):
    """The part of a cluster the add-on deploys through."""

    cluster_name: str

    def add_helm_chart(self, name: str, chart: HelmChart) -> None:
        """Install chart as release name, raising on failure."""
        ...


@dataclass
class ClusterInfo:
    """Handle passed by the host framework to every lifecycle hook."""

    cluster: Cluster


@dataclass(frozen=True)
class Team:
    """A team defined on the cluster. The add-on does not vary behaviour by team."""

    name: str
    users: tuple[str, ...] = ()


class ClusterAddOn(Protocol):
    """Add-on with a deploy step."""

    def deploy(self, cluster_info: ClusterInfo) -> None: ...


class ClusterPostDeploy(Protocol):
    """Add-on with a step that runs after every add-on and team is in place."""

    def post_deploy(self, cluster_info: ClusterInfo, teams: Sequence[Team]) -> None: ...


# =============================================================================
# HELM CLI CLUSTER
# =============================================================================


class HelmError(AddOnError):
    """helm could not be run or exited non-zero."""

    def __init__(self, release: str, message: str, returncode: int | None = None, stderr: str = "") -> None:
        self.release = release
        self.returncode = returncode
        self.stderr = mask_sensitive_data(stderr.strip())
        details = self.stderr[:500] or None
        if returncode is not None:
            message = f"{message} (exit code {returncode})"
        super().__init__(ErrorKind.DEPLOYMENT, message, details)


class HelmCluster:
    """Cluster that installs charts by running `helm upgrade --install`."""

    def __init__(
        self,
        cluster_name: str,
        kubeconfig: Path | None = None,
        kube_context: str | None = None,
        helm_binary: str = "helm",
        timeout: str = "5m",
    ) -> None:
        """Initialize helm cluster.

        Args:
            cluster_name: Name reported to the add-on
            kubeconfig: kubeconfig file, None for helm's default resolution
            kube_context: kube context, None for the current context
            helm_binary: helm executable name or path
            timeout: helm --timeout value, also bounds the subprocess

        Raises:
            ValueError: timeout is not a helm duration
        """
        self.cluster_name = cluster_name
        self._kubeconfig = kubeconfig
        self._kube_context = kube_context
        self._helm = helm_binary
        self._timeout = timeout
        self._timeout_secs = _timeout_seconds(timeout)

    def build_command(self, name: str, chart: HelmChart) -> list[str]:
        """Build the helm argv for installing chart as release name."""
        if chart.repository.startswith("oci://"):
            source = [f"{chart.repository}/{chart.chart}"]
        else:
            source = [chart.chart, "--repo", chart.repository]

        cmd = [
            self._helm,
            "upgrade",
            "--install",
            name,
            *source,
            "--version",
            chart.version,
            "--namespace",
            chart.namespace,
            "--create-namespace",
            "--wait",
            "--timeout",
            self._timeout,
            "--values",
            "-",
        ]
        if self._kubeconfig:
            cmd.extend(["--kubeconfig", str(self._kubeconfig)])
        if self._kube_context:
            cmd.extend(["--kube-context", self._kube_context])
        return cmd

    def add_helm_chart(self, name: str, chart: HelmChart) -> None:
        """
        Install or upgrade a release.

        Raises:
            HelmError: helm is missing, timed out or exited non-zero
        """
        cmd = self.build_command(name, chart)
        log = logger.bind(release=name, **chart.describe())
        log.info("Installing chart")

        try:
            result = subprocess.run(
                cmd,
                input=json.dumps(chart.values),
                capture_output=True,
                text=True,
                timeout=self._timeout_secs + 30,
                check=False,
            )
        except FileNotFoundError as e:
            raise HelmError(name, f"helm executable '{self._helm}' not found") from e
        except subprocess.TimeoutExpired as e:
            raise HelmError(name, f"helm did not finish within {self._timeout}") from e

        if result.returncode != 0:
            log.warning("helm failed", returncode=result.returncode)
            raise HelmError(name, f"helm upgrade --install {name} failed", result.returncode, result.stderr)

        log.info("Chart installed")


def _timeout_seconds(timeout: str) -> int:
    """Convert a helm duration like 90s, 5m30s or 1h to seconds."""
    if not re.match(HELM_DURATION_PATTERN, timeout):
        raise ValueError(f"invalid helm duration '{timeout}', expected e.g. 90s, 5m30s or 1h")
    units = {"s": 1, "m": 60, "h": 3600}
    return sum(int(n) * units[u] for n, u in re.findall(r"(\d+)([hms])", timeout))
