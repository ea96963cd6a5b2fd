# ABOUTME: Unit tests for the Weave GitOps add-on lifecycle hooks
# ABOUTME: Tests chart requests, credential handling and the swallow-at-boundary policy

"""Unit tests for addon.py covering deploy, post_deploy and request construction."""

from __future__ import annotations

import base64
import json
from unittest.mock import patch

import pytest

from weave_gitops_addon.addon import WeaveGitOpsAddOn, base64_encode_contents
from weave_gitops_addon.cluster import ClusterInfo
from weave_gitops_addon.config import ChartSettings
from weave_gitops_addon.errors import AddOnError, ErrorKind
from weave_gitops_addon.models import BootstrapRepository
from weave_gitops_addon.secrets import SecretValue


@pytest.mark.unit
class TestBase64EncodeContents:
    """Tests for base64_encode_contents."""

    def test_encodes_text_as_utf8_bytes(self):
        """Test that text is encoded from its UTF-8 bytes."""
        assert base64_encode_contents("abc") == "YWJj"

    def test_encodes_bytes_untouched(self):
        """Test that arbitrary bytes survive encoding."""
        raw = bytes(range(256))
        assert base64.b64decode(base64_encode_contents(raw)) == raw

    def test_multiline_key_round_trips(self, credentials: dict[str, str]):
        """Test that a PEM block decodes back to the exact original bytes."""
        encoded = base64_encode_contents(credentials["private_key"])
        assert base64.b64decode(encoded) == credentials["private_key"].encode("utf-8")
        assert "\n" not in encoded


@pytest.mark.unit
class TestConstruction:
    """Tests for add-on construction."""

    def test_default_namespace(self, inline_repository: BootstrapRepository):
        """Test namespace defaults to wego-system."""
        addon = WeaveGitOpsAddOn(inline_repository)
        assert addon.namespace == "wego-system"

    def test_custom_namespace(self, inline_repository: BootstrapRepository):
        """Test explicit namespace is kept."""
        addon = WeaveGitOpsAddOn(inline_repository, "gitops")
        assert addon.namespace == "gitops"

    def test_empty_namespace_uses_default(self, inline_repository: BootstrapRepository):
        """Test an empty namespace falls back to the default."""
        addon = WeaveGitOpsAddOn(inline_repository, "")
        assert addon.namespace == "wego-system"

    def test_repository_is_shared_not_copied(self, inline_repository: BootstrapRepository):
        """Test the add-on holds the caller's repository object."""
        addon = WeaveGitOpsAddOn(inline_repository)
        assert addon.bootstrap_repository is inline_repository


@pytest.mark.unit
class TestDeploy:
    """Tests for the deploy hook."""

    def test_submits_single_core_request(self, addon: WeaveGitOpsAddOn, cluster_info: ClusterInfo):
        """Test deploy submits exactly one request for the core chart."""
        addon.deploy(cluster_info)

        installed = cluster_info.cluster.installed
        assert len(installed) == 1
        name, chart = installed[0]
        assert name == "weave-gitops-core"
        assert chart.chart == "wego-core"
        assert chart.repository == "https://murillodigital.github.io/wego-helm"
        assert chart.version == "0.0.5"
        assert chart.namespace == "wego-system"
        assert chart.values == {}

    def test_ignores_repository_contents(self, make_cluster, audit_logger):
        """Test deploy is the same whatever the bootstrap repository holds."""
        charts = []
        for repository in (
            BootstrapRepository(url="ssh://a", branch="x", path="p"),
            BootstrapRepository(url="ssh://b", branch="y", path="q", secret_name="s", private_key="k"),
        ):
            cluster = make_cluster()
            WeaveGitOpsAddOn(repository, audit_logger=audit_logger).deploy(ClusterInfo(cluster=cluster))
            assert len(cluster.installed) == 1
            charts.append(cluster.installed[0])

        assert charts[0] == charts[1]

    def test_does_not_touch_secret_store(self, addon: WeaveGitOpsAddOn, cluster_info, fake_store):
        """Test deploy never resolves credentials."""
        addon.deploy(cluster_info)
        assert fake_store.calls == []

    def test_uses_configured_namespace(self, inline_repository, cluster_info, audit_logger):
        """Test the core chart goes to the add-on's namespace."""
        WeaveGitOpsAddOn(inline_repository, "flux", audit_logger=audit_logger).deploy(cluster_info)
        assert cluster_info.cluster.installed[0][1].namespace == "flux"

    def test_install_error_is_swallowed(self, addon: WeaveGitOpsAddOn, failing_cluster, audit_entries):
        """Test an install failure does not propagate and is audited."""
        addon.deploy(ClusterInfo(cluster=failing_cluster))

        entries = audit_entries()
        assert entries[-1]["action"] == "deploy"
        assert entries[-1]["result"] == "error"
        assert "connection refused" in entries[-1]["details"]["error"]

    def test_success_is_audited(self, addon: WeaveGitOpsAddOn, cluster_info, audit_entries):
        """Test a successful deploy is audited with the chart version."""
        addon.deploy(cluster_info)

        entry = audit_entries()[-1]
        assert entry["action"] == "deploy"
        assert entry["target"] == "weave-gitops-core"
        assert entry["result"] == "success"
        assert entry["details"] == {"version": "0.0.5"}

    def test_chart_override(self, inline_repository, cluster_info, audit_logger):
        """Test an overridden core chart is used."""
        chart = ChartSettings(release="wego", chart="wego-core", version="0.1.0", repository="charts.example.com/")
        WeaveGitOpsAddOn(inline_repository, core_chart=chart, audit_logger=audit_logger).deploy(cluster_info)

        name, request = cluster_info.cluster.installed[0]
        assert name == "wego"
        assert request.version == "0.1.0"
        assert request.repository == "https://charts.example.com"


@pytest.mark.unit
class TestPostDeploy:
    """Tests for the post_deploy hook."""

    def test_resolves_secret_and_submits_application(
        self, addon: WeaveGitOpsAddOn, cluster_info, teams, fake_store, credentials
    ):
        """Test secret resolution followed by the application install."""
        addon.post_deploy(cluster_info, teams)

        assert fake_store.calls == ["wego/github-ssh"]
        installed = cluster_info.cluster.installed
        assert len(installed) == 1
        name, chart = installed[0]
        assert name == "weave-gitops-application"
        assert chart.chart == "wego-app"
        assert chart.version == "0.0.1"
        assert chart.namespace == "wego-system"

        repository = addon.bootstrap_repository
        assert repository.private_key.get_secret_value() == credentials["private_key"]
        assert repository.public_key.get_secret_value() == credentials["public_key"]
        assert repository.known_hosts.get_secret_value() == credentials["known_hosts"]

    def test_application_values(self, addon: WeaveGitOpsAddOn, make_cluster, teams):
        """Test the application descriptor carries cluster name and repository fields."""
        cluster = make_cluster(cluster_name="prod-eu-1")
        addon.post_deploy(ClusterInfo(cluster=cluster), teams)

        values = cluster.installed[0][1].values
        assert list(values) == ["applications"]
        assert len(values["applications"]) == 1
        application = values["applications"][0]
        assert application["applicationName"] == "prod-eu-1"
        assert application["gitRepository"] == "ssh://git@github.com/example/fleet.git"
        assert application["path"] == "./clusters/dev-blue"
        assert application["branch"] == "main"

    def test_git_repository_is_unmodified(self, make_cluster, make_store, audit_logger):
        """Test the repository URL is passed through exactly as given."""
        url = "git@github.com:Example/Fleet.git/"
        repository = BootstrapRepository(
            url=url, branch="main", path=".", private_key="k", known_hosts="h"
        )
        cluster = make_cluster()
        WeaveGitOpsAddOn(repository, secret_store=make_store(), audit_logger=audit_logger).post_deploy(
            ClusterInfo(cluster=cluster), []
        )

        assert cluster.installed[0][1].values["applications"][0]["gitRepository"] == url

    def test_encoded_credentials_round_trip(self, addon: WeaveGitOpsAddOn, cluster_info, credentials):
        """Test the submitted key material decodes to the original bytes."""
        addon.post_deploy(cluster_info, [])

        application = cluster_info.cluster.installed[0][1].values["applications"][0]
        assert base64.b64decode(application["privateKey"]) == credentials["private_key"].encode()
        assert base64.b64decode(application["knownHosts"]) == credentials["known_hosts"].encode()

    def test_camel_case_repository_resolves_secret(self, cluster_info, fake_store, audit_logger):
        """Test a repository in the host framework's shape still reaches the store."""
        repository = BootstrapRepository.model_validate(
            {
                "URL": "ssh://git@github.com/example/fleet.git",
                "branch": "main",
                "path": ".",
                "secretName": "wego/github-ssh",
            }
        )

        WeaveGitOpsAddOn(repository, secret_store=fake_store, audit_logger=audit_logger).post_deploy(
            cluster_info, []
        )

        assert fake_store.calls == ["wego/github-ssh"]
        assert [name for name, _ in cluster_info.cluster.installed] == ["weave-gitops-application"]

    def test_inline_credentials_skip_store(
        self, inline_repository, cluster_info, make_store, audit_logger, audit_entries
    ):
        """Test pre-populated credentials are used without calling the store."""
        store = make_store()
        WeaveGitOpsAddOn(inline_repository, secret_store=store, audit_logger=audit_logger).post_deploy(
            cluster_info, []
        )

        assert store.calls == []
        assert len(cluster_info.cluster.installed) == 1
        assert audit_entries()[0]["result"] == "skipped"

    def test_missing_credentials_abort(self, make_store, cluster_info, audit_logger, audit_entries):
        """Test empty credentials without a secret name submit nothing."""
        repository = BootstrapRepository(
            url="ssh://git@github.com/example/fleet.git",
            branch="main",
            path=".",
            private_key="",
            known_hosts="",
        )
        store = make_store()
        WeaveGitOpsAddOn(repository, secret_store=store, audit_logger=audit_logger).post_deploy(
            cluster_info, []
        )

        assert cluster_info.cluster.installed == []
        assert store.calls == []
        entry = audit_entries()[-1]
        assert entry["action"] == "post_deploy"
        assert entry["result"] == "error"
        assert entry["details"]["kind"] == "missing_credentials"

    @pytest.mark.parametrize(
        ("private_key", "known_hosts"),
        [("key", None), (None, "hosts"), ("key", ""), ("", "hosts")],
    )
    def test_partial_credentials_abort(self, cluster_info, audit_logger, private_key, known_hosts):
        """Test that one credential alone is not enough."""
        repository = BootstrapRepository(
            url="ssh://x", branch="main", path=".", private_key=private_key, known_hosts=known_hosts
        )
        WeaveGitOpsAddOn(repository, audit_logger=audit_logger).post_deploy(cluster_info, [])

        assert cluster_info.cluster.installed == []

    def test_store_error_is_swallowed(self, secret_repository, cluster_info, make_store, audit_logger, audit_entries):
        """Test a store failure aborts the step without propagating."""
        store = make_store()  # holds nothing -> resource_not_found
        WeaveGitOpsAddOn(secret_repository, secret_store=store, audit_logger=audit_logger).post_deploy(
            cluster_info, []
        )

        assert store.calls == ["wego/github-ssh"]
        assert cluster_info.cluster.installed == []
        entry = audit_entries()[-1]
        assert entry["result"] == "error"
        assert entry["details"]["kind"] == "secret_store"
        assert secret_repository.private_key is None

    def test_invalid_secret_is_swallowed(self, secret_repository, cluster_info, make_store, audit_logger, audit_entries):
        """Test a malformed bundle aborts the step without propagating."""
        store = make_store(
            {"wego/github-ssh": SecretValue(is_binary=False, payload=json.dumps({"private_key": "k"}))}
        )
        WeaveGitOpsAddOn(secret_repository, secret_store=store, audit_logger=audit_logger).post_deploy(
            cluster_info, []
        )

        assert cluster_info.cluster.installed == []
        assert audit_entries()[-1]["details"]["kind"] == "invalid_secret"

    def test_install_error_is_swallowed(self, addon: WeaveGitOpsAddOn, failing_cluster, audit_entries):
        """Test an install failure does not propagate past post_deploy."""
        addon.post_deploy(ClusterInfo(cluster=failing_cluster), [])

        entry = audit_entries()[-1]
        assert entry["action"] == "post_deploy"
        assert entry["result"] == "error"
        assert entry["details"].get("kind") is None

    def test_unexpected_error_is_swallowed(self, addon: WeaveGitOpsAddOn, cluster_info):
        """Test even non-add-on errors stay inside the hook."""
        with patch.object(addon, "application_chart_request", side_effect=KeyError("boom")):
            addon.post_deploy(cluster_info, [])

        assert cluster_info.cluster.installed == []

    def test_store_answers_before_fields_are_read(self, secret_repository, make_cluster, secret_payload, audit_logger):
        """Test the repository is untouched while the fetch is in flight."""
        seen_during_fetch = []

        class ObservingStore:
            def get_secret(self, name: str) -> SecretValue:
                seen_during_fetch.append(secret_repository.private_key)
                return SecretValue(is_binary=False, payload=secret_payload)

        cluster = make_cluster()
        WeaveGitOpsAddOn(secret_repository, secret_store=ObservingStore(), audit_logger=audit_logger).post_deploy(
            ClusterInfo(cluster=cluster), []
        )

        assert seen_during_fetch == [None]
        assert len(cluster.installed) == 1

    def test_teams_do_not_change_request(self, addon: WeaveGitOpsAddOn, make_cluster, teams):
        """Test the request is identical with and without teams."""
        first, second = make_cluster(), make_cluster()
        addon.post_deploy(ClusterInfo(cluster=first), [])
        addon.post_deploy(ClusterInfo(cluster=second), teams)

        assert first.installed == second.installed

    def test_key_material_not_audited(self, addon: WeaveGitOpsAddOn, cluster_info, audit_path, credentials):
        """Test no key material ends up in the audit log."""
        addon.post_deploy(cluster_info, [])

        content = audit_path.read_text()
        assert "OPENSSH PRIVATE KEY" not in content
        assert credentials["known_hosts"].strip() not in content
        assert base64_encode_contents(credentials["private_key"]) not in content

    def test_default_store_created_on_demand(self, secret_repository, cluster_info, audit_logger):
        """Test an AWS store is only built when a secret has to be resolved."""
        with patch("weave_gitops_addon.addon.AwsSecretsManagerStore") as store_cls:
            store_cls.return_value.get_secret.return_value = SecretValue(
                is_binary=False,
                payload=json.dumps({"private_key": "k", "public_key": "p", "known_hosts": "h"}),
            )
            addon = WeaveGitOpsAddOn(secret_repository, audit_logger=audit_logger)
            addon.deploy(cluster_info)
            store_cls.assert_not_called()

            addon.post_deploy(cluster_info, [])
            store_cls.assert_called_once_with()

        assert len(cluster_info.cluster.installed) == 2


@pytest.mark.unit
class TestApplicationChartRequest:
    """Tests for application_chart_request."""

    def test_raises_structured_error(self, audit_logger):
        """Test the validation failure is an AddOnError with a kind."""
        repository = BootstrapRepository(url="ssh://x", branch="main", path=".")
        addon = WeaveGitOpsAddOn(repository, audit_logger=audit_logger)

        with pytest.raises(AddOnError) as exc_info:
            addon.application_chart_request("dev")

        assert exc_info.value.kind is ErrorKind.MISSING_CREDENTIALS

    def test_app_chart_override(self, inline_repository, audit_logger):
        """Test an overridden application chart is used."""
        chart = ChartSettings(release="apps", chart="wego-app", version="0.2.0")
        addon = WeaveGitOpsAddOn(inline_repository, "gitops", app_chart=chart, audit_logger=audit_logger)

        request = addon.application_chart_request("dev")

        assert request.version == "0.2.0"
        assert request.namespace == "gitops"
