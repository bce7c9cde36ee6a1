"""Unit tests for vksconnect CLI commands.

This module tests the connect, clusters, contexts and diagnose commands.
Tests focus on option parsing, exit codes and the calls made into the
orchestrator, session and diagnostics collector, all of which are mocked.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from vksconnect import __version__
from vksconnect.cli.main import apply_overrides, cli
from vksconnect.core.config import ConnectConfig
from vksconnect.core.exceptions import NoContextError, VcfCliError
from vksconnect.core.models import (
    Cluster,
    ClusterDiagnostics,
    ConnectResult,
    ContextEntry,
    FindingSeverity,
)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Create a temporary config file for testing."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"""
vcf:
  endpoint: vcfa.example.com
  tenant: acme
  ca_cert_file: {tmp_path / "chain.pem"}

cluster:
  kubeconfig_path: {tmp_path / "kube" / "config"}
  poll_interval_seconds: 5
"""
    )
    return config_file


@pytest.fixture
def mock_orchestrator():
    """Patch ConnectionOrchestrator and the vcf CLI backend."""
    with (
        patch("vksconnect.connect.orchestrator.ConnectionOrchestrator") as orchestrator_class,
        patch("vksconnect.cli.main.AppContext.backend"),
    ):
        orchestrator_class.return_value.run.return_value = ConnectResult(
            cluster_name="vks-01",
            vcf_context_name="vks-01",
            kube_context_name="vcf-cli-vks-01-dev-ns@vks-01-dev-ns",
            kubeconfig_path="/home/u/.kube/config",
            namespaces_labeled=True,
        )
        yield orchestrator_class


@pytest.fixture
def mock_session():
    """Patch AppContext.session with a mock session manager."""
    with patch("vksconnect.cli.main.AppContext.session") as session_factory:
        yield session_factory.return_value


class TestCliBasics:
    """Tests for the command group itself."""

    def test_version(self, cli_runner: CliRunner) -> None:
        """Test --version prints the package version."""
        result = cli_runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, cli_runner: CliRunner) -> None:
        """Test --help lists every command."""
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("connect", "clusters", "contexts", "diagnose"):
            assert command in result.output

    def test_missing_config_file_is_usage_error(self, cli_runner: CliRunner) -> None:
        """Test a nonexistent --config path is rejected by click."""
        result = cli_runner.invoke(cli, ["--config", "/nonexistent.yaml", "contexts"])

        assert result.exit_code == 2


class TestConnectCommand:
    """Tests for the connect command."""

    def test_connect_success(
        self, cli_runner: CliRunner, config_file: Path, mock_orchestrator
    ) -> None:
        """Test a successful connection prints the summary table."""
        result = cli_runner.invoke(cli, ["--config", str(config_file), "connect", "vks-01"])

        assert result.exit_code == 0
        assert "Connection Summary" in result.output
        assert "vcf-cli-vks-01-dev-ns@vks-01-dev-ns" in result.output
        mock_orchestrator.return_value.run.assert_called_once_with(
            cluster_name="vks-01", context_name=None
        )

    def test_connect_passes_context_argument(
        self, cli_runner: CliRunner, config_file: Path, mock_orchestrator
    ) -> None:
        """Test the optional second argument names the VCF context."""
        result = cli_runner.invoke(
            cli, ["--config", str(config_file), "connect", "vks-01", "my-ctx"]
        )

        assert result.exit_code == 0
        mock_orchestrator.return_value.run.assert_called_once_with(
            cluster_name="vks-01", context_name="my-ctx"
        )

    def test_connect_applies_overrides(
        self, cli_runner: CliRunner, config_file: Path, mock_orchestrator, tmp_path: Path
    ) -> None:
        """Test command-line options override the config file."""
        kubeconfig = tmp_path / "other-config"

        result = cli_runner.invoke(
            cli,
            [
                "--config",
                str(config_file),
                "connect",
                "vks-01",
                "--kubeconfig",
                str(kubeconfig),
                "--tenant",
                "other",
                "--interval",
                "3",
            ],
        )

        assert result.exit_code == 0
        config = mock_orchestrator.call_args.kwargs["config"]
        assert config.cluster.kubeconfig_path == str(kubeconfig)
        assert config.cluster.poll_interval_seconds == 3
        assert config.vcf.tenant == "other"
        assert config.vcf.endpoint == "vcfa.example.com"

    def test_setup_only_skips_summary(
        self, cli_runner: CliRunner, config_file: Path, mock_orchestrator
    ) -> None:
        """Test a setup-only run prints no connection summary."""
        mock_orchestrator.return_value.run.return_value = ConnectResult(setup_only=True)

        result = cli_runner.invoke(cli, ["--config", str(config_file), "connect"])

        assert result.exit_code == 0
        assert "Connection Summary" not in result.output

    def test_fatal_error_exits_with_hint(
        self, cli_runner: CliRunner, config_file: Path, mock_orchestrator
    ) -> None:
        """Test a fatal error prints the message and hint and exits 1."""
        mock_orchestrator.return_value.run.side_effect = NoContextError(
            "No VCF contexts found", hint="vcf context create vcfa"
        )

        result = cli_runner.invoke(cli, ["--config", str(config_file), "connect", "vks-01"])

        assert result.exit_code == 1
        assert "No VCF contexts found" in result.output
        assert "Try: vcf context create vcfa" in result.output

    def test_interrupt_exits_130(
        self, cli_runner: CliRunner, config_file: Path, mock_orchestrator
    ) -> None:
        """Test Ctrl-C maps to exit code 130."""
        mock_orchestrator.return_value.run.side_effect = KeyboardInterrupt

        result = cli_runner.invoke(cli, ["--config", str(config_file), "connect", "vks-01"])

        assert result.exit_code == 130
        assert "Interrupted" in result.output

    def test_interval_must_be_positive(self, cli_runner: CliRunner, config_file: Path) -> None:
        """Test --interval 0 is rejected before anything runs."""
        result = cli_runner.invoke(
            cli, ["--config", str(config_file), "connect", "vks-01", "--interval", "0"]
        )

        assert result.exit_code == 2


class TestListCommands:
    """Tests for the clusters and contexts commands."""

    def test_clusters_table(
        self, cli_runner: CliRunner, config_file: Path, mock_session
    ) -> None:
        """Test clusters are rendered as a table."""
        mock_session.call.return_value = [
            Cluster(name="vks-01", namespace="dev-ns", status="running", version="v1.30.1"),
            Cluster(name="vks-02", namespace="dev-ns", status="creating"),
        ]

        result = cli_runner.invoke(cli, ["--config", str(config_file), "clusters"])

        assert result.exit_code == 0
        assert "Clusters (2 total)" in result.output
        assert "vks-02" in result.output
        assert mock_session.call.call_args.args[0] == "cluster.list"

    def test_clusters_json(self, cli_runner: CliRunner, config_file: Path, mock_session) -> None:
        """Test --format json prints machine-readable clusters."""
        mock_session.call.return_value = [
            Cluster(name="vks-01", namespace="dev-ns", status="running")
        ]

        result = cli_runner.invoke(
            cli, ["--config", str(config_file), "clusters", "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["name"] == "vks-01"
        assert data[0]["status"] == "running"

    def test_clusters_empty(self, cli_runner: CliRunner, config_file: Path, mock_session) -> None:
        """Test an empty cluster list prints a notice."""
        mock_session.call.return_value = []

        result = cli_runner.invoke(cli, ["--config", str(config_file), "clusters"])

        assert result.exit_code == 0
        assert "No clusters found" in result.output

    def test_clusters_backend_failure(
        self, cli_runner: CliRunner, config_file: Path, mock_session
    ) -> None:
        """Test a vcf CLI failure exits 1."""
        mock_session.call.side_effect = VcfCliError("vcf not installed", hint="Install vcf")

        result = cli_runner.invoke(cli, ["--config", str(config_file), "clusters"])

        assert result.exit_code == 1
        assert "Try: Install vcf" in result.output

    def test_contexts_json(self, cli_runner: CliRunner, config_file: Path, mock_session) -> None:
        """Test contexts are listed as JSON."""
        mock_session.list_contexts.return_value = [
            ContextEntry(name="vcfa", current=True, endpoint="vcfa.example.com", type="cci")
        ]

        result = cli_runner.invoke(
            cli, ["--config", str(config_file), "contexts", "--format", "json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.output) == [
            {"name": "vcfa", "current": True, "endpoint": "vcfa.example.com", "type": "cci"}
        ]

    def test_contexts_empty(self, cli_runner: CliRunner, config_file: Path, mock_session) -> None:
        """Test no contexts points at the connect command."""
        mock_session.list_contexts.return_value = []

        result = cli_runner.invoke(cli, ["--config", str(config_file), "contexts"])

        assert result.exit_code == 0
        assert "No VCF contexts found" in result.output


class TestDiagnoseCommand:
    """Tests for the diagnose command."""

    @pytest.fixture
    def mock_collector(self):
        """Patch DiagnosticsCollector."""
        with patch("vksconnect.diagnostics.collector.DiagnosticsCollector") as collector_class:
            collector_class.return_value.collect.return_value = ClusterDiagnostics(
                cluster_name="vks-01", namespace="dev-ns", phase="Provisioned"
            )
            yield collector_class

    def test_diagnose_with_namespace(
        self, cli_runner: CliRunner, config_file: Path, mock_collector, tmp_path: Path
    ) -> None:
        """Test an explicit namespace skips the cluster lookup."""
        result = cli_runner.invoke(
            cli,
            ["--config", str(config_file), "diagnose", "vks-01", "-n", "dev-ns", "--vms"],
        )

        assert result.exit_code == 0
        assert "VKS Cluster Debug Report: vks-01" in result.output
        assert "No problems found" in result.output
        mock_collector.assert_called_once_with(
            namespace="dev-ns",
            kubeconfig_path=str(tmp_path / "kube" / "config"),
            context=None,
        )
        mock_collector.return_value.collect.assert_called_once_with("vks-01", include_vms=True)

    def test_diagnose_looks_up_namespace(
        self, cli_runner: CliRunner, config_file: Path, mock_collector, mock_session
    ) -> None:
        """Test the namespace comes from the cluster list when omitted."""
        mock_session.call.return_value = [
            Cluster(name="vks-01", namespace="team-ns", status="creating")
        ]

        result = cli_runner.invoke(cli, ["--config", str(config_file), "diagnose", "vks-01"])

        assert result.exit_code == 0
        assert mock_collector.call_args.kwargs["namespace"] == "team-ns"

    def test_diagnose_unknown_cluster(
        self, cli_runner: CliRunner, config_file: Path, mock_collector, mock_session
    ) -> None:
        """Test an unlisted cluster without --namespace exits 1."""
        mock_session.call.return_value = []

        result = cli_runner.invoke(cli, ["--config", str(config_file), "diagnose", "vks-99"])

        assert result.exit_code == 1
        assert "Could not determine the namespace" in result.output
        mock_collector.assert_not_called()

    def test_diagnose_errors_exit_1(
        self, cli_runner: CliRunner, config_file: Path, mock_collector
    ) -> None:
        """Test error findings produce a non-zero exit after printing the report."""
        report = ClusterDiagnostics(cluster_name="vks-01", namespace="dev-ns")
        report.add_finding(FindingSeverity.ERROR, "cluster", "Condition Ready is False: x")
        mock_collector.return_value.collect.return_value = report

        result = cli_runner.invoke(
            cli, ["--config", str(config_file), "diagnose", "vks-01", "-n", "dev-ns"]
        )

        assert result.exit_code == 1
        assert "Condition Ready is False" in result.output

    def test_diagnose_json(self, cli_runner: CliRunner, config_file: Path, mock_collector) -> None:
        """Test --format json emits the report model."""
        result = cli_runner.invoke(
            cli,
            [
                "--config",
                str(config_file),
                "diagnose",
                "vks-01",
                "-n",
                "dev-ns",
                "--format",
                "json",
                "--kube-context",
                "supervisor",
            ],
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["cluster_name"] == "vks-01"
        assert data["phase"] == "Provisioned"
        assert mock_collector.call_args.kwargs["context"] == "supervisor"


class TestApplyOverrides:
    """Tests for apply_overrides."""

    def test_no_overrides_keeps_config(self) -> None:
        """Test unset options leave every value unchanged."""
        config = ConnectConfig()

        assert apply_overrides(config) == config

    def test_overrides_do_not_mutate_original(self) -> None:
        """Test the input config is copied, not modified."""
        config = ConnectConfig()

        updated = apply_overrides(config, endpoint="other.example.com", interval=2)

        assert updated.vcf.endpoint == "other.example.com"
        assert updated.cluster.poll_interval_seconds == 2
        assert config.vcf.endpoint != "other.example.com"
        assert config.cluster.poll_interval_seconds == 10.0
