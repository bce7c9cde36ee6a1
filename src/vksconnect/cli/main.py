"""Main CLI entry point for vksconnect."""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from vksconnect import __version__
from vksconnect.core.exceptions import InputError, VksConnectError
from vksconnect.utils.logging import get_logger, log_error, setup_logging

if TYPE_CHECKING:
    from vksconnect.adapters.vcf_adapter import VcfCliAdapter
    from vksconnect.auth.session_manager import SessionManager
    from vksconnect.auth.token_cache import TokenCache
    from vksconnect.cli.operator import ConsoleOperator
    from vksconnect.core.config import ConnectConfig
    from vksconnect.core.models import ClusterDiagnostics, ConnectResult

console = Console()
logger = get_logger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class AppContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(
        self,
        config_path: str | None,
        log_level: str | None = None,
        log_format: str | None = None,
    ):
        """Initialize context.

        Args:
            config_path: Optional path to a YAML configuration file
            log_level: Log level override
            log_format: Log format override
        """
        self.config_path = config_path
        self.log_level = log_level
        self.log_format = log_format
        self._config: ConnectConfig | None = None
        self._operator: ConsoleOperator | None = None
        self._token_cache: TokenCache | None = None

    @property
    def config(self) -> ConnectConfig:
        """Get or load config lazily, then configure logging from it."""
        if self._config is None:
            from vksconnect.core.config import ConnectConfig

            self._config = ConnectConfig.load(self.config_path)
            logging_config = self._config.logging
            setup_logging(
                level=self.log_level or logging_config.level,
                format=self.log_format or logging_config.format,
                output=logging_config.output,
            )
        return self._config

    @config.setter
    def config(self, value: ConnectConfig) -> None:
        self._config = value

    @property
    def operator(self) -> ConsoleOperator:
        """Get or create the console operator lazily."""
        if self._operator is None:
            from vksconnect.cli.operator import ConsoleOperator

            self._operator = ConsoleOperator(console)
        return self._operator

    @property
    def token_cache(self) -> TokenCache:
        """Token cache seeded from VCF_API_TOKEN when it is set."""
        if self._token_cache is None:
            from vksconnect.auth.token_cache import TokenCache
            from vksconnect.clients.vcf_cli import TOKEN_ENV_VAR

            def prompt() -> str:
                self.operator.info("API token required for VCF authentication")
                return self.operator.prompt_secret("Enter API Token")

            self._token_cache = TokenCache(prompt=prompt, initial=os.environ.get(TOKEN_ENV_VAR))
        return self._token_cache

    def backend(self) -> VcfCliAdapter:
        """Build the vcf CLI identity backend for the current config."""
        from vksconnect.adapters.vcf_adapter import VcfCliAdapter
        from vksconnect.clients.vcf_cli import VcfCliWrapper

        return VcfCliAdapter(client=VcfCliWrapper(binary=self.config.vcf.cli_binary))

    def session(self) -> SessionManager:
        """Build a session manager over the vcf CLI backend."""
        from vksconnect.auth.session_manager import SessionManager

        return SessionManager(self.backend(), self.token_cache)


@contextmanager
def fatal_errors(operation: str) -> Iterator[None]:
    """Turn fatal errors into a message, a hint and a non-zero exit code."""
    try:
        yield
    except VksConnectError as e:
        log_error(logger, e, operation=operation)
        console.print(f"[red]✗ {e}[/red]", highlight=False)
        if e.hint:
            console.print(f"  Try: [bold]{e.hint}[/bold]", highlight=False)
        raise SystemExit(EXIT_FAILURE) from e
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise SystemExit(EXIT_INTERRUPTED) from None


def apply_overrides(
    config: ConnectConfig,
    endpoint: str | None = None,
    tenant: str | None = None,
    ca_cert: str | None = None,
    kubeconfig: str | None = None,
    interval: int | None = None,
) -> ConnectConfig:
    """Return a copy of ``config`` with command-line options applied."""
    vcf_updates = {
        key: value
        for key, value in {"endpoint": endpoint, "tenant": tenant, "ca_cert_file": ca_cert}.items()
        if value
    }
    cluster_updates: dict[str, object] = {}
    if kubeconfig:
        cluster_updates["kubeconfig_path"] = kubeconfig
    if interval:
        cluster_updates["poll_interval_seconds"] = interval

    return config.model_copy(
        update={
            "vcf": config.vcf.model_copy(update=vcf_updates),
            "cluster": config.cluster.model_copy(update=cluster_updates),
        }
    )


@click.group()
@click.version_option(version=__version__, prog_name="vksconnect")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default from config, WARNING)",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Log output format",
)
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str | None, log_format: str | None) -> None:
    """Connect your workstation to VKS workload clusters behind VCF Automation."""
    ctx.obj = AppContext(
        config_path=config,
        log_level=log_level.upper() if log_level else None,
        log_format=log_format,
    )


@cli.command()
@click.argument("cluster", required=False)
@click.argument("context", required=False)
@click.option("--kubeconfig", help="Kubeconfig file to export into (default ~/.kube/config)")
@click.option("--endpoint", help="VCF Automation endpoint host")
@click.option("--tenant", help="Tenant/organization name")
@click.option("--ca-cert", help="CA certificate chain file")
@click.option("--interval", type=click.IntRange(min=1), help="Seconds between readiness polls")
@click.pass_context
def connect(
    ctx: click.Context,
    cluster: str | None,
    context: str | None,
    kubeconfig: str | None,
    endpoint: str | None,
    tenant: str | None,
    ca_cert: str | None,
    interval: int | None,
) -> None:
    """Connect to a cluster, creating VCF contexts as needed.

    With no arguments, runs first-time setup or asks which cluster to use.
    CONTEXT defaults to the cluster name.
    """
    from vksconnect.connect.orchestrator import ConnectionOrchestrator

    app: AppContext = ctx.obj

    with fatal_errors("connect"):
        config = apply_overrides(
            app.config,
            endpoint=endpoint,
            tenant=tenant,
            ca_cert=ca_cert,
            kubeconfig=kubeconfig,
            interval=interval,
        )
        app.config = config

        console.print("[bold blue]VKS Cluster Connection[/bold blue]\n")
        orchestrator = ConnectionOrchestrator(
            config=config,
            backend=app.backend(),
            operator=app.operator,
            token_cache=app.token_cache,
        )
        result = orchestrator.run(cluster_name=cluster, context_name=context)

    if not result.setup_only:
        _print_connect_summary(result)


def _print_connect_summary(result: ConnectResult) -> None:
    table = Table(title="Connection Summary")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Cluster", result.cluster_name or "")
    table.add_row("VCF Context", result.vcf_context_name or "")
    table.add_row("Kubecontext", result.kube_context_name or "")
    table.add_row("Kubeconfig", result.kubeconfig_path or "")
    table.add_row("Namespaces labeled", "✓" if result.namespaces_labeled else "✗")
    console.print(table)
    console.print("\nYou can now use kubectl commands to interact with your cluster.")


@cli.command(name="clusters")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def list_clusters(ctx: click.Context, format: str) -> None:
    """List clusters visible through the current VCF context."""
    app: AppContext = ctx.obj

    with fatal_errors("clusters"):
        session = app.session()
        clusters = session.call("cluster.list", session.backend.list_clusters)

    if format == "json":
        click.echo(json.dumps([c.model_dump() for c in clusters], indent=2))
        return

    if not clusters:
        console.print("[yellow]No clusters found[/yellow]")
        return

    table = Table(title=f"Clusters ({len(clusters)} total)")
    for column in ("Name", "Namespace", "Status", "Control Plane", "Workers", "Version"):
        table.add_column(column)
    for c in clusters:
        status_color = "green" if c.is_running else "yellow"
        table.add_row(
            c.name,
            c.namespace,
            f"[{status_color}]{c.status}[/{status_color}]",
            c.control_plane_ready or "",
            c.workers_ready or "",
            c.version or "",
        )
    console.print(table)


@cli.command(name="contexts")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def list_contexts(ctx: click.Context, format: str) -> None:
    """List VCF contexts known to the vcf CLI."""
    app: AppContext = ctx.obj

    with fatal_errors("contexts"):
        entries = app.session().list_contexts()

    if format == "json":
        click.echo(json.dumps([e.model_dump() for e in entries], indent=2))
        return

    if not entries:
        console.print("[yellow]No VCF contexts found. Run 'vksconnect connect' to set up.[/yellow]")
        return

    table = Table(title="VCF Contexts")
    table.add_column("Name")
    table.add_column("Current")
    table.add_column("Endpoint")
    table.add_column("Type")
    for e in entries:
        table.add_row(e.name, "✓" if e.current else "", e.endpoint or "", e.type or "")
    console.print(table)


@cli.command()
@click.argument("cluster")
@click.option(
    "--namespace",
    "-n",
    help="Supervisor namespace owning the cluster (looked up from the cluster list if omitted)",
)
@click.option("--vms", is_flag=True, help="Also inspect VirtualMachines and bootstrap secrets")
@click.option("--kube-context", help="Kubeconfig context for the supervisor (default: current)")
@click.option("--format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def diagnose(
    ctx: click.Context,
    cluster: str,
    namespace: str | None,
    vms: bool,
    kube_context: str | None,
    format: str,
) -> None:
    """Inspect why a cluster is not provisioning (read-only)."""
    from vksconnect.diagnostics.collector import DiagnosticsCollector

    app: AppContext = ctx.obj

    with fatal_errors("diagnose"):
        if not namespace:
            session = app.session()
            clusters = session.call("cluster.list", session.backend.list_clusters)
            namespace = next((c.namespace for c in clusters if c.name == cluster), None)
            if not namespace:
                raise InputError(
                    f"Could not determine the namespace of cluster '{cluster}'.",
                    hint=f"vksconnect diagnose {cluster} --namespace <namespace>",
                )

        collector = DiagnosticsCollector(
            namespace=namespace,
            kubeconfig_path=str(app.config.cluster.resolved_kubeconfig_path),
            context=kube_context,
        )
        report = collector.collect(cluster, include_vms=vms)

    if format == "json":
        click.echo(report.model_dump_json(indent=2))
    else:
        _print_diagnostics(report)

    if report.has_errors:
        raise SystemExit(EXIT_FAILURE)


def _print_diagnostics(report: ClusterDiagnostics) -> None:
    console.print(f"[bold blue]VKS Cluster Debug Report: {report.cluster_name}[/bold blue]")
    console.print(f"Namespace: {report.namespace}")
    console.print(f"Phase: {report.phase or 'unknown'}")
    if report.control_plane_endpoint:
        console.print(f"Control plane endpoint: {report.control_plane_endpoint}")
    console.print()

    if report.machines:
        table = Table(title="Machines")
        for column in ("Name", "Phase", "Node", "Problem Conditions"):
            table.add_column(column)
        for m in report.machines:
            problems = ", ".join(f"{c.type}: {c.reason or c.status}" for c in m.problem_conditions)
            table.add_row(m.name, m.phase or "", m.node_ref or "", problems)
        console.print(table)

    if report.control_planes or report.machine_deployments:
        table = Table(title="Control Planes and Machine Deployments")
        for column in ("Kind", "Name", "Ready/Replicas"):
            table.add_column(column)
        for kcp in report.control_planes:
            table.add_row(
                "KubeadmControlPlane", kcp["name"], f"{kcp['ready_replicas']}/{kcp['replicas']}"
            )
        for md in report.machine_deployments:
            table.add_row(
                "MachineDeployment", md["name"], f"{md['ready_replicas']}/{md['replicas']}"
            )
        console.print(table)

    if report.vsphere_machines:
        table = Table(title="vSphere Machines")
        for column in ("Name", "Addresses", "Image", "Storage Class", "VM Class"):
            table.add_column(column)
        for v in report.vsphere_machines:
            table.add_row(
                v.name,
                ", ".join(v.addresses),
                v.image_name or "",
                v.storage_class or "",
                v.class_name or "",
            )
        console.print(table)

    if report.virtual_machines:
        table = Table(title="Virtual Machines")
        for column in ("Name", "Power State", "IP Addresses"):
            table.add_column(column)
        for vm in report.virtual_machines:
            table.add_row(vm.name, vm.power_state or "", ", ".join(vm.ip_addresses))
        console.print(table)

    if report.bootstrap_secrets:
        table = Table(title="Bootstrap Secrets")
        for column in ("Machine", "Exists", "Size", "kubeadm join", "apiserver", "cert key"):
            table.add_column(column)
        for s in report.bootstrap_secrets:
            table.add_row(
                s.machine,
                "✓" if s.exists else "✗",
                str(s.size_bytes),
                "✓" if s.has_kubeadm_join else "",
                "✓" if s.has_apiserver else "",
                "✓" if s.has_certificate_key else "",
            )
        console.print(table)

    if report.events:
        console.print(f"\n[bold]Recent Events (last {len(report.events)})[/bold]")
        for event in report.events:
            color = "yellow" if event.type == "Warning" else "white"
            console.print(
                f"  [{color}]{event.type}[/{color}] {event.reason}: {event.message}",
                highlight=False,
            )

    console.print("\n[bold]Findings[/bold]")
    if not report.findings:
        console.print("  [green]✓ No problems found[/green]")
    colors = {"error": "red", "warning": "yellow", "info": "blue"}
    for finding in report.findings:
        color = colors[finding.severity.value]
        console.print(
            f"  [{color}]{finding.severity.value.upper()}[/{color}] "
            f"({finding.source}) {finding.message}",
            highlight=False,
        )


if __name__ == "__main__":
    cli()
