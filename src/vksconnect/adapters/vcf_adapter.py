"""VCF CLI adapter implementing the IdentityBackend interface."""

from vksconnect.clients.vcf_cli import VcfCliWrapper
from vksconnect.core.models import AuthContext, Cluster, ContextEntry
from vksconnect.interfaces.identity_backend import IdentityBackend
from vksconnect.utils.logging import get_logger
from vksconnect.utils.table import parse_table

logger = get_logger(__name__)

_TRUE_MARKERS = {"true", "yes", "*", "✓"}


def _first(row: dict[str, str], *candidates: str) -> str | None:
    """Return the first row value whose key contains one of ``candidates``."""
    for candidate in candidates:
        for key, value in row.items():
            if candidate in key:
                return value
    return None


def parse_context_list(output: str) -> list[ContextEntry]:
    """Normalize ``vcf context list`` output into context entries."""
    entries = []
    for row in parse_table(output):
        values = list(row.values())
        if not values:
            continue

        name = row.get("name") or values[0]
        current = (row.get("current") or "").lower() in _TRUE_MARKERS
        endpoint = row.get("endpoint")
        if endpoint is None and len(values) > 1:
            endpoint = values[-1]

        entries.append(
            ContextEntry(name=name, current=current, endpoint=endpoint, type=row.get("type"))
        )
    return entries


def parse_cluster_list(output: str) -> list[Cluster]:
    """Normalize ``vcf cluster list`` output into clusters."""
    clusters = []
    for row in parse_table(output):
        values = list(row.values())
        if not values:
            continue

        clusters.append(
            Cluster(
                name=row.get("name") or values[0],
                namespace=row.get("namespace") or (values[1] if len(values) > 1 else ""),
                status=row.get("status") or (values[2] if len(values) > 2 else ""),
                control_plane_ready=_first(row, "control"),
                workers_ready=_first(row, "worker"),
                version=_first(row, "kubernetes", "version"),
            )
        )
    return clusters


class VcfCliAdapter(IdentityBackend):
    """Adapter wrapping VcfCliWrapper to implement the IdentityBackend interface.

    Parses the vcf CLI's tables into models. Errors raised by the wrapper
    (AuthorizationError, VcfCliError) pass through unchanged so the session
    manager can tell an expired session from any other failure.
    """

    def __init__(self, client: VcfCliWrapper | None = None):
        """Initialize vcf adapter.

        Args:
            client: vcf CLI wrapper (a default one is created if omitted)
        """
        self.client = client or VcfCliWrapper()
        logger.debug("vcf_adapter_initialized")

    def create_context(self, context: AuthContext, token: str) -> None:
        if context.mode == "kubeconfig":
            self.client.context_create_kubeconfig(
                name=context.name,
                kubeconfig=context.kubeconfig_path,
                kubecontext=context.kube_context_name,
                token=token,
            )
        else:
            self.client.context_create_endpoint(
                name=context.name,
                endpoint=context.endpoint,
                tenant=context.tenant,
                token=token,
                ca_certificate=context.ca_bundle_path,
            )

    def list_contexts(self) -> list[ContextEntry]:
        contexts = parse_context_list(self.client.context_list())
        logger.debug("contexts_listed", count=len(contexts))
        return contexts

    def current_context(self) -> str | None:
        lines = [line.strip() for line in self.client.context_current().splitlines()]
        lines = [line for line in lines if line and not line.startswith("[")]
        return lines[-1] if lines else None

    def use_context(self, name: str, token: str) -> None:
        self.client.context_use(name, token)

    def refresh_context(self, name: str, token: str) -> None:
        self.client.context_refresh(name, token)

    def list_clusters(self) -> list[Cluster]:
        clusters = parse_cluster_list(self.client.cluster_list())
        logger.info("clusters_listed", count=len(clusters))
        return clusters

    def register_authenticator(self, cluster_name: str) -> None:
        self.client.register_jwt_authenticator(cluster_name)

    def export_kubeconfig(self, cluster_name: str, dest_path: str) -> None:
        self.client.kubeconfig_get(cluster_name, dest_path)
