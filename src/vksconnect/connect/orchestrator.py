"""End-to-end workflow connecting the workstation to a VKS workload cluster."""

import time
from collections.abc import Callable

from vksconnect.auth.session_manager import SessionManager
from vksconnect.auth.token_cache import TokenCache
from vksconnect.clients.kubectl import KubectlWrapper
from vksconnect.clients.trust_bundle import TrustBundleStore
from vksconnect.core.config import ConnectConfig
from vksconnect.core.exceptions import (
    ConnectivityError,
    InputError,
    KubectlError,
    NoContextError,
    VksConnectError,
)
from vksconnect.core.models import AuthContext, Cluster, ConnectResult
from vksconnect.interfaces.identity_backend import IdentityBackend
from vksconnect.interfaces.operator import OperatorInteraction
from vksconnect.kubeconfig.resolver import KubeContextResolver
from vksconnect.readiness.poller import ReadinessPoller, cluster_status_from_list
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectionOrchestrator:
    """Sequences the session, readiness and resolution steps of one connect run.

    The orchestrator owns the token cache and every context it creates for
    the duration of the invocation. Recoverable problems are handled by the
    component that sees them; anything that reaches here as a
    ``VksConnectError`` is fatal for the run. Nothing is rolled back on
    failure: trust bundle, kubeconfig and backend contexts are reused next
    time.
    """

    def __init__(
        self,
        config: ConnectConfig,
        backend: IdentityBackend,
        operator: OperatorInteraction,
        token_cache: TokenCache | None = None,
        trust_store: TrustBundleStore | None = None,
        kubectl: KubectlWrapper | None = None,
        resolver: KubeContextResolver | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize orchestrator.

        Args:
            config: Connection configuration
            backend: Identity backend
            operator: Operator interaction
            token_cache: Token cache (one that prompts the operator is created if omitted)
            trust_store: Trust bundle store (built from config if omitted)
            kubectl: kubectl wrapper (built from config if omitted)
            resolver: Kubeconfig context resolver (built from config if omitted)
            sleep: Sleep function used between readiness polls
        """
        self.config = config
        self.backend = backend
        self.operator = operator
        self.token_cache = token_cache or TokenCache(prompt=self._prompt_token)
        self.session = SessionManager(backend, self.token_cache)
        self._trust_store = trust_store
        self.kubectl = kubectl or KubectlWrapper(
            kubeconfig_path=str(config.cluster.resolved_kubeconfig_path),
            binary=config.cluster.kubectl_binary,
        )
        self.resolver = resolver or KubeContextResolver(prefix=config.vcf.kubecontext_prefix)
        self.sleep = sleep

    def _prompt_token(self) -> str:
        self.operator.info("API token required for VCF authentication")
        return self.operator.prompt_secret("Enter API Token")

    @property
    def trust_store(self) -> TrustBundleStore:
        """Trust bundle store for the (possibly customized) endpoint."""
        if self._trust_store is None:
            self._trust_store = TrustBundleStore(
                endpoint=self.config.vcf.endpoint,
                path=self.config.vcf.ca_cert_file,
                port=self.config.vcf.port,
            )
        return self._trust_store

    def run(self, cluster_name: str | None = None, context_name: str | None = None) -> ConnectResult:
        """Connect to a workload cluster.

        Args:
            cluster_name: Cluster to connect to (prompted for if omitted)
            context_name: VCF context name for the cluster (defaults to the cluster name)

        Returns:
            Summary of the run

        Raises:
            VksConnectError: On any fatal step
        """
        logger.info("connect_started", cluster=cluster_name, context=context_name)

        self.review_configuration()

        if not self.ensure_session():
            return ConnectResult(setup_only=True)

        self.ensure_trust_bundle()

        clusters = self.show_clusters()
        cluster_name = self.resolve_cluster_name(cluster_name, clusters)
        vcf_context = self.resolve_context_name(cluster_name, context_name)

        self.wait_for_cluster(cluster_name)

        self.operator.info(f"Registering JWT authenticator for cluster: {cluster_name}")
        self.session.call(
            "cluster.registerAuthenticator", self.backend.register_authenticator, cluster_name
        )
        self.operator.success("JWT authenticator registered")

        kubeconfig_path = self.export_kubeconfig(cluster_name)
        kube_context = self.resolve_kube_context(cluster_name, kubeconfig_path)

        self.create_cluster_context(vcf_context, kubeconfig_path, kube_context)

        self.operator.info(f"Refreshing context: {vcf_context}")
        self.session.refresh(vcf_context)
        self.operator.info(f"Activating context: {vcf_context}")
        self.session.activate(vcf_context)
        self.operator.success(f"Context activated: {vcf_context}")

        self.verify_connectivity()
        labeled = self.label_namespaces()

        self.operator.success(f"All done! You are now connected to cluster: {cluster_name}")
        logger.info("connect_completed", cluster=cluster_name, context=vcf_context)

        return ConnectResult(
            cluster_name=cluster_name,
            vcf_context_name=vcf_context,
            kube_context_name=kube_context,
            kubeconfig_path=kubeconfig_path,
            namespaces_labeled=labeled,
        )

    def review_configuration(self) -> None:
        """Show the endpoint settings and let the operator change them."""
        vcf = self.config.vcf
        self.operator.show_table(
            "Current Configuration",
            ["Setting", "Value"],
            [
                ["VCF Endpoint", vcf.endpoint],
                ["CA Certificate", vcf.ca_cert_file],
                ["Tenant", vcf.tenant],
            ],
        )

        if not self.operator.confirm("Would you like to customize these settings?"):
            return

        endpoint = self.operator.prompt_text("VCF Endpoint", default=vcf.endpoint) or vcf.endpoint
        ca_cert_file = (
            self.operator.prompt_text("CA Certificate file", default=vcf.ca_cert_file)
            or vcf.ca_cert_file
        )
        tenant = self.operator.prompt_text("Tenant/Organization", default=vcf.tenant) or vcf.tenant

        updated = vcf.model_copy(
            update={"endpoint": endpoint, "ca_cert_file": ca_cert_file, "tenant": tenant}
        )
        self.config = self.config.model_copy(update={"vcf": updated})
        self._trust_store = None

        logger.info("configuration_customized", endpoint=endpoint, tenant=tenant)
        self.operator.success("Configuration updated!")

    def ensure_session(self) -> bool:
        """Make sure a VCF context exists, running first-time setup if needed.

        Returns:
            False when the operator chose to stop after first-time setup

        Raises:
            NoContextError: If no context exists and the operator declines to create one
        """
        if self.session.has_contexts():
            if self.operator.confirm("Do you need to switch VCF context first?"):
                self.select_context()
            return True

        self.operator.warning("No VCF contexts found. Initial setup required.")
        if not self.operator.confirm(
            "Would you like to create the initial VCF context now?", default=True
        ):
            logger.info("initial_context_declined")
            raise NoContextError(
                "Cannot proceed without a VCF context.",
                hint=(
                    f"vcf context create {self.config.vcf.initial_context_name} "
                    f"--endpoint {self.config.vcf.endpoint} --api-token <token> "
                    f"--tenant-name {self.config.vcf.tenant} "
                    f"--ca-certificate {self.config.vcf.ca_cert_file}"
                ),
            )

        self.first_time_setup()

        if not self.operator.confirm(
            "Initial setup complete. Do you want to connect to a cluster now?"
        ):
            self.operator.info("Setup complete! Run again with a cluster name to connect:")
            self.operator.info("  vksconnect connect <cluster-name>")
            return False
        return True

    def first_time_setup(self) -> None:
        """Create the management context and activate its first namespace context."""
        vcf = self.config.vcf
        self.ensure_trust_bundle()

        name = (
            self.operator.prompt_text("Enter initial context name", default=vcf.initial_context_name)
            or vcf.initial_context_name
        )
        self.operator.info(
            f"Creating initial VCF context '{name}' "
            f"(endpoint {vcf.endpoint}, tenant {vcf.tenant}, certificate {vcf.ca_cert_file})"
        )

        derived = self.session.create_context(
            AuthContext.for_endpoint(
                name=name,
                endpoint=vcf.endpoint,
                tenant=vcf.tenant,
                ca_bundle_path=str(self.trust_store.path),
            )
        )
        self.operator.success(f"Initial VCF context '{name}' created successfully!")

        if not derived:
            self.operator.warning(
                "No namespace contexts found. You may need to activate a context manually."
            )
            return

        self.operator.success(f"Found namespace contexts: {', '.join(derived)}")
        first = derived[0]
        self.operator.info(f"Activating namespace context: {first}")
        try:
            self.session.activate(first)
        except VksConnectError as e:
            logger.warning("namespace_context_activation_failed", context=first, error=str(e))
            self.operator.warning(f"Could not activate '{first}': {e}")
            return

        self.operator.success("Initial VCF setup complete!")

    def select_context(self) -> None:
        """Let the operator pick an existing context and activate it."""
        entries = self.session.list_contexts()
        self.operator.show_table(
            "VCF Contexts",
            ["Name", "Current", "Endpoint"],
            [[e.name, "✓" if e.current else "", e.endpoint or ""] for e in entries],
        )

        current = next((e.name for e in entries if e.current), None)
        name = self.operator.prompt_text("Enter VCF context to use", default=current)
        if not name:
            raise InputError("A VCF context name is required.", hint="vcf context list")

        self.session.activate(name)
        self.operator.success(f"Context activated: {name}")

    def ensure_trust_bundle(self) -> None:
        """Create the CA trust bundle file if it is missing."""
        if self.trust_store.ensure():
            self.operator.success(f"Certificate file created: {self.trust_store.path}")
        else:
            self.operator.info(f"Certificate file already exists: {self.trust_store.path}")

    def show_clusters(self) -> list[Cluster]:
        """List clusters through the session manager and display them."""
        self.operator.info("Listing available clusters...")
        clusters = self.session.call("cluster.list", self.backend.list_clusters)

        self.operator.show_table(
            f"Clusters ({len(clusters)} total)",
            ["Name", "Namespace", "Status", "Control Plane", "Workers", "Version"],
            [
                [
                    c.name,
                    c.namespace,
                    c.status,
                    c.control_plane_ready or "",
                    c.workers_ready or "",
                    c.version or "",
                ]
                for c in clusters
            ],
        )
        return clusters

    def resolve_cluster_name(self, cluster_name: str | None, clusters: list[Cluster]) -> str:
        """Take the cluster name from the argument or ask for it.

        Raises:
            InputError: If no cluster name is given
        """
        if cluster_name:
            self.operator.info(f"Cluster name provided: {cluster_name}")
        else:
            cluster_name = self.operator.prompt_text("Enter cluster name")

        cluster_name = (cluster_name or "").strip()
        if not cluster_name:
            raise InputError(
                "Cluster name is required.", hint="vksconnect connect <cluster-name>"
            )

        if clusters and all(c.name != cluster_name for c in clusters):
            self.operator.warning(f"Cluster '{cluster_name}' is not in the cluster list")

        self.operator.info(f"Using cluster: {cluster_name}")
        return cluster_name

    def resolve_context_name(self, cluster_name: str, context_name: str | None) -> str:
        """VCF context name from the argument, else the cluster name."""
        if context_name:
            self.operator.info(f"VCF context name provided: {context_name}")
            return context_name

        self.operator.info(f"Auto-using cluster name as VCF context name: {cluster_name}")
        return cluster_name

    def wait_for_cluster(self, cluster_name: str) -> int:
        """Block until the cluster is running (with operator consent)."""

        def fetch_status(name: str) -> str | None:
            clusters = self.session.call("cluster.list", self.backend.list_clusters)
            return cluster_status_from_list(clusters, name)

        poller = ReadinessPoller(
            fetch_status=fetch_status,
            operator=self.operator,
            interval=self.config.cluster.poll_interval_seconds,
            sleep=self.sleep,
        )
        return poller.wait_until_running(cluster_name)

    def export_kubeconfig(self, cluster_name: str) -> str:
        """Export (merge) the cluster kubeconfig into the configured path."""
        path = self.config.cluster.resolved_kubeconfig_path
        path.parent.mkdir(parents=True, exist_ok=True)

        self.operator.info(f"Getting kubeconfig for cluster: {cluster_name}")
        self.session.call(
            "cluster.kubeconfig.export", self.backend.export_kubeconfig, cluster_name, str(path)
        )
        self.operator.success(f"Kubeconfig exported to: {path}")
        return str(path)

    def resolve_kube_context(self, cluster_name: str, kubeconfig_path: str) -> str:
        """Find the cluster's kubecontext, asking the operator if it cannot be derived."""
        self.operator.info("Extracting kubecontext name from kubeconfig...")
        kube_context = self.resolver.resolve(cluster_name, kubeconfig_path)

        if not kube_context:
            self.operator.warning("Could not automatically extract kubecontext name")
            guess = self.resolver.default_guess(cluster_name)
            kube_context = (
                self.operator.prompt_text("Enter kubecontext name manually", default=guess) or guess
            )

        self.operator.info(f"Using kubecontext: {kube_context}")
        return kube_context

    def create_cluster_context(
        self, vcf_context: str, kubeconfig_path: str, kube_context: str
    ) -> bool:
        """Create the cluster-scoped VCF context unless it already exists.

        Returns:
            True if a context was created, False if an existing one is reused
        """
        if self.session.context_exists(vcf_context):
            self.operator.info(f"VCF context '{vcf_context}' already exists, reusing it")
            return False

        self.operator.info(f"Creating VCF context: {vcf_context}")
        self.session.create_context(
            AuthContext.for_kubeconfig(
                name=vcf_context,
                kubeconfig_path=kubeconfig_path,
                kube_context_name=kube_context,
            )
        )
        self.operator.success(f"VCF context created: {vcf_context}")
        return True

    def verify_connectivity(self) -> None:
        """Probe the workload API, retrying once interactively without a timeout.

        Raises:
            ConnectivityError: If the cluster stays unreachable
        """
        self.operator.info("Verifying connection to cluster...")
        token = self.token_cache.get()
        timeout = self.config.cluster.probe_timeout_seconds

        try:
            self.kubectl.get_namespaces(timeout=timeout, token=token)
        except KubectlError as e:
            logger.warning("connectivity_probe_failed", timeout=timeout, error=str(e))
            self.operator.warning(
                "Initial connection attempt failed, trying interactive authentication..."
            )
            self.operator.info("Please enter your API token if prompted:")
            try:
                self.kubectl.get_namespaces(token=token, interactive=True)
            except KubectlError as retry_error:
                logger.error("connectivity_probe_exhausted", error=str(retry_error))
                raise ConnectivityError(
                    f"Cannot reach the workload cluster API: {retry_error}",
                    hint=f"kubectl --kubeconfig {self.kubectl.kubeconfig_path} get namespaces",
                ) from retry_error

        self.operator.success("Successfully connected to cluster!")

    def label_namespaces(self) -> bool:
        """Apply the administrative namespace label; failures only warn.

        Returns:
            True if labeling succeeded
        """
        label = self.config.cluster.namespace_label
        self.operator.info(f"Labeling all namespaces with {label}...")
        try:
            self.kubectl.label_all_namespaces(label)
        except KubectlError as e:
            logger.warning("namespace_labeling_failed", label=label, error=str(e))
            self.operator.warning("Failed to label namespaces (this is not critical)")
            return False

        self.operator.success(f"All namespaces labeled with {label}")
        return True
