"""Identity backend interface for VCF context and cluster operations."""

from abc import ABC, abstractmethod

from vksconnect.core.models import AuthContext, Cluster, ContextEntry


class IdentityBackend(ABC):
    """Abstract interface for the VCF Automation identity backend.

    The backend is modelled as request/response: each call takes the API
    token it needs as an argument and either returns or raises. Expired or
    invalid sessions surface as ``AuthorizationError``; every other failure
    surfaces as ``BackendError``.
    """

    @abstractmethod
    def create_context(self, context: AuthContext, token: str) -> None:
        """Create a context.

        Args:
            context: Context definition (endpoint or kubeconfig mode)
            token: API token

        Raises:
            AuthorizationError: If the token is rejected
            BackendError: If creation fails
        """

    @abstractmethod
    def list_contexts(self) -> list[ContextEntry]:
        """List known contexts in backend order.

        Returns:
            Context entries, possibly empty
        """

    @abstractmethod
    def current_context(self) -> str | None:
        """Get the name of the current context.

        Returns:
            Context name, or None when no context is current
        """

    @abstractmethod
    def use_context(self, name: str, token: str) -> None:
        """Make a context current.

        Args:
            name: Context name
            token: API token for any authentication the backend requires
        """

    @abstractmethod
    def refresh_context(self, name: str, token: str) -> None:
        """Refresh the credentials held by a context.

        Args:
            name: Context name
            token: API token
        """

    @abstractmethod
    def list_clusters(self) -> list[Cluster]:
        """List workload clusters visible to the current context.

        Returns:
            Clusters with their observed status
        """

    @abstractmethod
    def register_authenticator(self, cluster_name: str) -> None:
        """Register the VCF Automation JWT authenticator on a cluster.

        Args:
            cluster_name: Workload cluster name
        """

    @abstractmethod
    def export_kubeconfig(self, cluster_name: str, dest_path: str) -> None:
        """Write (merge) the cluster's kubeconfig into ``dest_path``.

        Args:
            cluster_name: Workload cluster name
            dest_path: Kubeconfig file to write or merge into
        """
