"""Kubernetes client for read-only supervisor namespace queries."""

from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import CoreV1Event, V1Secret

from vksconnect.core.exceptions import KubernetesError
from vksconnect.utils.logging import get_logger

logger = get_logger(__name__)


class KubernetesClient:
    """Kubernetes client wrapper."""

    def __init__(self, kubeconfig_path: str | None = None, context: str | None = None):
        """Initialize Kubernetes client.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
        """
        try:
            if kubeconfig_path:
                config.load_kube_config(config_file=kubeconfig_path, context=context)
            else:
                config.load_kube_config(context=context)

            self.core_v1 = client.CoreV1Api()
            self.custom_objects = client.CustomObjectsApi()

            logger.debug("k8s_client_initialized", context=context)

        except (config.ConfigException, OSError) as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise KubernetesError(
                "Failed to initialize Kubernetes client",
                hint="Check that the current kubeconfig context points at the supervisor",
            ) from e

    def list_custom_objects(
        self,
        group: str,
        version: str,
        plural: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List namespaced custom resources.

        Args:
            group: API group (e.g. "cluster.x-k8s.io")
            version: API version
            plural: Resource plural
            namespace: Namespace to query
            label_selector: Label selector

        Returns:
            List of resource dicts

        Raises:
            KubernetesError: If the resources cannot be listed
        """
        try:
            kwargs = {"label_selector": label_selector} if label_selector else {}
            response = self.custom_objects.list_namespaced_custom_object(
                group, version, namespace, plural, **kwargs
            )
            items = response.get("items", [])

            logger.debug("custom_objects_retrieved", plural=plural, count=len(items))
            return items

        except ApiException as e:
            logger.error(
                "list_custom_objects_failed",
                plural=plural,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to list {plural}: {e.reason}") from e

    def get_custom_object(
        self, group: str, version: str, plural: str, namespace: str, name: str
    ) -> dict[str, Any] | None:
        """Get a namespaced custom resource, or None if it does not exist."""
        try:
            return self.custom_objects.get_namespaced_custom_object(
                group, version, namespace, plural, name
            )

        except ApiException as e:
            if e.status == 404:
                return None
            logger.error("get_custom_object_failed", plural=plural, name=name, status=e.status)
            raise KubernetesError(f"Failed to get {plural}/{name}: {e.reason}") from e

    def get_secret(self, name: str, namespace: str) -> V1Secret | None:
        """Get a secret, or None if it does not exist."""
        try:
            return self.core_v1.read_namespaced_secret(name=name, namespace=namespace)

        except ApiException as e:
            if e.status == 404:
                return None
            logger.error("get_secret_failed", name=name, status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to get secret {name}: {e.reason}") from e

    def list_events(self, namespace: str) -> list[CoreV1Event]:
        """List events in a namespace.

        Raises:
            KubernetesError: If events cannot be retrieved
        """
        try:
            response = self.core_v1.list_namespaced_event(namespace=namespace)
            events = response.items

            logger.debug("events_retrieved", namespace=namespace, count=len(events))
            return events

        except ApiException as e:
            logger.error("list_events_failed", namespace=namespace, status=e.status)
            raise KubernetesError(f"Failed to list events: {e.reason}") from e
