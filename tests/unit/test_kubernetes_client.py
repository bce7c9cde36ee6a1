"""Unit tests for the Kubernetes client wrapper."""

from unittest.mock import patch

import pytest
from kubernetes.client.exceptions import ApiException
from kubernetes.config import ConfigException

from vksconnect.clients.kubernetes_client import KubernetesClient
from vksconnect.core.exceptions import KubernetesError


@pytest.fixture
def mock_k8s_apis():
    """Patch kubeconfig loading and the API classes."""
    with (
        patch("vksconnect.clients.kubernetes_client.config.load_kube_config") as load,
        patch("vksconnect.clients.kubernetes_client.client") as api,
    ):
        yield load, api


@pytest.fixture
def k8s_client(mock_k8s_apis) -> KubernetesClient:
    """KubernetesClient over mocked APIs."""
    return KubernetesClient(kubeconfig_path="/tmp/config", context="supervisor")


class TestInit:
    """Tests for client initialization."""

    def test_loads_given_kubeconfig_and_context(self, mock_k8s_apis) -> None:
        """Test the kubeconfig file and context are passed through."""
        load, _ = mock_k8s_apis

        KubernetesClient(kubeconfig_path="/tmp/config", context="supervisor")

        load.assert_called_once_with(config_file="/tmp/config", context="supervisor")

    def test_default_kubeconfig(self, mock_k8s_apis) -> None:
        """Test the default kubeconfig location is used without a path."""
        load, _ = mock_k8s_apis

        KubernetesClient()

        load.assert_called_once_with(context=None)

    def test_config_error_becomes_kubernetes_error(self, mock_k8s_apis) -> None:
        """Test an unusable kubeconfig raises KubernetesError with a hint."""
        load, _ = mock_k8s_apis
        load.side_effect = ConfigException("Invalid kube-config file")

        with pytest.raises(KubernetesError) as exc_info:
            KubernetesClient(kubeconfig_path="/tmp/config")

        assert exc_info.value.hint


class TestCustomObjects:
    """Tests for custom object queries."""

    def test_list_returns_items(self, k8s_client: KubernetesClient) -> None:
        """Test items are unwrapped and the label selector is forwarded."""
        api = k8s_client.custom_objects
        api.list_namespaced_custom_object.return_value = {"items": [{"metadata": {"name": "m1"}}]}

        items = k8s_client.list_custom_objects(
            "cluster.x-k8s.io", "v1beta1", "machines", "dev-ns", label_selector="a=b"
        )

        assert items == [{"metadata": {"name": "m1"}}]
        api.list_namespaced_custom_object.assert_called_once_with(
            "cluster.x-k8s.io", "v1beta1", "dev-ns", "machines", label_selector="a=b"
        )

    def test_list_api_error(self, k8s_client: KubernetesClient) -> None:
        """Test API failures raise KubernetesError."""
        k8s_client.custom_objects.list_namespaced_custom_object.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(KubernetesError, match="Forbidden"):
            k8s_client.list_custom_objects("g", "v1", "machines", "dev-ns")

    def test_get_missing_object_is_none(self, k8s_client: KubernetesClient) -> None:
        """Test a 404 reads as an absent object."""
        k8s_client.custom_objects.get_namespaced_custom_object.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        assert k8s_client.get_custom_object("g", "v1", "clusters", "dev-ns", "vks-01") is None

    def test_get_other_error_raises(self, k8s_client: KubernetesClient) -> None:
        """Test non-404 failures are not hidden."""
        k8s_client.custom_objects.get_namespaced_custom_object.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )

        with pytest.raises(KubernetesError):
            k8s_client.get_custom_object("g", "v1", "clusters", "dev-ns", "vks-01")


class TestCoreResources:
    """Tests for secrets and events."""

    def test_missing_secret_is_none(self, k8s_client: KubernetesClient) -> None:
        """Test a 404 secret reads as absent."""
        k8s_client.core_v1.read_namespaced_secret.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        assert k8s_client.get_secret("vks-01-cp-abc", "dev-ns") is None

    def test_list_events(self, k8s_client: KubernetesClient) -> None:
        """Test events are listed from the namespace."""
        k8s_client.core_v1.list_namespaced_event.return_value.items = ["e1", "e2"]

        assert k8s_client.list_events("dev-ns") == ["e1", "e2"]
        k8s_client.core_v1.list_namespaced_event.assert_called_once_with(namespace="dev-ns")

    def test_list_events_error(self, k8s_client: KubernetesClient) -> None:
        """Test event listing failures raise KubernetesError."""
        k8s_client.core_v1.list_namespaced_event.side_effect = ApiException(
            status=401, reason="Unauthorized"
        )

        with pytest.raises(KubernetesError):
            k8s_client.list_events("dev-ns")
