"""Tests for the Kubernetes-backed cluster client."""

import pytest
from unittest.mock import Mock, patch

from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from iotdb_operator.cluster.base import ResourceKind
from iotdb_operator.cluster.kubernetes import (
    KubernetesClusterClient,
    load_api_client,
    translate_api_exception,
)
from iotdb_operator.errors import (
    AlreadyExistsError,
    ClusterAPIError,
    ConflictError,
    NotFoundError,
)
from iotdb_operator.models.config import ClusterConfig


@pytest.fixture
def k8s():
    """Client with mocked API groups."""
    cluster_client = KubernetesClusterClient(Mock(), request_timeout=5.0)
    cluster_client.core = Mock()
    cluster_client.apps = Mock()
    cluster_client.custom = Mock()
    return cluster_client


def _service(name="datanode-headless"):
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name, "namespace": "iotdb", "resourceVersion": "5"},
        "spec": {},
    }


class TestTranslateApiException:
    """Test ApiException mapping."""

    def test_not_found(self):
        error = translate_api_exception(ApiException(status=404, reason="Not Found"), "get", "Service a/b")

        assert isinstance(error, NotFoundError)
        assert "Service a/b" in str(error)

    def test_conflict_on_create_is_already_exists(self):
        error = translate_api_exception(ApiException(status=409, reason="Conflict"), "create", "x")

        assert isinstance(error, AlreadyExistsError)

    def test_conflict_on_update(self):
        error = translate_api_exception(ApiException(status=409, reason="Conflict"), "update", "x")

        assert isinstance(error, ConflictError)

    def test_other_status(self):
        error = translate_api_exception(ApiException(status=403, reason="Forbidden"), "update", "x")

        assert isinstance(error, ClusterAPIError)
        assert error.status == 403


@pytest.mark.asyncio
class TestKubernetesClusterClient:
    """Test CRUD dispatch and error translation."""

    async def test_get_datanode(self, k8s, manifest):
        k8s.custom.get_namespaced_custom_object.return_value = manifest

        result = await k8s.get(ResourceKind.DATA_NODE, "iotdb", "datanode")

        assert result == manifest
        k8s.custom.get_namespaced_custom_object.assert_called_once_with(
            "iotdb.apache.org", "v1", "iotdb", "datanodes", "datanode", _request_timeout=5.0
        )

    async def test_get_missing_returns_none(self, k8s):
        k8s.apps.read_namespaced_stateful_set.side_effect = ApiException(status=404, reason="Not Found")

        assert await k8s.get(ResourceKind.STATEFUL_SET, "iotdb", "datanode") is None

    async def test_get_other_errors_propagate(self, k8s):
        k8s.core.read_namespaced_service.side_effect = ApiException(status=500, reason="Internal")

        with pytest.raises(ClusterAPIError):
            await k8s.get(ResourceKind.SERVICE, "iotdb", "datanode")

    async def test_typed_results_are_serialized(self, k8s):
        typed = object()
        k8s.core.read_namespaced_service.return_value = typed
        k8s.api_client.sanitize_for_serialization.return_value = _service()

        result = await k8s.get(ResourceKind.SERVICE, "iotdb", "datanode-headless")

        assert result["kind"] == "Service"
        k8s.api_client.sanitize_for_serialization.assert_called_once_with(typed)

    async def test_create_service(self, k8s):
        body = _service()
        k8s.core.create_namespaced_service.return_value = body

        await k8s.create(body)

        k8s.core.create_namespaced_service.assert_called_once_with("iotdb", body, _request_timeout=5.0)

    async def test_create_race(self, k8s):
        k8s.apps.create_namespaced_stateful_set.side_effect = ApiException(status=409, reason="Conflict")
        body = {"kind": "StatefulSet", "metadata": {"name": "datanode", "namespace": "iotdb"}}

        with pytest.raises(AlreadyExistsError):
            await k8s.create(body)

    async def test_update_conflict(self, k8s):
        k8s.core.replace_namespaced_service.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ConflictError):
            await k8s.update(_service())

        args = k8s.core.replace_namespaced_service.call_args.args
        assert args[:2] == ("datanode-headless", "iotdb")


class TestLoadApiClient:
    """Test credential discovery."""

    def test_prefers_in_cluster(self):
        with patch("iotdb_operator.cluster.kubernetes.config") as mock_config:
            load_api_client(ClusterConfig())

        mock_config.load_incluster_config.assert_called_once()
        mock_config.load_kube_config.assert_not_called()

    def test_falls_back_to_kubeconfig(self):
        with patch("iotdb_operator.cluster.kubernetes.config") as mock_config:
            mock_config.load_incluster_config.side_effect = ConfigException("no service account")

            load_api_client(ClusterConfig(kubeconfig="/tmp/kubeconfig", context="kind"))

        kwargs = mock_config.load_kube_config.call_args.kwargs
        assert kwargs["config_file"] == "/tmp/kubeconfig"
        assert kwargs["context"] == "kind"

    def test_in_cluster_required(self):
        with patch("iotdb_operator.cluster.kubernetes.config") as mock_config:
            mock_config.load_incluster_config.side_effect = ConfigException("no service account")

            with pytest.raises(ConfigException):
                load_api_client(ClusterConfig(in_cluster=True))

    def test_kubeconfig_only(self):
        with patch("iotdb_operator.cluster.kubernetes.config") as mock_config:
            load_api_client(ClusterConfig(in_cluster=False))

        mock_config.load_incluster_config.assert_not_called()
        mock_config.load_kube_config.assert_called_once()
