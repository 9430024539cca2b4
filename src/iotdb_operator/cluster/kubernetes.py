"""Cluster client backed by the official Kubernetes Python client."""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from iotdb_operator.cluster.base import ClusterClient, ResourceKind
from iotdb_operator.errors import (
    AlreadyExistsError,
    ClusterAPIError,
    ConflictError,
    NotFoundError,
    OperatorError,
)
from iotdb_operator.models.config import ClusterConfig
from iotdb_operator.models.datanode import GROUP, PLURAL, VERSION


logger = logging.getLogger(__name__)


def load_api_client(cluster_config: ClusterConfig) -> client.ApiClient:
    """Build an ApiClient from in-cluster credentials or a kubeconfig."""
    configuration = client.Configuration()

    if cluster_config.in_cluster is not False:
        try:
            config.load_incluster_config(client_configuration=configuration)
            logger.info("Using in-cluster Kubernetes configuration")
            return client.ApiClient(configuration)
        except ConfigException:
            if cluster_config.in_cluster:
                raise
            logger.debug("Not running in a cluster, falling back to kubeconfig")

    config.load_kube_config(
        config_file=cluster_config.kubeconfig,
        context=cluster_config.context,
        client_configuration=configuration,
    )
    logger.info(f"Using kubeconfig {cluster_config.kubeconfig or '(default)'}")
    return client.ApiClient(configuration)


def translate_api_exception(e: ApiException, operation: str, description: str) -> OperatorError:
    """Map an ApiException onto the operator error taxonomy."""
    message = f"{operation} {description} failed: {e.status} {e.reason}"
    if e.status == 404:
        return NotFoundError(message)
    if e.status == 409:
        if operation == "create":
            return AlreadyExistsError(message)
        return ConflictError(message)
    return ClusterAPIError(message, status=e.status)


class KubernetesClusterClient(ClusterClient):
    """ClusterClient over CoreV1Api, AppsV1Api and CustomObjectsApi.

    The generated client is blocking, so every call runs in a worker thread.
    """

    def __init__(self, api_client: client.ApiClient, request_timeout: float = 30.0):
        """Initialize the client."""
        self.api_client = api_client
        self.request_timeout = request_timeout
        self.core = client.CoreV1Api(api_client)
        self.apps = client.AppsV1Api(api_client)
        self.custom = client.CustomObjectsApi(api_client)

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    async def _call(self, operation: str, description: str, func: Callable, *args, **kwargs) -> Dict[str, Any]:
        try:
            result = await asyncio.to_thread(
                func, *args, _request_timeout=self.request_timeout, **kwargs
            )
        except ApiException as e:
            raise translate_api_exception(e, operation, description) from e
        return self._to_dict(result)

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Fetch an object, or None if it does not exist."""
        description = f"{kind.value} {namespace}/{name}"
        if kind == ResourceKind.DATA_NODE:
            func, args = self.custom.get_namespaced_custom_object, (GROUP, VERSION, namespace, PLURAL, name)
        elif kind == ResourceKind.SERVICE:
            func, args = self.core.read_namespaced_service, (name, namespace)
        else:
            func, args = self.apps.read_namespaced_stateful_set, (name, namespace)

        try:
            return await self._call("get", description, func, *args)
        except NotFoundError:
            return None

    async def create(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object."""
        kind = ResourceKind.of(obj)
        namespace = obj["metadata"]["namespace"]
        description = f"{kind.value} {namespace}/{obj['metadata']['name']}"
        if kind == ResourceKind.DATA_NODE:
            func, args = self.custom.create_namespaced_custom_object, (GROUP, VERSION, namespace, PLURAL, obj)
        elif kind == ResourceKind.SERVICE:
            func, args = self.core.create_namespaced_service, (namespace, obj)
        else:
            func, args = self.apps.create_namespaced_stateful_set, (namespace, obj)
        return await self._call("create", description, func, *args)

    async def update(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an object, guarded by its resourceVersion."""
        kind = ResourceKind.of(obj)
        namespace = obj["metadata"]["namespace"]
        name = obj["metadata"]["name"]
        description = f"{kind.value} {namespace}/{name}"
        if kind == ResourceKind.DATA_NODE:
            func, args = self.custom.replace_namespaced_custom_object, (GROUP, VERSION, namespace, PLURAL, name, obj)
        elif kind == ResourceKind.SERVICE:
            func, args = self.core.replace_namespaced_service, (name, namespace, obj)
        else:
            func, args = self.apps.replace_namespaced_stateful_set, (name, namespace, obj)
        return await self._call("update", description, func, *args)
