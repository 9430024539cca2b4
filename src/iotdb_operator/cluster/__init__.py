"""Cluster API clients."""

from iotdb_operator.cluster.base import ClusterClient, ResourceKind
from iotdb_operator.cluster.kubernetes import KubernetesClusterClient, load_api_client

__all__ = [
    "ClusterClient",
    "ResourceKind",
    "KubernetesClusterClient",
    "load_api_client",
]
