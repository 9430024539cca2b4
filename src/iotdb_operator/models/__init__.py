"""Pydantic models for configuration and the DataNode resource."""

from iotdb_operator.models.config import (
    OperatorConfig,
    AgentConfig,
    ClusterConfig,
    TopologyConfig,
    RetryConfig,
    RequeueConfig,
)
from iotdb_operator.models.datanode import (
    DataNode,
    DataNodeSpec,
    ObjectMeta,
    ResourceList,
    ResourceRequirements,
    ServiceExposure,
)

__all__ = [
    "OperatorConfig",
    "AgentConfig",
    "ClusterConfig",
    "TopologyConfig",
    "RetryConfig",
    "RequeueConfig",
    "DataNode",
    "DataNodeSpec",
    "ObjectMeta",
    "ResourceList",
    "ResourceRequirements",
    "ServiceExposure",
]
