"""
IoTDB Operator - Kubernetes operator for Apache IoTDB DataNodes.

Reconciles DataNode custom resources into a headless Service, an optional
exposure Service and a StatefulSet.
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from iotdb_operator.models.config import OperatorConfig
from iotdb_operator.models.datanode import DataNode, DataNodeSpec

__all__ = [
    "OperatorConfig",
    "DataNode",
    "DataNodeSpec",
]
