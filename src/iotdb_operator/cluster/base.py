"""Cluster API client interface."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional


class ResourceKind(Enum):
    """Kinds of objects the operator reads and writes."""
    DATA_NODE = "DataNode"
    SERVICE = "Service"
    STATEFUL_SET = "StatefulSet"

    @classmethod
    def of(cls, obj: Dict[str, Any]) -> "ResourceKind":
        """Resolve the kind of a manifest."""
        return cls(obj["kind"])


class ClusterClient(ABC):
    """CRUD operations against the cluster.

    Objects are plain manifests in API camelCase. Absent objects are
    reported as None by `get`; every other failure raises an
    `iotdb_operator.errors.OperatorError`.
    """

    @abstractmethod
    async def get(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Fetch an object, or None if it does not exist."""
        pass

    @abstractmethod
    async def create(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object; raises AlreadyExistsError on a race."""
        pass

    @abstractmethod
    async def update(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Replace an object; raises ConflictError if its resourceVersion is stale."""
        pass
