"""Shared fixtures: an in-memory cluster and sample DataNodes."""

import copy
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from iotdb_operator.cluster.base import ClusterClient, ResourceKind
from iotdb_operator.errors import AlreadyExistsError, ConflictError, NotFoundError
from iotdb_operator.models.datanode import DataNode


def _apply_server_defaults(obj: Dict[str, Any]):
    """Mimic a few API server defaults so diffs see realistic live objects."""
    spec = obj.get("spec", {})
    if obj["kind"] == "Service":
        spec.setdefault("sessionAffinity", "None")
        if spec.get("clusterIP") is None:
            spec["clusterIP"] = "10.96.0.10"
        for port in spec.get("ports", []):
            port.setdefault("protocol", "TCP")
    elif obj["kind"] == "StatefulSet":
        spec.setdefault("podManagementPolicy", "OrderedReady")
        spec.setdefault("revisionHistoryLimit", 10)
        pod_spec = spec.get("template", {}).get("spec", {})
        pod_spec.setdefault("restartPolicy", "Always")
        for container in pod_spec.get("containers", []):
            container.setdefault("terminationMessagePath", "/dev/termination-log")
            for env in container.get("env", []):
                field_ref = env.get("valueFrom", {}).get("fieldRef")
                if field_ref is not None:
                    field_ref.setdefault("apiVersion", "v1")
            # The server normalises quantities, e.g. 8000m -> 8
            for section in container.get("resources", {}).values():
                if section.get("cpu", "").endswith("000m"):
                    section["cpu"] = section["cpu"][:-4]
        for claim in spec.get("volumeClaimTemplates", []):
            claim.setdefault("spec", {}).setdefault("volumeMode", "Filesystem")
            claim.setdefault("status", {"phase": "Pending"})
        obj.setdefault("status", {"replicas": 0})


class FakeCluster(ClusterClient):
    """In-memory ClusterClient with resourceVersion checks."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self._version = 0
        self.before_update: Optional[Callable[[Dict[str, Any]], None]] = None

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    @staticmethod
    def _key(obj: Dict[str, Any]) -> Tuple[str, str, str]:
        meta = obj["metadata"]
        return (obj["kind"], meta["namespace"], meta["name"])

    def put(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Store an object directly, bypassing call tracking."""
        stored = copy.deepcopy(obj)
        stored["metadata"]["resourceVersion"] = self._next_version()
        stored["metadata"].setdefault("uid", f"uid-{self._version}")
        self.objects[self._key(stored)] = stored
        return copy.deepcopy(stored)

    def stored(self, kind: ResourceKind, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        obj = self.objects.get((kind.value, namespace, name))
        return copy.deepcopy(obj) if obj else None

    @property
    def writes(self) -> List[Tuple[str, str, str]]:
        return [call for call in self.calls if call[0] in ("create", "update")]

    async def get(self, kind, namespace, name):
        self.calls.append(("get", kind.value, name))
        return self.stored(kind, namespace, name)

    async def create(self, obj):
        key = self._key(obj)
        self.calls.append(("create", key[0], key[2]))
        if key in self.objects:
            raise AlreadyExistsError(f"{key} already exists")
        stored = copy.deepcopy(obj)
        stored["metadata"].pop("resourceVersion", None)
        _apply_server_defaults(stored)
        return self.put(stored)

    async def update(self, obj):
        key = self._key(obj)
        self.calls.append(("update", key[0], key[2]))
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            hook(obj)
        current = self.objects.get(key)
        if current is None:
            raise NotFoundError(f"{key} not found")
        if obj["metadata"].get("resourceVersion") != current["metadata"]["resourceVersion"]:
            raise ConflictError(f"{key} has been modified")
        stored = copy.deepcopy(obj)
        stored["metadata"]["uid"] = current["metadata"]["uid"]
        if "status" in current:
            stored["status"] = current["status"]
        _apply_server_defaults(stored)
        return self.put(stored)



def datanode_manifest(**spec_overrides) -> Dict[str, Any]:
    """A DataNode resource as the API server would return it."""
    spec = {
        "replicas": 3,
        "image": "apache/iotdb:1.3.2-datanode",
        "resources": {"limits": {"cpu": "8000m", "memory": "16Gi"}},
        "volumeClaimTemplate": {
            "accessModes": ["ReadWriteOnce"],
            "storageClassName": "local-storage",
            "resources": {"requests": {"storage": "200Gi"}},
        },
    }
    spec.update(spec_overrides)
    return {
        "apiVersion": "iotdb.apache.org/v1",
        "kind": "DataNode",
        "metadata": {
            "name": "datanode",
            "namespace": "iotdb",
            "uid": "6f1c3c1e-0000-4000-8000-000000000001",
            "resourceVersion": "1",
        },
        "spec": spec,
    }


@pytest.fixture
def make_manifest():
    """Factory for DataNode manifests with spec overrides."""
    return datanode_manifest


@pytest.fixture
def manifest():
    return datanode_manifest()


@pytest.fixture
def datanode(manifest):
    return DataNode.from_manifest(manifest)


@pytest.fixture
def exposed_datanode():
    return DataNode.from_manifest(
        datanode_manifest(service={"type": "NodePort", "ports": {"dn_rpc_port": 30001}})
    )


@pytest.fixture
def cluster():
    return FakeCluster()
