"""DataNode reconciliation engine."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from iotdb_operator.builder import build_services, build_workload
from iotdb_operator.cluster.base import ClusterClient, ResourceKind
from iotdb_operator.errors import AlreadyExistsError, ConflictError
from iotdb_operator.models.config import RetryConfig, TopologyConfig
from iotdb_operator.models.datanode import DataNode
from iotdb_operator.ownership import Scheme, default_scheme, set_controller_reference
from iotdb_operator.utils.diff import is_subset, overlay, project
from iotdb_operator.utils.retry import Backoff, retry_on_conflict


logger = logging.getLogger(__name__)

SERVICE_FIELDS = ("type", "clusterIP", "selector", "ports")
WORKLOAD_FIELDS = ("replicas", "selector", "serviceName", "template", "volumeClaimTemplates")


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""
    namespace: str
    name: str
    found: bool = True
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.created) + len(self.updated)

    @property
    def changed(self) -> bool:
        return self.writes > 0


class DataNodeReconciler:
    """Drives live Services and StatefulSet toward a DataNode's desired state."""

    def __init__(
        self,
        client: ClusterClient,
        scheme: Optional[Scheme] = None,
        topology: Optional[TopologyConfig] = None,
        retry: Optional[RetryConfig] = None,
    ):
        """Initialize the reconciler."""
        self.client = client
        self.scheme = scheme or default_scheme()
        self.topology = topology or TopologyConfig()
        retry = retry or RetryConfig()
        self.backoff = Backoff(
            steps=retry.steps,
            duration=retry.duration,
            factor=retry.factor,
            jitter=retry.jitter,
        )
        self.last_reconciliation: Optional[datetime] = None

    async def reconcile(self, namespace: str, name: str, timeout: Optional[float] = None) -> ReconcileResult:
        """Run one pass for namespace/name, aborting after timeout seconds."""
        start_time = datetime.now()
        logger.info(f"Reconciling DataNode {namespace}/{name}")

        try:
            result = await asyncio.wait_for(self._reconcile(namespace, name), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Reconciliation of {namespace}/{name} timed out after {timeout}s")
            raise
        except Exception as e:
            logger.error(f"Reconciliation of {namespace}/{name} failed: {e}")
            raise

        self.last_reconciliation = datetime.now()
        duration = (self.last_reconciliation - start_time).total_seconds()
        logger.info(
            f"Reconciled DataNode {namespace}/{name} in {duration:.2f}s "
            f"({len(result.created)} created, {len(result.updated)} updated)"
        )
        return result

    async def _reconcile(self, namespace: str, name: str) -> ReconcileResult:
        result = ReconcileResult(namespace=namespace, name=name)

        raw = await self.client.get(ResourceKind.DATA_NODE, namespace, name)
        if raw is None:
            logger.info(f"DataNode {namespace}/{name} not found, may have been deleted")
            result.found = False
            return result

        datanode = DataNode.from_manifest(raw)

        for service in build_services(datanode, self.scheme):
            await self._converge_service(datanode, service, result)

        await retry_on_conflict(lambda: self._converge_workload(datanode, result), self.backoff)
        return result

    async def _converge_service(self, datanode: DataNode, desired: Dict[str, Any], result: ReconcileResult):
        """Create the service or update its owned spec fields."""
        namespace = desired["metadata"]["namespace"]
        name = desired["metadata"]["name"]

        live = await self.client.get(ResourceKind.SERVICE, namespace, name)
        if live is None:
            try:
                await self.client.create(desired)
                logger.info(f"Created Service {namespace}/{name}")
                result.created.append(f"Service/{name}")
                return
            except AlreadyExistsError:
                logger.info(f"Service {namespace}/{name} appeared concurrently, re-fetching")
                live = await self.client.get(ResourceKind.SERVICE, namespace, name)
                if live is None:
                    raise

        await self._update_if_drifted(datanode, desired, live, SERVICE_FIELDS, result)

    async def _converge_workload(self, datanode: DataNode, result: ReconcileResult):
        """One fetch-compare-write attempt for the StatefulSet."""
        desired = build_workload(datanode, self.scheme, self.topology)
        namespace = datanode.namespace
        name = desired["metadata"]["name"]

        live = await self.client.get(ResourceKind.STATEFUL_SET, namespace, name)
        if live is None:
            try:
                await self.client.create(desired)
            except AlreadyExistsError as e:
                # Let the retry loop re-fetch and compare
                raise ConflictError(str(e)) from e
            logger.info(f"Created StatefulSet {namespace}/{name}")
            result.created.append(f"StatefulSet/{name}")
            return

        await self._update_if_drifted(datanode, desired, live, WORKLOAD_FIELDS, result)

    async def _update_if_drifted(
        self,
        datanode: DataNode,
        desired: Dict[str, Any],
        live: Dict[str, Any],
        fields: Tuple[str, ...],
        result: ReconcileResult,
    ):
        """Write the owned fields back if live drifted or lost its controller reference.

        Raises AlreadyOwnedError if another owner controls the live object.
        """
        kind = desired["kind"]
        namespace = desired["metadata"]["namespace"]
        name = desired["metadata"]["name"]

        body = overlay(live, desired, fields)
        set_controller_reference(datanode, body, self.scheme)
        owned = body["metadata"]["ownerReferences"] == (live.get("metadata") or {}).get("ownerReferences")

        if owned and self._in_sync(desired, live, fields):
            logger.debug(f"{kind} {namespace}/{name} is up to date")
            return

        await self.client.update(body)
        logger.info(f"Updated {kind} {namespace}/{name}")
        result.updated.append(f"{kind}/{name}")

    @staticmethod
    def _in_sync(desired: Dict[str, Any], live: Dict[str, Any], fields) -> bool:
        return is_subset(project(desired["spec"], fields), live.get("spec") or {})
