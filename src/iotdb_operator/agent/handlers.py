"""kopf handlers driving the DataNode reconciler.

Every trigger (a DataNode change, an event on an owned Service or
StatefulSet, or the periodic resync timer) is reduced to a DataNode key
and runs one full reconciliation pass. The event payload itself is never
trusted; the reconciler always re-fetches.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

import kopf

from iotdb_operator.agent.engine import DataNodeReconciler, ReconcileResult
from iotdb_operator.errors import (
    AlreadyOwnedError,
    InvalidSpecError,
    OperatorError,
    SchemeError,
)
from iotdb_operator.models.config import OperatorConfig
from iotdb_operator.models.datanode import GROUP, KIND, PLURAL, VERSION
from iotdb_operator.ownership import controller_of


logger = logging.getLogger(__name__)

Key = Tuple[str, str]

ANNOTATION_PREFIX = GROUP

# Failures that another pass cannot fix without a spec change
PERMANENT_ERRORS = (InvalidSpecError, SchemeError, AlreadyOwnedError)


def key_for_owned(body: Dict[str, Any]) -> Optional[Key]:
    """Map an owned Service or StatefulSet to the DataNode controlling it."""
    metadata = body.get("metadata") or {}
    owner = controller_of(metadata.get("ownerReferences"))
    if owner is None or owner.get("kind") != KIND:
        return None
    if owner.get("apiVersion", "").split("/")[0] != GROUP:
        return None
    return (metadata.get("namespace"), owner.get("name"))


class DataNodeHandlers:
    """Binds a reconciler to kopf triggers.

    kopf serializes handlers per watched object, but a DataNode can be
    triggered through three different objects, so passes are additionally
    serialized per DataNode key.
    """

    def __init__(self, reconciler: DataNodeReconciler, config: OperatorConfig):
        """Initialize the handlers."""
        self.reconciler = reconciler
        self.config = config
        self._locks: Dict[Key, asyncio.Lock] = {}

    def requeue_delay(self, retry: int) -> float:
        """Per-key exponential backoff for the given retry count."""
        requeue = self.config.requeue
        return min(requeue.base_delay * (2 ** retry), requeue.max_delay)

    async def _reconcile(self, namespace: str, name: str) -> ReconcileResult:
        lock = self._locks.setdefault((namespace, name), asyncio.Lock())
        async with lock:
            return await self.reconciler.reconcile(
                namespace, name, timeout=self.config.agent.pass_timeout
            )

    async def on_datanode(self, name: str, namespace: str, retry: int = 0, **_kwargs):
        """Handle create, update and resume of a DataNode.

        Transient failures are retried by kopf after the backoff delay;
        invalid specs and ownership clashes fail permanently.
        """
        try:
            await self._reconcile(namespace, name)
        except PERMANENT_ERRORS as e:
            raise kopf.PermanentError(str(e)) from e
        except (OperatorError, asyncio.TimeoutError) as e:
            delay = self.requeue_delay(retry)
            logger.warning(f"Requeueing DataNode {namespace}/{name} in {delay:.3f}s after error: {e}")
            raise kopf.TemporaryError(str(e), delay=delay) from e

    async def on_owned_event(self, body: Dict[str, Any], **kwargs):
        """Reconcile the controlling DataNode when an owned object changes."""
        key = key_for_owned(body)
        if key is None:
            return
        namespace, name = key
        event_type = kwargs.get("type")
        logger.debug(f"{body.get('kind')} event {event_type} -> DataNode {namespace}/{name}")
        try:
            await self._reconcile(namespace, name)
        except (OperatorError, asyncio.TimeoutError) as e:
            # Event handlers are not retried; the DataNode timer catches up
            logger.error(f"Reconciliation of {namespace}/{name} after {event_type} event failed: {e}")

    async def on_resync(self, name: str, namespace: str, **_kwargs):
        """Periodic full pass, independent of events."""
        try:
            await self._reconcile(namespace, name)
        except (OperatorError, asyncio.TimeoutError) as e:
            logger.error(f"Resync of DataNode {namespace}/{name} failed: {e}")

    def configure(self, settings: kopf.OperatorSettings, **_kwargs):
        """Startup settings applied before kopf starts watching."""
        settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
            prefix=ANNOTATION_PREFIX
        )
        settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
            prefix=ANNOTATION_PREFIX
        )
        settings.posting.level = logging.WARNING
        settings.watching.server_timeout = self.config.agent.watch_timeout
        settings.execution.max_workers = self.config.agent.workers
        logger.info(
            f"Operator configured (workers={self.config.agent.workers}, "
            f"resync={self.config.agent.resync_interval}s)"
        )

    def register(self, registry: kopf.OperatorRegistry):
        """Register every handler into registry."""
        kopf.on.startup(registry=registry)(self.configure)

        for decorator in (kopf.on.create, kopf.on.update, kopf.on.resume):
            decorator(GROUP, VERSION, PLURAL, registry=registry)(self.on_datanode)

        kopf.on.event("v1", "services", registry=registry)(self.on_owned_event)
        kopf.on.event("apps", "v1", "statefulsets", registry=registry)(self.on_owned_event)

        interval = self.config.agent.resync_interval
        if interval > 0:
            kopf.timer(GROUP, VERSION, PLURAL, interval=interval, registry=registry)(self.on_resync)
