"""Owner references from derived objects back to their DataNode."""

import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from iotdb_operator.errors import AlreadyOwnedError, SchemeError
from iotdb_operator.models.datanode import API_VERSION, KIND, DataNode


logger = logging.getLogger(__name__)


class Scheme:
    """Registry of owner kinds the operator may stamp references for."""

    def __init__(self):
        """Initialize an empty scheme."""
        self._kinds: Dict[type, Tuple[str, str]] = {}

    def register(self, model: type, api_version: str, kind: str):
        """Register a model type under its apiVersion and kind."""
        self._kinds[model] = (api_version, kind)

    def kind_for(self, obj: Any) -> Tuple[str, str]:
        """Return (apiVersion, kind) for an object, raising SchemeError."""
        try:
            return self._kinds[type(obj)]
        except KeyError:
            raise SchemeError(
                f"{type(obj).__name__} is not registered in the scheme"
            ) from None

    def is_registered(self, obj: Any) -> bool:
        return type(obj) in self._kinds


def default_scheme() -> Scheme:
    """Scheme with the DataNode kind registered."""
    scheme = Scheme()
    scheme.register(DataNode, API_VERSION, KIND)
    return scheme


def set_controller_reference(owner: DataNode, obj: Dict[str, Any], scheme: Scheme):
    """Make owner the controller of obj.

    An existing reference to the same owner is replaced in place; a
    controller reference to any other owner raises AlreadyOwnedError.
    """
    api_version, kind = scheme.kind_for(owner)

    reference = {
        "apiVersion": api_version,
        "kind": kind,
        "name": owner.metadata.name,
        "controller": True,
        "blockOwnerDeletion": True,
    }
    if owner.metadata.uid:
        reference["uid"] = owner.metadata.uid

    metadata = obj.setdefault("metadata", {})
    references = metadata.get("ownerReferences") or []

    existing = controller_of(references)
    if existing and not _same_owner(existing, reference):
        raise AlreadyOwnedError(
            f"{obj.get('kind', 'Object')} {metadata.get('name')} is already "
            f"controlled by {existing.get('kind')} {existing.get('name')}"
        )

    updated = [reference if _same_owner(ref, reference) else ref for ref in references]
    if reference not in updated:
        updated.append(reference)
    metadata["ownerReferences"] = updated


def controller_of(references: Optional[Iterable[Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """Return the controller reference in a list of owner references."""
    for ref in references or []:
        if ref.get("controller"):
            return ref
    return None


def _same_owner(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    if a.get("uid") and b.get("uid"):
        return a["uid"] == b["uid"]
    return (
        a.get("apiVersion", "").split("/")[0] == b.get("apiVersion", "").split("/")[0]
        and a.get("kind") == b.get("kind")
        and a.get("name") == b.get("name")
    )
