"""Comparison and merge helpers for manifests.

The API server fills in defaults (protocols, termination message paths,
field ref API versions) and normalises quantities, so live objects are
compared against desired ones as a superset. Maps the operator owns
outright (labels, selectors, resource lists, env entries) are compared
by exact key set so removed keys are noticed too.
"""

import copy
from typing import Any, Dict, Iterable

from kubernetes.utils import parse_quantity


QUANTITY_KEYS = frozenset({"cpu", "memory", "storage", "ephemeral-storage"})

# Maps whose keys must match exactly; the server never adds to these
EXACT_KEYS = frozenset({"labels", "matchLabels", "selector", "resources", "limits", "requests", "env"})


def quantities_equal(a: Any, b: Any) -> bool:
    """Compare two Kubernetes quantities by value ("8000m" == "8")."""
    try:
        return parse_quantity(a) == parse_quantity(b)
    except (ValueError, TypeError):
        return False


def _set_keys(mapping: Dict[str, Any]) -> set:
    return {name for name, value in mapping.items() if value is not None}


def is_subset(desired: Any, live: Any, key: str = "") -> bool:
    """Return True if live matches every value set in desired.

    Dicts match when each desired key matches; dicts under an EXACT_KEYS
    key (and env entries) must also carry no extra keys. Lists must have
    equal length and match element-wise. Empty desired containers match a
    missing value.
    """
    if isinstance(desired, dict):
        if live is None:
            live = {}
        if not isinstance(live, dict):
            return False
        if key in EXACT_KEYS and _set_keys(desired) != _set_keys(live):
            return False
        return all(
            is_subset(value, live.get(name), name)
            for name, value in desired.items()
            if value is not None
        )

    if isinstance(desired, list):
        if not desired:
            return not live
        if not isinstance(live, list) or len(live) != len(desired):
            return False
        return all(is_subset(d, l, key) for d, l in zip(desired, live))

    if desired == live:
        return True
    if key in QUANTITY_KEYS and live is not None:
        return quantities_equal(desired, live)
    # Ports and replicas may come back as strings from some serializers
    if isinstance(desired, int) and not isinstance(desired, bool) and isinstance(live, str):
        return str(desired) == live
    return False


def project(spec: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Keep only the named top-level fields of a spec."""
    return {name: spec[name] for name in fields if name in spec}


def overlay(live: Dict[str, Any], desired: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Build an update body: live object with the owned desired fields laid over it.

    Labels are merged and the live resourceVersion and owner references are
    carried forward; the caller stamps its controller reference on the result.
    """
    body = copy.deepcopy(live)
    body.pop("status", None)

    live_meta = body.setdefault("metadata", {})
    desired_meta = desired.get("metadata", {})
    labels = dict(live_meta.get("labels") or {})
    labels.update(desired_meta.get("labels") or {})
    live_meta["labels"] = labels

    spec = body.setdefault("spec", {})
    for name in fields:
        if name in desired.get("spec", {}):
            spec[name] = copy.deepcopy(desired["spec"][name])
    return body
