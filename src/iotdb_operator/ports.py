"""Canonical port registry for the IoTDB DataNode process.

The DataNode binds a fixed set of ports defined in its own configuration
file. Values supplied through the DataNode resource for any of these names
are replaced with the canonical port so the declared objects never drift
from what the process actually listens on.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


logger = logging.getLogger(__name__)

CONFIG_NODE_INTERNAL_PORT = 10710


@dataclass(frozen=True)
class PortDefinition:
    """A single well-known DataNode port."""
    env_name: str
    container_port_name: str
    port: int
    exposable: bool = False

    @property
    def service_port_name(self) -> str:
        """Service port name, the kebab-case form of the env name."""
        return to_kebab_case(self.env_name)


PORT_REGISTRY: Mapping[str, PortDefinition] = MappingProxyType({
    definition.env_name: definition
    for definition in (
        PortDefinition("dn_rpc_port", "rpc-port", 6667, exposable=True),
        PortDefinition("dn_internal_port", "internal-port", 10730),
        PortDefinition("dn_mpp_data_exchange_port", "exchange-port", 10740),
        PortDefinition("dn_schema_region_consensus_port", "schema-port", 10750),
        PortDefinition("dn_data_region_consensus_port", "data-port", 10760),
        PortDefinition("rest_service_port", "rest-port", 18080, exposable=True),
        PortDefinition("dn_metric_prometheus_reporter_port", "metric-port", 9092, exposable=True),
    )
})


def to_kebab_case(name: str) -> str:
    """Convert snake_case or camelCase to kebab-case."""
    result = []
    for i, char in enumerate(name):
        if char == "_":
            result.append("-")
        elif char.isupper():
            if i > 0 and name[i - 1] not in "_-" and not name[i - 1].isupper():
                result.append("-")
            result.append(char.lower())
        else:
            result.append(char)
    return "".join(result)


def canonical_port(name: str) -> Optional[int]:
    """Return the canonical port for a registry name, or None if unknown."""
    definition = PORT_REGISTRY.get(name)
    return definition.port if definition else None


def canonicalize_env(name: str, value: Any) -> str:
    """Return the env value to apply, forcing known port names to canonical."""
    port = canonical_port(name)
    if port is not None:
        if str(value) != str(port):
            logger.debug(f"Overriding env {name}={value} with canonical port {port}")
        return str(port)
    return str(value)


def container_ports() -> List[Dict[str, Any]]:
    """Container port list for the DataNode container."""
    return [
        {"name": d.container_port_name, "containerPort": d.port, "protocol": "TCP"}
        for d in PORT_REGISTRY.values()
    ]


def headless_service_ports() -> List[Dict[str, Any]]:
    """Port list for the headless discovery service."""
    return [
        {
            "name": d.service_port_name,
            "port": d.port,
            "targetPort": d.port,
            "protocol": "TCP",
        }
        for d in PORT_REGISTRY.values()
    ]


def exposure_ports(requested: Mapping[str, int]) -> List[Dict[str, Any]]:
    """Port list for the user-facing service.

    Only exposable registry names are honoured; each becomes the canonical
    port with the user's node port attached. Unknown names are dropped.
    """
    ports = []
    for name, node_port in requested.items():
        definition = PORT_REGISTRY.get(name)
        if definition is None or not definition.exposable:
            logger.debug(f"Ignoring unrecognised exposure port {name}")
            continue
        ports.append({
            "name": definition.service_port_name,
            "port": definition.port,
            "targetPort": definition.port,
            "nodePort": int(node_port),
            "protocol": "TCP",
        })
    return ports
