"""Desired-state builders for a DataNode.

Every function here is pure: it turns a DataNode into Kubernetes manifests
(plain dicts in API camelCase) and stamps them with an owner reference.
Nothing here talks to the cluster.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from iotdb_operator import ports
from iotdb_operator.models.config import TopologyConfig
from iotdb_operator.models.datanode import DataNode
from iotdb_operator.ownership import Scheme, set_controller_reference


logger = logging.getLogger(__name__)

DATA_ROOT = "/iotdb"
VOLUME_SUB_PATHS = ("data", "logs", "ext", ".env", "activation")
HOSTNAME_TOPOLOGY_KEY = "kubernetes.io/hostname"

POD_NAME_ENV = "POD_NAME"
SEED_CONFIG_NODE_ENV = "dn_seed_config_node"
INTERNAL_ADDRESS_ENV = "dn_internal_address"
INJECTED_ENV_NAMES = (POD_NAME_ENV, SEED_CONFIG_NODE_ENV, INTERNAL_ADDRESS_ENV)


def _object_meta(datanode: DataNode, name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "namespace": datanode.namespace,
        "labels": dict(datanode.selector_labels),
    }


def build_services(datanode: DataNode, scheme: Scheme) -> List[Dict[str, Any]]:
    """Build the headless service and, if requested, the exposure service."""
    headless = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _object_meta(datanode, datanode.headless_service_name),
        "spec": {
            "type": "ClusterIP",
            "clusterIP": "None",
            "ports": ports.headless_service_ports(),
            "selector": dict(datanode.selector_labels),
        },
    }
    set_controller_reference(datanode, headless, scheme)
    services = [headless]

    exposure = datanode.spec.service
    if exposure is not None and exposure.ports:
        exposed = ports.exposure_ports(exposure.ports)
        if exposed:
            service = {
                "apiVersion": "v1",
                "kind": "Service",
                "metadata": _object_meta(datanode, datanode.name),
                "spec": {
                    "type": exposure.type,
                    "ports": exposed,
                    "selector": dict(datanode.selector_labels),
                },
            }
            set_controller_reference(datanode, service, scheme)
            services.append(service)
        else:
            logger.debug(f"DataNode {datanode.name} exposes no recognised ports")

    return services


def build_env(datanode: DataNode, topology: Optional[TopologyConfig] = None) -> List[Dict[str, Any]]:
    """User envs (ports canonicalised) followed by the injected entries."""
    topology = topology or TopologyConfig()
    env = []
    for name, value in (datanode.spec.envs or {}).items():
        if name in INJECTED_ENV_NAMES:
            logger.warning(
                f"DataNode {datanode.name}: env {name} is managed by the operator, ignoring"
            )
            continue
        env.append({"name": name, "value": ports.canonicalize_env(name, value)})

    confignode = topology.confignode_name
    domain = f"{datanode.namespace}.svc.{topology.cluster_domain}"
    env.append({
        "name": POD_NAME_ENV,
        "valueFrom": {"fieldRef": {"fieldPath": "metadata.name"}},
    })
    env.append({
        "name": SEED_CONFIG_NODE_ENV,
        "value": f"{confignode}-0.{confignode}-headless.{domain}:{ports.CONFIG_NODE_INTERNAL_PORT}",
    })
    env.append({
        "name": INTERNAL_ADDRESS_ENV,
        "value": f"$({POD_NAME_ENV}).{datanode.headless_service_name}.{domain}",
    })
    return env


def build_resources(datanode: DataNode) -> Dict[str, Any]:
    """Requests mirror limits so pods get the Guaranteed QoS class."""
    limits = datanode.spec.resources.limits.to_manifest()
    if not limits:
        return {}
    return {"limits": dict(limits), "requests": dict(limits)}


def build_storage_claim(datanode: DataNode, scheme: Scheme) -> Dict[str, Any]:
    """PVC template, spec copied verbatim from the DataNode."""
    claim = {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": _object_meta(datanode, datanode.name),
        "spec": copy.deepcopy(datanode.spec.volume_claim_template),
    }
    set_controller_reference(datanode, claim, scheme)
    return claim


def build_workload(
    datanode: DataNode, scheme: Scheme, topology: Optional[TopologyConfig] = None
) -> Dict[str, Any]:
    """Build the DataNode StatefulSet."""
    labels = datanode.selector_labels
    claim = build_storage_claim(datanode, scheme)
    claim_name = claim["metadata"]["name"]

    container = {
        "name": datanode.name,
        "image": datanode.spec.image,
        "imagePullPolicy": "IfNotPresent",
        "ports": ports.container_ports(),
        "env": build_env(datanode, topology),
        "volumeMounts": [
            {"name": claim_name, "mountPath": f"{DATA_ROOT}/{sub_path}", "subPath": sub_path}
            for sub_path in VOLUME_SUB_PATHS
        ],
        "resources": build_resources(datanode),
    }

    statefulset = {
        "apiVersion": "apps/v1",
        "kind": "StatefulSet",
        "metadata": _object_meta(datanode, datanode.name),
        "spec": {
            "replicas": datanode.spec.replicas,
            "selector": {"matchLabels": dict(labels)},
            "serviceName": datanode.headless_service_name,
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "affinity": {
                        "podAntiAffinity": {
                            "requiredDuringSchedulingIgnoredDuringExecution": [
                                {
                                    "labelSelector": {"matchLabels": dict(labels)},
                                    "topologyKey": HOSTNAME_TOPOLOGY_KEY,
                                }
                            ]
                        }
                    },
                    "containers": [container],
                },
            },
            "volumeClaimTemplates": [claim],
        },
    }
    set_controller_reference(datanode, statefulset, scheme)
    return statefulset
