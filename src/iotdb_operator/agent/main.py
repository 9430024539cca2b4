"""Main agent implementation."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import kopf

from iotdb_operator.agent.config import ConfigManager
from iotdb_operator.agent.engine import DataNodeReconciler
from iotdb_operator.agent.handlers import DataNodeHandlers
from iotdb_operator.cluster import ClusterClient, KubernetesClusterClient, load_api_client
from iotdb_operator.models.config import OperatorConfig
from iotdb_operator.ownership import default_scheme
from iotdb_operator.utils.logging import setup_logging


logger = logging.getLogger(__name__)


def build_client(config: OperatorConfig) -> KubernetesClusterClient:
    """Connect to the cluster described by the configuration."""
    api_client = load_api_client(config.cluster)
    return KubernetesClusterClient(api_client, request_timeout=config.cluster.request_timeout)


class OperatorAgent:
    """Main agent wiring the reconciler into the kopf operator loop."""

    def __init__(self, config_path: Optional[Path] = None, client: Optional[ClusterClient] = None):
        """Initialize the agent."""
        self.config_manager = ConfigManager(config_path)
        self.client = client
        self.reconciler: Optional[DataNodeReconciler] = None
        self.handlers: Optional[DataNodeHandlers] = None
        self.registry: Optional[kopf.OperatorRegistry] = None
        self.stop_flag = asyncio.Event()

    @property
    def config(self) -> OperatorConfig:
        return self.config_manager.config

    async def initialize(self):
        """Initialize agent components."""
        config = await self.config_manager.load()
        setup_logging(config.agent.log_level)

        if self.client is None:
            self.client = build_client(config)

        self.reconciler = DataNodeReconciler(
            client=self.client,
            scheme=default_scheme(),
            topology=config.topology,
            retry=config.retry,
        )
        self.handlers = DataNodeHandlers(self.reconciler, config)
        self.registry = kopf.OperatorRegistry()
        self.handlers.register(self.registry)
        logger.info("Agent initialized successfully")

    async def run(self):
        """Run the operator until a signal or shutdown() stops it."""
        await self.initialize()

        namespace = self.config.cluster.namespace
        logger.info(f"Agent started, watching {namespace or 'all namespaces'}")
        await kopf.operator(
            registry=self.registry,
            standalone=True,
            clusterwide=namespace is None,
            namespaces=[namespace] if namespace else [],
            stop_flag=self.stop_flag,
        )
        logger.info("Agent stopped")

    def shutdown(self):
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self.stop_flag.set()


async def run_agent(config_path: Optional[Path] = None):
    """Run the agent."""
    agent = OperatorAgent(config_path=config_path)
    await agent.run()
