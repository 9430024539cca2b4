"""Configuration management for the agent."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML
from pydantic import ValidationError

from iotdb_operator.models.config import OperatorConfig
from iotdb_operator.models.datanode import DataNode


logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "IOTDB_OPERATOR_CONFIG"


class ConfigManager:
    """Loads operator configuration and DataNode manifests from YAML."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager."""
        if config_path is None and os.environ.get(CONFIG_ENV_VAR):
            config_path = Path(os.environ[CONFIG_ENV_VAR])
        self.config_path = Path(config_path) if config_path else None
        self.yaml = YAML(typ="safe")
        self.config: OperatorConfig = OperatorConfig()

    async def load(self) -> OperatorConfig:
        """Load the operator configuration, falling back to defaults."""
        if self.config_path is None:
            logger.info("No configuration file given, using defaults")
            self.config = OperatorConfig()
            return self.config

        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")

        logger.info(f"Loading configuration from {self.config_path}")
        data = await self._read_yaml(self.config_path)
        try:
            self.config = OperatorConfig(**(data or {}))
        except ValidationError as e:
            logger.error(f"Invalid config: {e}")
            raise
        return self.config

    async def load_datanode(self, manifest_path: Path) -> DataNode:
        """Load a DataNode manifest file."""
        data = await self._read_yaml(Path(manifest_path))
        if not data:
            raise ValueError(f"Empty manifest: {manifest_path}")
        return DataNode.from_manifest(data)

    async def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse YAML file."""
        content = await asyncio.to_thread(file_path.read_text)
        return self.yaml.load(content)
