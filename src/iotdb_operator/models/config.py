"""Configuration models."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class AgentConfig(BaseModel):
    """Agent configuration."""
    log_level: str = Field(default="INFO")
    workers: int = Field(default=2, ge=1)
    resync_interval: int = Field(default=300, ge=0, description="Seconds, 0 disables resync")
    pass_timeout: float = Field(default=60.0, gt=0)
    watch_timeout: int = Field(default=300, ge=1)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class ClusterConfig(BaseModel):
    """Kubernetes API connection settings."""
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    in_cluster: Optional[bool] = Field(
        default=None, description="None tries in-cluster first, then kubeconfig"
    )
    namespace: Optional[str] = Field(default=None, description="Watch scope, None for all")
    request_timeout: float = Field(default=30.0, gt=0)


class TopologyConfig(BaseModel):
    """Naming of the surrounding IoTDB cluster."""
    cluster_domain: str = Field(default="cluster.local")
    confignode_name: str = Field(default="confignode")


class RetryConfig(BaseModel):
    """Conflict retry policy for workload updates."""
    steps: int = Field(default=5, ge=1)
    duration: float = Field(default=0.01, ge=0)
    factor: float = Field(default=1.0, ge=1.0)
    jitter: float = Field(default=0.1, ge=0)


class RequeueConfig(BaseModel):
    """Per-key backoff for failed passes."""
    base_delay: float = Field(default=0.005, gt=0)
    max_delay: float = Field(default=1000.0, gt=0)


class OperatorConfig(BaseModel):
    """Main configuration model."""
    agent: AgentConfig = Field(default_factory=AgentConfig)
    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    topology: TopologyConfig = Field(default_factory=TopologyConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    requeue: RequeueConfig = Field(default_factory=RequeueConfig)

    class Config:
        """Pydantic config."""
        extra = "ignore"
