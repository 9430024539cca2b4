"""DataNode custom resource models."""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator

from iotdb_operator.errors import InvalidSpecError


GROUP = "iotdb.apache.org"
VERSION = "v1"
PLURAL = "datanodes"
KIND = "DataNode"
API_VERSION = f"{GROUP}/{VERSION}"


def _to_str(value: Any) -> Any:
    """Coerce YAML scalars (ints, floats) to strings."""
    if value is None or isinstance(value, str):
        return value
    return str(value)


class ResourceList(BaseModel):
    """CPU and memory quantities."""
    cpu: Optional[str] = None
    memory: Optional[str] = None

    @field_validator("cpu", "memory", mode="before")
    @classmethod
    def coerce_quantity(cls, v):
        """Quantities like `cpu: 4` are parsed as ints by YAML."""
        return _to_str(v)

    def to_manifest(self) -> Dict[str, str]:
        return {k: v for k, v in (("cpu", self.cpu), ("memory", self.memory)) if v is not None}


class ResourceRequirements(BaseModel):
    """Resource limits and requests."""
    limits: ResourceList = Field(default_factory=ResourceList)
    requests: ResourceList = Field(default_factory=ResourceList)


class ServiceExposure(BaseModel):
    """User-facing service descriptor."""
    type: str = Field(default="NodePort", description="Kubernetes service type")
    ports: Dict[str, int] = Field(
        default_factory=dict, description="Registry port name to external node port"
    )


class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata the operator reads."""
    name: str
    namespace: str = Field(default="default")
    uid: Optional[str] = None
    resource_version: Optional[str] = Field(None, alias="resourceVersion")
    labels: Dict[str, str] = Field(default_factory=dict)

    class Config:
        """Pydantic config."""
        extra = "ignore"
        populate_by_name = True


class DataNodeSpec(BaseModel):
    """Desired state of one DataNode group."""
    replicas: int = Field(default=1, ge=0)
    image: str = Field(..., description="DataNode container image")
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)
    envs: Optional[Dict[str, str]] = None
    service: Optional[ServiceExposure] = None
    volume_claim_template: Dict[str, Any] = Field(
        default_factory=dict, alias="volumeClaimTemplate"
    )

    class Config:
        """Pydantic config."""
        extra = "ignore"
        populate_by_name = True

    @field_validator("envs", mode="before")
    @classmethod
    def stringify_env_values(cls, v):
        """Env values arrive as YAML scalars of any type."""
        if v is None:
            return v
        return {str(key): _to_str(value) for key, value in v.items()}


class DataNode(BaseModel):
    """The DataNode custom resource."""
    api_version: str = Field(default=API_VERSION, alias="apiVersion")
    kind: str = Field(default=KIND)
    metadata: ObjectMeta
    spec: DataNodeSpec

    class Config:
        """Pydantic config."""
        extra = "ignore"
        populate_by_name = True

    @classmethod
    def from_manifest(cls, manifest: Dict[str, Any]) -> "DataNode":
        """Parse a raw resource, raising InvalidSpecError on bad input."""
        try:
            return cls.model_validate(manifest)
        except ValidationError as e:
            name = (manifest.get("metadata") or {}).get("name", "<unknown>")
            raise InvalidSpecError(f"Invalid DataNode {name}: {e}") from e

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def headless_service_name(self) -> str:
        return f"{self.metadata.name}-headless"

    @property
    def selector_labels(self) -> Dict[str, str]:
        return {"app": self.metadata.name}
