"""
Pydantic models for RabbitmqCluster resources.

This module defines type-safe data models for the RabbitmqCluster
specification and status. Optional fields left unset mean "use the
platform default", so absence is always a valid state.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rabbitmq_operator.constants import (
    CLUSTER_STATUS_CREATED,
    CLUSTER_STATUS_CREATING,
    CLUSTER_STATUS_EMPTY,
    CLUSTER_STATUS_ERROR,
    DEFAULT_REPLICAS,
    DEFAULT_SERVICE_TYPE,
    VALID_SERVICE_TYPES,
)

CLUSTER_STATUSES = (
    CLUSTER_STATUS_EMPTY,
    CLUSTER_STATUS_CREATING,
    CLUSTER_STATUS_CREATED,
    CLUSTER_STATUS_ERROR,
)


class ResourceRequirements(BaseModel):
    """CPU and memory requests and limits for the RabbitMQ container."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    requests: dict[str, str] | None = Field(None, description="Resource requests")
    limits: dict[str, str] | None = Field(None, description="Resource limits")

    @field_validator("requests", "limits", mode="before")
    @classmethod
    def normalize_quantities(cls, v):
        # Quantities are int-or-string in the API, e.g. cpu: 2
        if not isinstance(v, dict):
            return v
        return {
            key: str(value)
            if isinstance(value, int | float) and not isinstance(value, bool)
            else value
            for key, value in v.items()
        }


class PersistenceConfig(BaseModel):
    """Volume claim settings for broker data."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    storage_class_name: str | None = Field(
        None,
        alias="storageClassName",
        description="Storage class for the volume claim (platform default when unset)",
    )
    storage: str | None = Field(None, description="Requested volume size, e.g. 10Gi")


class ServiceConfig(BaseModel):
    """Exposure settings for the client-facing service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(DEFAULT_SERVICE_TYPE, description="Kubernetes service type")
    annotations: dict[str, str] = Field(
        default_factory=dict, description="Service annotations"
    )

    @field_validator("type")
    @classmethod
    def validate_service_type(cls, v):
        if v not in VALID_SERVICE_TYPES:
            raise ValueError(f"Service type must be one of {list(VALID_SERVICE_TYPES)}")
        return v


class RabbitmqClusterSpec(BaseModel):
    """Desired state of a RabbitMQ cluster."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    replicas: int = Field(
        DEFAULT_REPLICAS, description="Number of broker nodes in the cluster"
    )
    image: str | None = Field(
        None, description="Broker container image (operator default when unset)"
    )
    image_pull_secret: str | None = Field(
        None,
        alias="imagePullSecret",
        description="Name of a docker-registry secret used to pull the image",
    )
    resources: ResourceRequirements | None = Field(
        None, description="Container resource requirements"
    )
    persistence: PersistenceConfig | None = Field(
        None, description="Persistent volume settings"
    )
    affinity: dict[str, Any] | None = Field(
        None, description="Pod affinity rules, passed through verbatim"
    )
    service: ServiceConfig = Field(
        default_factory=ServiceConfig, description="Client service settings"
    )


class RabbitmqClusterStatus(BaseModel):
    """Observed state of a RabbitMQ cluster, written only by the operator."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    cluster_status: str = Field(
        CLUSTER_STATUS_EMPTY,
        alias="clusterStatus",
        description="Coarse lifecycle phase: '', creating, created or error",
    )
    conditions: list[dict[str, Any]] = Field(
        default_factory=list, description="Structured condition details"
    )
    observed_generation: int | None = Field(
        None,
        alias="observedGeneration",
        description="metadata.generation of the spec last reconciled",
    )

    @field_validator("cluster_status")
    @classmethod
    def validate_cluster_status(cls, v):
        # Unknown values written by other tooling are treated as empty
        return v if v in CLUSTER_STATUSES else CLUSTER_STATUS_EMPTY

    def to_status_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase field names of the CRD."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RabbitmqCluster(BaseModel):
    """A RabbitmqCluster object as read from the API server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., description="metadata.name")
    namespace: str = Field(..., description="metadata.namespace")
    uid: str = Field(..., description="metadata.uid")
    generation: int | None = Field(None, description="metadata.generation")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    spec: RabbitmqClusterSpec = Field(default_factory=RabbitmqClusterSpec)
    status: RabbitmqClusterStatus = Field(default_factory=RabbitmqClusterStatus)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "RabbitmqCluster":
        """Build the model from a raw custom object dictionary."""
        metadata = obj.get("metadata") or {}
        return cls(
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            generation=metadata.get("generation"),
            labels=metadata.get("labels") or {},
            annotations=metadata.get("annotations") or {},
            spec=obj.get("spec") or {},
            status=obj.get("status") or {},
        )
