"""Pydantic models for the RabbitmqCluster custom resource."""

from .cluster import (
    PersistenceConfig,
    RabbitmqCluster,
    RabbitmqClusterSpec,
    RabbitmqClusterStatus,
    ResourceRequirements,
    ServiceConfig,
)

__all__ = [
    "PersistenceConfig",
    "RabbitmqCluster",
    "RabbitmqClusterSpec",
    "RabbitmqClusterStatus",
    "ResourceRequirements",
    "ServiceConfig",
]
