"""Object store abstraction and its Kubernetes implementation."""

from .base import ObjectStore
from .kubernetes import KubernetesObjectStore

__all__ = ["KubernetesObjectStore", "ObjectStore"]
