"""
Object store contract the reconcile engine depends on.

Implementations return plain dictionaries in wire (camelCase) form and
raise only TransientStoreError or IrrecoverableStoreError.
"""

from typing import Any, Protocol


class ObjectStore(Protocol):
    """Typed get/create/patch access to RabbitmqClusters and their children."""

    async def get_cluster(self, namespace: str, name: str) -> dict[str, Any] | None:
        """Return the RabbitmqCluster, or None when it does not exist."""
        ...

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        """Return a child object, or None when it does not exist."""
        ...

    async def create(
        self, kind: str, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def patch(
        self, kind: str, namespace: str, name: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply a JSON merge patch to a child object."""
        ...

    async def patch_cluster_status(
        self, namespace: str, name: str, status: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge ``status`` into the status subresource of a RabbitmqCluster."""
        ...
