"""
Shared fixtures for unit tests.

FakeObjectStore is an in-memory implementation of the ObjectStore contract.
It applies JSON merge patches, fills in a few fields the API server would
default and records every write so tests can assert on write counts.
"""

import copy
import itertools
from dataclasses import dataclass
from typing import Any

import pytest

from rabbitmq_operator.constants import (
    API_GROUP_VERSION,
    CLUSTER_KIND,
    KIND_SERVICE,
    KIND_STATEFULSET,
)
from rabbitmq_operator.errors import OperatorError, TransientStoreError

_uids = itertools.count(1)


def merge_patch(target: Any, patch: Any) -> Any:
    """Apply an RFC 7386 merge patch and return the result."""
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = copy.deepcopy(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = merge_patch(result.get(key), value)
    return result


def _apply_server_defaults(kind: str, body: dict[str, Any]) -> None:
    metadata = body.setdefault("metadata", {})
    metadata.setdefault("uid", f"uid-{next(_uids)}")
    metadata["resourceVersion"] = "1"
    metadata.setdefault("creationTimestamp", "2024-01-01T00:00:00Z")

    if kind == KIND_STATEFULSET:
        pod_spec = body["spec"]["template"]["spec"]
        pod_spec.setdefault("restartPolicy", "Always")
        pod_spec.setdefault("dnsPolicy", "ClusterFirst")
        for container in pod_spec.get("containers", []):
            container.setdefault("terminationMessagePath", "/dev/termination-log")
            container.setdefault("imagePullPolicy", "IfNotPresent")
        body["spec"].setdefault("revisionHistoryLimit", 10)
    elif kind == KIND_SERVICE:
        spec = body.setdefault("spec", {})
        spec.setdefault("type", "ClusterIP")
        spec.setdefault("clusterIP", "10.96.0.10")
        spec.setdefault("sessionAffinity", "None")


@dataclass
class FailureRule:
    verb: str
    kind: str | None
    name: str | None
    error: OperatorError
    times: int | None

    def matches(self, verb: str, kind: str, name: str) -> bool:
        return (
            self.verb == verb
            and (self.kind is None or self.kind == kind)
            and (self.name is None or self.name == name)
        )


class FakeObjectStore:
    """In-memory ObjectStore used by reconciler tests."""

    def __init__(self):
        self.clusters: dict[tuple[str, str], dict[str, Any]] = {}
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.creates: list[tuple[str, str]] = []
        self.patches: list[tuple[str, str, dict[str, Any]]] = []
        self.status_patches: list[dict[str, Any]] = []
        self._rules: list[FailureRule] = []

    @property
    def write_count(self) -> int:
        return len(self.creates) + len(self.patches) + len(self.status_patches)

    def reset_counters(self) -> None:
        self.creates.clear()
        self.patches.clear()
        self.status_patches.clear()

    def fail(
        self,
        verb: str,
        error: OperatorError,
        kind: str | None = None,
        name: str | None = None,
        times: int | None = None,
    ) -> None:
        """Make matching calls raise ``error``, forever or ``times`` times."""
        self._rules.append(FailureRule(verb, kind, name, error, times))

    def clear_failures(self) -> None:
        self._rules.clear()

    def _maybe_fail(self, verb: str, kind: str, name: str) -> None:
        for rule in self._rules:
            if rule.matches(verb, kind, name):
                if rule.times is not None:
                    rule.times -= 1
                    if rule.times <= 0:
                        self._rules.remove(rule)
                raise rule.error

    def add_cluster(self, obj: dict[str, Any]) -> dict[str, Any]:
        metadata = obj["metadata"]
        self.clusters[(metadata["namespace"], metadata["name"])] = obj
        return obj

    def cluster(self, namespace: str, name: str) -> dict[str, Any]:
        return self.clusters[(namespace, name)]

    def object(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        return self.objects[(kind, namespace, name)]

    def delete(self, kind: str, namespace: str, name: str) -> None:
        del self.objects[(kind, namespace, name)]

    def edit(self, kind: str, namespace: str, name: str, patch: dict) -> None:
        """Change a live object behind the operator's back."""
        key = (kind, namespace, name)
        self.objects[key] = merge_patch(self.objects[key], patch)

    def edit_cluster(self, namespace: str, name: str, patch: dict) -> None:
        key = (namespace, name)
        updated = merge_patch(self.clusters[key], patch)
        updated["metadata"]["generation"] = updated["metadata"].get("generation", 1) + 1
        self.clusters[key] = updated

    async def get_cluster(self, namespace: str, name: str) -> dict[str, Any] | None:
        self._maybe_fail("get", CLUSTER_KIND, name)
        obj = self.clusters.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        self._maybe_fail("get", kind, name)
        obj = self.objects.get((kind, namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    async def create(
        self, kind: str, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        name = body["metadata"]["name"]
        self._maybe_fail("create", kind, name)
        key = (kind, namespace, name)
        if key in self.objects:
            raise TransientStoreError(f"{kind} {name} already exists", status=409)
        stored = copy.deepcopy(body)
        _apply_server_defaults(kind, stored)
        self.objects[key] = stored
        self.creates.append((kind, name))
        return copy.deepcopy(stored)

    async def patch(
        self, kind: str, namespace: str, name: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        self._maybe_fail("patch", kind, name)
        key = (kind, namespace, name)
        if key not in self.objects:
            raise TransientStoreError(f"{kind} {name} not found", status=404)
        self.objects[key] = merge_patch(self.objects[key], patch)
        self.patches.append((kind, name, copy.deepcopy(patch)))
        return copy.deepcopy(self.objects[key])

    async def patch_cluster_status(
        self, namespace: str, name: str, status: dict[str, Any]
    ) -> dict[str, Any]:
        self._maybe_fail("patch_status", CLUSTER_KIND, name)
        key = (namespace, name)
        if key not in self.clusters:
            raise TransientStoreError(f"RabbitmqCluster {name} not found", status=404)
        self.clusters[key] = merge_patch(self.clusters[key], {"status": status})
        self.status_patches.append(copy.deepcopy(status))
        return copy.deepcopy(self.clusters[key])


def make_cluster_object(
    name: str = "rabbitmq-one",
    namespace: str = "default",
    spec: dict[str, Any] | None = None,
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    uid: str = "cluster-uid-1",
    generation: int = 1,
) -> dict[str, Any]:
    """Build a raw RabbitmqCluster object as returned by the API server."""
    metadata: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "uid": uid,
        "generation": generation,
    }
    if labels is not None:
        metadata["labels"] = labels
    if annotations is not None:
        metadata["annotations"] = annotations
    return {
        "apiVersion": API_GROUP_VERSION,
        "kind": CLUSTER_KIND,
        "metadata": metadata,
        "spec": spec if spec is not None else {"replicas": 1},
    }


@pytest.fixture
def store():
    """Empty in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def cluster_object():
    """Factory for raw RabbitmqCluster objects."""
    return make_cluster_object
