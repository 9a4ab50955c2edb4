"""
Unit tests for KubernetesObjectStore.

The generated API classes are replaced with mocks; the tests check which
client methods are called and how their errors are translated.
"""

from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from rabbitmq_operator.constants import (
    KIND_CONFIGMAP,
    KIND_ROLE_BINDING,
    KIND_STATEFULSET,
)
from rabbitmq_operator.errors import IrrecoverableStoreError, TransientStoreError
from rabbitmq_operator.store import KubernetesObjectStore
from rabbitmq_operator.store.kubernetes import MERGE_PATCH


@pytest.fixture
def store():
    """Store whose API classes are mocks."""
    kube_store = KubernetesObjectStore(api_client=MagicMock(), request_timeout=7)
    kube_store._apis = {"core": MagicMock(), "apps": MagicMock(), "rbac": MagicMock()}
    kube_store.custom_api = MagicMock()
    return kube_store


class TestReads:
    """Test get and get_cluster."""

    @pytest.mark.asyncio
    async def test_get_dispatches_by_kind(self, store):
        api = store._apis["apps"]
        api.read_namespaced_stateful_set.return_value = {"metadata": {"name": "s"}}

        obj = await store.get(KIND_STATEFULSET, "ns", "s")

        assert obj == {"metadata": {"name": "s"}}
        api.read_namespaced_stateful_set.assert_called_once_with(
            _request_timeout=7, name="s", namespace="ns"
        )

    @pytest.mark.asyncio
    async def test_model_objects_are_serialized(self, store):
        model = object()
        store._apis["rbac"].read_namespaced_role_binding.return_value = model
        store.api_client.sanitize_for_serialization.return_value = {"kind": "RoleBinding"}

        obj = await store.get(KIND_ROLE_BINDING, "ns", "rb")

        assert obj == {"kind": "RoleBinding"}
        store.api_client.sanitize_for_serialization.assert_called_once_with(model)

    @pytest.mark.asyncio
    async def test_not_found_is_none(self, store):
        store._apis["core"].read_namespaced_config_map.side_effect = ApiException(
            status=404
        )

        assert await store.get(KIND_CONFIGMAP, "ns", "cm") is None

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self, store):
        store._apis["core"].read_namespaced_config_map.side_effect = ApiException(
            status=500
        )

        with pytest.raises(TransientStoreError):
            await store.get(KIND_CONFIGMAP, "ns", "cm")

    @pytest.mark.asyncio
    async def test_unsupported_kind(self, store):
        with pytest.raises(KeyError):
            await store.get("Deployment", "ns", "d")

    @pytest.mark.asyncio
    async def test_get_cluster(self, store):
        store.custom_api.get_namespaced_custom_object.return_value = {"spec": {}}

        assert await store.get_cluster("ns", "rabbitmq-one") == {"spec": {}}
        store.custom_api.get_namespaced_custom_object.assert_called_once_with(
            _request_timeout=7,
            group="rabbitmq.pivotal.io",
            version="v1beta1",
            namespace="ns",
            plural="rabbitmqclusters",
            name="rabbitmq-one",
        )

    @pytest.mark.asyncio
    async def test_missing_cluster_is_none(self, store):
        store.custom_api.get_namespaced_custom_object.side_effect = ApiException(
            status=404
        )

        assert await store.get_cluster("ns", "rabbitmq-one") is None


class TestWrites:
    """Test create, patch and status writes."""

    @pytest.mark.asyncio
    async def test_create(self, store):
        api = store._apis["core"]
        body = {"metadata": {"name": "cm"}, "data": {}}
        api.create_namespaced_config_map.return_value = body

        assert await store.create(KIND_CONFIGMAP, "ns", body) == body
        api.create_namespaced_config_map.assert_called_once_with(
            _request_timeout=7, namespace="ns", body=body
        )

    @pytest.mark.asyncio
    async def test_create_forbidden_is_irrecoverable(self, store):
        store._apis["core"].create_namespaced_config_map.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(IrrecoverableStoreError) as exc_info:
            await store.create(KIND_CONFIGMAP, "ns", {"metadata": {"name": "cm"}})

        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_create_conflict_is_transient(self, store):
        store._apis["core"].create_namespaced_config_map.side_effect = ApiException(
            status=409
        )

        with pytest.raises(TransientStoreError):
            await store.create(KIND_CONFIGMAP, "ns", {"metadata": {"name": "cm"}})

    @pytest.mark.asyncio
    async def test_patch_uses_merge_patch(self, store):
        api = store._apis["apps"]
        api.patch_namespaced_stateful_set.return_value = {}
        patch = {"spec": {"replicas": 3}}

        await store.patch(KIND_STATEFULSET, "ns", "s", patch)

        api.patch_namespaced_stateful_set.assert_called_once_with(
            _request_timeout=7,
            name="s",
            namespace="ns",
            body=patch,
            _content_type=MERGE_PATCH,
        )

    @pytest.mark.asyncio
    async def test_patch_cluster_status(self, store):
        status = {"clusterStatus": "created"}

        await store.patch_cluster_status("ns", "rabbitmq-one", status)

        kwargs = store.custom_api.patch_namespaced_custom_object_status.call_args.kwargs
        assert kwargs["body"] == {"status": status}
        assert kwargs["_content_type"] == MERGE_PATCH
        assert kwargs["plural"] == "rabbitmqclusters"
