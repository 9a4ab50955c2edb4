"""
ObjectStore backed by the official Kubernetes Python client.

The client is synchronous, so every call runs in a worker thread with a
bounded request timeout. A slow call only holds up the reconcile pass that
issued it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from rabbitmq_operator.constants import (
    API_GROUP,
    API_VERSION,
    CLUSTER_PLURAL,
    DEFAULT_REQUEST_TIMEOUT,
    KIND_CONFIGMAP,
    KIND_ROLE,
    KIND_ROLE_BINDING,
    KIND_SECRET,
    KIND_SERVICE,
    KIND_SERVICE_ACCOUNT,
    KIND_STATEFULSET,
)
from rabbitmq_operator.errors import classify_api_exception

logger = logging.getLogger(__name__)

MERGE_PATCH = "application/merge-patch+json"


@dataclass(frozen=True)
class KindBinding:
    """Which API class serves a kind and the suffix of its method names."""

    api: str
    resource: str


KIND_BINDINGS: dict[str, KindBinding] = {
    KIND_STATEFULSET: KindBinding("apps", "stateful_set"),
    KIND_SERVICE: KindBinding("core", "service"),
    KIND_CONFIGMAP: KindBinding("core", "config_map"),
    KIND_SECRET: KindBinding("core", "secret"),
    KIND_SERVICE_ACCOUNT: KindBinding("core", "service_account"),
    KIND_ROLE: KindBinding("rbac", "role"),
    KIND_ROLE_BINDING: KindBinding("rbac", "role_binding"),
}


class KubernetesObjectStore:
    """ObjectStore implementation talking to the Kubernetes API server."""

    def __init__(
        self,
        api_client: client.ApiClient | None = None,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT,
    ):
        """
        Initialize the store.

        Args:
            api_client: Configured API client, created from the loaded
                kube config if not provided
            request_timeout: Timeout in seconds applied to every request
        """
        self.api_client = api_client or client.ApiClient()
        self.request_timeout = request_timeout
        self._apis = {
            "core": client.CoreV1Api(self.api_client),
            "apps": client.AppsV1Api(self.api_client),
            "rbac": client.RbacAuthorizationV1Api(self.api_client),
        }
        self.custom_api = client.CustomObjectsApi(self.api_client)

    def _method(self, verb: str, kind: str):
        binding = KIND_BINDINGS.get(kind)
        if binding is None:
            raise KeyError(f"Unsupported child kind {kind}")
        return getattr(self._apis[binding.api], f"{verb}_namespaced_{binding.resource}")

    def _to_dict(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    async def _call(self, operation: str, func, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(
                func, _request_timeout=self.request_timeout, **kwargs
            )
        except Exception as e:
            raise classify_api_exception(e, operation) from e

    async def _read(self, operation: str, func, **kwargs) -> dict[str, Any] | None:
        try:
            obj = await asyncio.to_thread(
                func, _request_timeout=self.request_timeout, **kwargs
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise classify_api_exception(e, operation) from e
        except Exception as e:
            raise classify_api_exception(e, operation) from e
        return self._to_dict(obj)

    async def get_cluster(self, namespace: str, name: str) -> dict[str, Any] | None:
        return await self._read(
            f"get RabbitmqCluster {namespace}/{name}",
            self.custom_api.get_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=CLUSTER_PLURAL,
            name=name,
        )

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any] | None:
        return await self._read(
            f"get {kind} {namespace}/{name}",
            self._method("read", kind),
            name=name,
            namespace=namespace,
        )

    async def create(
        self, kind: str, namespace: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        name = body.get("metadata", {}).get("name")
        created = await self._call(
            f"create {kind} {namespace}/{name}",
            self._method("create", kind),
            namespace=namespace,
            body=body,
        )
        logger.debug(f"Created {kind} {namespace}/{name}")
        return self._to_dict(created)

    async def patch(
        self, kind: str, namespace: str, name: str, patch: dict[str, Any]
    ) -> dict[str, Any]:
        patched = await self._call(
            f"patch {kind} {namespace}/{name}",
            self._method("patch", kind),
            name=name,
            namespace=namespace,
            body=patch,
            _content_type=MERGE_PATCH,
        )
        logger.debug(f"Patched {kind} {namespace}/{name}")
        return self._to_dict(patched)

    async def patch_cluster_status(
        self, namespace: str, name: str, status: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._call(
            f"patch RabbitmqCluster status {namespace}/{name}",
            self.custom_api.patch_namespaced_custom_object_status,
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=CLUSTER_PLURAL,
            name=name,
            body={"status": status},
            _content_type=MERGE_PATCH,
        )
