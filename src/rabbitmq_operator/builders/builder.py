"""
Desired-state builder for RabbitmqCluster children.

``build_desired_state`` is a pure function: the same cluster always yields
equal descriptors, it performs no I/O, and it either returns the complete
set of children or raises ValidationError.
"""

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from rabbitmq_operator.builders import naming
from rabbitmq_operator.builders.config import build_config_map
from rabbitmq_operator.builders.rbac import (
    build_role,
    build_role_binding,
    build_service_account,
)
from rabbitmq_operator.builders.secrets import (
    build_admin_secret,
    build_erlang_cookie_secret,
    generate_admin_credentials,
    generate_erlang_cookie,
)
from rabbitmq_operator.builders.services import (
    build_headless_service,
    build_ingress_service,
)
from rabbitmq_operator.builders.statefulset import build_statefulset
from rabbitmq_operator.constants import (
    DEFAULT_PERSISTENCE_STORAGE,
    DEFAULT_RABBITMQ_IMAGE,
    ERROR_INVALID_REPLICAS,
    ERROR_MISSING_IDENTITY,
    KIND_CONFIGMAP,
    KIND_ROLE,
    KIND_ROLE_BINDING,
    KIND_SECRET,
    KIND_SERVICE,
    KIND_SERVICE_ACCOUNT,
    KIND_STATEFULSET,
)
from rabbitmq_operator.errors import ValidationError
from rabbitmq_operator.models import RabbitmqCluster


@dataclass(frozen=True)
class ChildDescriptor:
    """
    Target state of one child object.

    Attributes:
        kind: Kubernetes kind of the child
        name: Deterministic child name
        body: Full object body in wire form, without generated payloads
        generate_data: Produces the secret payload at creation time only
        required: Whether the cluster counts as created only once this
            child exists
    """

    kind: str
    name: str
    body: dict[str, Any]
    generate_data: Callable[[], dict[str, str]] | None = field(
        default=None, compare=False
    )
    required: bool = False

    def creation_body(self) -> dict[str, Any]:
        """Return the body to create, with any generated payload filled in."""
        body = copy.deepcopy(self.body)
        if self.generate_data is not None:
            body["data"] = self.generate_data()
        return body


def _validate(cluster: RabbitmqCluster) -> None:
    for field_name in ("name", "namespace", "uid"):
        if not getattr(cluster, field_name):
            raise ValidationError(
                ERROR_MISSING_IDENTITY.format(field=f"metadata.{field_name}")
            )
    if cluster.spec.replicas < 1:
        raise ValidationError(
            ERROR_INVALID_REPLICAS.format(replicas=cluster.spec.replicas),
            field="spec.replicas",
            user_action="Set spec.replicas to 1 or more",
        )


def build_desired_state(
    cluster: RabbitmqCluster,
    default_image: str = DEFAULT_RABBITMQ_IMAGE,
    default_storage: str = DEFAULT_PERSISTENCE_STORAGE,
) -> list[ChildDescriptor]:
    """
    Compute every child object a RabbitmqCluster should own.

    Args:
        cluster: Parsed RabbitmqCluster
        default_image: Image used when spec.image is unset
        default_storage: Volume size used when spec.persistence.storage is unset

    Returns:
        Descriptors in creation order

    Raises:
        ValidationError: If the cluster spec cannot be materialized
    """
    _validate(cluster)
    name = cluster.name

    return [
        ChildDescriptor(
            kind=KIND_SERVICE,
            name=naming.ingress_service_name(name),
            body=build_ingress_service(cluster),
            required=True,
        ),
        ChildDescriptor(
            kind=KIND_SERVICE,
            name=naming.headless_service_name(name),
            body=build_headless_service(cluster),
            required=True,
        ),
        ChildDescriptor(
            kind=KIND_SECRET,
            name=naming.admin_secret_name(name),
            body=build_admin_secret(cluster),
            generate_data=generate_admin_credentials,
        ),
        ChildDescriptor(
            kind=KIND_SECRET,
            name=naming.erlang_cookie_secret_name(name),
            body=build_erlang_cookie_secret(cluster),
            generate_data=generate_erlang_cookie,
        ),
        ChildDescriptor(
            kind=KIND_CONFIGMAP,
            name=naming.config_map_name(name),
            body=build_config_map(cluster),
        ),
        ChildDescriptor(
            kind=KIND_SERVICE_ACCOUNT,
            name=naming.service_account_name(name),
            body=build_service_account(cluster),
        ),
        ChildDescriptor(
            kind=KIND_ROLE,
            name=naming.role_name(name),
            body=build_role(cluster),
        ),
        ChildDescriptor(
            kind=KIND_ROLE_BINDING,
            name=naming.role_binding_name(name),
            body=build_role_binding(cluster),
        ),
        ChildDescriptor(
            kind=KIND_STATEFULSET,
            name=naming.statefulset_name(name),
            body=build_statefulset(cluster, default_image, default_storage),
            required=True,
        ),
    ]
