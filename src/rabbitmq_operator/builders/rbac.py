"""Identity and permissions the broker pods need for peer discovery."""

from typing import Any

from kubernetes import client

from rabbitmq_operator.builders import naming
from rabbitmq_operator.builders.metadata import child_metadata, to_dict
from rabbitmq_operator.models import RabbitmqCluster


def build_service_account(cluster: RabbitmqCluster) -> dict[str, Any]:
    service_account = client.V1ServiceAccount(
        api_version="v1",
        kind="ServiceAccount",
        metadata=child_metadata(cluster, naming.service_account_name(cluster.name)),
    )
    return to_dict(service_account)


def build_role(cluster: RabbitmqCluster) -> dict[str, Any]:
    role = client.V1Role(
        api_version="rbac.authorization.k8s.io/v1",
        kind="Role",
        metadata=child_metadata(cluster, naming.role_name(cluster.name)),
        rules=[
            client.V1PolicyRule(
                api_groups=[""], resources=["endpoints"], verbs=["get"]
            ),
        ],
    )
    return to_dict(role)


def build_role_binding(cluster: RabbitmqCluster) -> dict[str, Any]:
    role_binding = client.V1RoleBinding(
        api_version="rbac.authorization.k8s.io/v1",
        kind="RoleBinding",
        metadata=child_metadata(cluster, naming.role_binding_name(cluster.name)),
        role_ref=client.V1RoleRef(
            api_group="rbac.authorization.k8s.io",
            kind="Role",
            name=naming.role_name(cluster.name),
        ),
        subjects=[
            client.RbacV1Subject(
                kind="ServiceAccount",
                name=naming.service_account_name(cluster.name),
                namespace=cluster.namespace,
            )
        ],
    )
    return to_dict(role_binding)
