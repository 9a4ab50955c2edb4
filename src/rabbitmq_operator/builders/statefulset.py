"""
StatefulSet running the RabbitMQ broker nodes.

The pod template wires credentials from the admin secret, clustering
settings from the headless service and configuration from the server
ConfigMap. Optional spec fields that are unset leave the corresponding
pod field at the platform default.
"""

from typing import Any

from kubernetes import client

from rabbitmq_operator.builders import naming
from rabbitmq_operator.builders.metadata import (
    child_metadata,
    operator_labels,
    selector_labels,
    to_dict,
)
from rabbitmq_operator.constants import (
    ADMIN_PASSWORD_KEY,
    ADMIN_USERNAME_KEY,
    AMQP_PORT,
    CONFIG_VOLUME_NAME,
    CONTAINER_NAME,
    ERLANG_COOKIE_KEY,
    ERLANG_COOKIE_PATH,
    ERLANG_COOKIE_VOLUME_NAME,
    MANAGEMENT_PORT,
    PERSISTENCE_VOLUME_NAME,
    PROMETHEUS_PORT,
    RABBITMQ_CONFIG_PATH,
    RABBITMQ_DATA_PATH,
)
from rabbitmq_operator.models import RabbitmqCluster

# Broker user inside the official image
RABBITMQ_UID = 999


def _secret_env(name: str, secret_name: str, key: str) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(
            secret_key_ref=client.V1SecretKeySelector(name=secret_name, key=key)
        ),
    )


def _field_env(name: str, field_path: str) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(
            field_ref=client.V1ObjectFieldSelector(field_path=field_path)
        ),
    )


def _environment(cluster: RabbitmqCluster) -> list[client.V1EnvVar]:
    admin_secret = naming.admin_secret_name(cluster.name)
    return [
        _secret_env("RABBITMQ_DEFAULT_USER", admin_secret, ADMIN_USERNAME_KEY),
        _secret_env("RABBITMQ_DEFAULT_PASS", admin_secret, ADMIN_PASSWORD_KEY),
        _field_env("MY_POD_NAME", "metadata.name"),
        _field_env("MY_POD_NAMESPACE", "metadata.namespace"),
        client.V1EnvVar(
            name="K8S_SERVICE_NAME",
            value=naming.headless_service_name(cluster.name),
        ),
        client.V1EnvVar(name="RABBITMQ_USE_LONGNAME", value="true"),
        client.V1EnvVar(
            name="RABBITMQ_NODENAME",
            value="rabbit@$(MY_POD_NAME).$(K8S_SERVICE_NAME).$(MY_POD_NAMESPACE)",
        ),
        client.V1EnvVar(
            name="K8S_HOSTNAME_SUFFIX",
            value=".$(K8S_SERVICE_NAME).$(MY_POD_NAMESPACE)",
        ),
    ]


def _resources(cluster: RabbitmqCluster) -> client.V1ResourceRequirements:
    # Empty requirements let the platform defaults (LimitRange) apply
    resources = cluster.spec.resources
    if resources is None:
        return client.V1ResourceRequirements()
    return client.V1ResourceRequirements(
        requests=dict(resources.requests) if resources.requests else None,
        limits=dict(resources.limits) if resources.limits else None,
    )


def _container(cluster: RabbitmqCluster, default_image: str) -> client.V1Container:
    return client.V1Container(
        name=CONTAINER_NAME,
        image=cluster.spec.image or default_image,
        env=_environment(cluster),
        ports=[
            client.V1ContainerPort(
                name="amqp", container_port=AMQP_PORT, protocol="TCP"
            ),
            client.V1ContainerPort(
                name="http", container_port=MANAGEMENT_PORT, protocol="TCP"
            ),
            client.V1ContainerPort(
                name="prometheus", container_port=PROMETHEUS_PORT, protocol="TCP"
            ),
        ],
        resources=_resources(cluster),
        volume_mounts=[
            client.V1VolumeMount(
                name=PERSISTENCE_VOLUME_NAME, mount_path=RABBITMQ_DATA_PATH
            ),
            client.V1VolumeMount(
                name=CONFIG_VOLUME_NAME, mount_path=RABBITMQ_CONFIG_PATH
            ),
            client.V1VolumeMount(
                name=ERLANG_COOKIE_VOLUME_NAME,
                mount_path=f"{ERLANG_COOKIE_PATH}{ERLANG_COOKIE_KEY}",
                sub_path=ERLANG_COOKIE_KEY,
            ),
        ],
        readiness_probe=client.V1Probe(
            tcp_socket=client.V1TCPSocketAction(port="amqp"),
            initial_delay_seconds=10,
            period_seconds=30,
        ),
    )


def _volumes(cluster: RabbitmqCluster) -> list[client.V1Volume]:
    return [
        client.V1Volume(
            name=CONFIG_VOLUME_NAME,
            config_map=client.V1ConfigMapVolumeSource(
                name=naming.config_map_name(cluster.name)
            ),
        ),
        client.V1Volume(
            name=ERLANG_COOKIE_VOLUME_NAME,
            secret=client.V1SecretVolumeSource(
                secret_name=naming.erlang_cookie_secret_name(cluster.name),
                default_mode=0o600,
            ),
        ),
    ]


def _volume_claim_template(
    cluster: RabbitmqCluster, default_storage: str
) -> client.V1PersistentVolumeClaim:
    persistence = cluster.spec.persistence
    storage = (persistence.storage if persistence else None) or default_storage
    storage_class = persistence.storage_class_name if persistence else None
    return client.V1PersistentVolumeClaim(
        metadata=client.V1ObjectMeta(
            name=PERSISTENCE_VOLUME_NAME,
            labels=operator_labels(cluster.name),
        ),
        spec=client.V1PersistentVolumeClaimSpec(
            access_modes=["ReadWriteOnce"],
            resources=client.V1VolumeResourceRequirements(
                requests={"storage": storage}
            ),
            storage_class_name=storage_class,
        ),
    )


def build_statefulset(
    cluster: RabbitmqCluster, default_image: str, default_storage: str
) -> dict[str, Any]:
    """
    Build the broker StatefulSet for a cluster.

    Args:
        cluster: Validated RabbitmqCluster
        default_image: Image used when the spec does not set one
        default_storage: Volume size used when persistence does not set one

    Returns:
        StatefulSet body in wire form
    """
    pull_secrets = []
    if cluster.spec.image_pull_secret:
        pull_secrets.append(
            client.V1LocalObjectReference(name=cluster.spec.image_pull_secret)
        )

    pod_spec = client.V1PodSpec(
        service_account_name=naming.service_account_name(cluster.name),
        image_pull_secrets=pull_secrets,
        affinity=cluster.spec.affinity,
        security_context=client.V1PodSecurityContext(
            fs_group=RABBITMQ_UID, run_as_user=RABBITMQ_UID, run_as_group=RABBITMQ_UID
        ),
        containers=[_container(cluster, default_image)],
        volumes=_volumes(cluster),
    )

    statefulset = client.V1StatefulSet(
        api_version="apps/v1",
        kind="StatefulSet",
        metadata=child_metadata(cluster, naming.statefulset_name(cluster.name)),
        spec=client.V1StatefulSetSpec(
            replicas=cluster.spec.replicas,
            service_name=naming.headless_service_name(cluster.name),
            pod_management_policy="Parallel",
            selector=client.V1LabelSelector(
                match_labels=selector_labels(cluster.name)
            ),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=operator_labels(cluster.name)),
                spec=pod_spec,
            ),
            volume_claim_templates=[_volume_claim_template(cluster, default_storage)],
        ),
    )
    return to_dict(statefulset)
