"""ConfigMap holding the broker configuration files."""

from typing import Any

from kubernetes import client

from rabbitmq_operator.builders import naming
from rabbitmq_operator.builders.metadata import child_metadata, to_dict
from rabbitmq_operator.models import RabbitmqCluster

ENABLED_PLUGINS = (
    "rabbitmq_management",
    "rabbitmq_peer_discovery_k8s",
    "rabbitmq_prometheus",
)


def render_enabled_plugins() -> str:
    return "[" + ",".join(ENABLED_PLUGINS) + "]."


def render_rabbitmq_conf(cluster: RabbitmqCluster) -> str:
    """Render rabbitmq.conf with Kubernetes peer discovery for the cluster."""
    headless = naming.headless_service_name(cluster.name)
    lines = [
        "cluster_formation.peer_discovery_backend = rabbit_peer_discovery_k8s",
        "cluster_formation.k8s.host = kubernetes.default.svc",
        "cluster_formation.k8s.address_type = hostname",
        f"cluster_formation.k8s.service_name = {headless}",
        f"cluster_formation.k8s.hostname_suffix = .{headless}.{cluster.namespace}",
        "cluster_formation.node_cleanup.interval = 30",
        "cluster_formation.node_cleanup.only_log_warning = true",
        f"cluster_formation.target_cluster_size_hint = {cluster.spec.replicas}",
        "cluster_partition_handling = pause_minority",
        "queue_master_locator = min-masters",
        "prometheus.tcp.port = 15692",
    ]
    return "\n".join(lines) + "\n"


def build_config_map(cluster: RabbitmqCluster) -> dict[str, Any]:
    config_map = client.V1ConfigMap(
        api_version="v1",
        kind="ConfigMap",
        metadata=child_metadata(cluster, naming.config_map_name(cluster.name)),
        data={
            "enabled_plugins": render_enabled_plugins(),
            "rabbitmq.conf": render_rabbitmq_conf(cluster),
        },
    )
    return to_dict(config_map)
