"""
Services exposing the broker.

The ingress service is the client entry point and its type and
annotations come from ``spec.service``. The headless service gives every
broker node a stable DNS name for peer discovery and never changes shape.
"""

from typing import Any

from kubernetes import client

from rabbitmq_operator.builders import naming
from rabbitmq_operator.builders.metadata import (
    child_metadata,
    selector_labels,
    to_dict,
)
from rabbitmq_operator.constants import (
    AMQP_PORT,
    EPMD_PORT,
    MANAGEMENT_PORT,
    PROMETHEUS_PORT,
)
from rabbitmq_operator.models import RabbitmqCluster


def build_ingress_service(cluster: RabbitmqCluster) -> dict[str, Any]:
    service_config = cluster.spec.service
    service = client.V1Service(
        api_version="v1",
        kind="Service",
        metadata=child_metadata(
            cluster,
            naming.ingress_service_name(cluster.name),
            extra_annotations=service_config.annotations,
        ),
        spec=client.V1ServiceSpec(
            type=service_config.type,
            selector=selector_labels(cluster.name),
            ports=[
                client.V1ServicePort(
                    name="amqp", port=AMQP_PORT, target_port=AMQP_PORT, protocol="TCP"
                ),
                client.V1ServicePort(
                    name="http",
                    port=MANAGEMENT_PORT,
                    target_port=MANAGEMENT_PORT,
                    protocol="TCP",
                ),
                client.V1ServicePort(
                    name="prometheus",
                    port=PROMETHEUS_PORT,
                    target_port=PROMETHEUS_PORT,
                    protocol="TCP",
                ),
            ],
        ),
    )
    return to_dict(service)


def build_headless_service(cluster: RabbitmqCluster) -> dict[str, Any]:
    service = client.V1Service(
        api_version="v1",
        kind="Service",
        metadata=child_metadata(cluster, naming.headless_service_name(cluster.name)),
        spec=client.V1ServiceSpec(
            type="ClusterIP",
            cluster_ip="None",
            publish_not_ready_addresses=True,
            selector=selector_labels(cluster.name),
            ports=[
                client.V1ServicePort(
                    name="epmd", port=EPMD_PORT, target_port=EPMD_PORT, protocol="TCP"
                ),
            ],
        ),
    )
    return to_dict(service)
