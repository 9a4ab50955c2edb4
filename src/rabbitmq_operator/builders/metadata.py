"""
Metadata shared by every child object.

Labels and annotations of the RabbitmqCluster are propagated onto all
children. Operator labels are layered on top so that they always win on a
key conflict, and client-tool bookkeeping annotations are dropped.
"""

from typing import Any

from kubernetes import client

from rabbitmq_operator.constants import (
    API_GROUP_VERSION,
    CLUSTER_KIND,
    COMPONENT_LABEL_KEY,
    COMPONENT_RABBITMQ,
    FILTERED_ANNOTATION_KEYS,
    FILTERED_ANNOTATION_PREFIXES,
    NAME_LABEL_KEY,
    PART_OF_LABEL_KEY,
    PART_OF_LABEL_VALUE,
)
from rabbitmq_operator.models import RabbitmqCluster

_serializer: client.ApiClient | None = None


def to_dict(obj: Any) -> dict[str, Any]:
    """Serialize a kubernetes client model into its wire (camelCase) form."""
    global _serializer
    if _serializer is None:
        _serializer = client.ApiClient()
    return _serializer.sanitize_for_serialization(obj)


def selector_labels(cluster_name: str) -> dict[str, str]:
    """Labels used to select the pods of one cluster."""
    return {NAME_LABEL_KEY: cluster_name}


def operator_labels(cluster_name: str) -> dict[str, str]:
    return {
        NAME_LABEL_KEY: cluster_name,
        COMPONENT_LABEL_KEY: COMPONENT_RABBITMQ,
        PART_OF_LABEL_KEY: PART_OF_LABEL_VALUE,
    }


def child_labels(cluster: RabbitmqCluster) -> dict[str, str]:
    labels = dict(cluster.labels)
    labels.update(operator_labels(cluster.name))
    return labels


def propagated_annotations(cluster: RabbitmqCluster) -> dict[str, str]:
    return {
        key: value
        for key, value in cluster.annotations.items()
        if key not in FILTERED_ANNOTATION_KEYS
        and not key.startswith(FILTERED_ANNOTATION_PREFIXES)
    }


def owner_reference(cluster: RabbitmqCluster) -> client.V1OwnerReference:
    """Controller reference from a child back to its RabbitmqCluster."""
    return client.V1OwnerReference(
        api_version=API_GROUP_VERSION,
        kind=CLUSTER_KIND,
        name=cluster.name,
        uid=cluster.uid,
        controller=True,
        block_owner_deletion=True,
    )


def child_metadata(
    cluster: RabbitmqCluster,
    name: str,
    extra_annotations: dict[str, str] | None = None,
) -> client.V1ObjectMeta:
    """
    Build object metadata for a child of the given cluster.

    Args:
        cluster: Owning RabbitmqCluster
        name: Deterministic child name
        extra_annotations: Kind-specific annotations, overridden by the
            cluster's own annotations on conflict

    Returns:
        Metadata carrying labels, annotations and the owner reference
    """
    annotations = dict(extra_annotations or {})
    annotations.update(propagated_annotations(cluster))
    return client.V1ObjectMeta(
        name=name,
        namespace=cluster.namespace,
        labels=child_labels(cluster),
        annotations=annotations,
        owner_references=[owner_reference(cluster)],
    )
