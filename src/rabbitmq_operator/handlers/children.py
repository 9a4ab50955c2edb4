"""
Child resource handlers - Detect drift on objects owned by a RabbitmqCluster.

Events on children are mapped back to the owning cluster through the
controller owner reference, falling back to the operator name label.
Deleting or editing a child therefore triggers a pass that repairs it.
"""

import logging
from typing import Any

import kopf

from rabbitmq_operator.constants import (
    API_GROUP,
    CLUSTER_KIND,
    NAME_LABEL_KEY,
    PART_OF_LABEL_KEY,
    PART_OF_LABEL_VALUE,
)
from rabbitmq_operator.handlers.rabbitmqcluster import enqueue

logger = logging.getLogger(__name__)

# (group/version, plural) of every kind a RabbitmqCluster owns
CHILD_RESOURCES = (
    ("apps/v1", "statefulsets"),
    ("v1", "services"),
    ("v1", "configmaps"),
    ("v1", "secrets"),
    ("v1", "serviceaccounts"),
    ("rbac.authorization.k8s.io/v1", "roles"),
    ("rbac.authorization.k8s.io/v1", "rolebindings"),
)

MANAGED_LABELS = {PART_OF_LABEL_KEY: PART_OF_LABEL_VALUE}


def owner_key(body: Any) -> tuple[str, str] | None:
    """
    Find the RabbitmqCluster that owns a child object.

    Args:
        body: Child object as delivered by the watch

    Returns:
        ``(namespace, name)`` of the owner, or None if it has none
    """
    metadata = body.get("metadata") or {}
    namespace = metadata.get("namespace")
    if not namespace:
        return None

    for ref in metadata.get("ownerReferences") or []:
        api_version = ref.get("apiVersion") or ""
        if ref.get("kind") == CLUSTER_KIND and api_version.startswith(f"{API_GROUP}/"):
            return namespace, ref.get("name")

    labels = metadata.get("labels") or {}
    if labels.get(PART_OF_LABEL_KEY) == PART_OF_LABEL_VALUE and labels.get(
        NAME_LABEL_KEY
    ):
        return namespace, labels[NAME_LABEL_KEY]
    return None


async def child_event(
    event: dict[str, Any], body: kopf.Body, memo: kopf.Memo, **_: Any
) -> None:
    key = owner_key(body)
    if key is None:
        return
    namespace, name = key
    logger.debug(
        f"{event.get('type') or 'LISTED'} event on {body.get('kind')} "
        f"{body.get('metadata', {}).get('name')} for cluster {namespace}/{name}"
    )
    enqueue(memo, namespace, name)


for _group_version, _plural in CHILD_RESOURCES:
    kopf.on.event(
        _group_version,
        _plural,
        labels=MANAGED_LABELS,
        id=f"child-event-{_plural}",
    )(child_event)
