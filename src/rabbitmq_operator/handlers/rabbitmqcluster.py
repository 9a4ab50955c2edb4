"""
RabbitmqCluster handlers - Enqueue clusters whenever they change.

Kopf lists every existing RabbitmqCluster when the operator starts, so each
cluster gets a pass after a restart without extra bookkeeping.
"""

import logging
from typing import Any

import kopf

from rabbitmq_operator.constants import API_GROUP, API_VERSION, CLUSTER_PLURAL

logger = logging.getLogger(__name__)


def enqueue(memo: kopf.Memo, namespace: str | None, name: str | None) -> bool:
    """
    Hand a cluster key to the controller stored in the operator memo.

    Returns:
        True if the key was enqueued
    """
    controller = getattr(memo, "controller", None)
    if controller is None:
        logger.warning(
            f"Dropping event for {namespace}/{name}: controller is not running"
        )
        return False
    if not namespace or not name:
        return False
    controller.enqueue(namespace, name)
    return True


@kopf.on.event(CLUSTER_PLURAL, group=API_GROUP, version=API_VERSION)
async def rabbitmqcluster_event(
    event: dict[str, Any],
    name: str,
    namespace: str,
    memo: kopf.Memo,
    **_: Any,
) -> None:
    """Enqueue a RabbitmqCluster for any watch event, deletions included."""
    logger.debug(f"{event.get('type') or 'LISTED'} event for {namespace}/{name}")
    enqueue(memo, namespace, name)
