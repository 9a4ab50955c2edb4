"""Deterministic names for the objects owned by a RabbitmqCluster."""

from rabbitmq_operator.constants import (
    SUFFIX_ADMIN,
    SUFFIX_ENDPOINT_DISCOVERY,
    SUFFIX_ERLANG_COOKIE,
    SUFFIX_HEADLESS,
    SUFFIX_INGRESS,
    SUFFIX_SERVER,
    SUFFIX_SERVER_CONF,
)


def child_name(cluster_name: str, suffix: str) -> str:
    """Return the name of a child object as ``<cluster>-<suffix>``."""
    return f"{cluster_name}-{suffix}"


def statefulset_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_SERVER)


def service_account_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_SERVER)


def role_binding_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_SERVER)


def config_map_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_SERVER_CONF)


def admin_secret_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_ADMIN)


def erlang_cookie_secret_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_ERLANG_COOKIE)


def ingress_service_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_INGRESS)


def headless_service_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_HEADLESS)


def role_name(cluster_name: str) -> str:
    return child_name(cluster_name, SUFFIX_ENDPOINT_DISCOVERY)
