"""
Generated secrets: admin credentials and the Erlang cookie.

Secret bodies produced here carry no data. The payload is generated only
when the secret is first created, so it never changes afterwards and the
builder output stays deterministic.
"""

import base64
import secrets
import string
from typing import Any

from kubernetes import client

from rabbitmq_operator.builders import naming
from rabbitmq_operator.builders.metadata import child_metadata, to_dict
from rabbitmq_operator.constants import (
    ADMIN_PASSWORD_KEY,
    ADMIN_PASSWORD_LENGTH,
    ADMIN_USERNAME_KEY,
    ADMIN_USERNAME_LENGTH,
    ERLANG_COOKIE_KEY,
    ERLANG_COOKIE_LENGTH,
)
from rabbitmq_operator.models import RabbitmqCluster

# Alphabet restricted to characters valid in both AMQP URIs and Erlang cookies
_ALPHABET = string.ascii_letters + string.digits


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def _encode(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def generate_admin_credentials() -> dict[str, str]:
    """Generate base64-encoded admin username and password."""
    return {
        ADMIN_USERNAME_KEY: _encode(_random_string(ADMIN_USERNAME_LENGTH)),
        ADMIN_PASSWORD_KEY: _encode(_random_string(ADMIN_PASSWORD_LENGTH)),
    }


def generate_erlang_cookie() -> dict[str, str]:
    """Generate a base64-encoded Erlang cookie shared by all nodes."""
    return {ERLANG_COOKIE_KEY: _encode(_random_string(ERLANG_COOKIE_LENGTH))}


def _build_secret(cluster: RabbitmqCluster, name: str) -> dict[str, Any]:
    secret = client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=child_metadata(cluster, name),
        type="Opaque",
    )
    return to_dict(secret)


def build_admin_secret(cluster: RabbitmqCluster) -> dict[str, Any]:
    return _build_secret(cluster, naming.admin_secret_name(cluster.name))


def build_erlang_cookie_secret(cluster: RabbitmqCluster) -> dict[str, Any]:
    return _build_secret(cluster, naming.erlang_cookie_secret_name(cluster.name))
