"""
Field-mask diff between a desired child body and the live object.

Only fields listed in a kind's mask are compared, and each is compared in
one of three modes:

- EXACT: desired value must equal the live one, absence included. A field
  missing from the desired body is deleted from the live object.
- SUBSET: every value present in the desired body must be present in the
  live object. Extra fields defaulted by the API server are ignored. Lists
  must have the same length and are compared element by element.
  ``resources`` mappings inside a subset comparison are compared exactly by
  quantity value.
- KEYS: maps are merged key by key. Only desired keys are compared and
  patched, so keys added by other tooling survive.

The result is a JSON merge patch (RFC 7386) containing only the mismatched
paths. Immutable fields (selectors, serviceName, volumeClaimTemplates,
clusterIP, roleRef) are left out of the masks.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from kubernetes.utils import parse_quantity

from rabbitmq_operator.constants import (
    KIND_CONFIGMAP,
    KIND_ROLE,
    KIND_ROLE_BINDING,
    KIND_SECRET,
    KIND_SERVICE,
    KIND_SERVICE_ACCOUNT,
    KIND_STATEFULSET,
)

logger = logging.getLogger(__name__)


class CompareMode(Enum):
    EXACT = "exact"
    SUBSET = "subset"
    KEYS = "keys"


@dataclass(frozen=True)
class ManagedField:
    """One operator-managed path inside an object body."""

    path: tuple[str, ...]
    mode: CompareMode


_METADATA_FIELDS = (
    ManagedField(("metadata", "labels"), CompareMode.KEYS),
    ManagedField(("metadata", "annotations"), CompareMode.KEYS),
)

_POD_SPEC = ("spec", "template", "spec")

FIELD_MASKS: dict[str, tuple[ManagedField, ...]] = {
    KIND_STATEFULSET: _METADATA_FIELDS
    + (
        ManagedField(("spec", "replicas"), CompareMode.EXACT),
        ManagedField(("spec", "template", "metadata", "labels"), CompareMode.KEYS),
        ManagedField(_POD_SPEC + ("serviceAccountName",), CompareMode.EXACT),
        ManagedField(_POD_SPEC + ("imagePullSecrets",), CompareMode.EXACT),
        ManagedField(_POD_SPEC + ("affinity",), CompareMode.EXACT),
        ManagedField(_POD_SPEC + ("containers",), CompareMode.SUBSET),
        ManagedField(_POD_SPEC + ("volumes",), CompareMode.SUBSET),
    ),
    KIND_SERVICE: _METADATA_FIELDS
    + (
        ManagedField(("spec", "type"), CompareMode.EXACT),
        ManagedField(("spec", "ports"), CompareMode.SUBSET),
        ManagedField(("spec", "selector"), CompareMode.EXACT),
    ),
    KIND_CONFIGMAP: _METADATA_FIELDS
    + (ManagedField(("data",), CompareMode.EXACT),),
    KIND_ROLE: _METADATA_FIELDS + (ManagedField(("rules",), CompareMode.SUBSET),),
    KIND_ROLE_BINDING: _METADATA_FIELDS
    + (ManagedField(("subjects",), CompareMode.SUBSET),),
    # Generated secret payloads are never compared
    KIND_SECRET: _METADATA_FIELDS,
    KIND_SERVICE_ACCOUNT: _METADATA_FIELDS,
}


_MISSING = object()


def _get_path(body: dict[str, Any] | None, path: tuple[str, ...]) -> Any:
    current: Any = body
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _set_path(patch: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    current = patch
    for key in path[:-1]:
        current = current.setdefault(key, {})
    current[path[-1]] = value


def _is_empty(value: Any) -> bool:
    return value is _MISSING or value is None or value == [] or value == {}


def _quantity(value: Any) -> Decimal | str:
    try:
        return parse_quantity(value)
    except (ValueError, TypeError):
        return str(value)


def quantities_equal(desired: Any, live: Any) -> bool:
    """Compare two resource lists by numeric quantity ("1Gi" == "1024Mi")."""
    desired = desired or {}
    live = live or {}
    if set(desired) != set(live):
        return False
    return all(_quantity(desired[key]) == _quantity(live[key]) for key in desired)


def resources_equal(desired: Any, live: Any) -> bool:
    desired = desired if isinstance(desired, dict) else {}
    live = live if isinstance(live, dict) else {}
    return quantities_equal(
        desired.get("requests"), live.get("requests")
    ) and quantities_equal(desired.get("limits"), live.get("limits"))


def exact_equal(desired: Any, live: Any) -> bool:
    if _is_empty(desired) and _is_empty(live):
        return True
    return desired == live


def subset_equal(desired: Any, live: Any) -> bool:
    """Return True when every value in ``desired`` is matched in ``live``."""
    if isinstance(desired, dict):
        if not isinstance(live, dict):
            return _is_empty(desired) and _is_empty(live)
        for key, value in desired.items():
            live_value = live.get(key, _MISSING)
            # PolicyRule.resources is a list of names, not requirements
            if key == "resources" and isinstance(value, dict):
                if not resources_equal(value, live.get(key)):
                    return False
            elif live_value is _MISSING:
                if not _is_empty(value):
                    return False
            elif not subset_equal(value, live_value):
                return False
        return True
    if isinstance(desired, list):
        if not isinstance(live, list) or len(desired) != len(live):
            return _is_empty(desired) and _is_empty(live)
        return all(subset_equal(d, lv) for d, lv in zip(desired, live, strict=True))
    return desired == live


def _diff_keys(desired: Any, live: Any) -> dict[str, Any]:
    desired = desired if isinstance(desired, dict) else {}
    live = live if isinstance(live, dict) else {}
    return {key: value for key, value in desired.items() if live.get(key) != value}


def _owner_reference_patch(
    desired: dict[str, Any], live: dict[str, Any]
) -> list[dict[str, Any]] | None:
    desired_refs = _get_path(desired, ("metadata", "ownerReferences"))
    if _is_empty(desired_refs):
        return None
    live_refs = _get_path(live, ("metadata", "ownerReferences"))
    live_refs = [] if _is_empty(live_refs) else list(live_refs)
    live_uids = {ref.get("uid") for ref in live_refs}
    missing = [ref for ref in desired_refs if ref.get("uid") not in live_uids]
    if not missing:
        return None
    # Merge patches replace lists, so keep every existing owner
    return live_refs + missing


def compute_patch(
    kind: str, desired: dict[str, Any], live: dict[str, Any]
) -> dict[str, Any]:
    """
    Compute the minimal merge patch converging ``live`` towards ``desired``.

    Args:
        kind: Kubernetes kind, selects the field mask
        desired: Body produced by the desired-state builder
        live: Object currently stored in the cluster

    Returns:
        Merge patch; empty when the live object already matches
    """
    mask = FIELD_MASKS.get(kind)
    if mask is None:
        raise KeyError(f"No field mask registered for kind {kind}")

    patch: dict[str, Any] = {}
    for managed in mask:
        desired_value = _get_path(desired, managed.path)
        live_value = _get_path(live, managed.path)

        if managed.mode is CompareMode.KEYS:
            changed = _diff_keys(desired_value, live_value)
            if changed:
                _set_path(patch, managed.path, changed)
            continue

        if managed.mode is CompareMode.EXACT:
            equal = exact_equal(desired_value, live_value)
        else:
            equal = subset_equal(
                None if desired_value is _MISSING else desired_value,
                None if live_value is _MISSING else live_value,
            )
        if not equal:
            _set_path(
                patch,
                managed.path,
                None if desired_value is _MISSING else desired_value,
            )

    owner_refs = _owner_reference_patch(desired, live)
    if owner_refs is not None:
        _set_path(patch, ("metadata", "ownerReferences"), owner_refs)

    if patch:
        logger.debug(
            f"Computed patch for {kind} touching top-level keys {sorted(patch)}"
        )
    return patch
