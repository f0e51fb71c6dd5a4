"""The conditions that track the specialization of a package."""

from __future__ import annotations

from enum import Enum

from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_type,
)


class ConditionReason(str, Enum):
    """The stage specialization is at."""

    READY = "Ready"
    FAILED = "Failed"
    SPECIALIZE = "Specialize"


def specialization_condition_type() -> str:
    return get_condition_type(
        ObjectReference(api_version="nephio.org", kind="Specializer", name="specialize")
    )


def _condition(status: ConditionStatus, reason: ConditionReason, message: str) -> Condition:
    return Condition(
        type=specialization_condition_type(),
        status=status,
        reason=reason.value,
        message=message,
    )


def initialize() -> Condition:
    """Condition marking that specialization has started."""
    return _condition(ConditionStatus.FALSE, ConditionReason.SPECIALIZE, "initialized")


def failed(msg: str) -> Condition:
    """Condition marking that specialization failed with a message."""
    return _condition(ConditionStatus.FALSE, ConditionReason.FAILED, msg)


def not_ready() -> Condition:
    """Condition marking that specialization is not ready."""
    return _condition(ConditionStatus.FALSE, ConditionReason.SPECIALIZE, "not ready")


def ready() -> Condition:
    """Condition marking that specialization is done."""
    return _condition(ConditionStatus.TRUE, ConditionReason.READY, "")