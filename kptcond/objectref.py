"""Object references, conditions and the mapping between them and condition types."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

WILDCARD = "*"


@dataclass(frozen=True, order=True)
class ObjectReference:
    """A reference to a KRM resource by group-version, kind and name."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""

    def gvk_ref(self) -> ObjectReference:
        """Return the reference reduced to its apiVersion and kind."""
        return ObjectReference(api_version=self.api_version, kind=self.kind)

    def is_empty(self) -> bool:
        return not (self.api_version or self.kind or self.name or self.namespace)

    def is_wildcard(self) -> bool:
        return self.api_version == WILDCARD and self.kind == WILDCARD

    def validate_gvk(self) -> None:
        """Raise ValueError unless apiVersion and kind are set."""
        if not self.api_version:
            raise ValueError(f"reference {self!r} has no apiVersion")
        if not self.kind:
            raise ValueError(f"reference {self!r} has no kind")

    def validate_gvkn(self) -> None:
        """Raise ValueError unless apiVersion, kind and name are set."""
        self.validate_gvk()
        if not self.name:
            raise ValueError(f"reference {self!r} has no name")


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    """A condition as stored in the status of a Kptfile."""

    type: str
    status: ConditionStatus = ConditionStatus.FALSE
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        data = {"type": self.type, "status": ConditionStatus(self.status).value}
        if self.reason:
            data["reason"] = self.reason
        if self.message:
            data["message"] = self.message
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Condition:
        status = data.get("status", ConditionStatus.UNKNOWN.value)
        if isinstance(status, bool):
            status = "True" if status else "False"
        return cls(
            type=str(data.get("type", "")),
            status=ConditionStatus(str(status)),
            reason=str(data.get("reason", "") or ""),
            message=str(data.get("message", "") or ""),
        )


def refs_string(*refs: ObjectReference) -> str:
    """Render references for log and error messages."""
    return " -> ".join(get_condition_type(r) or "<empty>" for r in refs)


def refs_valid(refs: Iterable[ObjectReference]) -> bool:
    """True when there are one or two references, each fully qualified."""
    refs = list(refs)
    if not 1 <= len(refs) <= 2:
        return False
    try:
        for ref in refs:
            ref.validate_gvkn()
    except ValueError:
        return False
    return True


def _group_version_string(api_version: str) -> str | None:
    if api_version in ("", "/"):
        return ""
    if api_version.count("/") == 0:
        return api_version
    if api_version.count("/") == 1:
        group, version = api_version.split("/")
        return f"{group}/{version}" if group else version
    return None


def get_condition_type(ref: ObjectReference) -> str:
    """Build a condition type out of the apiVersion, kind and name that are set."""
    parts = []
    if ref.api_version:
        gv = _group_version_string(ref.api_version)
        if gv:
            parts.append(gv)
    if ref.kind:
        parts.append(ref.kind)
    if ref.name:
        parts.append(ref.name)
    return ".".join(parts)


def get_gvkn_from_condition_type(ct: str) -> ObjectReference:
    """Parse a condition type of the form group/version.kind.name.

    Anything else yields an empty reference.
    """
    split = ct.split("/")
    group = ""
    vkn = ct
    if len(split) > 1:
        group, vkn = split[0], split[1]
    parts = vkn.split(".")
    if len(parts) == 3:
        return ObjectReference(api_version=f"{group}/{parts[0]}", kind=parts[1], name=parts[2])
    return ObjectReference()


def get_condition_by_ref(
    refs: list[ObjectReference],
    msg: str,
    status: ConditionStatus,
    existing: Condition | None = None,
) -> Condition:
    """Build the condition for a for-reference or a (for, child) pair."""
    if not refs_valid(refs):
        raise ValueError(
            f"cannot set resource in resource list as the object has no valid refs: {refs}"
        )
    cond_type = get_condition_type(refs[0])
    reason = ""
    if len(refs) > 1:
        cond_type = get_condition_type(refs[1])
        reason = get_condition_type(refs[0])
    return Condition(type=cond_type, status=ConditionStatus(status), reason=reason, message=msg)