"""Readiness gates and conditions held in a Kptfile."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass

from kptcond.kubeobject import KubeObject, set_nested_field_keep_formatting
from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_type,
)

INFO_FIELD = "info"
READINESS_GATES_FIELD = "readinessGates"
STATUS_FIELD = "status"
CONDITIONS_FIELD = "conditions"


@dataclass
class KptFile:
    """Access to the readiness gates and status conditions of a Kptfile object."""

    obj: KubeObject

    def get_readiness_gates(self) -> list[str]:
        """Return the condition types of the readiness gates, in order."""
        gates = self.obj.nested(INFO_FIELD, READINESS_GATES_FIELD)
        if not isinstance(gates, list):
            return []
        return [
            str(gate.get("conditionType", "") or "")
            for gate in gates
            if isinstance(gate, Mapping)
        ]

    def has_readiness_gate(self, ct: str) -> bool:
        return ct in self.get_readiness_gates()

    def set_readiness_gates(self, *cts: str) -> None:
        """Add readiness gates for the condition types that are not present yet."""
        gates = self.get_readiness_gates()
        for ct in cts:
            if ct not in gates:
                gates.append(ct)
        set_nested_field_keep_formatting(
            self.obj,
            [{"conditionType": ct} for ct in gates],
            INFO_FIELD,
            READINESS_GATES_FIELD,
        )

    def get_conditions(self) -> list[Condition]:
        """Return a copy of the conditions of the package."""
        raw = self.obj.nested(STATUS_FIELD, CONDITIONS_FIELD)
        if not isinstance(raw, list):
            return []
        try:
            return [Condition.from_dict(item) for item in raw if isinstance(item, Mapping)]
        except (ValueError, TypeError):
            return []

    def get_condition(self, ct: str) -> Condition | None:
        return next((c for c in self.get_conditions() if c.type == ct), None)

    def _write_conditions(self, conditions: list[Condition]) -> None:
        set_nested_field_keep_formatting(self.obj, conditions, STATUS_FIELD, CONDITIONS_FIELD)

    def set_conditions(self, *conditions: Condition) -> None:
        """Overwrite conditions of the same type, append the others."""
        existing = self.get_conditions()
        for new in conditions:
            new = dataclasses.replace(new)
            for idx, current in enumerate(existing):
                if current.type == new.type:
                    existing[idx] = new
                    break
            else:
                existing.append(new)
        self._write_conditions(existing)

    def delete_condition(self, ct: str) -> None:
        """Remove the conditions of the given type."""
        self._write_conditions([c for c in self.get_conditions() if c.type != ct])

    def delete_condition_ref(self, ref: ObjectReference) -> None:
        self.delete_condition(get_condition_type(ref))

    def set_condition_ref_failed(self, ref: ObjectReference, msg: str) -> None:
        """Mark the condition of a reference as false with a message, creating it if needed."""
        ct = get_condition_type(ref)
        condition = self.get_condition(ct)
        if condition is not None:
            condition.message = msg
            condition.status = ConditionStatus.FALSE
            self.set_conditions(condition)
            return
        self.set_conditions(Condition(type=ct, status=ConditionStatus.FALSE, message=msg))

    def is_ready(self, prefix: str) -> bool:
        """True when conditions with the prefix exist and none of them is false."""
        found = False
        for condition in self.get_conditions():
            if condition.type.startswith(prefix):
                found = True
                if condition.status == ConditionStatus.FALSE:
                    return False
        return found