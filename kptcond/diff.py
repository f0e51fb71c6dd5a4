"""Comparing existing resources and conditions with the ones that would be created."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from kptcond.config import SPECIALIZER_DELETE, ResourceKind
from kptcond.kubeobject import KubeObject
from kptcond.objectref import ConditionStatus, ObjectReference, refs_string
from kptcond.resources import GvkKind, ResourceCtx

if TYPE_CHECKING:
    from kptcond.inventory import Inventory

logger = logging.getLogger(__name__)

_KEPT_KINDS = (ResourceKind.CHILD_INITIAL, ResourceKind.CHILD_LOCAL)


@dataclass
class DiffObject:
    """A child reference with the object and child kind an action applies to."""

    ref: ObjectReference
    obj: KubeObject | None = None
    own_kind: ResourceKind | None = None


@dataclass
class InventoryDiff:
    """The actions needed for one for resource."""

    delete_for_condition: bool = False
    update_for_condition: bool = False
    delete_objs: list[DiffObject] = field(default_factory=list)
    update_objs: list[DiffObject] = field(default_factory=list)
    create_objs: list[DiffObject] = field(default_factory=list)
    delete_conditions: list[DiffObject] = field(default_factory=list)
    create_conditions: list[DiffObject] = field(default_factory=list)
    update_delete_annotations: list[DiffObject] = field(default_factory=list)


def get_spec(obj: KubeObject) -> dict[str, Any]:
    """Return the spec of an object; raise ValueError when it has none."""
    spec = obj.nested("spec")
    if spec is None:
        raise ValueError("cannot get spec from obj, not found")
    if not isinstance(spec, Mapping):
        raise ValueError("cannot get spec from obj, spec is not a mapping")
    return dict(spec)


def _diff_conditions(
    d: InventoryDiff, own_ref: ObjectReference, ctx: ResourceCtx, touch_for: bool, ready: bool
) -> None:
    own_kind = ctx.kind_ctx.own_kind
    if ctx.new_resource is None and ctx.existing_condition is None:
        d.update_for_condition |= touch_for
        if ready:
            d.create_conditions.append(DiffObject(own_ref, None, own_kind))
    elif ctx.new_resource is None:
        d.update_for_condition |= touch_for
        if own_kind not in _KEPT_KINDS:
            d.delete_conditions.append(DiffObject(own_ref, None, own_kind))
    elif ctx.existing_condition is None:
        d.update_for_condition |= touch_for
        d.create_conditions.append(DiffObject(own_ref, ctx.new_resource, own_kind))


def _diff_resources(
    d: InventoryDiff, own_ref: ObjectReference, ctx: ResourceCtx, touch_for: bool
) -> None:
    own_kind = ctx.kind_ctx.own_kind
    existing, new = ctx.existing_resource, ctx.new_resource
    if existing is None and new is not None:
        d.update_for_condition |= touch_for
        d.create_objs.append(DiffObject(own_ref, new, own_kind))
    elif existing is not None and new is None:
        d.update_for_condition |= touch_for
        if own_kind not in _KEPT_KINDS:
            d.delete_objs.append(DiffObject(own_ref, existing, own_kind))
    elif existing is not None and new is not None:
        # remote-condition children are created elsewhere; nothing to compare
        if own_kind == ResourceKind.CHILD_REMOTE_CONDITION:
            return
        try:
            existing_spec = get_spec(existing)
            new_spec = get_spec(new)
        except ValueError as exc:
            logger.warning("cannot get spec from obj %s: %s", own_ref, exc)
            return
        if existing_spec != new_spec:
            d.update_for_condition |= touch_for
            d.update_objs.append(DiffObject(own_ref, new, own_kind))
        # the for object was deleted and recreated: clear the delete annotation
        if SPECIALIZER_DELETE in existing.get_annotations():
            d.update_for_condition |= touch_for
            d.update_delete_annotations.append(DiffObject(own_ref, new, own_kind))


def compute_diff(inventory: Inventory) -> dict[ObjectReference, InventoryDiff]:
    """Compare existing against new resources and conditions for every for resource."""
    diff_map: dict[ObjectReference, InventoryDiff] = {}
    for for_ref, for_ctx in inventory.get(GvkKind.FOR, [ObjectReference()]).items():
        d = InventoryDiff()
        diff_map[for_ref] = d
        owns = inventory.get(GvkKind.OWN, [for_ref, ObjectReference()])
        if for_ctx.existing_resource is None:
            # the for resource is gone: clean up its children and conditions
            for own_ref, ctx in owns.items():
                if inventory.debug:
                    logger.info(
                        "delete resource and conditions: objRef: %s",
                        refs_string(for_ref, own_ref),
                    )
                d.delete_for_condition = True
                own_kind = ctx.kind_ctx.own_kind
                if ctx.existing_condition is not None:
                    d.delete_conditions.append(DiffObject(own_ref, None, own_kind))
                if (
                    ctx.existing_resource is not None
                    and own_kind != ResourceKind.CHILD_INITIAL
                ):
                    d.delete_objs.append(
                        DiffObject(own_ref, ctx.existing_resource, own_kind)
                    )
            continue
        for_condition = for_ctx.existing_condition
        touch_for = for_condition is None or for_condition.status != ConditionStatus.FALSE
        for own_ref, ctx in owns.items():
            if inventory.debug:
                logger.info(
                    "diff: objRef: %s, existingResource: %s, newResource: %s, "
                    "existing condition: %s",
                    refs_string(for_ref, own_ref),
                    ctx.existing_resource is not None,
                    ctx.new_resource is not None,
                    ctx.existing_condition is not None,
                )
            _diff_conditions(d, own_ref, ctx, touch_for, inventory.is_ready())
            _diff_resources(d, own_ref, ctx, touch_for)
    return diff_map