"""Readiness of each for resource, derived from its owned and watched children."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from kptcond.kubeobject import KubeObject
from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_type,
)
from kptcond.resources import GvkKind

if TYPE_CHECKING:
    from kptcond.inventory import Inventory

logger = logging.getLogger(__name__)


@dataclass
class ReadyCtx:
    """Readiness of one for resource with the objects it depends on."""

    ready: bool = True
    failed: bool = False
    for_obj: KubeObject | None = None
    for_condition: Condition | None = None
    owns: dict[ObjectReference, KubeObject] = field(default_factory=dict)
    watches: dict[ObjectReference, KubeObject] = field(default_factory=dict)


def _not_true(condition: Condition | None) -> bool:
    return condition is None or condition.status == ConditionStatus.FALSE


def compute_ready_map(inventory: Inventory) -> dict[ObjectReference, ReadyCtx]:
    """Build the readiness of every for resource from its owns and watches."""
    ready_map: dict[ObjectReference, ReadyCtx] = {}
    for for_ref, for_ctx in inventory.get(GvkKind.FOR, [ObjectReference()]).items():
        rc = ReadyCtx(
            failed=for_ctx.failed,
            for_obj=for_ctx.existing_resource,
            for_condition=for_ctx.existing_condition,
        )
        ready_map[for_ref] = rc
        for ref, ctx in inventory.get(GvkKind.OWN, [for_ref, ObjectReference()]).items():
            if inventory.debug:
                logger.info("getReadyMap: own ref: %s, condition %s", ref, ctx.existing_condition)
            if _not_true(ctx.existing_condition):
                rc.ready = False
            if ctx.existing_resource is not None:
                rc.owns[ref] = ctx.existing_resource
        for ref, ctx in inventory.get(GvkKind.WATCH, [for_ref, ObjectReference()]).items():
            if inventory.debug:
                logger.info(
                    "getReadyMap: watch ref: %s, condition %s", ref, ctx.existing_condition
                )
            if _not_true(ctx.existing_condition):
                # a watch that is the owner of the for resource is not checked
                for_condition = for_ctx.existing_condition
                if for_condition is not None and get_condition_type(ref) != for_condition.reason:
                    rc.ready = False
            if ctx.existing_resource is not None:
                rc.watches[ref] = ctx.existing_resource
    return ready_map