"""Stage one of a conditional function: new children, their diff, and global watches."""

from __future__ import annotations

import logging

from kptcond.config import SPECIALIZER_OWNER, ResourceKind
from kptcond.diff import DiffObject, InventoryDiff
from kptcond.objectref import (
    ConditionStatus,
    ObjectReference,
    get_condition_type,
    refs_string,
)
from kptcond.populate import InventoryPopulator
from kptcond.resources import GvkKind

logger = logging.getLogger(__name__)


def _ref_key(ref: ObjectReference) -> tuple[str, str, str, str]:
    return (ref.kind, ref.namespace, ref.name, ref.api_version)


def _sorted_objects(objs: list[DiffObject]) -> list[DiffObject]:
    return sorted(objs, key=lambda obj: _ref_key(obj.ref))


class ChildStage(InventoryPopulator):
    """Creates, updates and deletes child resources and conditions of for resources."""

    def _fail_for(self, for_ref: ObjectReference, msg: str) -> None:
        try:
            self._kpt.set_condition_ref_failed(for_ref, msg)
        except ValueError as exc:
            logger.warning(
                "stage1: cannot set the condition objRef: %s err: %s", refs_string(for_ref), exc
            )
            self.rl.error(exc)

    def _report_action(self, exc: Exception) -> None:
        logger.warning("join error, err: %s", exc)
        self.rl.error(exc)

    def populate_children(self) -> None:
        """Ask the function for the children of each for object and record them as new."""
        self._trace("stage1: populate children")
        for for_ref, res_ctx in self.inv.get(GvkKind.FOR, [ObjectReference()]).items():
            for_obj = res_ctx.existing_resource
            self._trace("stage1: populateOwnResourcesFn objRef: %s", refs_string(for_ref))
            populate_fn = self.cfg.populate_own_resources_fn
            if populate_fn is None or for_obj is None:
                continue
            try:
                new_objs = populate_fn(for_obj) or []
            except Exception as exc:
                msg = f"stage1: cannot populate new resource err: {exc}"
                try:
                    self.set_condition(
                        GvkKind.FOR, [for_ref], msg, ConditionStatus.FALSE, True
                    )
                except ValueError as err:
                    logger.warning(
                        "stage1: cannot set the condition objRef: %s err: %s",
                        refs_string(for_ref),
                        err,
                    )
                    self.rl.error(err)
                continue
            for new_obj in new_objs:
                obj_ref = ObjectReference(
                    api_version=new_obj.api_version, kind=new_obj.kind, name=new_obj.name
                )
                kc = self.inv.is_gvk_match(obj_ref)
                if kc is None:
                    msg = (
                        "stage1: cannot find new resource in gvkmap: objRef: "
                        f"{refs_string(for_ref, obj_ref)}"
                    )
                    self._trace("%s", msg)
                    self._fail_for(for_ref, msg)
                    continue
                self._trace(
                    "stage1: populate new resource: objRef: %s kc: %s",
                    refs_string(for_ref, obj_ref),
                    kc,
                )
                new_obj.set_annotation(SPECIALIZER_OWNER, get_condition_type(for_ref))
                try:
                    self.inv.set(kc, [for_ref, obj_ref], new_obj, True, False)
                except ValueError as exc:
                    self._fail_for(
                        for_ref,
                        "stage1: cannot set new resource to the inventory objRef: "
                        f"{refs_string(for_ref)}, err: {exc}",
                    )

    def update_children(self) -> None:
        """Act on the diff between existing and new children and conditions."""
        diff_map = self.inv.diff()
        ordered = sorted(diff_map, key=_ref_key)
        if not self.inv.is_ready():
            for for_ref in ordered:
                self._tear_down(for_ref, diff_map[for_ref])
            return
        for for_ref in ordered:
            self._apply(for_ref, diff_map[for_ref])

    def _tear_down(self, for_ref: ObjectReference, diff: InventoryDiff) -> None:
        if diff.delete_for_condition:
            self._trace("stage1: diff action -> delete for condition objRef: %s", for_ref)
            try:
                self.delete_condition(GvkKind.FOR, [for_ref])
            except ValueError as exc:
                self._report_action(exc)
        for obj in diff.delete_objs:
            self._trace(
                "stage1: diff action -> delete child objRef: %s", refs_string(for_ref, obj.ref)
            )
            try:
                self.delete_child_object(GvkKind.OWN, [for_ref, obj.ref], obj, "not ready")
            except ValueError as exc:
                self._report_action(exc)

    def _apply(self, for_ref: ObjectReference, diff: InventoryDiff) -> None:
        if diff.update_for_condition:
            self._trace("stage1: diff action -> update for condition objRef: %s", for_ref)
            try:
                self.set_condition(
                    GvkKind.FOR, [for_ref], "update for condition", ConditionStatus.FALSE, False
                )
            except ValueError as exc:
                self._report_action(exc)
        for obj in _sorted_objects(diff.create_conditions):
            self._trace(
                "stage1: diff action -> create condition objRef: %s",
                refs_string(for_ref, obj.ref),
            )
            status = ConditionStatus.FALSE
            msg = "create condition"
            if obj.own_kind == ResourceKind.CHILD_LOCAL:
                status = ConditionStatus.TRUE
                msg = "child local resource -> done"
            elif obj.own_kind == ResourceKind.CHILD_INITIAL:
                msg = "create initial resource condition"
            try:
                self.set_condition(GvkKind.OWN, [for_ref, obj.ref], msg, status, False)
            except ValueError as exc:
                self._report_action(exc)
        for obj in diff.delete_conditions:
            self._trace(
                "stage1: diff action -> delete condition objRef: %s",
                refs_string(for_ref, obj.ref),
            )
            try:
                self.delete_condition(GvkKind.OWN, [for_ref, obj.ref])
            except ValueError as exc:
                self._report_action(exc)
        for obj in _sorted_objects(diff.create_objs):
            self._trace(
                "stage1: diff action -> create obj: ref: %s, ownkind: %s",
                get_condition_type(obj.ref),
                obj.own_kind,
            )
            status = (
                ConditionStatus.TRUE
                if obj.own_kind == ResourceKind.CHILD_LOCAL
                else ConditionStatus.FALSE
            )
            try:
                self.upsert_child_object(
                    GvkKind.OWN,
                    [for_ref, obj.ref],
                    obj,
                    None,
                    "create initial resource",
                    status,
                    False,
                )
            except ValueError as exc:
                self._report_action(exc)
        for obj in _sorted_objects(diff.update_objs):
            self._trace("stage1: diff action -> update obj: %s", get_condition_type(obj.ref))
            try:
                self.upsert_child_object(
                    GvkKind.OWN,
                    [for_ref, obj.ref],
                    obj,
                    None,
                    "update resource",
                    ConditionStatus.FALSE,
                    False,
                )
            except ValueError as exc:
                self._report_action(exc)
        for obj in diff.delete_objs:
            self._trace("stage1: diff action -> delete obj: %s", get_condition_type(obj.ref))
            try:
                self.delete_child_object(
                    GvkKind.OWN, [for_ref, obj.ref], obj, "delete resource"
                )
            except ValueError as exc:
                self._report_action(exc)
        # the for object was deleted and recreated: drop the delete annotation
        for obj in diff.update_delete_annotations:
            self._trace("stage1: diff action -> update delete annotation")
            try:
                self.upsert_child_object(
                    GvkKind.OWN,
                    [for_ref, obj.ref],
                    obj,
                    None,
                    "update resource",
                    ConditionStatus.FALSE,
                    False,
                )
            except ValueError as exc:
                self._report_action(exc)

    def call_global_watches(self) -> None:
        """Hand each global watch resource to its callback.

        A callback that raises marks the inventory as not ready; the error propagates.
        """
        for res_ctx in self.inv.get(GvkKind.WATCH, [ObjectReference()]).values():
            self._trace("stage1: global watch: %s", res_ctx.existing_resource)
            callback = res_ctx.kind_ctx.callback_fn
            if callback is None:
                continue
            try:
                callback(res_ctx.existing_resource)
            except Exception as exc:
                self._trace("stage1: global watch returned an error %s", exc)
                self.inv.set_ready(False)
                raise