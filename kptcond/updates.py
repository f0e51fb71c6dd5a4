"""Applying condition and resource changes to the Kptfile, resource list and inventory."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from typing import NoReturn

from kptcond.config import SPECIALIZER_DELETE, Config, ResourceKind
from kptcond.diff import DiffObject
from kptcond.inventory import Inventory
from kptcond.kptfile import KptFile
from kptcond.kubeobject import KubeObject
from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_by_ref,
    refs_string,
    refs_valid,
)
from kptcond.resourcelist import ResourceList
from kptcond.resources import GvkKind, GvkKindCtx

logger = logging.getLogger(__name__)

_HANDLED = (ValueError, TypeError, KeyError)


def _raise_joined(errors: list[Exception]) -> NoReturn:
    raise ValueError("\n".join(str(err) for err in errors)) from errors[0]


class SdkCore:
    """State shared by the stages of a conditional function and the updates they make."""

    def __init__(
        self,
        cfg: Config,
        inv: Inventory,
        rl: ResourceList,
        kptfile: KptFile | None = None,
        debug: bool = False,
    ):
        self.cfg = cfg
        self.inv = inv
        self.rl = rl
        self.kptfile = kptfile
        self.debug = debug

    def _trace(self, msg: str, *args: object) -> None:
        if self.debug:
            logger.info(msg, *args)

    @property
    def _kpt(self) -> KptFile:
        if self.kptfile is None:
            raise RuntimeError("no Kptfile loaded")
        return self.kptfile

    def _report(
        self,
        errors: list[Exception],
        what: str,
        refs: Sequence[ObjectReference],
        exc: Exception,
    ) -> None:
        logger.warning("%s objref: %s, err: %s", what, refs_string(*refs), exc)
        self.rl.error(exc)
        errors.append(exc)

    def delete_child_object(
        self,
        kind: GvkKind,
        refs: Sequence[ObjectReference],
        obj: DiffObject,
        msg: str,
    ) -> None:
        """Mark a child object for deletion and set its condition to false."""
        refs = list(refs)
        condition = get_condition_by_ref(refs, msg, ConditionStatus.FALSE, None)
        errors: list[Exception] = []
        try:
            self._kpt.set_conditions(condition)
        except _HANDLED as exc:
            self._report(errors, "cannot set condition in kptfile", refs, exc)
        try:
            if obj.obj is None:
                raise ValueError("no object to mark for deletion")
            obj.obj.set_annotation(SPECIALIZER_DELETE, "true")
        except _HANDLED as exc:
            self._report(errors, "cannot set annotation on obj", refs, exc)
        try:
            self.set_object_in_resource_list(GvkKind.OWN, refs, obj)
        except _HANDLED as exc:
            self._report(errors, "cannot set resource in resourceList", refs, exc)
        if errors:
            _raise_joined(errors)

    def upsert_child_object(
        self,
        kind: GvkKind,
        refs: Sequence[ObjectReference],
        obj: DiffObject,
        existing: Condition | None,
        msg: str,
        status: ConditionStatus,
        always_update: bool,
    ) -> None:
        """Set the condition of an object and, where due, put the object in the list.

        An existing condition is reused so that data set by other functions,
        such as its reason, is kept.
        """
        refs = list(refs)
        condition = get_condition_by_ref(refs, msg, status, existing)
        if existing is not None:
            condition = dataclasses.replace(
                existing, message=msg, status=ConditionStatus(status)
            )
        errors: list[Exception] = []
        try:
            self._kpt.set_conditions(condition)
        except _HANDLED as exc:
            self._report(errors, "cannot set condition in kptfile", refs, exc)
        if always_update:
            target_kind: GvkKind | None = kind
        elif obj.own_kind in (ResourceKind.CHILD_REMOTE, ResourceKind.CHILD_LOCAL):
            target_kind = GvkKind.OWN
        else:
            target_kind = None
        if target_kind is not None:
            try:
                self.set_object_in_resource_list(target_kind, refs, obj)
            except _HANDLED as exc:
                self._report(errors, "cannot set resource in resourceList", refs, exc)
        if errors:
            _raise_joined(errors)

    def delete_condition(self, kind: GvkKind, refs: Sequence[ObjectReference]) -> None:
        """Remove the condition of a for or own resource from the Kptfile and inventory."""
        refs = list(refs)
        condition = get_condition_by_ref(refs, "", ConditionStatus.FALSE, None)
        errors: list[Exception] = []
        try:
            self._kpt.delete_condition(condition.type)
        except _HANDLED as exc:
            self._report(errors, "cannot delete condition from Kptfile", refs, exc)
        try:
            self.inv.delete(GvkKindCtx(gvk_kind=kind), refs)
        except _HANDLED as exc:
            self._report(errors, "cannot delete condition from inventory", refs, exc)
        if errors:
            _raise_joined(errors)

    def set_condition(
        self,
        kind: GvkKind,
        refs: Sequence[ObjectReference],
        msg: str,
        status: ConditionStatus,
        failed: bool,
    ) -> None:
        """Set a condition in the Kptfile and inventory."""
        refs = list(refs)
        condition = get_condition_by_ref(refs, msg, status, None)
        errors: list[Exception] = []
        try:
            self._kpt.set_conditions(condition)
        except _HANDLED as exc:
            self._report(errors, "cannot set condition in Kptfile", refs, exc)
        try:
            self.inv.set(GvkKindCtx(gvk_kind=kind), refs, condition, False, failed)
        except _HANDLED as exc:
            self._report(errors, "cannot set condition in inventory", refs, exc)
        if errors:
            _raise_joined(errors)

    def set_object_in_resource_list(
        self, kind: GvkKind, refs: Sequence[ObjectReference], obj: DiffObject
    ) -> None:
        """Upsert the object in the resource list and record it as existing in the inventory."""
        refs = list(refs)
        self._trace("setObjectInResourceList: kind: %s, refs: %s, obj: %s", kind, refs, obj.obj)
        if not refs_valid(refs):
            raise ValueError(
                f"cannot set resource in resourcelist as the object has no valid refs: {refs}"
            )
        if obj.obj is None:
            raise ValueError(f"no object to set in resourcelist for {refs_string(*refs)}")
        self.rl.upsert(obj.obj)
        try:
            self.inv.set(GvkKindCtx(gvk_kind=kind), refs, obj.obj, False, False)
        except _HANDLED as exc:
            logger.warning("error updating stage1 resource to the inventory: %s", exc)
            self.rl.error(exc)
            raise

    def delete_obj_from_resource_list(self, obj: KubeObject) -> None:
        """Remove every item with the identity of the object from the resource list."""
        self.rl.remove(obj)

    def fail_for_conditions(self, msg: str) -> None:
        """Mark the condition of every for object in the list as failed."""
        for_ref = self.cfg.for_ref
        for for_obj in self.rl.where_gvk(for_ref.api_version, for_ref.kind):
            ref = ObjectReference(
                api_version=for_obj.api_version, kind=for_obj.kind, name=for_obj.name
            )
            try:
                self._kpt.set_condition_ref_failed(ref, msg)
            except _HANDLED as exc:
                logger.warning("set fail for condition failed, err: %s", exc)
                self.rl.error(exc)