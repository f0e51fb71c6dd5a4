"""Running a conditional KRM function over a resource list."""

from __future__ import annotations

import logging

from kptcond.children import ChildStage
from kptcond.config import SPECIALIZER_DEBUG, SPECIALIZER_OWNER, Config
from kptcond.diff import DiffObject
from kptcond.inventory import Inventory
from kptcond.kptfile import KptFile
from kptcond.kubeobject import KubeObject
from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_type,
    refs_string,
)
from kptcond.resourcelist import ResourceList
from kptcond.resources import GvkKind
from kptcond.specialization import (
    failed,
    initialize,
    not_ready,
    ready,
    specialization_condition_type,
)

logger = logging.getLogger(__name__)


class KptCondSdk(ChildStage):
    """Drives the stages of a conditional function and the package readiness."""

    def _set_kptfile_condition(self, condition: Condition) -> None:
        try:
            self._kpt.set_conditions(condition)
        except ValueError as exc:
            logger.warning("set conditions, err: %s", exc)
            self.rl.error(exc)

    def run(self) -> bool:
        """Run the function over the resource list.

        Raises ValueError when the package has no root Kptfile or its
        specialization condition and readiness gate cannot be set.
        """
        if not self.rl.items:
            self.rl.info("no resources present in the resourcelist")
            return True
        kptfile_obj = self.rl.root_kptfile()
        if kptfile_obj is None:
            msg = "mandatory Kptfile is missing from the package"
            logger.warning(msg)
            self.rl.error(msg)
            raise ValueError(msg)
        self.kptfile = KptFile(kptfile_obj)

        if self.cfg.root:
            try:
                self.ensure_conditions_and_gates()
            except ValueError as exc:
                msg = "cannot ensure specialize conditions and readiness gates"
                logger.warning("%s, error: %s", msg, exc)
                self.rl.error(f"{msg}, error: {exc}")
                raise ValueError(f"{msg}: {exc}") from exc

        self.set_debug()
        try:
            self.populate_inventory()
        except ValueError as exc:
            self.fail_for_conditions(f"stage1: cannot populate inventory, err: {exc}")
            return True
        if self.debug:
            self.list_inventory()

        try:
            self.call_global_watches()
        except Exception as exc:
            # readiness was set by the watch; carry on and act on it
            if self.cfg.root:
                self._set_kptfile_condition(failed(str(exc)))
            else:
                self.fail_for_conditions(str(exc))

        if self.inv.is_ready() and self.cfg.owns:
            self.populate_children()
        if self.debug:
            self.list_inventory()

        self.update_children()
        self.update_resources()

        if self.cfg.root and self.inv.is_ready():
            prefix = get_condition_type(
                ObjectReference(api_version=self.cfg.for_ref.api_version, kind=self.cfg.for_ref.kind)
            )
            if self._kpt.is_ready(prefix):
                self._set_kptfile_condition(ready())
            else:
                self._set_kptfile_condition(not_ready())
        return True

    def set_debug(self) -> None:
        """Turn on debugging when a for resource carries the debug annotation."""
        for_ref = self.cfg.for_ref
        for for_obj in self.rl.where_gvk(for_ref.api_version, for_ref.kind):
            if for_obj.get_annotation(SPECIALIZER_DEBUG):
                self.debug = True
                self.inv.set_debug()

    def ensure_conditions_and_gates(self) -> None:
        """Add the specialization readiness gate, and its condition if absent."""
        ct = specialization_condition_type()
        self._kpt.set_readiness_gates(ct)
        if self._kpt.get_condition(ct) is None:
            self._set_kptfile_condition(initialize())

    def update_resources(self) -> None:
        """Stage two: let the function update each ready for resource."""
        self._trace("updateResource isReady: %s", self.inv.is_ready())
        if not self.inv.is_ready():
            for ready_ctx in self.inv.ready_map().values():
                if ready_ctx.for_obj is not None and not self.cfg.owns:
                    self.delete_obj_from_resource_list(ready_ctx.for_obj)
            return
        for for_ref, ready_ctx in self.inv.ready_map().items():
            self._trace("updateResource readyMap: objRef %s, readyCtx: %s", refs_string(for_ref), ready_ctx)
            if not ready_ctx.ready or ready_ctx.failed:
                continue
            if self.cfg.update_resource_fn is None:
                continue
            objs = [*ready_ctx.owns.values(), *ready_ctx.watches.values()]
            try:
                new_objs = self.handle_update_resource(
                    for_ref, ready_ctx.for_obj, ready_ctx.for_condition, objs
                )
            except Exception as exc:
                logger.warning(
                    "cannot handleUpdateResource objRef %s, err: %s", refs_string(for_ref), exc
                )
                try:
                    self._kpt.set_condition_ref_failed(for_ref, str(exc))
                except ValueError as err:
                    logger.warning("set condition failed error, err: %s", err)
                    self.rl.error(err)
                continue
            for new_obj in new_objs:
                self._apply_updated_object(for_ref, ready_ctx.for_condition, new_obj)

    def _apply_updated_object(
        self, for_ref: ObjectReference, for_condition: Condition | None, new_obj: KubeObject
    ) -> None:
        obj_ref = ObjectReference(
            api_version=new_obj.api_version, kind=new_obj.kind, name=new_obj.name
        )
        kc = self.inv.is_gvk_match(obj_ref.gvk_ref())
        if kc is None:
            msg = (
                "stage 2 fn returned an object that is not owned in the config: "
                f"ref: {refs_string(obj_ref)}"
            )
            logger.warning(msg)
            self.rl.error(msg)
            return
        if kc.gvk_kind == GvkKind.FOR:
            refs = [for_ref]
        elif kc.gvk_kind == GvkKind.OWN:
            refs = [for_ref, obj_ref]
        else:
            msg = f"stage 2 fn returned an unexpected watch kind ref: {refs_string(obj_ref)}"
            logger.warning(msg)
            self.rl.error(msg)
            return
        try:
            self.upsert_child_object(
                kc.gvk_kind,
                refs,
                DiffObject(ObjectReference(), new_obj),
                for_condition,
                "update done",
                ConditionStatus.TRUE,
                True,
            )
        except ValueError as exc:
            logger.warning(
                "cannot update resourcelist and inventory after handleUpdateResource: "
                "objRef %s, err: %s",
                refs_string(for_ref),
                exc,
            )

    def handle_update_resource(
        self,
        for_ref: ObjectReference,
        for_obj: KubeObject | None,
        for_condition: Condition | None,
        objs: list[KubeObject],
    ) -> list[KubeObject]:
        """Call the update function and point the returned objects at the for owner."""
        if self.cfg.update_resource_fn is None:
            return []
        new_objs = self.cfg.update_resource_fn(for_obj, objs)
        if not new_objs:
            self._trace(
                "update function returned no resources, objRef: %s", refs_string(for_ref)
            )
            return []
        if for_condition is not None and for_condition.reason:
            for new_obj in new_objs:
                try:
                    new_obj.set_annotation(SPECIALIZER_OWNER, for_condition.reason)
                except ValueError as exc:
                    logger.warning("error setting new annotation: %s", exc)
                    self.rl.error(exc)
                    raise
        return list(new_objs)

    def list_inventory(self) -> None:
        """Log every entry of the inventory."""
        for entry in self.inv.list():
            logger.info("resources entry: %s", entry)


def new(rl: ResourceList | None, cfg: Config) -> KptCondSdk:
    """Create a conditional function runner; raise InventoryError on a bad config."""
    inv = Inventory(cfg)
    return KptCondSdk(cfg, inv, rl if rl is not None else ResourceList())