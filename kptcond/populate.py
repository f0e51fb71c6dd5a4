"""Filling the inventory from the Kptfile conditions and the resource list."""

from __future__ import annotations

import logging
from typing import Any

from kptcond.config import SPECIALIZER_OWNER
from kptcond.objectref import ObjectReference, get_gvkn_from_condition_type
from kptcond.resources import GvkKind
from kptcond.updates import SdkCore

logger = logging.getLogger(__name__)


def _same_gvk(a: ObjectReference, b: ObjectReference) -> bool:
    return a.api_version == b.api_version and a.kind == b.kind


class InventoryPopulator(SdkCore):
    """Collects the existing conditions and resources relevant to the configuration."""

    def populate_inventory(self) -> None:
        """Populate the inventory with the conditions and resources of the package."""
        # A for condition whose reason names another resource gives the owner GVK
        # that decides whether a watch belongs to a particular for resource.
        for_owner_ref: ObjectReference | None = None
        name_map: dict[str, str] = {}
        conditions = self._kpt.get_conditions()
        for condition in conditions:
            obj_ref = get_gvkn_from_condition_type(condition.type)
            kc = self.inv.is_gvk_match(obj_ref)
            if kc is None or kc.gvk_kind != GvkKind.FOR:
                continue
            owner_ref = get_gvkn_from_condition_type(condition.reason)
            try:
                owner_ref.validate_gvk()
            except ValueError:
                continue
            for_owner_ref = owner_ref.gvk_ref()
            name_map[owner_ref.name] = obj_ref.name
            self._trace(
                "forOwnerRefNameMap: refKind: %s, refName: %s, forOwnRefName: %s",
                obj_ref.kind,
                obj_ref.name,
                owner_ref.name,
            )
        for condition in conditions:
            self.populate(
                name_map,
                for_owner_ref,
                get_gvkn_from_condition_type(condition.type),
                get_gvkn_from_condition_type(condition.reason),
                condition,
            )
        for obj in list(self.rl.items):
            self.populate(
                name_map,
                for_owner_ref,
                ObjectReference(api_version=obj.api_version, kind=obj.kind, name=obj.name),
                get_gvkn_from_condition_type(obj.get_annotation(SPECIALIZER_OWNER)),
                obj,
            )

    def populate(
        self,
        name_map: dict[str, str],
        for_owner_ref: ObjectReference | None,
        obj_ref: ObjectReference,
        owner_ref: ObjectReference,
        x: Any,
    ) -> None:
        """Store one condition or object in the inventory if its GVK is relevant."""
        kc = self.inv.is_gvk_match(obj_ref.gvk_ref())
        if kc is None:
            self._trace("stage1: populate no match, ref: %s", obj_ref)
            return
        if kc.gvk_kind == GvkKind.FOR:
            self._set(kc, [obj_ref], x)
        elif kc.gvk_kind == GvkKind.OWN:
            owner_kc = self.inv.is_gvk_match(owner_ref)
            if owner_kc is None or owner_kc.gvk_kind != GvkKind.FOR:
                # added on behalf of another kind; wildcards would otherwise pull in everything
                self._trace(
                    "stage1: populate own kind different owner, ownerRef %s, ref: %s",
                    owner_ref,
                    obj_ref,
                )
                return
            self._set(kc, [owner_ref, obj_ref], x)
        elif kc.gvk_kind == GvkKind.WATCH:
            if for_owner_ref is not None and (
                _same_gvk(for_owner_ref, owner_ref) or _same_gvk(for_owner_ref, obj_ref)
            ):
                # a watch specific to one for resource
                name = name_map.get(owner_ref.name, "")
                if _same_gvk(for_owner_ref, obj_ref):
                    name = name_map.get(obj_ref.name, "")
                for_ref = ObjectReference(
                    api_version=self.cfg.for_ref.api_version,
                    kind=self.cfg.for_ref.kind,
                    name=name,
                )
                self._set(kc, [for_ref, obj_ref], x)
                return
            # an owned watch here is an intermediate resource of another for: skip it
            try:
                owner_ref.validate_gvkn()
            except ValueError:
                self._set(kc, [obj_ref], x)

    def _set(self, kc: Any, refs: list[ObjectReference], x: Any) -> None:
        self._trace("stage1: set existing object in inventory, kind %s, refs: %s", kc.gvk_kind, refs)
        try:
            self.inv.set(kc, refs, x, False, False)
        except ValueError as exc:
            logger.warning("stage1: cannot set existing object in the inventory: %s", exc)
            raise