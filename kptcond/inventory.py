"""The inventory of GVKs, resources and conditions a conditional function acts on."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from kptcond.config import Config, ResourceKind
from kptcond.diff import InventoryDiff, compute_diff
from kptcond.objectref import WILDCARD, ObjectReference
from kptcond.ready import ReadyCtx, compute_ready_map
from kptcond.resources import (
    GvkKind,
    GvkKindCtx,
    InventoryError,
    ResourceCtx,
    ResourceTree,
    SdkObjectReference,
    get_sdk_refs,
)

logger = logging.getLogger(__name__)

_WILDCARD_GVK = ObjectReference(api_version=WILDCARD, kind=WILDCARD)


def _validated(ref: ObjectReference) -> None:
    try:
        ref.validate_gvk()
    except ValueError as exc:
        raise InventoryError(str(exc)) from exc


class Inventory:
    """Known GVKs from the configuration plus the resources collected at run time."""

    def __init__(self, cfg: Config):
        self._lock = threading.RLock()
        self.gvk_resources: dict[ObjectReference, GvkKindCtx] = {}
        self.resources = ResourceTree()
        self._ready = True
        self.debug = False
        self._initialize(cfg)

    def _initialize(self, cfg: Config) -> None:
        _validated(cfg.for_ref)
        if cfg.for_ref.is_wildcard():
            raise InventoryError("no wildcard refs allowed in for reference")
        self.add_gvk_object_reference(GvkKindCtx(gvk_kind=GvkKind.FOR), cfg.for_ref)
        for obj_ref, own_kind in cfg.owns.items():
            _validated(obj_ref)
            if obj_ref.is_wildcard() and own_kind != ResourceKind.CHILD_INITIAL:
                raise InventoryError("only childLocal wildcard refs allowed in own reference")
            self.add_gvk_object_reference(
                GvkKindCtx(gvk_kind=GvkKind.OWN, own_kind=own_kind), obj_ref
            )
        for obj_ref, callback in cfg.watch.items():
            _validated(obj_ref)
            if obj_ref.is_wildcard():
                raise InventoryError("no wildcard refs allowed in watch resource reference")
            self.add_gvk_object_reference(
                GvkKindCtx(gvk_kind=GvkKind.WATCH, callback_fn=callback), obj_ref
            )
        if cfg.update_resource_fn is None:
            raise InventoryError("a function always needs a GenerateResource function")

    def add_gvk_object_reference(self, kc: GvkKindCtx, ref: ObjectReference) -> None:
        """Register the GVK of a reference; a GVK may only be registered once."""
        with self._lock:
            key = ref.gvk_ref()
            existing = self.gvk_resources.get(key)
            if existing is not None:
                kind = existing.gvk_kind.value if existing.gvk_kind else ""
                raise InventoryError(
                    f"another resource with a different kind {kind} already exists"
                )
            self.gvk_resources[key] = kc

    def is_gvk_match(self, ref: ObjectReference | None) -> GvkKindCtx | None:
        """Return the context of the GVK of a reference, falling back to a wildcard."""
        with self._lock:
            if ref is None:
                return None
            kc = self.gvk_resources.get(ref.gvk_ref())
            if kc is None:
                kc = self.gvk_resources.get(_WILDCARD_GVK)
            return kc

    def set(
        self,
        kc: GvkKindCtx,
        refs: Sequence[ObjectReference],
        x: Any,
        new_resource: bool,
        failed: bool,
    ) -> None:
        with self._lock:
            self.resources.set(get_sdk_refs(kc.gvk_kind, refs), kc, x, new_resource, failed)

    def delete(self, kc: GvkKindCtx, refs: Sequence[ObjectReference]) -> None:
        with self._lock:
            self.resources.delete(get_sdk_refs(kc.gvk_kind, refs))

    def get(
        self, kind: GvkKind, refs: Sequence[ObjectReference]
    ) -> dict[ObjectReference, ResourceCtx]:
        """Return copies of the matching contexts; an unusable path yields nothing."""
        with self._lock:
            try:
                sdk_refs = get_sdk_refs(kind, refs)
            except InventoryError as exc:
                logger.warning("cannot get sdkrefs: %s", exc)
                return {}
            return self.resources.get(sdk_refs)

    def list(self) -> list[tuple[SdkObjectReference, ...]]:
        with self._lock:
            return self.resources.list()

    def set_ready(self, ready: bool) -> None:
        self._ready = ready

    def is_ready(self) -> bool:
        return self._ready

    def ready_map(self) -> dict[ObjectReference, ReadyCtx]:
        with self._lock:
            return compute_ready_map(self)

    def diff(self) -> dict[ObjectReference, InventoryDiff]:
        with self._lock:
            return compute_diff(self)

    def set_debug(self) -> None:
        self.debug = True