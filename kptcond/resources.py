"""The tree of resources and conditions collected by the inventory."""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from kptcond.config import ResourceKind
from kptcond.kubeobject import KubeObject
from kptcond.objectref import Condition, ObjectReference, refs_string


class InventoryError(ValueError):
    """Raised when the inventory is addressed with references it cannot use."""


class GvkKind(str, Enum):
    FOR = "for"
    OWN = "own"
    WATCH = "watch"


@dataclass(frozen=True)
class SdkObjectReference:
    """An object reference tagged with the role of its GVK."""

    gvk_kind: GvkKind
    ref: ObjectReference


@dataclass
class GvkKindCtx:
    """The role of a GVK, with the child kind for owns and the callback for watches."""

    gvk_kind: GvkKind | None = None
    own_kind: ResourceKind | None = None
    callback_fn: Callable[[KubeObject | None], Any] | None = None


@dataclass
class ResourceCtx:
    """What is known about one resource: its condition and existing and new objects."""

    kind_ctx: GvkKindCtx = field(default_factory=GvkKindCtx)
    existing_condition: Condition | None = None
    existing_resource: KubeObject | None = None
    new_resource: KubeObject | None = None
    failed: bool = False

    def _copy(self) -> ResourceCtx:
        condition = self.existing_condition
        return dataclasses.replace(
            self,
            kind_ctx=dataclasses.replace(self.kind_ctx),
            existing_condition=dataclasses.replace(condition) if condition else None,
        )


def get_sdk_refs(kind: GvkKind, refs: Sequence[ObjectReference]) -> list[SdkObjectReference]:
    """Turn a reference path into tagged references, checking its depth against the kind."""
    if not refs:
        raise InventoryError("cannot walk resource tree with empty ref")
    if len(refs) == 1:
        if kind not in (GvkKind.FOR, GvkKind.WATCH):
            raise InventoryError(
                f"refs with len 1 only allowed for for/watch, kind: {kind.value}, "
                f"refs: {refs_string(*refs)}"
            )
        return [SdkObjectReference(kind, refs[0])]
    if len(refs) == 2:
        if kind == GvkKind.FOR:
            raise InventoryError("refs with len 2 only allowed for own/watch")
        return [SdkObjectReference(GvkKind.FOR, refs[0]), SdkObjectReference(kind, refs[1])]
    raise InventoryError(f"refs with len > 2, got {len(refs)}")


@dataclass
class ResourceTree:
    """A node holding a resource context and the child nodes below it."""

    ctx: ResourceCtx = field(default_factory=ResourceCtx)
    children: dict[SdkObjectReference, ResourceTree] = field(default_factory=dict)

    def set(
        self,
        refs: Sequence[SdkObjectReference],
        kc: GvkKindCtx,
        x: Any,
        new_resource: bool,
        failed: bool,
    ) -> None:
        """Store a condition or an object at the path, creating nodes on the way."""
        if refs:
            self.children.setdefault(refs[0], ResourceTree()).set(
                refs[1:], kc, x, new_resource, failed
            )
            return
        self.ctx.failed = failed
        if isinstance(x, Condition):
            self.ctx.existing_condition = dataclasses.replace(x)
        elif isinstance(x, KubeObject):
            self.ctx.kind_ctx = dataclasses.replace(kc)
            if new_resource:
                self.ctx.new_resource = x
            else:
                self.ctx.existing_resource = x
        else:
            raise InventoryError(f"unsupported object: {x!r}")

    def delete(self, refs: Sequence[SdkObjectReference]) -> None:
        """Clear the existing condition at the path."""
        if not refs:
            self.ctx.existing_condition = None
            return
        child = self.children.get(refs[0])
        if child is None:
            raise InventoryError("not found")
        child.delete(refs[1:])

    def get(self, refs: Sequence[SdkObjectReference]) -> dict[ObjectReference, ResourceCtx]:
        """Return copies of the contexts at the path.

        An empty reference at a level selects every node of that kind; at the end
        of the path a node with children yields all of them.
        """
        if not refs:
            if not self.children:
                return {ObjectReference(): self.ctx._copy()}
            return {sdk_ref.ref: node.ctx._copy() for sdk_ref, node in self.children.items()}
        head = refs[0]
        if head.ref.is_empty():
            return {
                sdk_ref.ref: node.ctx._copy()
                for sdk_ref, node in self.children.items()
                if sdk_ref.gvk_kind == head.gvk_kind
            }
        child = self.children.get(head)
        if child is None:
            return {}
        return child.get(refs[1:])

    def list(self) -> list[tuple[SdkObjectReference, ...]]:
        """Return the paths of every node in the first two levels."""
        entries: list[tuple[SdkObjectReference, ...]] = []
        for parent, node in self.children.items():
            entries.append((parent,))
            entries.extend((parent, child) for child in node.children)
        return entries