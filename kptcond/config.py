"""Configuration of a conditional KRM function."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from kptcond.kubeobject import KubeObject
from kptcond.objectref import ObjectReference

SPECIALIZER_OWNER = "specializer.nephio.org/owner"
SPECIALIZER_DELETE = "specializer.nephio.org/delete"
SPECIALIZER_DEBUG = "specializer.nephio.org/debug"
SPECIALIZER_FOR = "specializer.nephio.org/for"
SPECIALIZER_VLAN_CLAIM_NAME = "specializer.nephio.org/vlanClaimName"
SPECIALIZER_NAMESPACE = "specializer.nephio.org/namespace"


class ResourceKind(str, Enum):
    """How a child resource of the for resource is handled."""

    # only conditions are created for it
    CHILD_REMOTE_CONDITION = "remoteCondition"
    # conditions and resources are created for it
    CHILD_REMOTE = "remote"
    # conditions are created as true
    CHILD_LOCAL = "local"
    # an initial resource of the package that is never deleted
    CHILD_INITIAL = "initial"


PopulateOwnResourcesFn = Callable[[KubeObject], list[KubeObject]]
UpdateResourceFn = Callable[[KubeObject | None, list[KubeObject]], list[KubeObject]]
WatchCallbackFn = Callable[[KubeObject | None], None]


def update_resource_nop(for_obj: KubeObject | None, objs: list[KubeObject]) -> list[KubeObject]:
    """An update function that produces no new objects.

    The arguments are checked to be KubeObjects; nothing is generated from them.
    """
    if for_obj is not None and not isinstance(for_obj, KubeObject):
        raise TypeError(f"for object must be a KubeObject, got {type(for_obj).__name__}")
    for obj in objs:
        if not isinstance(obj, KubeObject):
            raise TypeError(f"objects must be KubeObjects, got {type(obj).__name__}")
    return []


@dataclass
class Config:
    """Which resources a function is for, owns and watches, and its callbacks.

    A watch callback signals that the function is not ready by raising.
    """

    for_ref: ObjectReference = field(default_factory=ObjectReference)
    owns: dict[ObjectReference, ResourceKind] = field(default_factory=dict)
    watch: dict[ObjectReference, WatchCallbackFn | None] = field(default_factory=dict)
    populate_own_resources_fn: PopulateOwnResourcesFn | None = None
    update_resource_fn: UpdateResourceFn | None = None
    root: bool = False