"""Selecting KRM objects from a list by group-version-kind."""

from __future__ import annotations

from collections.abc import Iterable

from kptcond.kubeobject import KubeObject


def filter_by_gvk(
    objs: Iterable[KubeObject], api_version: str, kind: str
) -> tuple[list[KubeObject], list[KubeObject]]:
    """Split objects into those of the given GVK and the rest."""
    matching: list[KubeObject] = []
    rest: list[KubeObject] = []
    for obj in objs:
        (matching if obj.is_gvk(api_version, kind) else rest).append(obj)
    return matching, rest


def get_singleton(objs: Iterable[KubeObject], api_version: str, kind: str) -> KubeObject:
    """Return the one object of the given GVK; raise ValueError otherwise."""
    matching, _ = filter_by_gvk(objs, api_version, kind)
    if len(matching) != 1:
        raise ValueError(
            f"expected exactly 1 instance of {kind} in the kpt package, but got {len(matching)}"
        )
    return matching[0]