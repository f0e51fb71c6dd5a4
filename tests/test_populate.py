import pytest

from kptcond.config import SPECIALIZER_OWNER, Config, ResourceKind, update_resource_nop
from kptcond.inventory import Inventory
from kptcond.kptfile import KptFile
from kptcond.kubeobject import KubeObject
from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_type,
)
from kptcond.populate import InventoryPopulator
from kptcond.resourcelist import ResourceList
from kptcond.resources import GvkKind, InventoryError

KPTFILE = """apiVersion: kpt.dev/v1
kind: Kptfile
metadata:
  name: pkg
info:
  description: test
"""

FOR_GVK = ObjectReference(api_version="a.a/v1", kind="A")
OWN_GVK = ObjectReference(api_version="b.b/v1", kind="B")
WATCH_GVK = ObjectReference(api_version="w.w/v1", kind="W")
FOR_X = ObjectReference(api_version="a.a/v1", kind="A", name="x")
OWN_B = ObjectReference(api_version="b.b/v1", kind="B", name="b1")
WATCH_W = ObjectReference(api_version="w.w/v1", kind="W", name="w1")
OWNER_C = ObjectReference(api_version="c.c/v1", kind="C", name="owner")


def make_obj(ref: ObjectReference, owner: ObjectReference | None = None) -> KubeObject:
    metadata = {"name": ref.name}
    if owner is not None:
        metadata["annotations"] = {SPECIALIZER_OWNER: get_condition_type(owner)}
    return KubeObject.from_dict(
        {"apiVersion": ref.api_version, "kind": ref.kind, "metadata": metadata}
    )


def make_populator(*items: KubeObject, conditions=()) -> InventoryPopulator:
    cfg = Config(
        for_ref=FOR_GVK,
        owns={OWN_GVK: ResourceKind.CHILD_REMOTE},
        watch={WATCH_GVK: None},
        update_resource_fn=update_resource_nop,
    )
    kf = KubeObject.parse(KPTFILE)
    kptfile = KptFile(kf)
    if conditions:
        kptfile.set_conditions(*conditions)
    rl = ResourceList(items=[kf, *items])
    return InventoryPopulator(cfg, Inventory(cfg), rl, kptfile)


def test_for_object_is_collected():
    for_obj = make_obj(FOR_X)
    pop = make_populator(for_obj)
    pop.populate_inventory()
    fors = pop.inv.get(GvkKind.FOR, [ObjectReference()])
    assert list(fors) == [FOR_X]
    assert fors[FOR_X].existing_resource is for_obj


def test_owned_object_with_for_owner_is_collected():
    own_obj = make_obj(OWN_B, owner=FOR_X)
    pop = make_populator(make_obj(FOR_X), own_obj)
    pop.populate_inventory()
    owns = pop.inv.get(GvkKind.OWN, [FOR_X, ObjectReference()])
    assert list(owns) == [OWN_B]
    assert owns[OWN_B].existing_resource is own_obj


def test_owned_object_without_owner_is_skipped():
    pop = make_populator(make_obj(FOR_X), make_obj(OWN_B))
    pop.populate_inventory()
    assert pop.inv.get(GvkKind.OWN, [FOR_X, ObjectReference()]) == {}


def test_unrelated_gvk_is_ignored():
    other = ObjectReference(api_version="z.z/v1", kind="Z", name="z")
    pop = make_populator(make_obj(other))
    pop.populate_inventory()
    assert pop.inv.list() == []


def test_own_condition_is_collected():
    cond = Condition(
        type=get_condition_type(OWN_B),
        status=ConditionStatus.TRUE,
        reason=get_condition_type(FOR_X),
        message="done",
    )
    pop = make_populator(make_obj(FOR_X), conditions=[cond])
    pop.populate_inventory()
    owns = pop.inv.get(GvkKind.OWN, [FOR_X, ObjectReference()])
    assert owns[OWN_B].existing_condition == cond


def test_global_watch_is_collected():
    watch_obj = make_obj(WATCH_W)
    pop = make_populator(watch_obj)
    pop.populate_inventory()
    watches = pop.inv.get(GvkKind.WATCH, [ObjectReference()])
    assert watches[WATCH_W].existing_resource is watch_obj


def test_watch_owned_by_other_is_skipped():
    pop = make_populator(make_obj(WATCH_W, owner=OWNER_C))
    pop.populate_inventory()
    assert pop.inv.get(GvkKind.WATCH, [ObjectReference()]) == {}


def test_specific_watch_is_attached_to_for_resource():
    for_cond = Condition(
        type=get_condition_type(FOR_X),
        status=ConditionStatus.FALSE,
        reason=get_condition_type(OWNER_C),
    )
    watch_obj = make_obj(WATCH_W, owner=OWNER_C)
    pop = make_populator(make_obj(FOR_X), watch_obj, conditions=[for_cond])
    pop.populate_inventory()
    watches = pop.inv.get(GvkKind.WATCH, [FOR_X, ObjectReference()])
    assert watches[WATCH_W].existing_resource is watch_obj
    fors = pop.inv.get(GvkKind.FOR, [ObjectReference()])
    assert fors[FOR_X].existing_condition == for_cond


def test_populate_own_with_non_for_owner_adds_nothing():
    pop = make_populator()
    pop.populate({}, None, OWN_B, OWNER_C, make_obj(OWN_B))
    assert pop.inv.list() == []


def test_populate_unsupported_value_raises():
    pop = make_populator()
    with pytest.raises(InventoryError):
        pop.populate({}, None, FOR_X, ObjectReference(), "not an object")