import pytest

from kptcond.children import ChildStage
from kptcond.config import SPECIALIZER_DELETE, SPECIALIZER_OWNER, Config, ResourceKind
from kptcond.config import update_resource_nop
from kptcond.inventory import Inventory
from kptcond.kptfile import KptFile
from kptcond.kubeobject import KubeObject
from kptcond.objectref import Condition, ConditionStatus, ObjectReference, get_condition_type
from kptcond.resourcelist import ResourceList
from kptcond.resources import GvkKind, GvkKindCtx

KPTFILE = """apiVersion: kpt.dev/v1
kind: Kptfile
metadata:
  name: xxx
  annotations:
    config.kubernetes.io/local-config: "true"
info:
  description: xxx
"""

FOR_GVK = ObjectReference(api_version="a.x/v1", kind="A")
OWN_GVK = ObjectReference(api_version="b.x/v1", kind="B")
WATCH_GVK = ObjectReference(api_version="c.x/v1", kind="C")
FOR_REF = ObjectReference(api_version="a.x/v1", kind="A", name="fa")
OWN_REF = ObjectReference(api_version="b.x/v1", kind="B", name="fb")


def make_obj(ref, spec=None):
    data = {"apiVersion": ref.api_version, "kind": ref.kind, "metadata": {"name": ref.name}}
    if spec is not None:
        data["spec"] = spec
    return KubeObject.from_dict(data)


def make_stage(own_kind=ResourceKind.CHILD_REMOTE, populate=None, watch=None):
    cfg = Config(
        for_ref=FOR_GVK,
        owns={OWN_GVK: own_kind},
        watch=watch or {},
        populate_own_resources_fn=populate,
        update_resource_fn=update_resource_nop,
    )
    inv = Inventory(cfg)
    rl = ResourceList()
    kptfile = KptFile(KubeObject.parse(KPTFILE))
    rl.upsert(kptfile.obj)
    return ChildStage(cfg, inv, rl, kptfile)


def test_call_global_watches_passes_object():
    seen = []
    stage = make_stage(watch={WATCH_GVK: seen.append})
    kc = stage.inv.is_gvk_match(WATCH_GVK)
    watched = make_obj(ObjectReference(api_version="c.x/v1", kind="C", name="w"))
    stage.inv.set(kc, [ObjectReference(api_version="c.x/v1", kind="C", name="w")], watched, False, False)
    stage.call_global_watches()
    assert [obj.name for obj in seen] == ["w"]
    assert stage.inv.is_ready() is True


def test_call_global_watches_error_marks_not_ready():
    def boom(obj):
        raise ValueError("missing data")

    stage = make_stage(watch={WATCH_GVK: boom})
    kc = stage.inv.is_gvk_match(WATCH_GVK)
    ref = ObjectReference(api_version="c.x/v1", kind="C", name="w")
    stage.inv.set(kc, [ref], make_obj(ref), False, False)
    with pytest.raises(ValueError, match="missing data"):
        stage.call_global_watches()
    assert stage.inv.is_ready() is False


def test_populate_children_records_new_resource_with_owner():
    stage = make_stage(populate=lambda for_obj: [make_obj(OWN_REF, {"x": 1})])
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], make_obj(FOR_REF), False, False)
    stage.populate_children()
    owns = stage.inv.get(GvkKind.OWN, [FOR_REF, ObjectReference()])
    assert list(owns) == [OWN_REF]
    new = owns[OWN_REF].new_resource
    assert new.get_annotation(SPECIALIZER_OWNER) == get_condition_type(FOR_REF)
    assert owns[OWN_REF].existing_resource is None


def test_populate_children_error_fails_for_condition():
    def broken(for_obj):
        raise RuntimeError("nope")

    stage = make_stage(populate=broken)
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], make_obj(FOR_REF), False, False)
    stage.populate_children()
    condition = stage.kptfile.get_condition(get_condition_type(FOR_REF))
    assert condition.status == ConditionStatus.FALSE
    assert condition.message.startswith("stage1: cannot populate new resource err:")
    assert "nope" in condition.message
    assert stage.inv.get(GvkKind.FOR, [FOR_REF])[ObjectReference()].failed is True


def test_populate_children_unknown_gvk_fails_for_condition():
    other = ObjectReference(api_version="z.x/v1", kind="Z", name="z")
    stage = make_stage(populate=lambda for_obj: [make_obj(other)])
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], make_obj(FOR_REF), False, False)
    stage.populate_children()
    condition = stage.kptfile.get_condition(get_condition_type(FOR_REF))
    assert "cannot find new resource in gvkmap" in condition.message
    assert stage.inv.get(GvkKind.OWN, [FOR_REF, ObjectReference()]) == {}


def test_update_children_creates_remote_child():
    stage = make_stage()
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], make_obj(FOR_REF), False, False)
    own_kc = stage.inv.is_gvk_match(OWN_GVK)
    stage.inv.set(own_kc, [FOR_REF, OWN_REF], make_obj(OWN_REF, {"x": 1}), True, False)
    stage.update_children()

    for_condition = stage.kptfile.get_condition(get_condition_type(FOR_REF))
    assert for_condition.message == "update for condition"
    own_condition = stage.kptfile.get_condition(get_condition_type(OWN_REF))
    assert own_condition.reason == get_condition_type(FOR_REF)
    assert own_condition.message == "create initial resource"
    assert own_condition.status == ConditionStatus.FALSE
    assert [obj.name for obj in stage.rl.where_gvk("b.x/v1", "B")] == ["fb"]


def test_update_children_local_child_is_true():
    stage = make_stage(own_kind=ResourceKind.CHILD_LOCAL)
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], make_obj(FOR_REF), False, False)
    own_kc = stage.inv.is_gvk_match(OWN_GVK)
    stage.inv.set(own_kc, [FOR_REF, OWN_REF], make_obj(OWN_REF, {"x": 1}), True, False)
    stage.update_children()
    own_condition = stage.kptfile.get_condition(get_condition_type(OWN_REF))
    assert own_condition.status == ConditionStatus.TRUE
    existing = stage.inv.get(GvkKind.OWN, [FOR_REF, OWN_REF])[ObjectReference()]
    assert existing.existing_resource.name == "fb"


def test_update_children_not_ready_tears_down_missing_for():
    stage = make_stage()
    for_condition = Condition(type=get_condition_type(FOR_REF), status=ConditionStatus.FALSE)
    own_condition = Condition(
        type=get_condition_type(OWN_REF),
        status=ConditionStatus.TRUE,
        reason=get_condition_type(FOR_REF),
    )
    stage.kptfile.set_conditions(for_condition, own_condition)
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], for_condition, False, False)
    own_kc = stage.inv.is_gvk_match(OWN_GVK)
    stage.inv.set(own_kc, [FOR_REF, OWN_REF], make_obj(OWN_REF, {"x": 1}), False, False)
    stage.inv.set(own_kc, [FOR_REF, OWN_REF], own_condition, False, False)
    stage.inv.set_ready(False)

    stage.update_children()

    assert stage.kptfile.get_condition(get_condition_type(FOR_REF)) is None
    own_after = stage.kptfile.get_condition(get_condition_type(OWN_REF))
    assert own_after.message == "not ready"
    assert own_after.status == ConditionStatus.FALSE
    children = stage.rl.where_gvk("b.x/v1", "B")
    assert len(children) == 1
    assert children[0].get_annotation(SPECIALIZER_DELETE) == "true"


def test_update_children_same_spec_does_not_update_object():
    stage = make_stage()
    for_condition = Condition(type=get_condition_type(FOR_REF), status=ConditionStatus.FALSE)
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], make_obj(FOR_REF), False, False)
    stage.inv.set(GvkKindCtx(gvk_kind=GvkKind.FOR), [FOR_REF], for_condition, False, False)
    own_kc = stage.inv.is_gvk_match(OWN_GVK)
    stage.inv.set(own_kc, [FOR_REF, OWN_REF], make_obj(OWN_REF, {"x": 1}), False, False)
    stage.inv.set(own_kc, [FOR_REF, OWN_REF], make_obj(OWN_REF, {"x": 1}), True, False)
    stage.update_children()
    assert stage.rl.where_gvk("b.x/v1", "B") == []
    assert stage.kptfile.get_condition(get_condition_type(FOR_REF)) is None
    assert stage.kptfile.get_condition(get_condition_type(OWN_REF)).message == "create condition"