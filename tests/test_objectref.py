import pytest

from kptcond.objectref import (
    Condition,
    ConditionStatus,
    ObjectReference,
    get_condition_by_ref,
    get_condition_type,
    get_gvkn_from_condition_type,
    refs_valid,
)


@pytest.mark.parametrize(
    "api_version,kind,name,want",
    [
        ("a.a/a", "b", "c", "a.a/a.b.c"),
        ("", "b", "c", "b.c"),
        ("a.a", "b", "c", "a.a.b.c"),
        ("", "", "c", "c"),
        ("", "", "", ""),
    ],
)
def test_get_condition_type(api_version, kind, name, want):
    ref = ObjectReference(api_version=api_version, kind=kind, name=name)
    assert get_condition_type(ref) == want


def test_get_condition_type_ignores_invalid_api_version():
    assert get_condition_type(ObjectReference("a/b/c", "K", "n")) == "K.n"


def test_gvkn_from_condition_type():
    assert get_gvkn_from_condition_type("a.a/v1.B.c") == ObjectReference("a.a/v1", "B", "c")


def test_gvkn_from_condition_type_invalid_is_empty():
    assert get_gvkn_from_condition_type("abc").is_empty()


def test_condition_type_round_trip():
    ref = ObjectReference("nephio.org/v1", "Specializer", "specialize")
    assert get_gvkn_from_condition_type(get_condition_type(ref)) == ref


def test_validation():
    with pytest.raises(ValueError):
        ObjectReference().validate_gvk()
    with pytest.raises(ValueError):
        ObjectReference("a", "a").validate_gvkn()
    assert ObjectReference("*", "*").is_wildcard()
    assert ObjectReference("a", "b", "c").gvk_ref() == ObjectReference("a", "b")


def test_refs_valid():
    a = ObjectReference("a", "a", "a")
    assert refs_valid([a])
    assert refs_valid([a, a])
    assert not refs_valid([])
    assert not refs_valid([a, a, a])
    assert not refs_valid([ObjectReference("a", "a")])


def test_get_condition_by_ref_child():
    refs = [ObjectReference("a.a/v1", "A", "x"), ObjectReference("b.b/v1", "B", "y")]
    cond = get_condition_by_ref(refs, "msg", ConditionStatus.TRUE, None)
    assert cond == Condition(type="b.b/v1.B.y", status=ConditionStatus.TRUE, reason="a.a/v1.A.x", message="msg")


def test_get_condition_by_ref_for():
    cond = get_condition_by_ref([ObjectReference("a.a/v1", "A", "x")], "", ConditionStatus.FALSE, None)
    assert cond.type == "a.a/v1.A.x"
    assert cond.reason == ""


def test_get_condition_by_ref_invalid():
    with pytest.raises(ValueError):
        get_condition_by_ref([ObjectReference()], "m", ConditionStatus.FALSE, None)


def test_condition_dict_round_trip():
    cond = Condition(type="a", status=ConditionStatus.FALSE, reason="r", message="m")
    assert cond.to_dict() == {"type": "a", "status": "False", "reason": "r", "message": "m"}
    assert Condition.from_dict(cond.to_dict()) == cond
    assert Condition.from_dict({"type": "x", "status": True}).status is ConditionStatus.TRUE