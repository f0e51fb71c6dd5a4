from kptcond.objectref import Condition, ConditionStatus
from kptcond.specialization import (
    ConditionReason,
    failed,
    initialize,
    not_ready,
    ready,
    specialization_condition_type,
)


def test_condition_type():
    assert specialization_condition_type() == "nephio.org.Specializer.specialize"


def test_all_conditions_share_the_type():
    types = {c.type for c in (initialize(), failed("x"), not_ready(), ready())}
    assert types == {specialization_condition_type()}


def test_initialize():
    c = initialize()
    assert (c.status, c.reason, c.message) == (ConditionStatus.FALSE, "Specialize", "initialized")


def test_failed_carries_message():
    c = failed("broken")
    assert (c.status, c.reason, c.message) == (ConditionStatus.FALSE, "Failed", "broken")


def test_not_ready():
    c = not_ready()
    assert (c.status, c.reason, c.message) == (ConditionStatus.FALSE, "Specialize", "not ready")


def test_ready_round_trip():
    c = ready()
    assert c.status == ConditionStatus.TRUE
    assert c.reason == ConditionReason.READY.value
    assert Condition.from_dict(c.to_dict()) == c