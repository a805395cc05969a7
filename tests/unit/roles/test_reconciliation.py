from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pimroles.modules.roles.domain.models import (
    CommonRoleAssignmentScheduleInstance,
    CommonRoleSchedule,
    EligibleRole,
)
from pimroles.modules.roles.domain.reconciliation import (
    is_activated,
    is_newly_activated,
    reconcile,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def schedule(source_type="arm", id="elig-1", scope="/subscriptions/sub-1", role="role-1", principal="user-1"):
    return CommonRoleSchedule(
        id=id,
        scope=scope,
        role_definition_id=role,
        role_definition_display_name="Contributor",
        scope_display_name="sub-1",
        principal_id=principal,
        source_type=source_type,
    )


def assignment(
    source_type="arm",
    id="assign-1",
    scope="/subscriptions/sub-1",
    role="role-1",
    principal="user-1",
    status="Provisioned",
    linked=None,
    start=None,
):
    return CommonRoleAssignmentScheduleInstance(
        id=id,
        scope=scope,
        role_definition_id=role,
        role_definition_display_name="Contributor",
        scope_display_name="sub-1",
        principal_id=principal,
        source_type=source_type,
        status=status,
        linked_role_eligibility_schedule_instance_id=linked,
        start_date_time=start,
    )


def test_eligible_role_id_combines_account_source_and_schedule() -> None:
    role = EligibleRole.from_schedule("acct-1", schedule(id="elig-9"))
    assert role.id == "acct-1-arm-elig-9"
    assert role.source_type == "arm"


def test_arm_roles_join_on_linked_eligibility_instance() -> None:
    role = EligibleRole("acct-1", schedule(id="elig-1"))
    active = assignment(linked="elig-1")
    unrelated = assignment(id="assign-2", linked="elig-other")

    lookup = reconcile([role], [unrelated, active])

    assert lookup[role.id] is active
    assert is_activated(lookup, role)


def test_arm_triple_match_without_link_does_not_join() -> None:
    role = EligibleRole("acct-1", schedule())
    lookup = reconcile([role], [assignment(linked=None)])

    assert lookup[role.id] is None
    assert not is_activated(lookup, role)


@pytest.mark.parametrize("source_type", ["graph", "group"])
def test_graph_and_group_roles_join_on_triple(source_type: str) -> None:
    role = EligibleRole("acct-1", schedule(source_type=source_type, scope="/"))
    active = assignment(source_type=source_type, scope="/", status="Activated")

    lookup = reconcile([role], [active])

    assert lookup.assignment_for(role) is active
    assert is_activated(lookup, role)


def test_triple_must_match_all_three_fields() -> None:
    role = EligibleRole("acct-1", schedule(source_type="graph", scope="/"))
    candidates = [
        assignment(source_type="graph", scope="/administrativeUnits/au", status="Activated"),
        assignment(source_type="graph", scope="/", role="role-2", status="Activated"),
        assignment(source_type="graph", scope="/", principal="user-2", status="Activated"),
    ]
    assert reconcile([role], candidates)[role.id] is None


def test_join_never_crosses_source_types() -> None:
    role = EligibleRole("acct-1", schedule(source_type="group", scope="group-1"))
    lookup = reconcile([role], [assignment(source_type="graph", scope="group-1", status="Activated")])
    assert lookup[role.id] is None


def test_multiple_candidates_resolve_to_no_match() -> None:
    role = EligibleRole("acct-1", schedule(source_type="graph", scope="/"))
    lookup = reconcile(
        [role],
        [
            assignment(source_type="graph", id="a", scope="/", status="Activated"),
            assignment(source_type="graph", id="b", scope="/", status="Activated"),
        ],
    )
    assert lookup[role.id] is None


def test_assignments_keyed_by_account_stay_within_account() -> None:
    mine = EligibleRole("acct-1", schedule(id="elig-1"))
    theirs = EligibleRole("acct-2", schedule(id="elig-1"))

    lookup = reconcile(
        [mine, theirs],
        {"acct-1": [assignment(linked="elig-1")], "acct-2": []},
    )

    assert lookup[mine.id] is not None
    assert lookup[theirs.id] is None


def test_activation_status_is_provider_specific() -> None:
    arm_role = EligibleRole("acct-1", schedule(id="elig-1"))
    graph_role = EligibleRole("acct-1", schedule(source_type="graph", id="g-1", scope="/"))
    lookup = reconcile(
        [arm_role, graph_role],
        [
            assignment(linked="elig-1", status="Activated"),
            assignment(source_type="graph", scope="/", status="Assigned"),
        ],
    )

    assert not is_activated(lookup, arm_role)
    assert not is_activated(lookup, graph_role)


def test_lookup_is_read_only() -> None:
    role = EligibleRole("acct-1", schedule())
    lookup = reconcile([role], [])

    with pytest.raises(TypeError):
        lookup[role.id] = None  # type: ignore[index]
    assert len(lookup) == 1
    assert list(lookup) == [role.id]


@pytest.mark.parametrize(
    ("age", "expected"),
    [
        (timedelta(minutes=4, seconds=59), True),
        (timedelta(minutes=5), False),
        (timedelta(minutes=5, seconds=1), False),
    ],
)
def test_newly_activated_boundary(age: timedelta, expected: bool) -> None:
    role = EligibleRole("acct-1", schedule())
    lookup = reconcile([role], [assignment(linked="elig-1", start=NOW - age)])

    assert is_newly_activated(lookup, role, now=NOW) is expected


def test_newly_activated_requires_activation_and_start_time() -> None:
    role = EligibleRole("acct-1", schedule())
    inactive = reconcile([role], [assignment(linked="elig-1", status="Revoked", start=NOW)])
    no_start = reconcile([role], [assignment(linked="elig-1")])

    assert not is_newly_activated(inactive, role, now=NOW)
    assert not is_newly_activated(no_start, role, now=NOW)
