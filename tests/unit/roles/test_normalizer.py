from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from pimroles.core.exceptions import IncompleteProviderRecordError
from pimroles.modules.roles.domain.models import EligibleRole
from pimroles.modules.roles.domain.normalizer import (
    from_arm_assignment,
    from_arm_schedule,
    from_graph_assignment,
    from_graph_schedule,
    from_group_assignment,
    from_group_schedule,
    get_field,
    normalize_assignment,
    normalize_schedule,
)
from pimroles.modules.roles.domain.reconciliation import is_newly_activated, reconcile

ARM_SCOPE = "/subscriptions/sub-1/resourceGroups/rg-app"
ARM_ROLE = "/subscriptions/sub-1/providers/Microsoft.Authorization/roleDefinitions/contributor"


def arm_eligibility(**overrides):
    record = {
        "id": "elig-1",
        "scope": ARM_SCOPE,
        "roleDefinitionId": ARM_ROLE,
        "principalId": "user-1",
        "startDateTime": "2026-01-01T08:00:00Z",
        "endDateTime": None,
        "expandedProperties": {
            "roleDefinition": {"displayName": "Contributor"},
            "scope": {"displayName": "rg-app", "type": "resourcegroup"},
            "principal": {"displayName": "Alice"},
        },
    }
    record.update(overrides)
    return record


def test_arm_schedule_maps_expanded_properties() -> None:
    schedule = from_arm_schedule(arm_eligibility())

    assert schedule.id == "elig-1"
    assert schedule.scope == ARM_SCOPE
    assert schedule.role_definition_id == ARM_ROLE
    assert schedule.role_definition_display_name == "Contributor"
    assert schedule.scope_display_name == "rg-app"
    assert schedule.scope_type == "resourcegroup"
    assert schedule.principal_display_name == "Alice"
    assert schedule.source_type == "arm"
    assert schedule.start_date_time == datetime(2026, 1, 1, 8, tzinfo=timezone.utc)
    assert schedule.end_date_time is None


def test_arm_schedule_without_expanded_properties_uses_sentinels() -> None:
    schedule = from_arm_schedule(arm_eligibility(expandedProperties=None))

    assert schedule.role_definition_display_name == "Unknown Role"
    assert schedule.scope_display_name == "Unknown Scope"
    assert schedule.principal_display_name is None


def test_arm_schedule_accepts_rest_envelope() -> None:
    body = arm_eligibility()
    record = {"id": body.pop("id"), "name": "elig-1", "properties": body}

    schedule = from_arm_schedule(record)

    assert schedule.id == "elig-1"
    assert schedule.role_definition_display_name == "Contributor"
    assert schedule.scope == ARM_SCOPE


def test_arm_schedule_accepts_snake_case_sdk_shape() -> None:
    record = {
        "id": "elig-2",
        "scope": ARM_SCOPE,
        "role_definition_id": ARM_ROLE,
        "principal_id": "user-1",
        "expanded_properties": {"role_definition": {"display_name": "Reader"}},
    }

    schedule = from_arm_schedule(record)

    assert schedule.role_definition_id == ARM_ROLE
    assert schedule.role_definition_display_name == "Reader"


def test_arm_schedule_accepts_sdk_objects_with_as_dict() -> None:
    class SdkModel:
        def as_dict(self):
            return arm_eligibility()

    assert from_arm_schedule(SdkModel()).id == "elig-1"


@pytest.mark.parametrize("missing", ["roleDefinitionId", "principalId"])
def test_arm_schedule_missing_mandatory_field(missing: str) -> None:
    record = arm_eligibility()
    del record[missing]

    with pytest.raises(IncompleteProviderRecordError) as exc_info:
        from_arm_schedule(record)
    assert exc_info.value.field == missing
    assert exc_info.value.source_type == "arm"


def test_arm_assignment_carries_status_and_link() -> None:
    assignment = from_arm_assignment(
        arm_eligibility(
            id="assign-1",
            status="Provisioned",
            linkedRoleEligibilityScheduleInstanceId="elig-1",
        )
    )

    assert assignment.status == "Provisioned"
    assert assignment.linked_role_eligibility_schedule_instance_id == "elig-1"


def test_invalid_timestamp_becomes_none() -> None:
    schedule = from_arm_schedule(arm_eligibility(startDateTime="not-a-date"))
    assert schedule.start_date_time is None


def graph_eligibility(**overrides):
    record = {
        "id": "g-elig-1",
        "roleDefinitionId": "62e90394-69f5-4237-9190-012177145e10",
        "principalId": "user-1",
        "directoryScopeId": "/",
        "memberType": "Direct",
        "roleDefinition": {"displayName": "Global Administrator"},
        "principal": {"displayName": "Alice"},
    }
    record.update(overrides)
    return record


def test_graph_schedule_directory_scope() -> None:
    schedule = from_graph_schedule(graph_eligibility())

    assert schedule.scope == "/"
    assert schedule.scope_display_name == "Directory"
    assert schedule.scope_type == "directory"
    assert schedule.role_definition_display_name == "Global Administrator"
    assert schedule.source_type == "graph"


def test_graph_schedule_missing_directory_scope_defaults_to_root() -> None:
    record = graph_eligibility()
    del record["directoryScopeId"]
    assert from_graph_schedule(record).scope == "/"


def test_graph_schedule_administrative_unit_scope() -> None:
    schedule = from_graph_schedule(graph_eligibility(directoryScopeId="/administrativeUnits/au-1"))

    assert schedule.scope == "/administrativeUnits/au-1"
    assert schedule.scope_display_name == "/administrativeUnits/au-1"
    assert schedule.scope_type is None


def test_graph_schedule_without_role_definition_uses_sentinel() -> None:
    schedule = from_graph_schedule(graph_eligibility(roleDefinition=None))
    assert schedule.role_definition_display_name == "Unknown Role"


def test_graph_assignment_status_from_assignment_type() -> None:
    assignment = from_graph_assignment(graph_eligibility(id="g-a-1", assignmentType="Activated"))

    assert assignment.status == "Activated"
    assert assignment.linked_role_eligibility_schedule_instance_id is None


def group_eligibility(**overrides):
    record = {
        "id": "grp-elig-1",
        "accessId": "member",
        "groupId": "group-1",
        "principalId": "user-1",
        "group": {"displayName": "Ops Admins"},
    }
    record.update(overrides)
    return record


def test_group_schedule_labels_membership() -> None:
    schedule = from_group_schedule(group_eligibility())

    assert schedule.role_definition_id == "member"
    assert schedule.role_definition_display_name == "Member of Ops Admins"
    assert schedule.scope == "group-1"
    assert schedule.scope_display_name == "Ops Admins"
    assert schedule.scope_type == "group"
    assert schedule.source_type == "group"


def test_group_schedule_owner_without_group_expansion() -> None:
    schedule = from_group_schedule(group_eligibility(accessId="owner", group=None))

    assert schedule.role_definition_display_name == "Owner of Unknown Group"
    assert schedule.scope_display_name == "Unknown Group"


def test_group_schedule_requires_access_id() -> None:
    record = group_eligibility()
    del record["accessId"]

    with pytest.raises(IncompleteProviderRecordError) as exc_info:
        from_group_schedule(record)
    assert exc_info.value.field == "accessId"


def test_group_assignment_status() -> None:
    assignment = from_group_assignment(group_eligibility(assignmentType="Assigned"))
    assert assignment.status == "Assigned"


def test_dispatch_by_source_type() -> None:
    assert normalize_schedule("graph", graph_eligibility()).source_type == "graph"
    assert normalize_assignment("group", group_eligibility()).source_type == "group"

    with pytest.raises(ValueError):
        normalize_schedule("aws", {})  # type: ignore[arg-type]


def test_original_record_is_kept_but_not_compared() -> None:
    first = from_arm_schedule(arm_eligibility())
    second = from_arm_schedule(arm_eligibility(extra="value"))

    assert first.original["id"] == "elig-1"
    assert first == second


def test_get_field_walks_paths() -> None:
    record = {"properties": {"expandedProperties": {"scope": {"displayName": "x"}}}}

    assert get_field(record, "expandedProperties", "scope", "displayName") == "x"
    assert get_field(record, "expandedProperties", "missing", "displayName") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-01-20T16:19:38.45Z", datetime(2025, 1, 20, 16, 19, 38, 450000, tzinfo=timezone.utc)),
        ("2025-01-20T16:19:38.1234567Z", datetime(2025, 1, 20, 16, 19, 38, 123456, tzinfo=timezone.utc)),
        ("2025-01-20T16:19:38.5+00:00", datetime(2025, 1, 20, 16, 19, 38, 500000, tzinfo=timezone.utc)),
        ("2025-01-20T16:19:38Z", datetime(2025, 1, 20, 16, 19, 38, tzinfo=timezone.utc)),
    ],
)
def test_azure_timestamp_precision_feeds_the_five_minute_rule(raw: str, expected: datetime) -> None:
    schedule = from_arm_schedule(arm_eligibility())
    active = from_arm_assignment(
        arm_eligibility(
            id="assign-1",
            status="Provisioned",
            linkedRoleEligibilityScheduleInstanceId="elig-1",
            startDateTime=raw,
        )
    )
    role = EligibleRole("acct-1", schedule)
    lookup = reconcile([role], [active])

    assert active.start_date_time == expected
    assert active.start_date_time.tzinfo is not None
    assert is_newly_activated(lookup, role, now=expected + timedelta(minutes=4, seconds=59))
    assert not is_newly_activated(lookup, role, now=expected + timedelta(minutes=5, seconds=1))
