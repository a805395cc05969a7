from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from pimroles.core.exceptions import RoleDeactivationError
from pimroles.modules.roles.domain.models import CommonRoleActivateRequest, EligibleRole
from pimroles.modules.roles.domain.normalizer import get_field
from pimroles.modules.roles.domain.reconciliation import (
    RoleStatusLookup,
    is_activated,
    is_newly_activated,
)

SELF_ACTIVATE = "SelfActivate"
SELF_DEACTIVATE = "SelfDeactivate"


def _iso_duration(minutes: int) -> str:
    hours, remainder = divmod(int(minutes), 60)
    if hours and remainder:
        return f"PT{hours}H{remainder}M"
    if hours:
        return f"PT{hours}H"
    return f"PT{remainder}M"


def _iso_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def build_activation_request(
    role: EligibleRole,
    *,
    duration_minutes: int,
    justification: str | None = None,
    ticket_number: str | None = None,
    start_date_time: datetime | None = None,
) -> CommonRoleActivateRequest:
    """Build a self-activation request for an eligible role."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    schedule = role.schedule
    linked_schedule_id = None
    if schedule.source_type == "arm":
        linked_schedule_id = get_field(schedule.original, "roleEligibilityScheduleId") or None

    return CommonRoleActivateRequest(
        id=str(uuid4()),
        scope=schedule.scope,
        role_definition_id=schedule.role_definition_id,
        principal_id=schedule.principal_id,
        duration_minutes=duration_minutes,
        source_type=schedule.source_type,
        request_type=SELF_ACTIVATE,
        justification=justification,
        ticket_number=ticket_number,
        start_date_time=start_date_time,
        linked_role_eligibility_schedule_id=linked_schedule_id,
    )


def build_deactivation_request(
    role: EligibleRole,
    *,
    status: RoleStatusLookup | None = None,
    now: datetime | None = None,
    justification: str | None = None,
) -> CommonRoleActivateRequest:
    """
    Build a self-deactivation request for an activated eligible role.

    With a status lookup the role must be active and past the PIM minimum
    activation time; Azure rejects earlier deactivations.
    """
    if status is not None:
        if not is_activated(status, role):
            raise RoleDeactivationError(role.schedule.id, "role is not activated")
        if is_newly_activated(status, role, now=now):
            raise RoleDeactivationError(
                role.schedule.id, "role was activated less than 5 minutes ago"
            )

    schedule = role.schedule
    return CommonRoleActivateRequest(
        id=str(uuid4()),
        scope=schedule.scope,
        role_definition_id=schedule.role_definition_id,
        principal_id=schedule.principal_id,
        duration_minutes=0,
        source_type=schedule.source_type,
        request_type=SELF_DEACTIVATE,
        justification=justification,
    )


def to_arm_request(request: CommonRoleActivateRequest) -> dict[str, Any]:
    """Render an ARM roleAssignmentScheduleRequests PUT body."""
    if request.request_type == SELF_DEACTIVATE:
        return {
            "properties": {
                "principalId": request.principal_id,
                "roleDefinitionId": request.role_definition_id,
                "requestType": SELF_DEACTIVATE,
                "justification": request.justification,
            }
        }
    properties: dict[str, Any] = {
        "principalId": request.principal_id,
        "roleDefinitionId": request.role_definition_id,
        "requestType": request.request_type,
        "linkedRoleEligibilityScheduleId": request.linked_role_eligibility_schedule_id,
        "justification": request.justification,
        "scheduleInfo": {
            "startDateTime": _iso_datetime(request.start_date_time),
            "expiration": {
                "type": "AfterDuration",
                "duration": _iso_duration(request.duration_minutes),
            },
        },
    }
    if request.ticket_number:
        properties["ticketInfo"] = {"ticketNumber": request.ticket_number}
    return {"properties": properties}


def to_graph_request(request: CommonRoleActivateRequest) -> dict[str, Any]:
    """Render a Graph unifiedRoleAssignmentScheduleRequest body."""
    if request.request_type == SELF_DEACTIVATE:
        return {
            "action": "selfDeactivate",
            "principalId": request.principal_id,
            "roleDefinitionId": request.role_definition_id,
            "directoryScopeId": request.scope,
            "justification": request.justification,
        }
    body: dict[str, Any] = {
        "action": "selfActivate",
        "principalId": request.principal_id,
        "roleDefinitionId": request.role_definition_id,
        "directoryScopeId": request.scope,
        "justification": request.justification,
        "scheduleInfo": {
            "startDateTime": _iso_datetime(request.start_date_time),
            "expiration": {
                "type": "afterDuration",
                "duration": _iso_duration(request.duration_minutes),
            },
        },
    }
    if request.ticket_number:
        body["ticketInfo"] = {"ticketNumber": request.ticket_number}
    return body


def to_group_request(request: CommonRoleActivateRequest) -> dict[str, Any]:
    """Render a PIM for Groups assignmentScheduleRequest body (explicit end time)."""
    if request.request_type == SELF_DEACTIVATE:
        return {
            "action": "selfDeactivate",
            "accessId": request.role_definition_id,
            "principalId": request.principal_id,
            "groupId": request.scope,
            "justification": request.justification,
        }
    start = request.start_date_time or datetime.now(timezone.utc)
    end = start + timedelta(minutes=request.duration_minutes)
    return {
        "action": "selfActivate",
        "accessId": request.role_definition_id,
        "principalId": request.principal_id,
        "groupId": request.scope,
        "justification": request.justification,
        "scheduleInfo": {
            "startDateTime": _iso_datetime(start),
            "expiration": {
                "type": "afterDateTime",
                "endDateTime": _iso_datetime(end),
            },
        },
    }
