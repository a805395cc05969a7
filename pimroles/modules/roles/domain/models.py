from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from pimroles.shared.core.constants import SourceType


@dataclass(frozen=True)
class CommonRoleSchedule:
    """An eligible role, unified across ARM, Graph directory roles and PIM for Groups."""

    id: str
    scope: str
    role_definition_id: str
    role_definition_display_name: str
    scope_display_name: str
    principal_id: str
    source_type: SourceType
    scope_type: str | None = None
    principal_display_name: str | None = None
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    original: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class CommonRoleAssignmentScheduleInstance:
    """An active role assignment, unified across the three providers."""

    id: str
    scope: str
    role_definition_id: str
    role_definition_display_name: str
    scope_display_name: str
    principal_id: str
    source_type: SourceType
    scope_type: str | None = None
    principal_display_name: str | None = None
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    status: str | None = None
    # ARM only: join key back to the eligibility schedule instance
    linked_role_eligibility_schedule_instance_id: str | None = None
    original: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class EligibleRole:
    """A role schedule and the account it was fetched with."""

    account_id: str
    schedule: CommonRoleSchedule

    @property
    def id(self) -> str:
        return f"{self.account_id}-{self.schedule.source_type}-{self.schedule.id}"

    @property
    def source_type(self) -> SourceType:
        return self.schedule.source_type

    @classmethod
    def from_schedule(cls, account_id: str, schedule: CommonRoleSchedule) -> "EligibleRole":
        return cls(account_id=account_id, schedule=schedule)


@dataclass(frozen=True)
class CommonRoleActivateRequest:
    """A provider-agnostic self-activation request for an eligible role."""

    id: str
    scope: str
    role_definition_id: str
    principal_id: str
    duration_minutes: int
    source_type: SourceType
    request_type: str = "SelfActivate"
    justification: str | None = None
    ticket_number: str | None = None
    start_date_time: datetime | None = None
    # ARM only
    linked_role_eligibility_schedule_id: str | None = None
