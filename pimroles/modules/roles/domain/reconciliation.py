from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Union

import structlog

from pimroles.modules.roles.domain.models import (
    CommonRoleAssignmentScheduleInstance,
    EligibleRole,
)
from pimroles.shared.core.constants import (
    ACTIVE_STATUS_BY_SOURCE,
    AZURE_PIM_MIN_ACTIVATION_TIME,
    SourceType,
)

logger = structlog.get_logger()

Assignment = CommonRoleAssignmentScheduleInstance
AssignmentsInput = Union[Iterable[Assignment], Mapping[str, Iterable[Assignment]]]
JoinRule = Callable[[EligibleRole, Assignment], bool]


class RoleStatusLookup(Mapping[str, Union[Assignment, None]]):
    """Read-only mapping of EligibleRole id to its current assignment, if any."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, Assignment | None]) -> None:
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, role_id: str) -> Assignment | None:
        return self._entries[role_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def assignment_for(self, role: EligibleRole) -> Assignment | None:
        return self._entries.get(role.id)


def _arm_rule(role: EligibleRole, assignment: Assignment) -> bool:
    return assignment.linked_role_eligibility_schedule_instance_id == role.schedule.id


def _triple_rule(role: EligibleRole, assignment: Assignment) -> bool:
    schedule = role.schedule
    return (
        assignment.role_definition_id == schedule.role_definition_id
        and assignment.scope == schedule.scope
        and assignment.principal_id == schedule.principal_id
    )


_JOIN_RULES: dict[SourceType, JoinRule] = {
    "arm": _arm_rule,
    "graph": _triple_rule,
    "group": _triple_rule,
}


def _candidates_for(
    role: EligibleRole, assignments: AssignmentsInput
) -> Sequence[Assignment]:
    if isinstance(assignments, Mapping):
        pool: Iterable[Assignment] = assignments.get(role.account_id, ())
    else:
        pool = assignments
    return [a for a in pool if a.source_type == role.source_type]


def find_assignment(
    role: EligibleRole, assignments: AssignmentsInput
) -> Assignment | None:
    """Return the single assignment matching `role`, or None when there are zero or several."""
    rule = _JOIN_RULES[role.source_type]
    matches = [a for a in _candidates_for(role, assignments) if rule(role, a)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        logger.debug(
            "role_status_ambiguous",
            role_id=role.id,
            source_type=role.source_type,
            candidates=len(matches),
        )
    return None


def reconcile(
    eligible_roles: Iterable[EligibleRole],
    active_assignments: AssignmentsInput,
) -> RoleStatusLookup:
    """
    Join eligible roles to their active assignments.

    `active_assignments` is either a flat iterable or a mapping of account id
    to that account's assignments; with a mapping, a role only matches
    assignments fetched with its own account.
    """
    if not isinstance(active_assignments, Mapping):
        active_assignments = list(active_assignments)
    else:
        active_assignments = {k: list(v) for k, v in active_assignments.items()}

    entries: dict[str, Assignment | None] = {}
    for role in eligible_roles:
        entries[role.id] = find_assignment(role, active_assignments)

    logger.debug(
        "role_status_reconciled",
        roles=len(entries),
        matched=sum(1 for value in entries.values() if value is not None),
    )
    return RoleStatusLookup(entries)


def is_activated(lookup: RoleStatusLookup, role: EligibleRole) -> bool:
    assignment = lookup.assignment_for(role)
    if assignment is None:
        return False
    return assignment.status == ACTIVE_STATUS_BY_SOURCE[role.source_type]


def is_newly_activated(
    lookup: RoleStatusLookup, role: EligibleRole, now: datetime | None = None
) -> bool:
    """
    True while an activated role is younger than Azure PIM's minimum activation
    time; such roles cannot be deactivated yet.
    """
    if not is_activated(lookup, role):
        return False
    assignment = lookup.assignment_for(role)
    start = assignment.start_date_time if assignment else None
    if start is None:
        return False
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current - start < AZURE_PIM_MIN_ACTIVATION_TIME
