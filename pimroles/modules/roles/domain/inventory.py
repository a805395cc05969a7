from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

import structlog

from pimroles.core.exceptions import IncompleteProviderRecordError
from pimroles.modules.roles.domain.models import (
    CommonRoleAssignmentScheduleInstance,
    EligibleRole,
)
from pimroles.modules.roles.domain.normalizer import normalize_assignment, normalize_schedule
from pimroles.modules.roles.domain.reconciliation import (
    RoleStatusLookup,
    is_activated,
    is_newly_activated,
    reconcile,
)
from pimroles.shared.core.async_utils import source_result
from pimroles.shared.core.constants import SourceType
from pimroles.shared.core.credentials import AzureAccount
from pimroles.shared.core.sources import RoleSource

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class SourceFailure:
    account_id: str
    source_type: SourceType
    operation: str
    error: str


@dataclass(frozen=True)
class RoleSnapshot:
    """One fetch cycle: eligible roles, active assignments and their reconciliation."""

    eligible_roles: tuple[EligibleRole, ...]
    assignments_by_account: Mapping[str, tuple[CommonRoleAssignmentScheduleInstance, ...]]
    status: RoleStatusLookup
    failed_sources: tuple[SourceFailure, ...] = field(default_factory=tuple)
    skipped_records: int = 0

    def is_activated(self, role: EligibleRole) -> bool:
        return is_activated(self.status, role)

    def is_newly_activated(self, role: EligibleRole, now: datetime | None = None) -> bool:
        return is_newly_activated(self.status, role, now)


def _normalize_all(
    records: Iterable[Any],
    normalizer: Callable[[Any], T],
    *,
    account_id: str,
    source_type: SourceType,
) -> tuple[list[T], int]:
    normalized: list[T] = []
    skipped = 0
    for record in records:
        try:
            normalized.append(normalizer(record))
        except IncompleteProviderRecordError as e:
            skipped += 1
            logger.warning(
                "provider_record_skipped",
                account_id=account_id,
                source_type=source_type,
                field=e.field,
                error=e.message,
            )
    return normalized, skipped


class RoleInventory:
    """
    Fetches eligibility and assignment records for every account from every
    provider concurrently. A provider that fails for an account contributes
    nothing for that account; the others are reconciled as usual.
    """

    def __init__(self, sources: Sequence[RoleSource]) -> None:
        self.sources = tuple(sources)

    async def _fetch(
        self, account: AzureAccount, source: RoleSource, operation: str
    ) -> tuple[Sequence[Any], SourceFailure | None]:
        try:
            records = await source_result(getattr(source, operation)(account))
            return list(records or ()), None
        except Exception as e:
            logger.error(
                "provider_fetch_failed",
                account_id=account.account_id,
                source_type=source.source_type,
                operation=operation,
                error=str(e),
            )
            return [], SourceFailure(
                account_id=account.account_id,
                source_type=source.source_type,
                operation=operation,
                error=str(e),
            )

    async def snapshot(self, accounts: Sequence[AzureAccount]) -> RoleSnapshot:
        jobs = [
            (account, source, operation)
            for account in accounts
            for source in self.sources
            for operation in (
                "list_eligibility_schedule_instances",
                "list_assignment_schedule_instances",
            )
        ]
        results = await asyncio.gather(
            *(self._fetch(account, source, operation) for account, source, operation in jobs)
        )

        eligible_roles: list[EligibleRole] = []
        assignments: dict[str, list[CommonRoleAssignmentScheduleInstance]] = {
            account.account_id: [] for account in accounts
        }
        failures: list[SourceFailure] = []
        skipped_total = 0

        for (account, source, operation), (records, failure) in zip(jobs, results):
            if failure is not None:
                failures.append(failure)
                continue
            account_id = account.account_id
            source_type = source.source_type
            if operation == "list_eligibility_schedule_instances":
                schedules, skipped = _normalize_all(
                    records,
                    lambda r: normalize_schedule(source_type, r),
                    account_id=account_id,
                    source_type=source_type,
                )
                eligible_roles.extend(
                    EligibleRole.from_schedule(account_id, schedule) for schedule in schedules
                )
            else:
                active, skipped = _normalize_all(
                    records,
                    lambda r: normalize_assignment(source_type, r),
                    account_id=account_id,
                    source_type=source_type,
                )
                assignments[account_id].extend(active)
            skipped_total += skipped

        frozen_assignments = {k: tuple(v) for k, v in assignments.items()}
        status = reconcile(eligible_roles, frozen_assignments)
        logger.info(
            "role_snapshot_built",
            accounts=len(accounts),
            eligible_roles=len(eligible_roles),
            failed_sources=len(failures),
            skipped_records=skipped_total,
        )
        return RoleSnapshot(
            eligible_roles=tuple(eligible_roles),
            assignments_by_account=frozen_assignments,
            status=status,
            failed_sources=tuple(failures),
            skipped_records=skipped_total,
        )
