"""
Provider record normalization.

Maps the three provider-native shapes into CommonRoleSchedule (eligible) and
CommonRoleAssignmentScheduleInstance (active):

- arm:   Azure Resource Manager roleEligibilityScheduleInstances /
         roleAssignmentScheduleInstances, flat (SDK) or REST envelope
         (``{"id": ..., "properties": {...}}``) shape.
- graph: Microsoft Graph unifiedRoleEligibilityScheduleInstance /
         unifiedRoleAssignmentScheduleInstance with roleDefinition and
         principal expanded. Directory-wide scope is ``/``.
- group: Microsoft Graph PIM for Groups eligibility/assignment schedule
         instances with group and principal expanded. Scope is the group id.

Only the role definition id and principal id are mandatory; anything else
missing falls back to a sentinel or None.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from pimroles.core.exceptions import IncompleteProviderRecordError
from pimroles.modules.roles.domain.models import (
    CommonRoleAssignmentScheduleInstance,
    CommonRoleSchedule,
)
from pimroles.shared.core.constants import (
    DIRECTORY_SCOPE,
    DIRECTORY_SCOPE_DISPLAY_NAME,
    UNKNOWN_GROUP,
    UNKNOWN_ROLE,
    UNKNOWN_SCOPE,
    SourceType,
)

logger = structlog.get_logger()

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
# Azure emits 1 to 7 fractional digits; fromisoformat on 3.10 only takes 3 or 6
_FRACTIONAL_SECONDS = re.compile(r"(?<=:\d\d)\.(\d+)")


def _as_mapping(record: Any) -> Mapping[str, Any]:
    if isinstance(record, Mapping):
        return record
    as_dict = getattr(record, "as_dict", None)
    if callable(as_dict):
        return as_dict()
    raise TypeError(f"Unsupported provider record type: {type(record).__name__}")


def _lookup_key(container: Mapping[str, Any], key: str) -> Any:
    if key in container:
        return container[key]
    snake = _CAMEL_BOUNDARY.sub("_", key).lower()
    return container.get(snake)


def get_field(record: Mapping[str, Any], *path: str) -> Any:
    """Walk a key path, accepting camelCase or snake_case and an ARM ``properties`` envelope."""
    value: Any = _lookup_key(record, path[0])
    if value is None:
        properties = _lookup_key(record, "properties")
        if isinstance(properties, Mapping):
            value = _lookup_key(properties, path[0])
    for key in path[1:]:
        if not isinstance(value, Mapping):
            return None
        value = _lookup_key(value, key)
    return value


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _iso_text(value: Any) -> str:
    text = str(value).strip().replace("Z", "+00:00")
    return _FRACTIONAL_SECONDS.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1
    )


def _parse_datetime(value: Any, *, field: str, record_id: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(_iso_text(value))
        except ValueError:
            logger.warning(
                "provider_record_timestamp_invalid",
                field=field,
                record_id=record_id,
                raw_val=str(value),
            )
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _require(value: Any, *, source_type: SourceType, field: str, record_id: str) -> str:
    text = _text(value)
    if text is None:
        raise IncompleteProviderRecordError(source_type, field, record_id)
    return text


def _arm_common_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    record_id = _text(get_field(record, "id")) or ""
    return {
        "id": record_id,
        "scope": _text(get_field(record, "scope")) or "",
        "role_definition_id": _require(
            get_field(record, "roleDefinitionId"),
            source_type="arm",
            field="roleDefinitionId",
            record_id=record_id,
        ),
        "role_definition_display_name": _text(
            get_field(record, "expandedProperties", "roleDefinition", "displayName")
        )
        or UNKNOWN_ROLE,
        "scope_display_name": _text(
            get_field(record, "expandedProperties", "scope", "displayName")
        )
        or UNKNOWN_SCOPE,
        "scope_type": _text(get_field(record, "expandedProperties", "scope", "type")),
        "principal_id": _require(
            get_field(record, "principalId"),
            source_type="arm",
            field="principalId",
            record_id=record_id,
        ),
        "principal_display_name": _text(
            get_field(record, "expandedProperties", "principal", "displayName")
        ),
        "start_date_time": _parse_datetime(
            get_field(record, "startDateTime"), field="startDateTime", record_id=record_id
        ),
        "end_date_time": _parse_datetime(
            get_field(record, "endDateTime"), field="endDateTime", record_id=record_id
        ),
        "source_type": "arm",
        "original": record,
    }


def _graph_common_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    record_id = _text(get_field(record, "id")) or ""
    scope = _text(get_field(record, "directoryScopeId")) or DIRECTORY_SCOPE
    is_directory = scope == DIRECTORY_SCOPE
    return {
        "id": record_id,
        "scope": scope,
        "role_definition_id": _require(
            get_field(record, "roleDefinitionId"),
            source_type="graph",
            field="roleDefinitionId",
            record_id=record_id,
        ),
        "role_definition_display_name": _text(get_field(record, "roleDefinition", "displayName"))
        or UNKNOWN_ROLE,
        "scope_display_name": DIRECTORY_SCOPE_DISPLAY_NAME if is_directory else scope,
        "scope_type": "directory" if is_directory else None,
        "principal_id": _require(
            get_field(record, "principalId"),
            source_type="graph",
            field="principalId",
            record_id=record_id,
        ),
        "principal_display_name": _text(get_field(record, "principal", "displayName")),
        "start_date_time": _parse_datetime(
            get_field(record, "startDateTime"), field="startDateTime", record_id=record_id
        ),
        "end_date_time": _parse_datetime(
            get_field(record, "endDateTime"), field="endDateTime", record_id=record_id
        ),
        "source_type": "graph",
        "original": record,
    }


def _group_common_fields(record: Mapping[str, Any]) -> dict[str, Any]:
    record_id = _text(get_field(record, "id")) or ""
    access_id = _require(
        get_field(record, "accessId"), source_type="group", field="accessId", record_id=record_id
    )
    group_display_name = _text(get_field(record, "group", "displayName")) or UNKNOWN_GROUP
    role_display_name = "Owner" if access_id.lower() == "owner" else "Member"
    return {
        "id": record_id,
        "scope": _text(get_field(record, "groupId")) or "",
        "role_definition_id": access_id,
        "role_definition_display_name": f"{role_display_name} of {group_display_name}",
        "scope_display_name": group_display_name,
        "scope_type": "group",
        "principal_id": _require(
            get_field(record, "principalId"),
            source_type="group",
            field="principalId",
            record_id=record_id,
        ),
        "principal_display_name": _text(get_field(record, "principal", "displayName")),
        "start_date_time": _parse_datetime(
            get_field(record, "startDateTime"), field="startDateTime", record_id=record_id
        ),
        "end_date_time": _parse_datetime(
            get_field(record, "endDateTime"), field="endDateTime", record_id=record_id
        ),
        "source_type": "group",
        "original": record,
    }


def from_arm_schedule(record: Any) -> CommonRoleSchedule:
    return CommonRoleSchedule(**_arm_common_fields(_as_mapping(record)))


def from_graph_schedule(record: Any) -> CommonRoleSchedule:
    return CommonRoleSchedule(**_graph_common_fields(_as_mapping(record)))


def from_group_schedule(record: Any) -> CommonRoleSchedule:
    return CommonRoleSchedule(**_group_common_fields(_as_mapping(record)))


def from_arm_assignment(record: Any) -> CommonRoleAssignmentScheduleInstance:
    mapping = _as_mapping(record)
    return CommonRoleAssignmentScheduleInstance(
        **_arm_common_fields(mapping),
        status=_text(get_field(mapping, "status")),
        linked_role_eligibility_schedule_instance_id=_text(
            get_field(mapping, "linkedRoleEligibilityScheduleInstanceId")
        ),
    )


def from_graph_assignment(record: Any) -> CommonRoleAssignmentScheduleInstance:
    mapping = _as_mapping(record)
    # Graph instances carry assignmentType ("Activated" / "Assigned") instead of a status
    return CommonRoleAssignmentScheduleInstance(
        **_graph_common_fields(mapping),
        status=_text(get_field(mapping, "assignmentType")),
    )


def from_group_assignment(record: Any) -> CommonRoleAssignmentScheduleInstance:
    mapping = _as_mapping(record)
    return CommonRoleAssignmentScheduleInstance(
        **_group_common_fields(mapping),
        status=_text(get_field(mapping, "assignmentType")),
    )


_SCHEDULE_NORMALIZERS: dict[SourceType, Callable[[Any], CommonRoleSchedule]] = {
    "arm": from_arm_schedule,
    "graph": from_graph_schedule,
    "group": from_group_schedule,
}

_ASSIGNMENT_NORMALIZERS: dict[
    SourceType, Callable[[Any], CommonRoleAssignmentScheduleInstance]
] = {
    "arm": from_arm_assignment,
    "graph": from_graph_assignment,
    "group": from_group_assignment,
}


def normalize_schedule(source_type: SourceType, record: Any) -> CommonRoleSchedule:
    """Normalize an eligibility schedule instance from the given provider family."""
    try:
        normalizer = _SCHEDULE_NORMALIZERS[source_type]
    except KeyError:
        raise ValueError(f"Unsupported source type: {source_type}") from None
    return normalizer(record)


def normalize_assignment(
    source_type: SourceType, record: Any
) -> CommonRoleAssignmentScheduleInstance:
    """Normalize an assignment schedule instance from the given provider family."""
    try:
        normalizer = _ASSIGNMENT_NORMALIZERS[source_type]
    except KeyError:
        raise ValueError(f"Unsupported source type: {source_type}") from None
    return normalizer(record)
