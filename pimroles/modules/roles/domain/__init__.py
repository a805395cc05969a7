from .models import (
    CommonRoleActivateRequest,
    CommonRoleAssignmentScheduleInstance,
    CommonRoleSchedule,
    EligibleRole,
)
from .normalizer import normalize_assignment, normalize_schedule
from .reconciliation import RoleStatusLookup, is_activated, is_newly_activated, reconcile
from .inventory import RoleInventory, RoleSnapshot, SourceFailure
from .activation import (
    build_activation_request,
    build_deactivation_request,
    to_arm_request,
    to_graph_request,
    to_group_request,
)

__all__ = [
    "CommonRoleActivateRequest",
    "CommonRoleAssignmentScheduleInstance",
    "CommonRoleSchedule",
    "EligibleRole",
    "normalize_assignment",
    "normalize_schedule",
    "RoleStatusLookup",
    "reconcile",
    "is_activated",
    "is_newly_activated",
    "RoleInventory",
    "RoleSnapshot",
    "SourceFailure",
    "build_activation_request",
    "build_deactivation_request",
    "to_arm_request",
    "to_graph_request",
    "to_group_request",
]
