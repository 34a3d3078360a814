from enum import Enum

from portal.models.user import UserRole


class Capability(str, Enum):
    request_schedule_change = "request_schedule_change"
    view_schedule_requests = "view_schedule_requests"
    review_schedule_requests = "review_schedule_requests"
    view_timetables = "view_timetables"
    manage_timetables = "manage_timetables"
    view_activity = "view_activity"
    view_own_timetable = "view_own_timetable"
    view_enrolled_timetable = "view_enrolled_timetable"


_ADMIN_READ = {
    Capability.view_schedule_requests,
    Capability.view_timetables,
    Capability.view_activity,
}
_ADMIN_WRITE = _ADMIN_READ | {
    Capability.review_schedule_requests,
    Capability.manage_timetables,
}

# co_admin is read-only.
ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.super_admin: frozenset(_ADMIN_WRITE),
    UserRole.admin: frozenset(_ADMIN_WRITE),
    UserRole.co_admin: frozenset(_ADMIN_READ),
    UserRole.teacher: frozenset({Capability.request_schedule_change, Capability.view_own_timetable}),
    UserRole.student: frozenset({Capability.view_enrolled_timetable}),
}


def has_capability(role: UserRole, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())
