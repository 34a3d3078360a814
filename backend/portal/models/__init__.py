from portal.models.activity_log import ActivityLog  # noqa: F401
from portal.models.course import Course, CourseEnrollment  # noqa: F401
from portal.models.notification import (  # noqa: F401
    AudienceScope,
    Notification,
    NotificationChannel,
    NotificationType,
)
from portal.models.schedule import CourseScheduleSlot, TeacherScheduleSlot, Weekday  # noqa: F401
from portal.models.schedule_change_request import (  # noqa: F401
    ScheduleChangeRequest,
    ScheduleChangeStatus,
)
from portal.models.user import User, UserRole  # noqa: F401
