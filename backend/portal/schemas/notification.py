from datetime import datetime

from pydantic import BaseModel

from portal.models.notification import AudienceScope, NotificationType


class NotificationOut(BaseModel):
    id: str
    recipient_id: str
    sender_id: str | None
    title: str
    message: str
    notification_type: NotificationType
    channels: list[str]
    audience_scope: AudienceScope
    course_id: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
