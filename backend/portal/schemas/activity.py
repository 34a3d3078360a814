from datetime import datetime

from pydantic import BaseModel, Field


class ActivityLogOut(BaseModel):
    id: str
    actor_id: str | None = Field(default=None, alias="actorId")
    actor_role: str | None = Field(default=None, alias="actorRole")
    action: str
    entity_type: str = Field(alias="entityType")
    entity_id: str | None = Field(default=None, alias="entityId")
    details: dict
    created_at: datetime = Field(alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}
