from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.api.deps import get_db, require_capability
from portal.api.permissions import Capability
from portal.models.user import User
from portal.schemas.schedule import (
    ScheduleChangeRequestCreate,
    ScheduleChangeRequestOut,
    ScheduleChangeResult,
    ScheduleSlotOut,
)
from portal.services.schedule_changes import ScheduleChangeWorkflow
from portal.services.timetable import TimetableService

router = APIRouter()


@router.get("/teacher/timetable", response_model=list[ScheduleSlotOut])
def get_teacher_timetable(
    current_user: User = Depends(require_capability(Capability.view_own_timetable)),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return TimetableService(db).teacher_timetable(current_user.id)


@router.post("/teacher/timetable/request-change", response_model=ScheduleChangeResult)
def request_schedule_change(
    payload: ScheduleChangeRequestCreate,
    current_user: User = Depends(require_capability(Capability.request_schedule_change)),
    db: Session = Depends(get_db),
) -> ScheduleChangeResult:
    request = ScheduleChangeWorkflow(db).submit(current_user, payload)
    return ScheduleChangeResult(
        message="Schedule change request submitted successfully",
        request_id=request.id,
    )


@router.get("/teacher/schedule-change-requests", response_model=list[ScheduleChangeRequestOut])
def list_my_schedule_change_requests(
    current_user: User = Depends(require_capability(Capability.request_schedule_change)),
    db: Session = Depends(get_db),
) -> list[ScheduleChangeRequestOut]:
    return ScheduleChangeWorkflow(db).list_for_teacher(current_user.id)
