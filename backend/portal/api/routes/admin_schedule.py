from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session

from portal.api.deps import get_db, require_capability
from portal.api.permissions import Capability
from portal.models.user import User
from portal.schemas.schedule import (
    ScheduleChangeDecline,
    ScheduleChangeRequestList,
    ScheduleChangeResult,
    ScheduleSlotOut,
    TeacherSlotCreate,
    TeacherSlotUpdate,
)
from portal.services.schedule_changes import ScheduleChangeWorkflow
from portal.services.timetable import TimetableService

router = APIRouter()


@router.get("/admin/schedule-change-requests", response_model=ScheduleChangeRequestList)
def list_schedule_change_requests(
    current_user: User = Depends(require_capability(Capability.view_schedule_requests)),
    db: Session = Depends(get_db),
) -> ScheduleChangeRequestList:
    return ScheduleChangeRequestList(requests=ScheduleChangeWorkflow(db).list_pending())


@router.post("/admin/schedule-change/{request_id}/approve", response_model=ScheduleChangeResult)
def approve_schedule_change(
    request_id: str,
    current_user: User = Depends(require_capability(Capability.review_schedule_requests)),
    db: Session = Depends(get_db),
) -> ScheduleChangeResult:
    return ScheduleChangeWorkflow(db).approve(request_id, current_user)


@router.post("/admin/schedule-change/{request_id}/decline", response_model=ScheduleChangeResult)
def decline_schedule_change(
    request_id: str,
    payload: ScheduleChangeDecline | None = Body(default=None),
    current_user: User = Depends(require_capability(Capability.review_schedule_requests)),
    db: Session = Depends(get_db),
) -> ScheduleChangeResult:
    reason = payload.decline_reason if payload is not None else None
    return ScheduleChangeWorkflow(db).decline(request_id, current_user, reason)


@router.get("/admin/timetable/teachers/{teacher_id}/slots", response_model=list[ScheduleSlotOut])
def list_teacher_slots(
    teacher_id: str,
    current_user: User = Depends(require_capability(Capability.view_timetables)),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return TimetableService(db).list_teacher_slots(teacher_id)


@router.post(
    "/admin/timetable/teachers/{teacher_id}/slots",
    response_model=ScheduleSlotOut,
    status_code=status.HTTP_201_CREATED,
)
def create_teacher_slot(
    teacher_id: str,
    payload: TeacherSlotCreate,
    current_user: User = Depends(require_capability(Capability.manage_timetables)),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return TimetableService(db).create_teacher_slot(teacher_id, payload, current_user)


@router.put("/admin/timetable/teachers/slots/{slot_id}", response_model=ScheduleSlotOut)
def update_teacher_slot(
    slot_id: str,
    payload: TeacherSlotUpdate,
    current_user: User = Depends(require_capability(Capability.manage_timetables)),
    db: Session = Depends(get_db),
) -> ScheduleSlotOut:
    return TimetableService(db).update_teacher_slot(slot_id, payload, current_user)


@router.delete("/admin/timetable/teachers/slots/{slot_id}")
def delete_teacher_slot(
    slot_id: str,
    current_user: User = Depends(require_capability(Capability.manage_timetables)),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    TimetableService(db).delete_teacher_slot(slot_id, current_user)
    return {"message": "Slot deleted successfully"}


@router.get("/admin/timetable/courses/{course_id}/slots", response_model=list[ScheduleSlotOut])
def list_course_slots(
    course_id: str,
    current_user: User = Depends(require_capability(Capability.view_timetables)),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return TimetableService(db).course_timetable(course_id)
