from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.api.deps import get_db, require_capability
from portal.api.permissions import Capability
from portal.models.user import User
from portal.schemas.schedule import ScheduleSlotOut
from portal.services.timetable import TimetableService

router = APIRouter()


@router.get("/student/timetable", response_model=list[ScheduleSlotOut])
def get_student_timetable(
    current_user: User = Depends(require_capability(Capability.view_enrolled_timetable)),
    db: Session = Depends(get_db),
) -> list[ScheduleSlotOut]:
    return TimetableService(db).student_timetable(current_user.id)
