import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from school_office.database import (ClassAttendanceDB, ClassSessionDB, ProgramDB, ScheduleDB, SubjectDB, TeacherDB,
                                    get_db, row_to_dict)
from school_office.models.schemas import ScheduleIn
from school_office.services.conflicts import ScheduleConflictChecker

router = APIRouter(prefix="/schedules", tags=["Schedule"])
logger = logging.getLogger(__name__)


def delete_schedule_rows(db: Session, schedule_ids):
    """Deletes schedules and the attendance/session rows hanging off them. Does not commit."""
    if not schedule_ids:
        return
    for model in (ClassAttendanceDB, ClassSessionDB):
        db.query(model).filter(model.schedule_id.in_(schedule_ids)).delete(synchronize_session=False)
    db.query(ScheduleDB).filter(ScheduleDB.id.in_(schedule_ids)).delete(synchronize_session=False)


def _validate(req: ScheduleIn):
    if not req.program_id or not req.day or not req.start_time or not req.end_time:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if req.type != "Break" and not req.subject_id:
        raise HTTPException(status_code=400, detail="Subject is required for classes")
    if req.start_time >= req.end_time:
        raise HTTPException(status_code=400, detail="Start time must be before end time")


@router.get("")
async def list_schedules(
    program_id: Optional[str] = Query(None, alias="programId"),
    year: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Weekly timetable rows with subject, teacher and program names.

    Filters:
    - programId: program to show ("All" or absent = every program)
    - year: subject cohort label, matched exactly ("All" or absent = every cohort)
    """
    q = (
        db.query(ScheduleDB, SubjectDB.name, TeacherDB.name, ProgramDB.name)
        .select_from(ScheduleDB)
        .outerjoin(SubjectDB, ScheduleDB.subject_id == SubjectDB.id)
        .outerjoin(TeacherDB, ScheduleDB.teacher_id == TeacherDB.id)
        .outerjoin(ProgramDB, ScheduleDB.program_id == ProgramDB.id)
    )
    if program_id and program_id != "All":
        try:
            q = q.filter(ScheduleDB.program_id == int(program_id))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid programId")
    if year and year != "All":
        q = q.filter(SubjectDB.year == year)

    rows = q.order_by(ScheduleDB.day_of_week, ScheduleDB.start_time).all()
    return [
        {
            "id": s.id,
            "day": s.day_of_week,
            "startTime": s.start_time.isoformat(),
            "endTime": s.end_time.isoformat(),
            "subject": subject_name,
            "teacher": teacher_name,
            "program": program_name,
            "type": s.type,
            "programId": s.program_id,
            "subjectId": s.subject_id,
            "teacherId": s.teacher_id,
        }
        for s, subject_name, teacher_name, program_name in rows
    ]


@router.post("", status_code=201)
async def create_schedule(req: ScheduleIn, db: Session = Depends(get_db)):
    _validate(req)

    conflict = ScheduleConflictChecker(db).check(
        req.program_id, req.subject_id, req.teacher_id, req.day, req.start_time, req.end_time
    )
    if conflict:
        raise HTTPException(status_code=409, detail=conflict)

    schedule = ScheduleDB(
        program_id=req.program_id,
        subject_id=req.subject_id,
        teacher_id=req.teacher_id,
        day_of_week=req.day,
        start_time=req.start_time,
        end_time=req.end_time,
        type=req.type or "",
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return row_to_dict(schedule)


@router.put("/{schedule_id}")
async def update_schedule(schedule_id: int, req: ScheduleIn, db: Session = Depends(get_db)):
    schedule = db.query(ScheduleDB).filter(ScheduleDB.id == schedule_id).first()
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    _validate(req)

    conflict = ScheduleConflictChecker(db).check(
        req.program_id, req.subject_id, req.teacher_id, req.day, req.start_time, req.end_time,
        exclude_id=schedule_id,
    )
    if conflict:
        raise HTTPException(status_code=409, detail=conflict)

    schedule.program_id = req.program_id
    schedule.subject_id = req.subject_id
    schedule.teacher_id = req.teacher_id
    schedule.day_of_week = req.day
    schedule.start_time = req.start_time
    schedule.end_time = req.end_time
    schedule.type = req.type or ""
    db.commit()
    db.refresh(schedule)
    return row_to_dict(schedule)


@router.delete("/{schedule_id}")
async def delete_schedule(schedule_id: int, db: Session = Depends(get_db)):
    if not db.query(ScheduleDB).filter(ScheduleDB.id == schedule_id).first():
        raise HTTPException(status_code=404, detail="Schedule not found")
    delete_schedule_rows(db, [schedule_id])
    db.commit()
    return {"message": "Schedule deleted successfully"}
