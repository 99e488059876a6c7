import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from school_office.database import (ClassAttendanceDB, ClassSessionDB, ScheduleDB, StudentAttendanceDB,
                                    TeacherAttendanceDB, get_db, row_to_dict, transaction, upsert)
from school_office.models.schemas import AttendanceIn, ClassAttendanceIn, SessionStatusIn
from school_office.services.sessions import SESSION_STATUSES, get_session_statuses

router = APIRouter(prefix="/attendance", tags=["Attendance"])
logger = logging.getLogger(__name__)


@router.get("")
async def get_attendance(date: Optional[date] = None, db: Session = Depends(get_db)):
    """Student then teacher attendance rows for one day."""
    if not date:
        raise HTTPException(status_code=400, detail="Date is required")
    students = db.query(StudentAttendanceDB).filter(StudentAttendanceDB.date == date).all()
    teachers = db.query(TeacherAttendanceDB).filter(TeacherAttendanceDB.date == date).all()
    return [row_to_dict(r) for r in students] + [row_to_dict(r) for r in teachers]


@router.get("/stats")
async def attendance_stats(db: Session = Depends(get_db)):
    present, absent = db.query(
        func.sum(case((StudentAttendanceDB.status == "Present", 1), else_=0)),
        func.sum(case((StudentAttendanceDB.status == "Absent", 1), else_=0)),
    ).one()
    present = int(present or 0)
    absent = int(absent or 0)
    total = present + absent
    average = round(present / total * 100) if total > 0 else 0
    return {"averageRate": average, "totalRecords": total}


@router.post("")
async def save_attendance(req: AttendanceIn, db: Session = Depends(get_db)):
    """
    Records one student's or one teacher's attendance for a day.

    Saving again for the same person and day replaces status and remarks;
    there is never more than one row per (person, date).
    """
    if not req.date or not req.status:
        raise HTTPException(status_code=400, detail="Date and Status are required")
    if req.student_id is None and not req.teacher_id:
        raise HTTPException(status_code=400, detail="Student ID or Teacher ID is required")

    if req.student_id is not None:
        student_id = str(req.student_id)
        upsert(
            db, StudentAttendanceDB,
            {"student_id": student_id, "date": req.date, "status": req.status, "reason": req.remarks or ""},
            conflict_on=["student_id", "date"],
            update=["status", "reason"],
            extra_set={"created_at": func.now()},
        )
        db.commit()
        row = db.query(StudentAttendanceDB).filter(
            StudentAttendanceDB.student_id == student_id, StudentAttendanceDB.date == req.date
        ).one()
    else:
        upsert(
            db, TeacherAttendanceDB,
            {"teacher_id": req.teacher_id, "date": req.date, "status": req.status},
            conflict_on=["teacher_id", "date"],
            update=["status"],
            extra_set={"created_at": func.now()},
        )
        db.commit()
        row = db.query(TeacherAttendanceDB).filter(
            TeacherAttendanceDB.teacher_id == req.teacher_id, TeacherAttendanceDB.date == req.date
        ).one()
    return row_to_dict(row)


@router.get("/class")
async def get_class_attendance(
    schedule_id: int = Query(..., alias="scheduleId"),
    date: date = Query(...),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(ClassAttendanceDB)
        .filter(ClassAttendanceDB.schedule_id == schedule_id, ClassAttendanceDB.date == date)
        .order_by(ClassAttendanceDB.student_id)
        .all()
    )
    return [row_to_dict(r) for r in rows]


@router.post("/class")
async def save_class_attendance(req: ClassAttendanceIn, db: Session = Depends(get_db)):
    """
    Saves the attendance sheet of one lesson (schedule + date).

    All rows are written in one transaction: if any student fails, nothing
    from the sheet is kept.
    """
    if not req.schedule_id or not req.date:
        raise HTTPException(status_code=400, detail="Schedule and Date are required")
    if not db.query(ScheduleDB).filter(ScheduleDB.id == req.schedule_id).first():
        raise HTTPException(status_code=404, detail="Schedule not found")

    with transaction(db):
        for record in req.records:
            upsert(
                db, ClassAttendanceDB,
                {
                    "schedule_id": req.schedule_id,
                    "student_id": str(record.student_id),
                    "date": req.date,
                    "status": record.status,
                    "remarks": record.remarks or "",
                },
                conflict_on=["schedule_id", "student_id", "date"],
                update=["status", "remarks"],
            )

    logger.info("Saved %d attendance rows for schedule %s on %s", len(req.records), req.schedule_id, req.date)
    return {"message": "Attendance saved", "count": len(req.records)}


@router.get("/sessions")
async def list_sessions(start: date, end: date, db: Session = Depends(get_db)):
    """
    Whether each class in the range took place.

    Lessons with attendance count as Completed unless the office saved an
    explicit status, which always takes precedence.
    """
    if start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    return get_session_statuses(db, start, end)


@router.put("/sessions")
async def set_session_status(req: SessionStatusIn, db: Session = Depends(get_db)):
    if not req.schedule_id or not req.date:
        raise HTTPException(status_code=400, detail="Schedule and Date are required")
    if req.status not in SESSION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Status must be one of {', '.join(SESSION_STATUSES)}")

    upsert(
        db, ClassSessionDB,
        {"schedule_id": req.schedule_id, "date": req.date, "status": req.status},
        conflict_on=["schedule_id", "date"],
        update=["status"],
        extra_set={"updated_at": func.now()},
    )
    db.commit()
    return {"schedule_id": req.schedule_id, "date": req.date.isoformat(), "status": req.status}
