import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, aliased

from school_office.database import (ExamDB, ExamPartDB, ExamResultDB, ProgramDB, StudentDB, SubjectDB, TeacherDB,
                                    get_db, row_to_dict, transaction, upsert)
from school_office.models.schemas import ExamIn, ExamResultsIn, StatusIn
from school_office.services.exams import effective_status

router = APIRouter(prefix="/exams", tags=["Exams"])
logger = logging.getLogger(__name__)


def _schedule_from(req: ExamIn):
    """Date, start, end and venue of the exam: the first part wins over the flat fields."""
    if req.parts:
        main = req.parts[0]
        return main.date, main.start_time, main.end_time, main.venue
    return req.exam_date, req.start_time, req.end_time, req.venue


def _write_parts(db: Session, exam_id: int, req: ExamIn):
    if not req.parts:
        return
    db.query(ExamPartDB).filter(ExamPartDB.exam_id == exam_id).delete(synchronize_session=False)
    for position, part in enumerate(req.parts):
        db.add(ExamPartDB(
            exam_id=exam_id,
            position=position,
            date=part.date,
            start_time=part.start_time,
            end_time=part.end_time,
            venue=part.venue,
        ))


def _enroll(db: Session, exam_id: int, student_ids):
    """Adds students to the exam. Already enrolled students keep their marks."""
    for student_id in student_ids:
        upsert(
            db, ExamResultDB,
            {"exam_id": exam_id, "student_id": str(student_id), "status": "Present"},
            conflict_on=["exam_id", "student_id"],
            update=[],
        )


def _counts(db: Session, exam_id: int, status=None) -> int:
    q = db.query(func.count(ExamResultDB.id)).filter(ExamResultDB.exam_id == exam_id)
    if status:
        q = q.filter(ExamResultDB.status == status)
    return q.scalar() or 0


def _exam_query(db: Session):
    supervisor = aliased(TeacherDB)
    return (
        db.query(ExamDB, ProgramDB.name, SubjectDB.name, supervisor.name)
        .select_from(ExamDB)
        .outerjoin(ProgramDB, ExamDB.program_id == ProgramDB.id)
        .outerjoin(SubjectDB, ExamDB.subject_id == SubjectDB.id)
        .outerjoin(supervisor, ExamDB.supervisor_id == supervisor.id)
    )


def _exam_dict(exam, program_name, subject_name, supervisor_name) -> dict:
    data = row_to_dict(exam)
    data.update(program_name=program_name, subject_name=subject_name, supervisor_name=supervisor_name)
    return data


@router.get("")
async def list_exams(db: Session = Depends(get_db)):
    """
    All exams, newest first, with enrolment counts.

    The status shown is derived from the current time (Upcoming, Ongoing,
    Completed) unless the exam was cancelled.
    """
    rows = _exam_query(db).order_by(ExamDB.exam_date.desc(), ExamDB.start_time).all()
    exams = []
    for exam, program_name, subject_name, supervisor_name in rows:
        data = _exam_dict(exam, program_name, subject_name, supervisor_name)
        data["status"] = effective_status(exam.status, exam.exam_date, exam.start_time, exam.end_time)
        data["assigned_students"] = _counts(db, exam.id)
        data["present_students"] = _counts(db, exam.id, "Present")
        data["absent_students"] = _counts(db, exam.id, "Absent")
        exams.append(data)
    return exams


@router.post("", status_code=201)
async def create_exam(req: ExamIn, db: Session = Depends(get_db)):
    """
    Creates an exam and enrolls the selected students in one transaction.
    """
    exam_date, start_time, end_time, venue = _schedule_from(req)
    if not exam_date:
        raise HTTPException(status_code=400, detail="Exam date is required")

    with transaction(db):
        exam = ExamDB(
            title=req.title,
            program_id=req.program_id,
            subject_id=req.subject_id,
            exam_date=exam_date,
            start_time=start_time,
            end_time=end_time,
            venue=venue,
            total_marks=100,
            supervisor_id=req.supervisor_id,
        )
        db.add(exam)
        db.flush()
        _write_parts(db, exam.id, req)
        _enroll(db, exam.id, req.student_ids)

    logger.info("Created exam %s with %d students", exam.id, len(req.student_ids))
    return {"message": "Exam created successfully", "examId": exam.id}


@router.put("/{exam_id}")
async def update_exam(exam_id: int, req: ExamIn, db: Session = Depends(get_db)):
    """
    Edits an exam. Students can only be added here; removing a graded
    student is done by deleting the exam.
    """
    exam = db.query(ExamDB).filter(ExamDB.id == exam_id).first()
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found")
    exam_date, start_time, end_time, venue = _schedule_from(req)

    with transaction(db):
        exam.title = req.title
        exam.program_id = req.program_id
        exam.subject_id = req.subject_id
        exam.supervisor_id = req.supervisor_id
        if exam_date:
            exam.exam_date = exam_date
            exam.start_time = start_time
            exam.end_time = end_time
            exam.venue = venue
        _write_parts(db, exam_id, req)
        _enroll(db, exam_id, req.student_ids)

    return {"message": "Exam updated successfully"}


@router.get("/{exam_id}/details")
async def exam_details(exam_id: int, db: Session = Depends(get_db)):
    row = _exam_query(db).filter(ExamDB.id == exam_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Exam not found")

    parts = db.query(ExamPartDB).filter(ExamPartDB.exam_id == exam_id).order_by(ExamPartDB.position).all()
    students = (
        db.query(StudentDB.id, StudentDB.name, ExamResultDB)
        .select_from(ExamResultDB)
        .join(StudentDB, ExamResultDB.student_id == StudentDB.id)
        .filter(ExamResultDB.exam_id == exam_id)
        .order_by(StudentDB.name)
        .all()
    )
    return {
        "exam": _exam_dict(*row),
        "parts": [row_to_dict(p) for p in parts],
        "students": [
            {
                "id": student_id,
                "name": name,
                "marks_obtained": row_to_dict(result)["marks_obtained"],
                "grade": result.grade,
                "status": result.status,
                "remarks": result.remarks,
            }
            for student_id, name, result in students
        ],
    }


@router.post("/{exam_id}/results")
async def save_results(exam_id: int, req: ExamResultsIn, db: Session = Depends(get_db)):
    exam = db.query(ExamDB).filter(ExamDB.id == exam_id).first()
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found")

    with transaction(db):
        for r in req.results:
            db.query(ExamResultDB).filter(
                ExamResultDB.exam_id == exam_id, ExamResultDB.student_id == str(r.id)
            ).update({
                ExamResultDB.marks_obtained: r.marks_obtained,
                ExamResultDB.grade: r.grade,
                ExamResultDB.status: r.status,
                ExamResultDB.remarks: r.remarks,
            }, synchronize_session=False)
        if req.status:
            exam.status = req.status
    return {"message": "Saved"}


@router.patch("/{exam_id}/status")
async def update_exam_status(exam_id: int, req: StatusIn, db: Session = Depends(get_db)):
    exam = db.query(ExamDB).filter(ExamDB.id == exam_id).first()
    if not exam:
        raise HTTPException(status_code=404, detail="Exam not found")
    if not req.status:
        raise HTTPException(status_code=400, detail="Status is required")
    exam.status = req.status
    db.commit()
    return {"message": "Status updated"}


@router.delete("/{exam_id}")
async def delete_exam(exam_id: int, db: Session = Depends(get_db)):
    with transaction(db):
        db.query(ExamResultDB).filter(ExamResultDB.exam_id == exam_id).delete(synchronize_session=False)
        db.query(ExamPartDB).filter(ExamPartDB.exam_id == exam_id).delete(synchronize_session=False)
        db.query(ExamDB).filter(ExamDB.id == exam_id).delete(synchronize_session=False)
    return {"message": "Deleted"}
