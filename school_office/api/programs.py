import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_office.database import (ExamDB, ExaminationSlotDB, ProgramDB, ScheduleDB, StudentDB, SubjectDB,
                                    TeacherDB, get_db, row_to_dict, transaction)
from school_office.models.schemas import ProgramIn
from school_office.api.schedules import delete_schedule_rows

router = APIRouter(prefix="/programs", tags=["Programs"])
logger = logging.getLogger(__name__)


def _fees(value):
    return None if value is None else str(value)


@router.get("")
async def list_programs(db: Session = Depends(get_db)):
    return [row_to_dict(p) for p in db.query(ProgramDB).order_by(ProgramDB.id).all()]


@router.post("", status_code=201)
async def create_program(req: ProgramIn, db: Session = Depends(get_db)):
    if not req.name:
        raise HTTPException(status_code=400, detail="Program name is required")
    program = ProgramDB(
        name=req.name,
        type=req.type or req.category,
        category=req.category,
        duration=_fees(req.duration),
        fees=_fees(req.fee),
        head_of_program=req.head,
    )
    db.add(program)
    db.commit()
    db.refresh(program)
    return row_to_dict(program)


@router.put("/{program_id}")
async def update_program(program_id: int, req: ProgramIn, db: Session = Depends(get_db)):
    program = db.query(ProgramDB).filter(ProgramDB.id == program_id).first()
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")

    program.name = req.name or program.name
    program.type = req.type or req.category
    if req.category is not None:
        program.category = req.category
    program.duration = _fees(req.duration)
    program.fees = _fees(req.fee)
    program.head_of_program = req.head
    db.commit()
    db.refresh(program)
    return row_to_dict(program)


@router.delete("/{program_id}")
async def delete_program(program_id: int, db: Session = Depends(get_db)):
    """
    Deletes a program without deleting the people and subjects attached to it.

    In one transaction:
    - students, teachers, subjects, exams and exam slots are unassigned (program_id -> NULL)
    - its schedules, with their attendance and session rows, are deleted
    - the program row is deleted
    """
    program = db.query(ProgramDB).filter(ProgramDB.id == program_id).first()
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")

    with transaction(db):
        for model in (StudentDB, TeacherDB, SubjectDB, ExamDB, ExaminationSlotDB):
            db.query(model).filter(model.program_id == program_id).update(
                {model.program_id: None}, synchronize_session=False
            )
        schedule_ids = [s.id for s in db.query(ScheduleDB.id).filter(ScheduleDB.program_id == program_id)]
        delete_schedule_rows(db, schedule_ids)
        db.delete(program)

    logger.info("Deleted program %s (%d schedules removed)", program_id, len(schedule_ids))
    return {"message": "Program deleted successfully"}
