from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from school_office.database import SubjectDB, get_db, row_to_dict
from school_office.models.schemas import SubjectIn

router = APIRouter(prefix="/subjects", tags=["Subjects"])


@router.get("")
async def list_subjects(program_id: Optional[int] = Query(None, alias="programId"), db: Session = Depends(get_db)):
    q = db.query(SubjectDB)
    if program_id:
        q = q.filter(SubjectDB.program_id == program_id)
    return [row_to_dict(s) for s in q.order_by(SubjectDB.id).all()]


@router.post("", status_code=201)
async def create_subject(req: SubjectIn, db: Session = Depends(get_db)):
    if not req.name:
        raise HTTPException(status_code=400, detail="Subject name is required")
    subject = SubjectDB(name=req.name, program_id=req.program_id, year=req.year, teacher_id=req.teacher_id)
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return row_to_dict(subject)


@router.put("/{subject_id}")
async def update_subject(subject_id: int, req: SubjectIn, db: Session = Depends(get_db)):
    subject = db.query(SubjectDB).filter(SubjectDB.id == subject_id).first()
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    subject.name = req.name or subject.name
    subject.program_id = req.program_id
    subject.year = req.year
    subject.teacher_id = req.teacher_id
    db.commit()
    db.refresh(subject)
    return row_to_dict(subject)


@router.delete("/{subject_id}")
async def delete_subject(subject_id: int, db: Session = Depends(get_db)):
    subject = db.query(SubjectDB).filter(SubjectDB.id == subject_id).first()
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    db.delete(subject)
    db.commit()
    return {"message": "Subject deleted"}
