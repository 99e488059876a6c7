from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_office.database import ExaminationSlotDB, ProgramDB, get_db, row_to_dict
from school_office.models.schemas import SlotIn

router = APIRouter(prefix="/slots", tags=["Exam Slots"])


@router.get("")
async def list_slots(db: Session = Depends(get_db)):
    rows = (
        db.query(ExaminationSlotDB, ProgramDB.name)
        .select_from(ExaminationSlotDB)
        .outerjoin(ProgramDB, ExaminationSlotDB.program_id == ProgramDB.id)
        .order_by(ExaminationSlotDB.start_date.desc())
        .all()
    )
    return [{**row_to_dict(slot), "program_name": program_name} for slot, program_name in rows]


@router.post("", status_code=201)
async def create_slot(req: SlotIn, db: Session = Depends(get_db)):
    if not req.name:
        raise HTTPException(status_code=400, detail="Slot name is required")
    slot = ExaminationSlotDB(
        name=req.name,
        program_id=req.program_id,
        start_date=req.start_date,
        end_date=req.end_date,
        status=req.status or "Upcoming",
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return row_to_dict(slot)


@router.put("/{slot_id}")
async def update_slot(slot_id: int, req: SlotIn, db: Session = Depends(get_db)):
    slot = db.query(ExaminationSlotDB).filter(ExaminationSlotDB.id == slot_id).first()
    if not slot:
        raise HTTPException(status_code=404, detail="Slot not found")
    slot.name = req.name or slot.name
    slot.program_id = req.program_id
    slot.start_date = req.start_date
    slot.end_date = req.end_date
    slot.status = req.status or slot.status
    db.commit()
    db.refresh(slot)
    return row_to_dict(slot)


@router.delete("/{slot_id}")
async def delete_slot(slot_id: int, db: Session = Depends(get_db)):
    db.query(ExaminationSlotDB).filter(ExaminationSlotDB.id == slot_id).delete()
    db.commit()
    return {"message": "Slot deleted"}
