import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from school_office.database import CalendarEventDB, get_db, row_to_dict
from school_office.models.schemas import CalendarEventIn

router = APIRouter(prefix="/calendar", tags=["Calendar"])
logger = logging.getLogger(__name__)


@router.get("/events")
async def list_events(db: Session = Depends(get_db)):
    events = db.query(CalendarEventDB).order_by(CalendarEventDB.event_date).all()
    return [
        {
            "id": e.id,
            "title": e.title,
            "description": e.description,
            "type": e.event_type,
            "date": e.event_date.isoformat(),
            "day": e.event_date.day,
        }
        for e in events
    ]


@router.post("/events", status_code=201)
async def create_event(req: CalendarEventIn, db: Session = Depends(get_db)):
    if not req.title or not req.date:
        raise HTTPException(status_code=400, detail="Title and Date are required")
    event = CalendarEventDB(
        title=req.title,
        description=req.description or "",
        event_date=req.date,
        event_type=req.type or "success",
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.debug("Created calendar event %s on %s", event.id, event.event_date)
    return row_to_dict(event)


@router.put("/events/{event_id}")
async def update_event(event_id: int, req: CalendarEventIn, db: Session = Depends(get_db)):
    event = db.query(CalendarEventDB).filter(CalendarEventDB.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    event.title = req.title or event.title
    event.description = req.description
    event.event_type = req.type or event.event_type
    if req.date:
        event.event_date = req.date
    db.commit()
    db.refresh(event)
    return row_to_dict(event)


@router.delete("/events/{event_id}")
async def delete_event(event_id: int, db: Session = Depends(get_db)):
    event = db.query(CalendarEventDB).filter(CalendarEventDB.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    db.delete(event)
    db.commit()
    return {"message": "Event deleted successfully"}
