from datetime import date
from typing import Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session

from school_office.database import ClassAttendanceDB, ClassSessionDB

COMPLETED = "Completed"
CANCELLED = "Cancelled"
SESSION_STATUSES = (COMPLETED, CANCELLED)

SessionKey = Tuple[int, date]


def merge_session_status(inferred: Iterable[SessionKey], overrides: Iterable[Tuple[int, date, str]]) -> Dict[SessionKey, str]:
    """
    Combines the two signals that say whether a class took place.

    Any attendance taken for (schedule, date) counts as Completed. An explicit
    status saved by the office replaces that, Cancelled included.
    """
    merged = {key: COMPLETED for key in inferred}
    for schedule_id, day, status in overrides:
        merged[(schedule_id, day)] = status
    return merged


def get_session_statuses(db: Session, start: date, end: date) -> List[dict]:
    """
    Status of every known class session between `start` and `end` inclusive.

    Returns:
        list: dicts with schedule_id, date and status, ordered by date then schedule.
    """
    inferred = (
        db.query(ClassAttendanceDB.schedule_id, ClassAttendanceDB.date)
        .filter(ClassAttendanceDB.date >= start, ClassAttendanceDB.date <= end)
        .distinct()
        .all()
    )
    overrides = (
        db.query(ClassSessionDB.schedule_id, ClassSessionDB.date, ClassSessionDB.status)
        .filter(ClassSessionDB.date >= start, ClassSessionDB.date <= end)
        .all()
    )

    merged = merge_session_status(
        ((s, d) for s, d in inferred),
        ((s, d, st) for s, d, st in overrides),
    )
    return [
        {"schedule_id": schedule_id, "date": day.isoformat(), "status": status}
        for (schedule_id, day), status in sorted(merged.items(), key=lambda kv: (kv[0][1], kv[0][0]))
    ]
