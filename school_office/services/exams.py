from datetime import datetime, time
from typing import Optional

DEFAULT_START = time(0, 0, 0)
DEFAULT_END = time(23, 59, 0)


def effective_status(stored: Optional[str], exam_date, start_time=None, end_time=None, now: datetime = None) -> Optional[str]:
    """
    Status shown in listings, derived from the clock unless the exam was cancelled.

    - past the end          -> Completed
    - between start and end -> Ongoing
    - before the start      -> Upcoming
    """
    if stored == "Cancelled" or exam_date is None:
        return stored
    now = now or datetime.now()
    start = datetime.combine(exam_date, start_time or DEFAULT_START)
    end = datetime.combine(exam_date, end_time or DEFAULT_END)

    if now > end:
        return "Completed"
    if start <= now <= end:
        return "Ongoing"
    return "Upcoming"
