import logging
from datetime import time
from typing import Optional

from sqlalchemy.orm import Session

from school_office.database import ScheduleDB, SubjectDB

logger = logging.getLogger(__name__)

GENERAL = "general"


def normalize_year(year) -> str:
    """
    Normalizes a cohort label so "Grade 1", "1" and " grade 1 " compare equal.

    Returns:
        str: lower-cased label without the leading "grade" word, or "general"
        when nothing is left.
    """
    if year is None:
        return GENERAL
    value = str(year).strip().lower()
    if value.startswith("grade"):
        value = value[len("grade"):]
    value = value.strip()
    return value or GENERAL


def _fmt(t) -> str:
    return t.isoformat() if isinstance(t, time) else str(t)


class ScheduleConflictChecker:
    """
    Detects double bookings for a proposed weekly schedule entry.

    Two rules are checked, in this order:
    1. Teacher: the same teacher cannot hold two overlapping slots on a day.
    2. Cohort: within a program, two overlapping slots on a day clash when
       their normalized cohorts are equal or either one is "general".

    Intervals are open: a slot ending at 10:00 does not clash with one
    starting at 10:00.

    The check does not lock anything; callers write right after it passes.
    """
    def __init__(self, db: Session):
        self.db = db

    def _subject_year(self, subject_id) -> Optional[str]:
        if not subject_id:
            return "General"
        subject = self.db.query(SubjectDB).filter(SubjectDB.id == subject_id).first()
        return subject.year if subject else "General"

    @staticmethod
    def _overlapping(q, day: str, start: time, end: time, exclude_id=None):
        q = q.filter(
            ScheduleDB.day_of_week == day,
            ScheduleDB.start_time < end,
            ScheduleDB.end_time > start,
        )
        if exclude_id is not None:
            q = q.filter(ScheduleDB.id != exclude_id)
        return q

    def teacher_conflict(self, teacher_id, day: str, start: time, end: time, exclude_id=None) -> Optional[str]:
        if not teacher_id:
            return None
        clash = (
            self._overlapping(self.db.query(ScheduleDB), day, start, end, exclude_id)
            .filter(ScheduleDB.teacher_id == teacher_id)
            .order_by(ScheduleDB.start_time, ScheduleDB.id)
            .first()
        )
        if clash is None:
            return None
        return f"Teacher is already booked ({_fmt(clash.start_time)} - {_fmt(clash.end_time)})."

    def cohort_conflict(self, program_id, subject_id, day: str, start: time, end: time, exclude_id=None) -> Optional[str]:
        target = normalize_year(self._subject_year(subject_id))

        base = (
            self.db.query(ScheduleDB.start_time, ScheduleDB.end_time, SubjectDB.year, SubjectDB.name)
            .select_from(ScheduleDB)
            .outerjoin(SubjectDB, ScheduleDB.subject_id == SubjectDB.id)
        )
        rows = (
            self._overlapping(base, day, start, end, exclude_id)
            .filter(ScheduleDB.program_id == program_id)
            .order_by(ScheduleDB.start_time, ScheduleDB.id)
            .all()
        )

        for row_start, row_end, row_year, subject_name in rows:
            existing = normalize_year(row_year)
            if existing == GENERAL or target == GENERAL or existing == target:
                return (
                    f"Student batch ({row_year or 'General'}) is busy with {subject_name} "
                    f"({_fmt(row_start)} - {_fmt(row_end)})."
                )
        return None

    def check(self, program_id, subject_id, teacher_id, day: str, start: time, end: time, exclude_id=None) -> Optional[str]:
        """
        Runs both rules for a proposed entry.

        Args:
            exclude_id: id of the entry being edited, left out of the comparison.

        Returns:
            str | None: reason of the first conflict found, None if admissible.
        """
        reason = self.teacher_conflict(teacher_id, day, start, end, exclude_id)
        # Breaks carry no subject and only take part in the teacher rule
        if reason is None and subject_id:
            reason = self.cohort_conflict(program_id, subject_id, day, start, end, exclude_id)
        if reason:
            logger.info("Schedule conflict on %s %s-%s: %s", day, _fmt(start), _fmt(end), reason)
        return reason
