import datetime as dt
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Request body accepting both the front-end's camelCase keys and snake_case.

    Empty strings are treated as missing, the way the form inputs send them.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProgramIn(CamelModel):
    name: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    duration: Optional[Union[str, int]] = None
    fee: Optional[Union[str, float]] = None
    head: Optional[str] = None


class SubjectIn(CamelModel):
    name: Optional[str] = None
    program_id: Optional[int] = None
    year: Optional[str] = None
    teacher_id: Optional[int] = None


class ScheduleIn(CamelModel):
    program_id: Optional[int] = None
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None
    day: Optional[str] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    type: Optional[str] = None


class AttendanceIn(CamelModel):
    student_id: Optional[Union[str, int]] = None
    teacher_id: Optional[int] = None
    date: Optional[dt.date] = None
    status: Optional[str] = None
    remarks: Optional[str] = None


class ClassAttendanceRecord(CamelModel):
    student_id: Union[str, int]
    status: str
    remarks: Optional[str] = None


class ClassAttendanceIn(CamelModel):
    schedule_id: Optional[int] = None
    date: Optional[dt.date] = None
    records: List[ClassAttendanceRecord] = []


class SessionStatusIn(CamelModel):
    schedule_id: Optional[int] = None
    date: Optional[dt.date] = None
    status: Optional[str] = None


class ExamPart(CamelModel):
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    venue: Optional[str] = None


class ExamIn(CamelModel):
    title: Optional[str] = None
    program_id: Optional[int] = None
    subject_id: Optional[int] = None
    supervisor_id: Optional[int] = None
    parts: List[ExamPart] = []
    student_ids: List[Union[str, int]] = []
    # Flat schedule, used when no parts are sent
    exam_date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    venue: Optional[str] = None


class ExamResultIn(CamelModel):
    id: Union[str, int]  # student id
    marks_obtained: Optional[float] = None
    grade: Optional[str] = None
    status: Optional[str] = None
    remarks: Optional[str] = None


class ExamResultsIn(CamelModel):
    results: List[ExamResultIn] = []
    status: Optional[str] = None


class StatusIn(CamelModel):
    status: Optional[str] = None


class SlotIn(CamelModel):
    name: Optional[str] = None
    program_id: Optional[int] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    status: Optional[str] = None


class CalendarEventIn(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    type: Optional[str] = None


class DocumentRename(CamelModel):
    name: Optional[str] = None
