import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Time,
                        UniqueConstraint, create_engine, func, inspect)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from school_office.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str):
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, pool_recycle=1800)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class ProgramDB(Base):
    __tablename__ = "programs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(50))
    category = Column(String(50))
    duration = Column(String(50))
    fees = Column(String(50))
    head_of_program = Column(String(100))
    status = Column(String(20), default="Active")
    created_at = Column(DateTime, server_default=func.now())


class TeacherDB(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    emp_id = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    program_id = Column(Integer, ForeignKey("programs.id"))
    teacher_category = Column(String(50))
    assigned_programs = Column(Text)  # comma separated program names
    designation = Column(String(100))
    email = Column(String(100))
    phone = Column(String(20))
    whatsapp = Column(String(20))
    address = Column(Text)
    nic = Column(String(20))
    dob = Column(Date)
    gender = Column(String(20))
    marital_status = Column(String(20))
    joining_date = Column(Date)
    qualification = Column(Text)
    degree_institute = Column(String(100))
    grad_year = Column(String(20))
    appointment_type = Column(String(50))
    previous_experience = Column(Text)
    department = Column(String(100))
    basic_salary = Column(Numeric(10, 2), default=0)
    bank_name = Column(String(100))
    account_number = Column(String(50))
    photo_url = Column(Text)
    cv_url = Column(Text)
    certificates_url = Column(Text)
    nic_copy_url = Column(Text)
    nic_front_url = Column(Text)
    nic_back_url = Column(Text)
    birth_certificate_url = Column(Text)
    status = Column(String(20), default="Active")
    created_at = Column(DateTime, server_default=func.now())


class TeacherDocumentDB(Base):
    __tablename__ = "teacher_documents"

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), index=True)
    name = Column(String(255), nullable=False)
    file_url = Column(Text, nullable=False)
    file_size = Column(String(50))
    created_at = Column(DateTime, server_default=func.now())


class StudentDB(Base):
    __tablename__ = "students"

    # Index number assigned by the office, not a surrogate key
    id = Column(String(50), primary_key=True)
    name = Column(String(150), nullable=False)
    program_id = Column(Integer, ForeignKey("programs.id"))
    current_year = Column(String(50))
    session_year = Column(String(50))
    status = Column(String(20), default="Active")
    contact_number = Column(String(20))
    dob = Column(Date)
    gender = Column(String(20))
    nic = Column(String(20))
    email = Column(String(100))
    address = Column(Text)
    city = Column(String(100))
    district = Column(String(100))
    province = Column(String(100))
    guardian_name = Column(String(100))
    guardian_relation = Column(String(50))
    guardian_occupation = Column(String(100))
    guardian_phone = Column(String(20))
    admission_date = Column(Date)
    previous_school = Column(String(100))
    medium_of_study = Column(String(50))
    google_map_link = Column(Text)
    latitude = Column(Numeric(10, 8))
    longitude = Column(Numeric(11, 8))
    photo_url = Column(Text)
    nic_front = Column(Text)
    nic_back = Column(Text)
    student_signature = Column(Text)
    birth_certificate = Column(Text)
    medical_report = Column(Text)
    guardian_nic = Column(Text)
    guardian_photo = Column(Text)
    leaving_certificate = Column(Text)
    created_at = Column(DateTime, server_default=func.now())


class SubjectDB(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    program_id = Column(Integer, ForeignKey("programs.id"), index=True)
    year = Column(String(50))  # cohort label, e.g. "Grade 1", "1" or empty
    teacher_id = Column(Integer, ForeignKey("teachers.id"))
    created_at = Column(DateTime, server_default=func.now())


class ScheduleDB(Base):
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    program_id = Column(Integer, ForeignKey("programs.id"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id"))  # NULL for breaks
    teacher_id = Column(Integer, ForeignKey("teachers.id"))
    day_of_week = Column(String(20), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    type = Column(String(50), default="")


class StudentAttendanceDB(Base):
    __tablename__ = "student_attendance"
    __table_args__ = (UniqueConstraint("student_id", "date", name="uq_student_attendance_day"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)
    reason = Column(Text, default="")
    created_at = Column(DateTime, server_default=func.now())


class TeacherAttendanceDB(Base):
    __tablename__ = "teacher_attendance"
    __table_args__ = (UniqueConstraint("teacher_id", "date", name="uq_teacher_attendance_day"),)

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class ClassAttendanceDB(Base):
    """Per-lesson attendance. A row existing for (schedule, date) means the class was held."""
    __tablename__ = "class_attendance"
    __table_args__ = (
        UniqueConstraint("schedule_id", "student_id", "date", name="uq_class_attendance"),
    )

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False)
    remarks = Column(Text, default="")


class ClassSessionDB(Base):
    """Explicit Completed/Cancelled override for one materialized lesson."""
    __tablename__ = "class_sessions"
    __table_args__ = (UniqueConstraint("schedule_id", "date", name="uq_class_session"),)

    id = Column(Integer, primary_key=True, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    date = Column(Date, nullable=False, index=True)
    status = Column(String(20), nullable=False)
    updated_at = Column(DateTime, server_default=func.now())


class ExamDB(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200))
    program_id = Column(Integer, ForeignKey("programs.id"))
    subject_id = Column(Integer, ForeignKey("subjects.id"))
    exam_date = Column(Date, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
    venue = Column(String(100))
    total_marks = Column(Integer, default=100)
    supervisor_id = Column(Integer, ForeignKey("teachers.id"))
    status = Column(String(20), default="Upcoming")


class ExamPartDB(Base):
    __tablename__ = "exam_parts"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    position = Column(Integer, default=0)
    date = Column(Date)
    start_time = Column(Time)
    end_time = Column(Time)
    venue = Column(String(100))


class ExamResultDB(Base):
    __tablename__ = "exam_results"
    __table_args__ = (UniqueConstraint("exam_id", "student_id", name="uq_exam_result"),)

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False)
    student_id = Column(String(50), ForeignKey("students.id"), nullable=False)
    marks_obtained = Column(Numeric(6, 2))
    grade = Column(String(10))
    status = Column(String(20), default="Present")
    remarks = Column(Text)


class ExaminationSlotDB(Base):
    __tablename__ = "examination_slots"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    program_id = Column(Integer, ForeignKey("programs.id"))
    start_date = Column(Date)
    end_date = Column(Date)
    status = Column(String(20), default="Upcoming")


class CalendarEventDB(Base):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    event_date = Column(Date, nullable=False)
    event_type = Column(String(50), default="success")


class SchemaMigrationDB(Base):
    __tablename__ = "schema_migrations"

    version = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    checksum = Column(String(64), nullable=False)
    applied_at = Column(DateTime, server_default=func.now())


def init_db(bind=None):
    from school_office.migrations import run_migrations

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    applied = run_migrations(bind)
    logger.info("Database ready at %s (%d migrations applied)", bind.url.render_as_string(hide_password=True), len(applied))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Runs a multi-step write as one unit.

    Commits when the block finishes, otherwise rolls back everything issued
    through `db` inside the block and re-raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def upsert(db: Session, model, values: dict, conflict_on: list, update: list, extra_set: dict = None):
    """
    INSERT ... ON CONFLICT (conflict_on) DO UPDATE SET <update columns>.

    With nothing to update the statement becomes ON CONFLICT DO NOTHING, so an
    existing row is left untouched.

    The unique constraint on `conflict_on` decides which row survives, so two
    concurrent writers for the same key still leave exactly one row. Does not
    commit.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model.__table__).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite_insert(model.__table__).values(**values)
    else:
        raise NotImplementedError(f"upsert not supported for dialect {dialect}")

    set_ = {**{col: stmt.excluded[col] for col in update}, **(extra_set or {})}
    if set_:
        stmt = stmt.on_conflict_do_update(index_elements=conflict_on, set_=set_)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=conflict_on)
    db.execute(stmt)


def _jsonable(value):
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def row_to_dict(obj) -> dict:
    """Column values of an ORM object, ready for a JSON response."""
    return {c.key: _jsonable(getattr(obj, c.key)) for c in inspect(obj).mapper.column_attrs}
