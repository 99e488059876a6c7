import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from school_office.api.forms import (apply_text_fields, date_value, decimal_value, resolve_program_id, store_files,
                                     text_value)
from school_office.database import (ClassAttendanceDB, ExamResultDB, ProgramDB, StudentAttendanceDB, StudentDB,
                                    get_db, row_to_dict, transaction)

router = APIRouter(prefix="/students", tags=["Students"])
logger = logging.getLogger(__name__)

TEXT_FIELDS = {
    "currentYear": "current_year",
    "session": "session_year",
    "phone": "contact_number",
    "gender": "gender",
    "nic": "nic",
    "email": "email",
    "address": "address",
    "city": "city",
    "district": "district",
    "province": "province",
    "guardianName": "guardian_name",
    "guardianRelation": "guardian_relation",
    "guardianOccupation": "guardian_occupation",
    "guardianPhone": "guardian_phone",
    "previousSchoolName": "previous_school",
    "mediumOfStudy": "medium_of_study",
    "googleMapLink": "google_map_link",
}

FILE_FIELDS = {
    "studentPhoto": "photo_url",
    "nicFront": "nic_front",
    "nicBack": "nic_back",
    "studentSignature": "student_signature",
    "birthCertificate": "birth_certificate",
    "medicalReport": "medical_report",
    "guardianNic": "guardian_nic",
    "guardianPhoto": "guardian_photo",
    "leavingCertificate": "leaving_certificate",
}


@router.post("", status_code=201)
async def save_student(request: Request, db: Session = Depends(get_db)):
    """
    Adds or edits a student (multipart form), keyed by index number.

    - indexNumber and firstName are required.
    - program is a program name, matched case-insensitively.
    - documents replace the stored ones only when a new file is sent.
    """
    form = await request.form()
    index_number = text_value(form, "indexNumber")
    first_name = text_value(form, "firstName")
    if not index_number or not first_name:
        raise HTTPException(status_code=400, detail="Index number and name are required")

    student = db.query(StudentDB).filter(StudentDB.id == index_number).first()
    created = student is None
    if created:
        student = StudentDB(id=index_number, status="Active")
        db.add(student)

    student.name = f"{first_name} {text_value(form, 'lastName') or ''}".strip()
    student.program_id = resolve_program_id(db, text_value(form, "program"))
    apply_text_fields(student, form, TEXT_FIELDS)
    for key, column in (("dob", "dob"), ("admissionDate", "admission_date")):
        if key in form:
            setattr(student, column, date_value(form, key))
    for key in ("latitude", "longitude"):
        if key in form:
            setattr(student, key, decimal_value(form, key))
    if text_value(form, "status"):
        student.status = text_value(form, "status")

    await store_files(student, form, index_number, FILE_FIELDS)
    db.commit()

    logger.info("%s student %s", "Created" if created else "Updated", index_number)
    return {"message": "Student details saved successfully", "id": index_number}


@router.get("")
async def list_students(db: Session = Depends(get_db)):
    rows = (
        db.query(StudentDB, ProgramDB.name)
        .select_from(StudentDB)
        .outerjoin(ProgramDB, StudentDB.program_id == ProgramDB.id)
        .order_by(StudentDB.created_at.desc(), StudentDB.id)
        .all()
    )
    return [
        {
            "id": s.id,
            "name": s.name,
            "currentYear": s.current_year,
            "status": s.status,
            "contact": s.contact_number,
            "program": program_name,
            "session": s.session_year,
            "photo_url": s.photo_url,
            "guardian": s.guardian_name,
        }
        for s, program_name in rows
    ]


@router.get("/{student_id}")
async def get_student(student_id: str, db: Session = Depends(get_db)):
    row = (
        db.query(StudentDB, ProgramDB.name, ProgramDB.duration)
        .select_from(StudentDB)
        .outerjoin(ProgramDB, StudentDB.program_id == ProgramDB.id)
        .filter(StudentDB.id == student_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Student not found")
    student, program_name, program_duration = row
    return {**row_to_dict(student), "program_name": program_name, "program_duration": program_duration}


@router.delete("/{student_id}")
async def delete_student(student_id: str, db: Session = Depends(get_db)):
    student = db.query(StudentDB).filter(StudentDB.id == student_id).first()
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    with transaction(db):
        for model in (StudentAttendanceDB, ClassAttendanceDB, ExamResultDB):
            db.query(model).filter(model.student_id == student_id).delete(synchronize_session=False)
        db.delete(student)
    return {"message": "Student deleted successfully"}
