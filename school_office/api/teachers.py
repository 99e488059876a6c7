import logging
import os

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from school_office.api.forms import (apply_text_fields, date_value, decimal_value, resolve_program_id, store_files,
                                     text_value)
from school_office.config import settings
from school_office.database import (ExamDB, ProgramDB, ScheduleDB, StudentDB, SubjectDB, TeacherAttendanceDB,
                                    TeacherDB, TeacherDocumentDB, get_db, row_to_dict, transaction)
from school_office.models.schemas import DocumentRename
from school_office.services.uploads import human_size, remove_upload, safe_token, save_upload

router = APIRouter(prefix="/teachers", tags=["Teachers"])
logger = logging.getLogger(__name__)

TEXT_FIELDS = {
    "empId": "emp_id",
    "name": "name",
    "teacherCategory": "teacher_category",
    "designation": "designation",
    "email": "email",
    "phone": "phone",
    "whatsapp": "whatsapp",
    "address": "address",
    "nic": "nic",
    "gender": "gender",
    "maritalStatus": "marital_status",
    "degreeInstitute": "degree_institute",
    "gradYear": "grad_year",
    "appointmentType": "appointment_type",
    "previousExperience": "previous_experience",
    "department": "department",
    "bankName": "bank_name",
    "accountNumber": "account_number",
    # sent as text or as a file; the file variant is handled in FILE_FIELDS
    "qualification": "qualification",
}

FILE_FIELDS = {
    "profilePhoto": "photo_url",
    "nicCopy": "nic_copy_url",
    "cvFile": "cv_url",
    "certificates": "certificates_url",
    "qualification": "certificates_url",
    "nicFront": "nic_front_url",
    "nicBack": "nic_back_url",
    "birthCertificate": "birth_certificate_url",
}


def _teacher_dict(teacher, program_name=None) -> dict:
    data = row_to_dict(teacher)
    data["program_name"] = program_name
    return data


def _apply_fields(db: Session, teacher: TeacherDB, form):
    apply_text_fields(teacher, form, TEXT_FIELDS)

    if "program" in form:
        teacher.program_id = resolve_program_id(db, text_value(form, "program"))
    if "assignedPrograms" in form:
        programs = [str(p).strip() for p in form.getlist("assignedPrograms") if str(p).strip()]
        teacher.assigned_programs = ", ".join(programs) or None
    for key, column in (("dob", "dob"), ("joiningDate", "joining_date")):
        if key in form:
            setattr(teacher, column, date_value(form, key))
    if "basicSalary" in form:
        teacher.basic_salary = decimal_value(form, "basicSalary") or 0
    if text_value(form, "status"):
        teacher.status = text_value(form, "status")


def _check_identity(db: Session, teacher: TeacherDB):
    """Runs before any file is written, so a rejected form leaves the upload directory untouched."""
    if not teacher.emp_id or not teacher.name:
        raise HTTPException(status_code=400, detail="Employee ID and name are required")
    taken = db.query(TeacherDB.id).filter(TeacherDB.emp_id == teacher.emp_id)
    if teacher.id is not None:
        taken = taken.filter(TeacherDB.id != teacher.id)
    if taken.first():
        raise HTTPException(status_code=400, detail="Employee ID already exists")


@router.get("")
async def list_teachers(db: Session = Depends(get_db)):
    rows = (
        db.query(TeacherDB, ProgramDB.name)
        .select_from(TeacherDB)
        .outerjoin(ProgramDB, TeacherDB.program_id == ProgramDB.id)
        .order_by(TeacherDB.id)
        .all()
    )
    return [_teacher_dict(t, program_name) for t, program_name in rows]


@router.post("", status_code=201)
async def create_teacher(request: Request, db: Session = Depends(get_db)):
    """
    Registers a teacher from a multipart form.

    Text fields use the front-end's camelCase names; files are stored as
    "<empId>-<field>.<ext>" in the upload directory.
    """
    form = await request.form()
    teacher = TeacherDB(status="Active", basic_salary=0)
    _apply_fields(db, teacher, form)
    _check_identity(db, teacher)
    await store_files(teacher, form, teacher.emp_id, FILE_FIELDS)

    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    logger.info("Created teacher %s (%s)", teacher.id, teacher.emp_id)
    return _teacher_dict(teacher)


@router.get("/{teacher_id}")
async def get_teacher(teacher_id: int, db: Session = Depends(get_db)):
    row = (
        db.query(TeacherDB, ProgramDB.name)
        .select_from(TeacherDB)
        .outerjoin(ProgramDB, TeacherDB.program_id == ProgramDB.id)
        .filter(TeacherDB.id == teacher_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return _teacher_dict(*row)


@router.get("/{teacher_id}/stats")
async def teacher_stats(teacher_id: int, db: Session = Depends(get_db)):
    """
    Classes assigned (subjects taught) and students in the teacher's program.

    avgAttendance is a fixed "0%" placeholder; teacher_attendance is not
    aggregated here yet.
    """
    teacher = db.query(TeacherDB).filter(TeacherDB.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")

    classes_assigned = db.query(SubjectDB).filter(SubjectDB.teacher_id == teacher_id).count()
    total_students = 0
    if teacher.program_id:
        total_students = db.query(StudentDB).filter(StudentDB.program_id == teacher.program_id).count()

    return {"classesAssigned": classes_assigned, "totalStudents": total_students, "avgAttendance": "0%"}


@router.put("/{teacher_id}")
async def update_teacher(teacher_id: int, request: Request, db: Session = Depends(get_db)):
    teacher = db.query(TeacherDB).filter(TeacherDB.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")

    form = await request.form()
    _apply_fields(db, teacher, form)
    _check_identity(db, teacher)
    await store_files(teacher, form, teacher.emp_id, FILE_FIELDS)
    db.commit()
    db.refresh(teacher)
    return _teacher_dict(teacher)


@router.delete("/{teacher_id}")
async def delete_teacher(teacher_id: int, db: Session = Depends(get_db)):
    """
    Deletes a teacher, their attendance and documents. Subjects, schedules and
    exams they were attached to stay, unassigned.
    """
    teacher = db.query(TeacherDB).filter(TeacherDB.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")

    documents = db.query(TeacherDocumentDB).filter(TeacherDocumentDB.teacher_id == teacher_id).all()
    with transaction(db):
        db.query(SubjectDB).filter(SubjectDB.teacher_id == teacher_id).update(
            {SubjectDB.teacher_id: None}, synchronize_session=False)
        db.query(ScheduleDB).filter(ScheduleDB.teacher_id == teacher_id).update(
            {ScheduleDB.teacher_id: None}, synchronize_session=False)
        db.query(ExamDB).filter(ExamDB.supervisor_id == teacher_id).update(
            {ExamDB.supervisor_id: None}, synchronize_session=False)
        db.query(TeacherAttendanceDB).filter(TeacherAttendanceDB.teacher_id == teacher_id).delete(
            synchronize_session=False)
        db.query(TeacherDocumentDB).filter(TeacherDocumentDB.teacher_id == teacher_id).delete(
            synchronize_session=False)
        db.delete(teacher)

    for doc in documents:
        remove_upload(doc.file_url)
    return {"message": "Teacher deleted successfully"}


# --- Documents ---

@router.get("/{teacher_id}/documents")
async def list_documents(teacher_id: int, db: Session = Depends(get_db)):
    docs = (
        db.query(TeacherDocumentDB)
        .filter(TeacherDocumentDB.teacher_id == teacher_id)
        .order_by(TeacherDocumentDB.created_at.desc(), TeacherDocumentDB.id.desc())
        .all()
    )
    return [row_to_dict(d) for d in docs]


@router.post("/{teacher_id}/documents", status_code=201)
async def upload_document(
    teacher_id: int,
    document: UploadFile = File(None),
    name: str = Form(None),
    db: Session = Depends(get_db),
):
    teacher = db.query(TeacherDB).filter(TeacherDB.id == teacher_id).first()
    if not teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    if document is None or not document.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    doc = TeacherDocumentDB(teacher_id=teacher_id, name=name or document.filename, file_url="")
    db.add(doc)
    db.flush()

    # one file per document row, even for repeated file names
    field = f"doc{doc.id}-" + safe_token(os.path.splitext(document.filename)[0], default="file")
    doc.file_url = await save_upload(document, teacher.emp_id, field)
    size = os.path.getsize(os.path.join(settings.upload_dir, os.path.basename(doc.file_url)))
    doc.file_size = human_size(size)
    db.commit()
    db.refresh(doc)
    return row_to_dict(doc)


@router.put("/{teacher_id}/documents/{doc_id}")
async def rename_document(teacher_id: int, doc_id: int, req: DocumentRename, db: Session = Depends(get_db)):
    doc = db.query(TeacherDocumentDB).filter(
        TeacherDocumentDB.id == doc_id, TeacherDocumentDB.teacher_id == teacher_id
    ).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    if req.name:
        doc.name = req.name
    db.commit()
    db.refresh(doc)
    return row_to_dict(doc)


@router.delete("/{teacher_id}/documents/{doc_id}")
async def delete_document(teacher_id: int, doc_id: int, db: Session = Depends(get_db)):
    doc = db.query(TeacherDocumentDB).filter(
        TeacherDocumentDB.id == doc_id, TeacherDocumentDB.teacher_id == teacher_id
    ).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")

    file_url = doc.file_url
    db.delete(doc)
    db.commit()
    remove_upload(file_url)
    return {"message": "Document deleted successfully"}
