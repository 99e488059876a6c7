from datetime import date
from decimal import Decimal, InvalidOperation

from fastapi import HTTPException
from sqlalchemy.orm import Session
from starlette.datastructures import FormData, UploadFile

from school_office.database import ProgramDB
from school_office.services.uploads import save_upload


def text_value(form: FormData, key: str):
    value = form.get(key)
    if value is None or isinstance(value, UploadFile):
        return None
    value = str(value).strip()
    return value or None


def date_value(form: FormData, key: str):
    value = text_value(form, key)
    if value is None:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date for {key}: {value}")


def decimal_value(form: FormData, key: str):
    value = text_value(form, key)
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        raise HTTPException(status_code=400, detail=f"Invalid number for {key}: {value}")


def apply_text_fields(obj, form: FormData, field_map: dict):
    """Copies form values onto `obj` for every form key that was actually sent."""
    for form_key, column in field_map.items():
        if form_key in form and not isinstance(form.get(form_key), UploadFile):
            setattr(obj, column, text_value(form, form_key))


def resolve_program_id(db: Session, program):
    """A numeric value is taken as an id, anything else is matched against program names."""
    if not program:
        return None
    if str(program).isdigit():
        return int(program)
    pattern = str(program).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    match = (
        db.query(ProgramDB.id)
        .filter(ProgramDB.name.ilike(f"%{pattern}%", escape="\\"))
        .order_by(ProgramDB.id)
        .first()
    )
    return match[0] if match else None


async def store_files(obj, form: FormData, identifier, file_map: dict):
    """
    Saves every uploaded file in `file_map` (form field -> column) and points
    the column at it. Columns without a new upload keep their current value.
    """
    for field_name, column in file_map.items():
        upload = form.get(field_name)
        if not isinstance(upload, UploadFile):
            continue
        url = await save_upload(upload, identifier, field_name)
        if url:
            setattr(obj, column, url)
