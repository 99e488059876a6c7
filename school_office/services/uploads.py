import logging
import os
import re
from typing import Optional

from fastapi import UploadFile

from school_office.config import settings

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")


def safe_token(value, default: str = "Unknown") -> str:
    return _UNSAFE.sub("", str(value or "")) or default


def stored_filename(identifier, field_name: str, original_name: str) -> str:
    """
    "<id>-<field><ext>", e.g. ("ST/001", "studentPhoto", "me.jpg") -> "ST001-studentPhoto.jpg".

    The same person uploading the same field again overwrites the old file.
    """
    safe_id = safe_token(identifier)
    ext = os.path.splitext(original_name or "")[1]
    return f"{safe_id}-{field_name}{ext}"


def human_size(size_bytes: int) -> str:
    mb = size_bytes / (1024 * 1024)
    if mb < 1:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{mb:.2f} MB"


async def save_upload(upload: Optional[UploadFile], identifier, field_name: str) -> Optional[str]:
    """
    Writes an uploaded form file to the upload directory.

    Returns:
        str | None: public URL ("/uploads/<name>"), or None when no file was sent.
    """
    if upload is None or not upload.filename:
        return None
    os.makedirs(settings.upload_dir, exist_ok=True)
    filename = stored_filename(identifier, field_name, upload.filename)
    content = await upload.read()
    with open(os.path.join(settings.upload_dir, filename), "wb") as fh:
        fh.write(content)
    logger.info("Stored upload %s (%d bytes)", filename, len(content))
    return f"/uploads/{filename}"


def remove_upload(file_url: Optional[str]) -> bool:
    if not file_url:
        return False
    path = os.path.join(settings.upload_dir, os.path.basename(file_url))
    if os.path.exists(path):
        os.remove(path)
        return True
    return False
