import os, random, time
import logging
from typing import Optional
from fastapi import UploadFile
from midixml.core.config import ALLOWED_EXTENSIONS, MIME_ALLOW, MAX_UPLOAD_BYTES
from midixml.core.errors import InputValidationError
from midixml.models.convert import UploadRecord

log = logging.getLogger("storage")

CHUNK = 1 << 20  # 1 MB


def is_midi(filename: Optional[str], content_type: Optional[str]) -> bool:
    if (content_type or "").split(";")[0].strip().lower() in MIME_ALLOW:
        return True
    _, ext = os.path.splitext(filename or "")
    return ext.lower() in ALLOWED_EXTENSIONS


def unique_name(ext: str = ".mid") -> str:
    # millisecond timestamp + random suffix; no locking needed
    return f"{time.time_ns() // 1_000_000}-{random.randint(0, 10**9)}{ext}"


async def save_upload(
    file: Optional[UploadFile],
    upload_dir: str,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> UploadRecord:
    if file is None or not file.filename:
        raise InputValidationError("A MIDI file is required.")
    if not is_midi(file.filename, file.content_type):
        raise InputValidationError("Only MIDI files can be uploaded.")

    os.makedirs(upload_dir, exist_ok=True)
    name = unique_name()
    dest = os.path.join(upload_dir, name)

    size = 0
    try:
        with open(dest, "wb") as out:
            while True:
                chunk = await file.read(CHUNK)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise InputValidationError(
                        "File too large",
                        details={"limit": max_bytes},
                        status_code=413,
                    )
                out.write(chunk)
    except BaseException:
        if os.path.exists(dest):
            os.remove(dest)
        raise

    log.info("Staged upload %s as %s (%d bytes)", file.filename, name, size)
    return UploadRecord(
        generated_name=name,
        original_name=file.filename,
        path=dest,
        size=size,
        content_type=file.content_type,
    )
