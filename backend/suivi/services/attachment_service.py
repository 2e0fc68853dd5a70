"""Attachment store: binds uploaded files to records.

A batch upload is all-or-nothing: a disallowed type, an oversize file, a
missing record or a database failure removes every file the batch already
wrote before the error is raised.
"""
import logging
import mimetypes
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from suivi.config import settings
from suivi.errors import FileTooLarge, InternalError, NotFound, UnsupportedFileType, ValidationError
from suivi.models.attachment import Attachment
from suivi.models.record import ChangeRecord
from suivi.storage import LocalFileStorage, StoredFile

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
})

_CHUNK_SIZE = 1024 * 1024


def _mime_type(upload: UploadFile) -> str:
    """Client-declared type, falling back to a guess from the filename."""
    declared = (upload.content_type or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    return mimetypes.guess_type(upload.filename or "")[0] or "application/octet-stream"


def _read_bounded(upload: UploadFile, limit: int) -> bytes:
    """Read an upload, raising FileTooLarge as soon as it exceeds ``limit`` bytes."""
    chunks: list[bytes] = []
    total = 0
    upload.file.seek(0)
    while True:
        chunk = upload.file.read(_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise FileTooLarge(
                f"File '{upload.filename}' exceeds the {settings.MAX_UPLOAD_SIZE_MB} MB limit"
            )
        chunks.append(chunk)
    return b"".join(chunks)


def _purge(storage: LocalFileStorage, written: list[StoredFile]) -> None:
    for stored in written:
        storage.delete(stored.stored_name)
    if written:
        logger.info("Purged %d file(s) from a rejected upload batch", len(written))


def upload_files(
    db: Session,
    record_id: int,
    files: list[UploadFile],
    storage: LocalFileStorage,
) -> list[Attachment]:
    """Store a batch of files for a record and create one Attachment per file."""
    files = [f for f in files if f is not None and f.filename]
    if not files:
        raise ValidationError("No file provided")
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise ValidationError(f"At most {settings.MAX_FILES_PER_UPLOAD} files per upload")

    mime_types = []
    for upload in files:
        mime_type = _mime_type(upload)
        if mime_type not in ALLOWED_MIME_TYPES:
            logger.warning("Rejected upload '%s' of type %s", upload.filename, mime_type)
            raise UnsupportedFileType(f"File type not allowed: {mime_type}")
        mime_types.append(mime_type)

    written: list[StoredFile] = []
    try:
        for upload in files:
            content = _read_bounded(upload, settings.max_upload_bytes)
            written.append(storage.save(content, upload.filename))

        if not db.query(ChangeRecord.id).filter(ChangeRecord.id == record_id).first():
            raise NotFound("Record not found")

        attachments = [
            Attachment(
                record_id=record_id,
                original_name=Path(upload.filename).name,
                stored_name=stored.stored_name,
                mime_type=mime_type,
                size_bytes=stored.size_bytes,
            )
            for upload, stored, mime_type in zip(files, written, mime_types)
        ]
        db.add_all(attachments)
        db.commit()
    except (FileTooLarge, NotFound):
        _purge(storage, written)
        raise
    except (OSError, SQLAlchemyError):
        db.rollback()
        _purge(storage, written)
        logger.exception("Upload to record %s failed", record_id)
        raise InternalError("Upload failed")

    for attachment in attachments:
        db.refresh(attachment)
    logger.info("Attached %d file(s) to record %s", len(attachments), record_id)
    return attachments


def get_attachment(db: Session, attachment_id: int) -> Attachment:
    attachment = db.query(Attachment).filter(Attachment.id == attachment_id).first()
    if not attachment:
        raise NotFound("Attachment not found")
    return attachment


def delete_attachment(db: Session, attachment_id: int, storage: LocalFileStorage) -> None:
    """Remove the file (a missing one is tolerated) then the row."""
    attachment = get_attachment(db, attachment_id)
    record_id = attachment.record_id
    storage.delete(attachment.stored_name)
    db.delete(attachment)
    db.commit()
    logger.info("Deleted attachment %s of record %s", attachment_id, record_id)


def resolve_path(db: Session, attachment_id: int, storage: LocalFileStorage) -> tuple[Attachment, Path]:
    """Attachment row and absolute file path, for download or preview."""
    attachment = get_attachment(db, attachment_id)
    path = storage.path_for(attachment.stored_name)
    if not path.is_file():
        logger.warning("Attachment %s points at missing file %s", attachment_id, attachment.stored_name)
        raise NotFound("File not found")
    return attachment, path
