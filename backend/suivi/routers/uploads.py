"""Attachment API routes: multipart upload, delete, download."""
import logging
from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from suivi.database import get_db
from suivi.deps import get_storage, require_read, require_write
from suivi.models.user import User
from suivi.schemas.attachment import AttachmentOut
from suivi.services import attachment_service
from suivi.storage import LocalFileStorage

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/{record_id}", response_model=list[AttachmentOut], status_code=status.HTTP_201_CREATED)
def upload(
    record_id: int,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    _: User = Depends(require_write),
):
    """Attach up to MAX_FILES_PER_UPLOAD files to a record in one batch."""
    return attachment_service.upload_files(db, record_id, files, storage)


@router.delete("/{attachment_id}")
def delete_attachment(
    attachment_id: int,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    _: User = Depends(require_write),
):
    attachment_service.delete_attachment(db, attachment_id, storage)
    return {"message": "Attachment deleted"}


@router.get("/{attachment_id}/download")
def download(
    attachment_id: int,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
    _: User = Depends(require_read),
):
    """Stream the file back under its original name."""
    attachment, path = attachment_service.resolve_path(db, attachment_id, storage)
    return FileResponse(path, media_type=attachment.mime_type, filename=attachment.original_name)
