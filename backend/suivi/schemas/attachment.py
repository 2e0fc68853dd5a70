"""Pydantic schemas for Attachments: the on-disk name stays internal."""
from datetime import datetime
from pydantic import BaseModel


class AttachmentSummary(BaseModel):
    id: int
    original_name: str
    mime_type: str

    model_config = {"from_attributes": True}


class AttachmentOut(AttachmentSummary):
    record_id: int
    size_bytes: int
    created_at: datetime
