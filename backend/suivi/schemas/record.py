"""Pydantic schemas for ChangeRecords and their list/filter responses."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from suivi.schemas.attachment import AttachmentOut, AttachmentSummary
from suivi.schemas.purchase import PurchaseOut

_REQUIRED_TEXT = ("reference", "product_line", "model", "title")


def _clean_required(value):
    if value is None:
        raise ValueError("must not be null")
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class RecordCreate(BaseModel):
    reference: str = Field(max_length=100)
    product_line: str = Field(max_length=150)
    model: str = Field(max_length=150)
    title: str = Field(max_length=255)
    description: Optional[str] = None
    affected_serials: Optional[str] = None
    supplier: Optional[str] = None
    subassembly: Optional[str] = None
    component: Optional[str] = None
    validated_on: Optional[date] = None
    in_production_since: Optional[date] = None
    sheet_part_name: Optional[str] = None
    external_code: Optional[str] = None

    @field_validator(*_REQUIRED_TEXT)
    @classmethod
    def check_required(cls, value):
        return _clean_required(value)


class RecordUpdate(BaseModel):
    """Partial update: omitted fields keep their value, explicit null clears optional ones."""

    reference: Optional[str] = Field(default=None, max_length=100)
    product_line: Optional[str] = Field(default=None, max_length=150)
    model: Optional[str] = Field(default=None, max_length=150)
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    affected_serials: Optional[str] = None
    supplier: Optional[str] = None
    subassembly: Optional[str] = None
    component: Optional[str] = None
    validated_on: Optional[date] = None
    in_production_since: Optional[date] = None
    sheet_part_name: Optional[str] = None
    external_code: Optional[str] = None

    @field_validator(*_REQUIRED_TEXT)
    @classmethod
    def check_required(cls, value):
        return _clean_required(value)


class CreatorOut(BaseModel):
    id: int
    display_name: str

    model_config = {"from_attributes": True}


class CreatorDetailOut(CreatorOut):
    email: Optional[str] = None


class _RecordFields(BaseModel):
    id: int
    reference: str
    product_line: str
    model: str
    title: str
    description: Optional[str] = None
    affected_serials: Optional[str] = None
    supplier: Optional[str] = None
    subassembly: Optional[str] = None
    component: Optional[str] = None
    validated_on: Optional[date] = None
    in_production_since: Optional[date] = None
    sheet_part_name: Optional[str] = None
    external_code: Optional[str] = None
    creator_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RecordListItem(_RecordFields):
    creator: CreatorOut
    attachments: list[AttachmentSummary] = []


class RecordOut(_RecordFields):
    creator: CreatorDetailOut
    attachments: list[AttachmentOut] = []
    purchases: list[PurchaseOut] = []


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RecordPage(BaseModel):
    data: list[RecordListItem]
    pagination: Pagination


class FilterValues(BaseModel):
    product_lines: list[str]
    models: list[str]
    external_codes: list[str]
