"""Pydantic schemas for PurchaseEntries."""
from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from suivi.models.purchase import PurchaseStatus


def _check_period(model):
    if model.start_date and model.end_date and model.end_date < model.start_date:
        raise ValueError("end_date must not be before start_date")
    return model


class PurchaseCreate(BaseModel):
    designation: str = Field(max_length=255)
    supplier: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    status: PurchaseStatus = PurchaseStatus.in_progress

    @field_validator("designation")
    @classmethod
    def designation_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def check_period(self):
        return _check_period(self)


class PurchaseUpdate(BaseModel):
    designation: Optional[str] = Field(default=None, max_length=255)
    supplier: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    status: Optional[PurchaseStatus] = None

    @field_validator("designation", "status")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        if isinstance(value, str) and not isinstance(value, PurchaseStatus):
            value = value.strip()
            if not value:
                raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def check_period(self):
        return _check_period(self)


class PurchaseOut(BaseModel):
    id: int
    record_id: int
    designation: str
    supplier: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    status: PurchaseStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
