"""Pydantic schemas for Users and authentication."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from suivi.models.user import Role


class LoginRequest(BaseModel):
    login: str = ""
    password: str = ""


class UserCreate(BaseModel):
    login: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)
    display_name: str = Field(min_length=1, max_length=150)
    email: Optional[str] = None
    role: Role = Role.reader
    active: bool = True

    @field_validator("login", "display_name")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserUpdate(BaseModel):
    login: Optional[str] = Field(default=None, min_length=1, max_length=100)
    password: Optional[str] = None
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    email: Optional[str] = None
    role: Optional[Role] = None
    active: Optional[bool] = None

    @field_validator("login", "display_name", "role", "active")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("must not be blank")
        return value


class UserOut(BaseModel):
    id: int
    login: str
    display_name: str
    email: Optional[str] = None
    role: Role
    active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CurrentUserOut(UserOut):
    capabilities: list[str] = []


class LoginResponse(BaseModel):
    token: str
    user: CurrentUserOut
