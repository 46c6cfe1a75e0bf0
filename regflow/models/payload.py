"""
The "mark profile complete" request body — Pydantic v2 model.

Field names are the backend's wire names. The model is the hard gate in
front of the final submission: whatever the per-field UI state says, a
payload with an empty required field, a non-padded birth date or an
ineligible age cannot be built.
"""
from __future__ import annotations

import re
from typing import List

from pydantic import BaseModel, ConfigDict, EmailStr, ValidationInfo, field_validator

from regflow.config import settings

# Zero-padded MM/DD/YYYY
BACKEND_DATE_RE = re.compile(r"^(0[1-9]|1[0-2])/(0[1-9]|[12][0-9]|3[01])/\d{4}$")


class CompletionPayload(BaseModel):
    """
    Phase-1 identity merged with the validated Phase-2 form.

    Optional fields default to "" so the backend always receives a complete
    record shape. Pass ``context={"min_age": …}`` to ``model_validate`` to
    override the configured minimum age.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    firstName: str
    lastName: str
    middleName: str = ""
    nickName: str = ""
    address: str = ""
    phone: str = ""
    email: EmailStr
    birthDate: str
    age: int
    country: str
    city: str
    civilStatus: str
    hobby: str
    bio: str = ""
    interests: List[str] = []
    lookingFor: List[str] = []

    @field_validator("firstName", "lastName", "country", "city", "civilStatus", "hobby")
    @classmethod
    def validate_required(cls, v: str, info: ValidationInfo) -> str:
        v = v.strip()
        if not v:
            raise ValueError(f"{info.field_name} is required")
        return v

    @field_validator("birthDate")
    @classmethod
    def validate_birth_date(cls, v: str) -> str:
        if not BACKEND_DATE_RE.match(v):
            raise ValueError("birthDate must be a zero-padded MM/DD/YYYY date")
        return v

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: int, info: ValidationInfo) -> int:
        min_age = (info.context or {}).get("min_age", settings.MIN_AGE)
        if v < min_age:
            raise ValueError(f"You must be at least {min_age} years old to join")
        return v
