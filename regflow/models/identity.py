"""
Phase-1 identity: the credentials-only account created before profile completion.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator


class Phase1Identity(BaseModel):
    """
    Produced by account creation and read-only for the rest of registration.

    Attributes
    ----------
    username : Backend account name every later call is keyed on
    email    : Authoritative e-mail; always wins over any Phase-2 value
    """

    model_config = ConfigDict(frozen=True)

    username: str
    email: EmailStr

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username must not be empty")
        return v
