"""Pydantic schemas for the auth endpoints.

Learn: Input validation lives entirely here — by the time a request body
reaches the façade it is well-typed and well-formed. Field errors are
turned into 400 {"errors": [{field, message}]} by the handler in main.py.

JSON uses camelCase (fullName); Python uses snake_case (full_name).
"""

import re
import uuid

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from linkauth.auth.outcome import PublicUser

PASSWORD_RULES: list[tuple[str, str]] = [
    (r"[A-Z]", "Password must contain at least one uppercase letter."),
    (r"[a-z]", "Password must contain at least one lowercase letter."),
    (r"[0-9]", "Password must contain at least one number."),
    (r"[^A-Za-z0-9]", "Password must contain at least one special character."),
]

# Used when a field is missing from the body altogether.
REQUIRED_MESSAGES: dict[str, str] = {
    "fullName": "Full name is required.",
    "email": "Email is required.",
    "password": "Password is required.",
}


def _check_email(v):
    v = v.strip() if isinstance(v, str) else v
    if not v:
        raise ValueError("Email is required.")
    try:
        validate_email(v)
    except PydanticCustomError:
        raise ValueError("Invalid email format.")
    return v


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Requests ────────────────────────────────────────────


class SignupRequest(CamelModel):
    full_name: str
    email: str
    password: str

    @field_validator("full_name", mode="before")
    @classmethod
    def check_full_name(cls, v):
        v = v.strip() if isinstance(v, str) else v
        if not v:
            raise ValueError("Full name is required.")
        if isinstance(v, str) and len(v) < 3:
            raise ValueError("Full name must be at least 3 characters long.")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required.")
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long.")
        for pattern, message in PASSWORD_RULES:
            if not re.search(pattern, v):
                raise ValueError(message)
        return v


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v):
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required.")
        return v


# ─── Responses ───────────────────────────────────────────


class UserRead(CamelModel):
    """Boundary user shape: {id, fullName, email} and nothing else."""

    id: uuid.UUID
    full_name: str
    email: str

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserRead":
        return cls(id=user.id, full_name=user.full_name, email=user.email)


class AuthResponse(CamelModel):
    message: str
    user: UserRead


class MessageResponse(BaseModel):
    message: str
