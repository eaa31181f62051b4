"""
Auth API schemas (request/response models).

Admins authenticate with username + password. Students authenticate with
their name + registration number, the same pair the department issues them.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints


Text = Annotated[str, StringConstraints(strip_whitespace=True)]

# Passwords are taken byte for byte; surrounding spaces are part of the secret.
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid")


class AdminRegisterRequest(_Request):
    user_type: Literal["admin"]
    username: Text = Field(..., min_length=3, max_length=80)
    password: Password = Field(..., min_length=8, max_length=128)
    departmental_id_token: Text = Field(..., min_length=1, max_length=256)


class StudentRegisterRequest(_Request):
    user_type: Literal["student"]
    name: Text = Field(..., min_length=1, max_length=120)
    reg_no: Text = Field(..., min_length=1, max_length=64)
    major: Text | None = Field(default=None, max_length=120)
    contact: Text | None = Field(default=None, max_length=255)


RegisterRequest = Annotated[
    Union[AdminRegisterRequest, StudentRegisterRequest],
    Field(discriminator="user_type"),
]


class AdminLoginRequest(_Request):
    user_type: Literal["admin"]
    username: Text = Field(..., min_length=1, max_length=80)
    password: Password = Field(..., min_length=1, max_length=128)


class StudentLoginRequest(_Request):
    user_type: Literal["student"]
    name: Text = Field(..., min_length=1, max_length=120)
    reg_no: Text = Field(..., min_length=1, max_length=64)


LoginRequest = Annotated[
    Union[AdminLoginRequest, StudentLoginRequest],
    Field(discriminator="user_type"),
]


class UserResponse(BaseModel):
    """
    Public view of an account. Never carries a password hash.
    """

    id: int
    identity: str
    role: str
    name: str | None = None


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class MeResponse(BaseModel):
    identity: str
    role: str
