"""
Request schemas for notice-board resources.

Create schemas carry required fields and server defaults. Update schemas make
every field optional for partial updates, but a required column can never be
blanked or set to null through them.
"""

from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator

NonBlank = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
LongText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=10_000)]
Priority = Literal["low", "normal", "high", "urgent"]

DEFAULT_PRIORITY: Priority = "normal"

# Ids are BIGSERIAL; anything outside this range cannot name a stored row.
MAX_ITEM_ID = 2**63 - 1


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _Payload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class _PartialPayload(_Payload):
    # Columns that are NOT NULL in storage; an update may omit them but not null them.
    required_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_nulled_required(self) -> "_PartialPayload":
        nulled = [
            name for name in self.required_fields
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class NoticeCreate(_Payload):
    title: NonBlank
    description: LongText
    category: NonBlank
    date: dt.date
    time: str | None = Field(default=None, max_length=32)
    location: str | None = Field(default=None, max_length=255)
    priority: Priority = DEFAULT_PRIORITY
    author: str | None = Field(default=None, max_length=120)

    @field_validator("time", "location", "author", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)


class NoticeUpdate(_PartialPayload):
    required_fields: ClassVar[tuple[str, ...]] = (
        "title",
        "description",
        "category",
        "date",
        "priority",
        "author",
    )

    title: NonBlank | None = None
    description: LongText | None = None
    category: NonBlank | None = None
    date: dt.date | None = None
    time: str | None = Field(default=None, max_length=32)
    location: str | None = Field(default=None, max_length=255)
    priority: Priority | None = None
    author: NonBlank | None = None

    @field_validator("time", "location", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)


class StudentCreate(_Payload):
    name: NonBlank
    reg_no: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
    major: str | None = Field(default=None, max_length=120)
    contact: str | None = Field(default=None, max_length=255)

    @field_validator("major", "contact", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)


class StudentUpdate(_PartialPayload):
    required_fields: ClassVar[tuple[str, ...]] = ("name", "reg_no")

    name: NonBlank | None = None
    reg_no: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)] | None = None
    major: str | None = Field(default=None, max_length=120)
    contact: str | None = Field(default=None, max_length=255)

    @field_validator("major", "contact", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ArchiveCreate(_Payload):
    item_type: NonBlank
    item_id: int = Field(..., ge=1, le=MAX_ITEM_ID)
