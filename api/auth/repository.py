"""
Auth persistence helpers (raw SQL).

Admin accounts live in `users`; student logins are checked against `students`.
"""

from __future__ import annotations

from core import db


def normalize_username(username: str) -> str:
    return (username or "").strip().lower()


async def create_user(*, username: str, password_hash: str, role: str) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO users (username, password_hash, role)
        VALUES ($1, $2, $3)
        RETURNING id, username, role, created_at
        """,
        normalize_username(username),
        password_hash,
        role,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def get_user_by_username(username: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, username, password_hash, role, created_at
        FROM users
        WHERE lower(username) = lower($1)
        """,
        normalize_username(username),
    )


async def create_student(
    *,
    name: str,
    reg_no: str,
    major: str | None = None,
    contact: str | None = None,
) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO students (name, reg_no, major, contact)
        VALUES ($1, $2, $3, $4)
        RETURNING id, name, reg_no, major, contact, created_at, updated_at
        """,
        name.strip(),
        reg_no.strip(),
        major,
        contact,
    )
    if row is None:
        raise RuntimeError("Failed to create student.")
    return row


async def get_student_by_reg_no(reg_no: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, name, reg_no, major, contact, created_at, updated_at
        FROM students
        WHERE reg_no = $1
        """,
        (reg_no or "").strip(),
    )
