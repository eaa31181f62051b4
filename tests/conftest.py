"""
Shared pytest fixtures.

The app runs in-process through TestClient without its lifespan, so no
database pool is opened. Entity stores are swapped for in-memory ones via
dependency overrides, and the credential queries are monkeypatched.
"""

from __future__ import annotations

import datetime as dt
import itertools
from collections.abc import Mapping
from typing import Any

import pytest
from fastapi.testclient import TestClient

from auth import repository as auth_repository
from auth import security
from core import db
from main import app
from resources.registry import DESCRIPTORS, EntityDescriptor, ResourceKind, ResourceRegistry, get_registry
from resources.repository import EntityRepository

TEST_JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"
TEST_DEPARTMENTAL_TOKEN = "cs-dept-2024"


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class InMemoryRepository(EntityRepository):
    """
    Dict-backed stand-in for a table. Enforces the descriptor's unique key the
    way the real unique constraint would, and counts writes.
    """

    def __init__(self, descriptor: EntityDescriptor) -> None:
        super().__init__(descriptor)
        self.rows: dict[int, dict[str, Any]] = {}
        self.writes = 0
        self.reads = 0
        self._ids = itertools.count(1)

    def _check_unique(self, candidate: Mapping[str, Any], *, exclude_id: int | None = None) -> None:
        key = self.descriptor.unique_columns
        if not key:
            return
        for row_id, row in self.rows.items():
            if row_id == exclude_id:
                continue
            if all(row.get(c) == candidate.get(c) for c in key):
                raise db.UniqueViolation("duplicate key", constraint=f"{self.descriptor.table}_key")

    def _matches(self, row, filters, date_from, date_to) -> bool:
        for column, value in (filters or {}).items():
            if row.get(column) != value:
                return False
        column = self.descriptor.date_column
        if column is not None and (date_from or date_to):
            value = row[column]
            day = value.date() if isinstance(value, dt.datetime) else value
            if date_from and day < date_from:
                return False
            if date_to and day > date_to:
                return False
        return True

    def _ordered(self, rows):
        # Mirrors the ORDER BY clause: stable sorts from the last key to the first.
        ordered = [dict(r) for r in rows]
        for term in reversed(self.descriptor.order_by.split(",")):
            column, _, direction = term.strip().partition(" ")
            ordered.sort(key=lambda r: r[column], reverse=direction.upper() == "DESC")
        return ordered

    async def list_all(self, *, filters=None, date_from=None, date_to=None):
        self.reads += 1
        return self._ordered(r for r in self.rows.values() if self._matches(r, filters, date_from, date_to))

    async def get(self, item_id):
        self.reads += 1
        row = self.rows.get(item_id)
        return dict(row) if row is not None else None

    async def create(self, fields):
        self.writes += 1
        record = {c: fields.get(c) for c in self.descriptor.columns}
        if "priority" in record and record["priority"] is None:
            record["priority"] = "normal"
        self._check_unique(record)
        record["id"] = next(self._ids)
        if self.descriptor.has_updated_at:
            record["created_at"] = record["updated_at"] = _now()
        else:
            record["archived_at"] = _now()
        self.rows[record["id"]] = record
        return dict(record)

    async def update(self, item_id, fields):
        self.writes += 1
        row = self.rows.get(item_id)
        if row is None:
            return None
        changes = {c: fields[c] for c in self.descriptor.columns if c in fields}
        self._check_unique({**row, **changes}, exclude_id=item_id)
        row.update(changes)
        if changes and self.descriptor.has_updated_at:
            row["updated_at"] = _now()
        return dict(row)

    async def delete(self, item_id):
        self.writes += 1
        return self.rows.pop(item_id, None) is not None

    async def search(self, needle, *, filters=None, date_from=None, date_to=None):
        self.reads += 1
        lowered = needle.lower()
        return self._ordered(
            r
            for r in self.rows.values()
            if self._matches(r, filters, date_from, date_to)
            and any(lowered in str(r.get(c) or "").lower() for c in self.descriptor.search_columns)
        )


class FakeCredentialStore:
    """
    Replaces the SQL in `auth.repository` with dicts.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.students: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)

    async def create_user(self, *, username: str, password_hash: str, role: str) -> dict:
        key = auth_repository.normalize_username(username)
        if key in self.users:
            raise db.UniqueViolation("duplicate key", constraint="users_username_lower_key")
        row = {
            "id": next(self._ids),
            "username": key,
            "password_hash": password_hash,
            "role": role,
            "created_at": _now(),
        }
        self.users[key] = row
        return dict(row)

    async def get_user_by_username(self, username: str) -> dict | None:
        row = self.users.get(auth_repository.normalize_username(username))
        return dict(row) if row is not None else None

    async def create_student(self, *, name: str, reg_no: str, major=None, contact=None) -> dict:
        if reg_no in self.students:
            raise db.UniqueViolation("duplicate key", constraint="students_reg_no_key")
        row = {
            "id": next(self._ids),
            "name": name,
            "reg_no": reg_no,
            "major": major,
            "contact": contact,
            "created_at": _now(),
            "updated_at": _now(),
        }
        self.students[reg_no] = row
        return dict(row)

    async def get_student_by_reg_no(self, reg_no: str) -> dict | None:
        row = self.students.get((reg_no or "").strip())
        return dict(row) if row is not None else None


@pytest.fixture(autouse=True)
def _auth_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("JWT_ALG", "HS256")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MIN", "60")
    monkeypatch.setenv("DEPARTMENTAL_ID_TOKEN", TEST_DEPARTMENTAL_TOKEN)


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry({kind: InMemoryRepository(DESCRIPTORS[kind]) for kind in ResourceKind})


@pytest.fixture
def credentials(monkeypatch) -> FakeCredentialStore:
    store = FakeCredentialStore()
    for name in ("create_user", "get_user_by_username", "create_student", "get_student_by_reg_no"):
        monkeypatch.setattr(auth_repository, name, getattr(store, name))
    return store


@pytest.fixture
def client(registry, credentials):
    app.dependency_overrides[get_registry] = lambda: registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    def _make(identity: str, role: str, **kwargs) -> dict[str, str]:
        return _bearer(security.build_access_token(identity=identity, role=role, **kwargs))

    return _make


@pytest.fixture
def admin_headers(headers_for) -> dict[str, str]:
    return headers_for("hod", security.ROLE_ADMIN)


@pytest.fixture
def student_headers(headers_for) -> dict[str, str]:
    return headers_for("CS-2024-001", security.ROLE_STUDENT)


@pytest.fixture
def announcement_payload() -> dict[str, Any]:
    return {
        "title": "Mid-semester exams",
        "description": "Exams start on Monday in the main hall.",
        "category": "exams",
        "date": "2025-03-10",
        "time": "09:00",
        "location": "Main hall",
    }
