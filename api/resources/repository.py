"""
Generic entity persistence (raw SQL).

One `EntityRepository` per table. Table and column names come from the
static descriptors in `registry.py`, never from request input; values are
always passed as positional parameters.
"""

from __future__ import annotations

import datetime as dt
import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from core import db

if TYPE_CHECKING:
    from .registry import EntityDescriptor


def _json_arg(value: Any) -> str | None:
    """
    asyncpg does not automatically encode Python dicts for json/jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=True, default=str)


def like_pattern(needle: str) -> str:
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class EntityRepository:
    def __init__(self, descriptor: EntityDescriptor) -> None:
        self.descriptor = descriptor

    def _encode(self, column: str, value: Any) -> Any:
        if column in self.descriptor.json_columns:
            return _json_arg(value)
        return value

    def _placeholder(self, column: str, index: int) -> str:
        if column in self.descriptor.json_columns:
            return f"${index}::jsonb"
        return f"${index}"

    def _decode(self, row: dict[str, Any]) -> dict[str, Any]:
        for column in self.descriptor.json_columns:
            value = row.get(column)
            if isinstance(value, str):
                row[column] = json.loads(value)
        return row

    def _where(
        self,
        *,
        filters: Mapping[str, Any] | None,
        date_from: dt.date | None,
        date_to: dt.date | None,
        args: list[Any],
    ) -> list[str]:
        clauses: list[str] = []
        for column, value in (filters or {}).items():
            if column not in self.descriptor.filter_columns:
                raise ValueError(f"{column!r} is not filterable on {self.descriptor.table}.")
            args.append(value)
            clauses.append(f"{column} = ${len(args)}")

        date_column = self.descriptor.date_column
        if date_column is not None:
            if date_from is not None:
                args.append(date_from)
                clauses.append(f"{date_column}::date >= ${len(args)}")
            if date_to is not None:
                args.append(date_to)
                clauses.append(f"{date_column}::date <= ${len(args)}")
        return clauses

    async def list_all(
        self,
        *,
        filters: Mapping[str, Any] | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[dict[str, Any]]:
        args: list[Any] = []
        clauses = self._where(filters=filters, date_from=date_from, date_to=date_to, args=args)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await db.fetch_all(
            f"""
            SELECT *
            FROM {self.descriptor.table}
            {where}
            ORDER BY {self.descriptor.order_by}
            """,
            *args,
        )
        return [self._decode(row) for row in rows]

    async def get(self, item_id: int) -> dict[str, Any] | None:
        row = await db.fetch_one(
            f"""
            SELECT *
            FROM {self.descriptor.table}
            WHERE id = $1
            """,
            item_id,
        )
        return self._decode(row) if row is not None else None

    async def create(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        columns = [c for c in self.descriptor.columns if c in fields]
        placeholders = [self._placeholder(c, i) for i, c in enumerate(columns, start=1)]
        row = await db.fetch_one(
            f"""
            INSERT INTO {self.descriptor.table} ({', '.join(columns)})
            VALUES ({', '.join(placeholders)})
            RETURNING *
            """,
            *[self._encode(c, fields[c]) for c in columns],
        )
        if row is None:
            raise RuntimeError(f"Failed to insert into {self.descriptor.table}.")
        return self._decode(row)

    async def update(self, item_id: int, fields: Mapping[str, Any]) -> dict[str, Any] | None:
        """
        Apply a partial update. Returns None when the id does not exist.
        """
        columns = [c for c in self.descriptor.columns if c in fields]
        if not columns:
            return await self.get(item_id)

        assignments = [f"{c} = {self._placeholder(c, i)}" for i, c in enumerate(columns, start=2)]
        if self.descriptor.has_updated_at:
            assignments.append("updated_at = now()")

        row = await db.fetch_one(
            f"""
            UPDATE {self.descriptor.table}
            SET {', '.join(assignments)}
            WHERE id = $1
            RETURNING *
            """,
            item_id,
            *[self._encode(c, fields[c]) for c in columns],
        )
        return self._decode(row) if row is not None else None

    async def delete(self, item_id: int) -> bool:
        status_tag = await db.execute(
            f"""
            DELETE FROM {self.descriptor.table}
            WHERE id = $1
            """,
            item_id,
        )
        return db.affected_rows(status_tag) > 0

    async def search(
        self,
        needle: str,
        *,
        filters: Mapping[str, Any] | None = None,
        date_from: dt.date | None = None,
        date_to: dt.date | None = None,
    ) -> list[dict[str, Any]]:
        """
        Case-insensitive substring match over the descriptor's search columns,
        optionally narrowed by filters and a date range.
        """
        if not self.descriptor.search_columns:
            return []

        args: list[Any] = [like_pattern(needle)]
        matches = " OR ".join(f"{c} ILIKE $1 ESCAPE '\\'" for c in self.descriptor.search_columns)
        clauses = [f"({matches})"]
        clauses.extend(self._where(filters=filters, date_from=date_from, date_to=date_to, args=args))

        rows = await db.fetch_all(
            f"""
            SELECT *
            FROM {self.descriptor.table}
            WHERE {' AND '.join(clauses)}
            ORDER BY {self.descriptor.order_by}
            """,
            *args,
        )
        return [self._decode(row) for row in rows]
