"""
Cross-collection search.

A case-insensitive substring match fanned out over every searchable kind
(or a single one when `type` is given).
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from fastapi import HTTPException, status

from resources.registry import SEARCHABLE_KINDS, ResourceRegistry, UnknownResourceType

DateFilter = Literal["today", "week", "month"]

# Look-back window per date filter, counted back from today.
DATE_FILTER_DAYS: dict[str, int] = {"week": 7, "month": 30}


def today() -> dt.date:
    return dt.date.today()


def date_range(date_filter: str | None) -> tuple[dt.date | None, dt.date | None]:
    """
    Translate a relative date filter into `(date_from, date_to)`.

    `today` is the current day only. `week` and `month` are open-ended lower
    bounds, so upcoming items still match.
    """
    if not date_filter:
        return None, None
    current = today()
    if date_filter == "today":
        return current, current
    return current - dt.timedelta(days=DATE_FILTER_DAYS[date_filter]), None


async def search(
    registry: ResourceRegistry,
    query: str,
    *,
    resource_type: str | None = None,
    category: str | None = None,
    date_filter: DateFilter | None = None,
) -> dict[str, list[dict[str, Any]]]:
    needle = (query or "").strip()
    if not needle:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="query must not be blank.")

    kinds = SEARCHABLE_KINDS
    if resource_type:
        try:
            kind = registry.resolve(resource_type)
        except UnknownResourceType as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if kind not in SEARCHABLE_KINDS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{kind.value} is not searchable.",
            )
        kinds = (kind,)

    date_from, date_to = date_range(date_filter)

    results: dict[str, list[dict[str, Any]]] = {}
    for kind in kinds:
        descriptor = registry.descriptor(kind)
        unsupported = []
        if category and "category" not in descriptor.filter_columns:
            unsupported.append("category")
        if date_filter and descriptor.date_column is None:
            unsupported.append("date_filter")
        if unsupported:
            # Filters narrow the search to collections that support them.
            if resource_type:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{kind.value} does not support {', '.join(unsupported)}.",
                )
            continue
        filters = {"category": category} if category else None
        results[kind.value] = await registry.store(kind).search(
            needle,
            filters=filters,
            date_from=date_from,
            date_to=date_to,
        )
    return results
