"""
Search API endpoint.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies
from resources.registry import ResourceRegistry, get_registry

from . import service

router = APIRouter(
    prefix="/api",
    dependencies=[Depends(auth_dependencies.get_current_user)],
)


@router.get("/search")
async def search(
    query: str = Query(..., min_length=1, max_length=200),
    resource_type: str | None = Query(default=None, alias="type", max_length=50),
    category: str | None = Query(default=None, max_length=200),
    date_filter: service.DateFilter | None = Query(default=None),
    registry: ResourceRegistry = Depends(get_registry),
) -> dict[str, list[dict[str, Any]]]:
    return await service.search(
        registry,
        query,
        resource_type=resource_type,
        category=category,
        date_filter=date_filter,
    )
