"""
Generic resource endpoints: `/api/{resource_type}[/{item_id}]`.

The whole router sits behind the bearer gate. Reads are open to any
authenticated user; writes need the admin role.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Response, status

from auth import dependencies as auth_dependencies
from auth.security import AuthContext

from . import service
from .registry import ResourceRegistry, get_registry

router = APIRouter(
    prefix="/api",
    dependencies=[Depends(auth_dependencies.get_current_user)],
)


@router.get("/{resource_type}")
async def list_items(
    resource_type: str,
    category: str | None = Query(default=None, max_length=200),
    item_type: str | None = Query(default=None, max_length=50),
    date_from: dt.date | None = Query(default=None),
    date_to: dt.date | None = Query(default=None),
    registry: ResourceRegistry = Depends(get_registry),
) -> list[dict[str, Any]]:
    """
    Full collection, newest first. No pagination.
    """
    return await service.list_items(
        registry,
        resource_type,
        filters={"category": category, "item_type": item_type},
        date_from=date_from,
        date_to=date_to,
    )


@router.post("/{resource_type}", status_code=status.HTTP_201_CREATED)
async def create_item(
    resource_type: str,
    payload: Any = Body(...),
    auth: AuthContext = Depends(auth_dependencies.require_admin),
    registry: ResourceRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return await service.create_item(registry, resource_type, payload, auth=auth)


@router.get("/{resource_type}/{item_id}")
async def get_item(
    resource_type: str,
    item_id: int,
    registry: ResourceRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return await service.get_item(registry, resource_type, item_id)


@router.put("/{resource_type}/{item_id}")
async def update_item(
    resource_type: str,
    item_id: int,
    payload: Any = Body(...),
    auth: AuthContext = Depends(auth_dependencies.require_admin),
    registry: ResourceRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """
    Partial update: fields left out of the body keep their stored values.
    """
    return await service.update_item(registry, resource_type, item_id, payload, auth=auth)


@router.delete("/{resource_type}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    resource_type: str,
    item_id: int,
    auth: AuthContext = Depends(auth_dependencies.require_admin),
    registry: ResourceRegistry = Depends(get_registry),
) -> Response:
    await service.delete_item(registry, resource_type, item_id, auth=auth)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{resource_type}/{item_id}/archive", status_code=status.HTTP_201_CREATED)
async def archive_item(
    resource_type: str,
    item_id: int,
    auth: AuthContext = Depends(auth_dependencies.require_admin),
    registry: ResourceRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return await service.archive_item(registry, resource_type, item_id, auth=auth)
