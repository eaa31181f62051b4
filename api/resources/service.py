"""
Generic resource operations.

Every function resolves the type name first, so an unknown type fails with
400 before any store call. Handlers are shared by all kinds; per-kind
behavior comes from the `EntityDescriptor`.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError

from auth.security import AuthContext
from core import db

from .registry import EntityDescriptor, ResourceKind, ResourceRegistry, UnknownResourceType
from .schemas import MAX_ITEM_ID

logger = logging.getLogger(__name__)


def resolve_kind(registry: ResourceRegistry, resource_type: str) -> ResourceKind:
    try:
        return registry.resolve(resource_type)
    except UnknownResourceType as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{location}: {err.get('msg')}")
    return "; ".join(parts)


def _validate(schema: type, payload: Any, *, partial: bool) -> dict[str, Any]:
    try:
        model = schema.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_format_validation_error(exc),
        ) from exc
    return model.model_dump(exclude_unset=partial)


def _not_found(descriptor: EntityDescriptor) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{descriptor.label} not found.")


def _require_storable_id(descriptor: EntityDescriptor, item_id: int) -> None:
    # Ids outside the BIGSERIAL range name no row.
    if not 1 <= item_id <= MAX_ITEM_ID:
        raise _not_found(descriptor)


def _conflict(descriptor: EntityDescriptor, exc: db.UniqueViolation) -> HTTPException:
    columns = ", ".join(descriptor.unique_columns) or "a unique field"
    logger.info("unique_violation table=%s constraint=%s", descriptor.table, exc.constraint)
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"{descriptor.label} with the same {columns} already exists.",
    )


async def list_items(
    registry: ResourceRegistry,
    resource_type: str,
    *,
    filters: dict[str, Any] | None = None,
    date_from: dt.date | None = None,
    date_to: dt.date | None = None,
) -> list[dict[str, Any]]:
    kind = resolve_kind(registry, resource_type)
    descriptor = registry.descriptor(kind)

    active = {k: v for k, v in (filters or {}).items() if v is not None}
    unsupported = sorted(set(active) - set(descriptor.filter_columns))
    if unsupported:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported filter(s) for {kind.value}: {', '.join(unsupported)}.",
        )
    if (date_from or date_to) and descriptor.date_column is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Date filters are not supported for {kind.value}.",
        )
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_from must not be after date_to.",
        )

    return await registry.store(kind).list_all(filters=active, date_from=date_from, date_to=date_to)


async def get_item(registry: ResourceRegistry, resource_type: str, item_id: int) -> dict[str, Any]:
    kind = resolve_kind(registry, resource_type)
    _require_storable_id(registry.descriptor(kind), item_id)
    row = await registry.store(kind).get(item_id)
    if row is None:
        raise _not_found(registry.descriptor(kind))
    return row


async def create_item(
    registry: ResourceRegistry,
    resource_type: str,
    payload: Any,
    *,
    auth: AuthContext,
) -> dict[str, Any]:
    kind = resolve_kind(registry, resource_type)
    descriptor = registry.descriptor(kind)

    fields = _validate(descriptor.create_schema, payload, partial=False)
    if kind is ResourceKind.ARCHIVE:
        return await archive_item(registry, fields["item_type"], fields["item_id"], auth=auth)

    if descriptor.author_column and not fields.get(descriptor.author_column):
        fields[descriptor.author_column] = auth.identity

    try:
        row = await registry.store(kind).create(fields)
    except db.UniqueViolation as exc:
        raise _conflict(descriptor, exc) from exc

    logger.info("item_created type=%s id=%s by=%s", kind.value, row.get("id"), auth.identity)
    return row


async def update_item(
    registry: ResourceRegistry,
    resource_type: str,
    item_id: int,
    payload: Any,
    *,
    auth: AuthContext,
) -> dict[str, Any]:
    kind = resolve_kind(registry, resource_type)
    descriptor = registry.descriptor(kind)

    if descriptor.update_schema is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{descriptor.label}s cannot be modified.",
        )

    _require_storable_id(descriptor, item_id)
    fields = _validate(descriptor.update_schema, payload, partial=True)
    try:
        row = await registry.store(kind).update(item_id, fields)
    except db.UniqueViolation as exc:
        raise _conflict(descriptor, exc) from exc

    if row is None:
        raise _not_found(descriptor)

    logger.info(
        "item_updated type=%s id=%s fields=%s by=%s",
        kind.value,
        item_id,
        ",".join(sorted(fields)),
        auth.identity,
    )
    return row


async def delete_item(
    registry: ResourceRegistry,
    resource_type: str,
    item_id: int,
    *,
    auth: AuthContext,
) -> None:
    kind = resolve_kind(registry, resource_type)
    _require_storable_id(registry.descriptor(kind), item_id)
    deleted = await registry.store(kind).delete(item_id)
    if not deleted:
        raise _not_found(registry.descriptor(kind))
    logger.info("item_deleted type=%s id=%s by=%s", kind.value, item_id, auth.identity)


async def archive_item(
    registry: ResourceRegistry,
    resource_type: str,
    item_id: int,
    *,
    auth: AuthContext,
) -> dict[str, Any]:
    """
    Record that an item is archived. The original record is left in place;
    deleting it is a separate request.
    """
    kind = resolve_kind(registry, resource_type)
    if kind is ResourceKind.ARCHIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Archive records cannot be archived.",
        )

    _require_storable_id(registry.descriptor(kind), item_id)
    original = await registry.store(kind).get(item_id)
    if original is None:
        raise _not_found(registry.descriptor(kind))

    try:
        row = await registry.store(ResourceKind.ARCHIVE).create(
            {
                "item_type": kind.value,
                "item_id": item_id,
                "snapshot": original,
                "archived_by": auth.identity,
            }
        )
    except db.UniqueViolation as exc:
        logger.info("archive_rejected type=%s id=%s reason=already_archived", kind.value, item_id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{registry.descriptor(kind).label} {item_id} is already archived.",
        ) from exc

    logger.info(
        "item_archived type=%s id=%s archive_id=%s by=%s",
        kind.value,
        item_id,
        row.get("id"),
        auth.identity,
    )
    return row
