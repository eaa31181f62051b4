"""
Resource registry: the closed set of resource kinds and the store behind each.

A URL segment such as `/api/events/...` is resolved here into a `ResourceKind`.
Anything outside the enum is rejected before a store is touched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from pydantic import BaseModel

from . import repository, schemas


class ResourceKind(str, Enum):
    STUDENTS = "students"
    ANNOUNCEMENTS = "announcements"
    EVENTS = "events"
    TIMETABLE = "timetable"
    RESULTS = "results"
    ARCHIVE = "archive"


NOTICE_KINDS = (
    ResourceKind.ANNOUNCEMENTS,
    ResourceKind.EVENTS,
    ResourceKind.TIMETABLE,
    ResourceKind.RESULTS,
)

SEARCHABLE_KINDS = (*NOTICE_KINDS, ResourceKind.STUDENTS)


class UnknownResourceType(ValueError):
    pass


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Everything the generic handlers need to know about one entity type.
    """

    kind: ResourceKind
    label: str
    table: str
    columns: tuple[str, ...]
    create_schema: type[BaseModel]
    # None means records are immutable once created.
    update_schema: type[BaseModel] | None
    unique_columns: tuple[str, ...] = ()
    search_columns: tuple[str, ...] = ()
    filter_columns: tuple[str, ...] = ()
    date_column: str | None = None
    json_columns: tuple[str, ...] = ()
    # Filled with the caller's identity when the client leaves it out.
    author_column: str | None = None
    has_updated_at: bool = True
    order_by: str = "id DESC"


NOTICE_COLUMNS = ("title", "description", "category", "date", "time", "location", "priority", "author")


def _notice(kind: ResourceKind, label: str) -> EntityDescriptor:
    return EntityDescriptor(
        kind=kind,
        label=label,
        table=kind.value,
        columns=NOTICE_COLUMNS,
        create_schema=schemas.NoticeCreate,
        update_schema=schemas.NoticeUpdate,
        search_columns=("title", "description", "category"),
        filter_columns=("category",),
        date_column="date",
        author_column="author",
        order_by="date DESC, id DESC",
    )


DESCRIPTORS: dict[ResourceKind, EntityDescriptor] = {
    ResourceKind.STUDENTS: EntityDescriptor(
        kind=ResourceKind.STUDENTS,
        label="Student",
        table="students",
        columns=("name", "reg_no", "major", "contact"),
        create_schema=schemas.StudentCreate,
        update_schema=schemas.StudentUpdate,
        unique_columns=("reg_no",),
        search_columns=("name", "reg_no", "major"),
        order_by="name ASC, id ASC",
    ),
    ResourceKind.ANNOUNCEMENTS: _notice(ResourceKind.ANNOUNCEMENTS, "Announcement"),
    ResourceKind.EVENTS: _notice(ResourceKind.EVENTS, "Event"),
    ResourceKind.TIMETABLE: _notice(ResourceKind.TIMETABLE, "Timetable entry"),
    ResourceKind.RESULTS: _notice(ResourceKind.RESULTS, "Result"),
    ResourceKind.ARCHIVE: EntityDescriptor(
        kind=ResourceKind.ARCHIVE,
        label="Archive record",
        table="archive",
        columns=("item_type", "item_id", "snapshot", "archived_by"),
        create_schema=schemas.ArchiveCreate,
        update_schema=None,
        unique_columns=("item_type", "item_id"),
        filter_columns=("item_type",),
        date_column="archived_at",
        json_columns=("snapshot",),
        has_updated_at=False,
        order_by="archived_at DESC, id DESC",
    ),
}


def parse_kind(name: str) -> ResourceKind:
    try:
        return ResourceKind((name or "").strip().lower())
    except ValueError as exc:
        raise UnknownResourceType(f"Invalid resource type: {name!r}.") from exc


class ResourceRegistry:
    """
    Maps every `ResourceKind` to its store. Construction fails if a kind is missing.
    """

    def __init__(self, stores: Mapping[ResourceKind, repository.EntityRepository]) -> None:
        missing = [kind.value for kind in ResourceKind if kind not in stores]
        if missing:
            raise ValueError(f"Registry is missing stores for: {', '.join(missing)}")
        self._stores = dict(stores)

    def resolve(self, name: str) -> ResourceKind:
        return parse_kind(name)

    def store(self, kind: ResourceKind) -> repository.EntityRepository:
        return self._stores[kind]

    def descriptor(self, kind: ResourceKind) -> EntityDescriptor:
        return self._stores[kind].descriptor


@lru_cache(maxsize=1)
def default_registry() -> ResourceRegistry:
    return ResourceRegistry(
        {kind: repository.EntityRepository(descriptor) for kind, descriptor in DESCRIPTORS.items()}
    )


def get_registry() -> ResourceRegistry:
    """
    FastAPI dependency. Tests swap the stores through `app.dependency_overrides`.
    """
    return default_registry()
