"""Sorted, cursor-paginated listing over a collection of named records.

The engine is deliberately storage-agnostic: it pulls the full collection
from a :class:`RecordSource`, orders it by the requested field with the
record id as tie-break, and slices out the page that follows the cursor
carried in the page token.

Page tokens are URL-safe base64 JSON documents holding the sort spec that
minted them plus the sort key and id of the last record served. Because a
token names a position in the ordering rather than an offset, records added
or removed elsewhere in the collection do not shift unrelated pages.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar

from pipeline_registry.db.time import as_utc
from pipeline_registry.services.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = frozenset({"name", "created_at"})
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200
MAX_TOKEN_LENGTH = 4096

_DIRECTIONS = {"asc": False, "desc": True}
_TOKEN_KEYS = frozenset({"field", "desc", "key", "id"})


class Listable(Protocol):
    """Minimal shape of a record the engine can order."""

    id: str
    name: str
    created_at: datetime


T = TypeVar("T", bound=Listable)


class RecordSource(Protocol[T]):
    """Collaborator that owns the collection being listed."""

    def fetch_all(self) -> Sequence[T]:
        """Return every record currently in the collection."""
        ...


@dataclass(frozen=True)
class SortSpec:
    """Validated ``(field, direction)`` pair governing result order."""

    field: str = DEFAULT_SORT_FIELD
    descending: bool = False

    @classmethod
    def parse(cls, sort_by: str | None) -> SortSpec:
        """Parse ``"field"``, ``"field asc"`` or ``"field desc"``.

        An empty value selects the default ordering (creation time,
        ascending).

        Raises:
            InvalidArgumentError: If the field is not sortable or the
                direction is unknown.
        """
        if sort_by is None or not sort_by.strip():
            return cls()

        parts = sort_by.split()
        if len(parts) > 2:
            raise InvalidArgumentError(
                f"Invalid sorting criteria '{sort_by}'. Expected 'field' or 'field desc'."
            )

        field_name = parts[0]
        if field_name not in SORTABLE_FIELDS:
            raise InvalidArgumentError(
                f"Cannot sort on field '{field_name}'. "
                f"Supported fields: {', '.join(sorted(SORTABLE_FIELDS))}."
            )

        descending = False
        if len(parts) == 2:
            direction = parts[1].lower()
            if direction not in _DIRECTIONS:
                raise InvalidArgumentError(
                    f"Invalid sorting direction '{parts[1]}'. Expected 'asc' or 'desc'."
                )
            descending = _DIRECTIONS[direction]

        return cls(field=field_name, descending=descending)

    def sort_value(self, record: Listable) -> Any:
        """Return the primary sort value of ``record`` for this spec."""
        value = getattr(record, self.field)
        if isinstance(value, datetime):
            return as_utc(value)
        return value

    def key(self, record: Listable) -> tuple[Any, str]:
        """Return the total-order key: primary field, then id."""
        return (self.sort_value(record), str(record.id))

    def __str__(self) -> str:
        return f"{self.field} desc" if self.descending else self.field


@dataclass(frozen=True)
class PageCursor:
    """Position in a sorted listing: the last record served under ``sort``."""

    sort: SortSpec
    value: Any
    last_id: str

    @classmethod
    def after(cls, sort: SortSpec, record: Listable) -> PageCursor:
        """Build the cursor that resumes after ``record``."""
        return cls(sort=sort, value=sort.sort_value(record), last_id=str(record.id))

    def key(self) -> tuple[Any, str]:
        """Return the cursor position in the same shape as :meth:`SortSpec.key`."""
        return (self.value, self.last_id)

    def encode(self) -> str:
        """Serialise the cursor into an opaque page token."""
        value = self.value.isoformat() if isinstance(self.value, datetime) else self.value
        payload = json.dumps(
            {
                "field": self.sort.field,
                "desc": self.sort.descending,
                "key": value,
                "id": self.last_id,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, token: str) -> PageCursor:
        """Parse a page token produced by :meth:`encode`.

        Raises:
            InvalidArgumentError: If the token is not a well-formed cursor.
        """
        if len(token) > MAX_TOKEN_LENGTH:
            raise InvalidArgumentError("Invalid page token: token is too long.")

        padding = "=" * (-len(token) % 4)
        try:
            raw = base64.urlsafe_b64decode(token + padding)
            payload = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError, RecursionError) as err:
            raise InvalidArgumentError("Invalid page token: cannot decode cursor.") from err

        if not isinstance(payload, dict) or set(payload) != _TOKEN_KEYS:
            raise InvalidArgumentError("Invalid page token: unexpected cursor shape.")

        field_name = payload["field"]
        descending = payload["desc"]
        value = payload["key"]
        last_id = payload["id"]
        if (
            field_name not in SORTABLE_FIELDS
            or not isinstance(descending, bool)
            or not isinstance(value, str)
            or not isinstance(last_id, str)
        ):
            raise InvalidArgumentError("Invalid page token: unexpected cursor values.")

        if field_name == "created_at":
            try:
                value = as_utc(datetime.fromisoformat(value))
            except ValueError as err:
                raise InvalidArgumentError("Invalid page token: bad timestamp.") from err

        return cls(sort=SortSpec(field_name, descending), value=value, last_id=last_id)


@dataclass
class Page(Generic[T]):
    """One page of listing results."""

    records: list[T] = field(default_factory=list)
    next_page_token: str = ""


def resolve_page_size(
    page_size: int | None,
    *,
    default: int = DEFAULT_PAGE_SIZE,
    maximum: int = MAX_PAGE_SIZE,
) -> int:
    """Apply the default to an absent/zero size and clamp to ``maximum``.

    Raises:
        InvalidArgumentError: If ``page_size`` is negative.
    """
    if page_size is None or page_size == 0:
        return min(default, maximum)
    if page_size < 0:
        raise InvalidArgumentError(
            f"Invalid page size {page_size}. It must be a positive integer."
        )
    return min(page_size, maximum)


def list_page(
    source: RecordSource[T],
    *,
    page_size: int | None = None,
    page_token: str | None = None,
    sort_by: str | None = None,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> Page[T]:
    """Return the page of ``source`` selected by the token and sort spec.

    Args:
        source: Collection owner queried once per call.
        page_size: Records per page; ``None`` or ``0`` selects the default.
        page_token: Token returned by the previous call, empty for page one.
        sort_by: ``"field"`` or ``"field desc"``; field must be sortable.
        default_page_size: Size used when ``page_size`` is absent.
        max_page_size: Upper bound applied to ``page_size``.

    Returns:
        The page of records and the token for the following page, which is
        empty once the collection is exhausted.

    Raises:
        InvalidArgumentError: On an unsupported sort field or direction, a
            malformed token, a token minted under a different sort spec, or
            a negative page size. Raised before the source is queried.
    """
    sort = SortSpec.parse(sort_by)
    size = resolve_page_size(page_size, default=default_page_size, maximum=max_page_size)

    cursor: PageCursor | None = None
    if page_token:
        cursor = PageCursor.decode(page_token)
        if cursor.sort != sort:
            raise InvalidArgumentError(
                f"Invalid page token: issued for sort_by '{cursor.sort}' "
                f"but the request asks for '{sort}'."
            )

    ordered = sorted(source.fetch_all(), key=sort.key, reverse=sort.descending)

    if cursor is not None:
        boundary = cursor.key()
        if sort.descending:
            ordered = [record for record in ordered if sort.key(record) < boundary]
        else:
            ordered = [record for record in ordered if sort.key(record) > boundary]

    records = ordered[:size]
    next_token = ""
    if len(ordered) > size:
        next_token = PageCursor.after(sort, records[-1]).encode()

    logger.debug(
        "Listed %d record(s) sorted by '%s' (more=%s)",
        len(records),
        sort,
        bool(next_token),
    )
    return Page(records=records, next_page_token=next_token)
