"""
Cursor (keyset) pagination engine.

Design notes
------------
- A continuation token is URL-safe base64 of compact JSON::

      {"data": {"created_at": "2024-01-02T00:00:00", "id": "3"},
       "sort": [["created_at", "desc"], ["id", "asc"]]}

  ``data`` holds the sort-key values of the last item on the page and
  ``sort`` the ordering that produced it, so a token describes itself.
- Identifier fields (``id`` / ``*_id``) and any integer beyond 2**53 are
  written as decimal strings so they survive JSON clients that parse
  numbers as doubles.  Datetimes are written with ``isoformat()``.  On
  the way back identifier digit strings become ``int`` again and text
  in exactly the ``isoformat()`` shape becomes ``datetime``, so a decoded
  position compares directly with the records it came from.  The storage
  layer coerces the rest (oversized integers, decimals) to its column
  type.
- Decoding is lenient: any malformed, truncated or forged token decodes
  to ``None`` and the caller starts again from the first page.
- Everything here is pure and synchronous; no I/O, no shared state.
"""
from __future__ import annotations

import base64
import enum
import json
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Generic, NamedTuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from market_api.pagination.filters import (
    MATCH_ALL,
    And,
    Compare,
    FilterExpression,
    Op,
    Or,
    field_value,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DIGITS_RE = re.compile(r"[0-9]+")
# The shapes datetime.isoformat() produces: seconds, optional micros and offset.
_DATETIME_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d{6})?(?:[+-]\d{2}:\d{2}(?::\d{2}(?:\.\d{6})?)?)?"
)
# Largest integer a JSON client parsing numbers as doubles keeps exact.
_MAX_SAFE_INTEGER = 2**53 - 1


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class SortKey(NamedTuple):
    field: str
    direction: SortDirection


SortSpec = tuple[SortKey, ...]
CursorValue = Union[str, int, float, bool, datetime, None]
CursorPosition = dict[str, CursorValue]


@dataclass(frozen=True)
class Cursor:
    """Decoded continuation token."""

    position: CursorPosition
    sort_spec: SortSpec


@dataclass
class Page(Generic[T]):
    items: list[T]
    has_next_page: bool
    next_cursor: str | None


class _TokenPayload(BaseModel):
    """Wire shape of a token; rejects anything that does not fit it."""

    model_config = ConfigDict(extra="forbid")

    data: dict[str, Union[str, int, float, bool, None]]
    sort: list[tuple[str, SortDirection]]

    @model_validator(mode="after")
    def _data_matches_sort(self) -> "_TokenPayload":
        fields = [field for field, _ in self.sort]
        if not fields:
            raise ValueError("empty sort")
        if len(set(fields)) != len(fields):
            raise ValueError("duplicate sort field")
        if set(self.data) != set(fields):
            raise ValueError("cursor data does not match the sort fields")
        return self


# ---------------------------------------------------------------------------
# Sort specs
# ---------------------------------------------------------------------------

def sort_spec_from_ordering(ordering: Iterable[Mapping[str, str] | Sequence[str]]) -> SortSpec:
    """
    Normalise query-layer ordering directives into a ``SortSpec``.

    Each directive names one field and one direction, either as a
    single-key mapping (``{"created_at": "desc"}``) or as a
    ``(field, direction)`` pair.  Anything other than ``"desc"`` sorts
    ascending.
    """
    spec: list[SortKey] = []
    for directive in ordering:
        if isinstance(directive, Mapping):
            field, direction = next(iter(directive.items()))
        else:
            field, direction = directive
        is_desc = str(getattr(direction, "value", direction)).lower() == "desc"
        spec.append(SortKey(field, SortDirection.DESC if is_desc else SortDirection.ASC))
    return tuple(spec)


# ---------------------------------------------------------------------------
# Token codec
# ---------------------------------------------------------------------------

def _is_identifier(field: str) -> bool:
    return field == "id" or field.endswith("_id")


def _encode_value(field: str, value: Any) -> Any:
    if value is None or isinstance(value, (bool, str, float)):
        return value
    if isinstance(value, int):
        if _is_identifier(field) or abs(value) > _MAX_SAFE_INTEGER:
            return str(value)
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return _encode_value(field, value.value)
    # Decimal, UUID and friends travel as text.
    return str(value)


def _parse_datetime(value: str) -> datetime | None:
    if not _DATETIME_RE.fullmatch(value):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    # Only accept text that re-encodes to itself, so nothing is lost.
    return parsed if parsed.isoformat() == value else None


def _decode_value(field: str, value: Any) -> CursorValue:
    if not isinstance(value, str):
        return value
    if _is_identifier(field) and _DIGITS_RE.fullmatch(value):
        return int(value)
    parsed = _parse_datetime(value)
    return value if parsed is None else parsed


def encode_token(last_record: Any, sort_spec: SortSpec) -> str | None:
    """
    Build the continuation token that resumes after *last_record*.

    Returns None for an empty page (no record to resume after).
    """
    if last_record is None:
        return None
    payload = {
        "data": {
            key.field: _encode_value(key.field, field_value(last_record, key.field))
            for key in sort_spec
        },
        "sort": [[key.field, SortDirection(key.direction).value] for key in sort_spec],
    }
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_token(token: str | None) -> Cursor | None:
    """
    Parse a continuation token back into a ``Cursor``.

    Never raises: an absent token and every kind of malformed token both
    return None.  Both the URL-safe and the standard base64 alphabets are
    accepted, with or without padding.
    """
    if not token:
        return None
    try:
        text = token.strip().replace("+", "-").replace("/", "_")
        text += "=" * (-len(text) % 4)
        raw = base64.b64decode(text, altchars=b"-_", validate=True)
        payload = _TokenPayload.model_validate_json(raw)
    except (ValueError, TypeError, ValidationError) as exc:
        logger.debug("Ignoring malformed continuation token: %s", exc)
        return None

    sort_spec = tuple(SortKey(field, direction) for field, direction in payload.sort)
    position = {
        key.field: _decode_value(key.field, payload.data[key.field]) for key in sort_spec
    }
    return Cursor(position=position, sort_spec=sort_spec)


# ---------------------------------------------------------------------------
# Predicate
# ---------------------------------------------------------------------------

def _all_of(terms: list[FilterExpression]) -> FilterExpression:
    return terms[0] if len(terms) == 1 else And(tuple(terms))


def build_predicate(
    position: Mapping[str, CursorValue] | None,
    sort_spec: SortSpec | None,
    nullable: Iterable[str] = (),
) -> FilterExpression:
    """
    Compile a cursor position into "sorts strictly after *position*".

    For sort fields ``f0..fn`` the result is an ``Or`` of n clauses where
    clause *i* pins ``f0..f(i-1)`` to the cursor values and puts a strict
    inequality on ``fi`` (``>`` ascending, ``<`` descending).  The last
    sort field must be unique for this to page without gaps or repeats.

    Nulls sort last.  A null cursor value is only used for equality
    (``IS NULL``) and contributes no strict clause of its own.  Fields in
    *nullable* also accept nulls on their strict clause, since those rows
    sort after any non-null value.

    Returns ``MATCH_ALL`` when there is no position or no sort spec.
    """
    if not position or not sort_spec:
        return MATCH_ALL

    nullable = frozenset(nullable)
    clauses: list[FilterExpression] = []
    for i, key in enumerate(sort_spec):
        value = position.get(key.field)
        if value is None:
            continue
        op = Op.LT if key.direction == SortDirection.DESC else Op.GT
        strict: FilterExpression = Compare(key.field, op, value)
        if key.field in nullable:
            strict = Or((strict, Compare(key.field, Op.EQ, None)))
        pinned = [Compare(prev.field, Op.EQ, position.get(prev.field)) for prev in sort_spec[:i]]
        clauses.append(_all_of(pinned + [strict]))

    if len(clauses) == 1:
        return clauses[0]
    return Or(tuple(clauses))


# ---------------------------------------------------------------------------
# Page assembly
# ---------------------------------------------------------------------------

def assemble_page(rows: Iterable[T], limit: int, sort_spec: SortSpec) -> Page[T]:
    """
    Turn a ``limit + 1`` probe query result into a ``Page``.

    The extra row only signals that another page exists; it is dropped
    and the token is built from the last row actually returned.
    """
    rows = list(rows)
    has_next_page = len(rows) > limit
    items = rows[:limit]
    next_cursor = encode_token(items[-1], sort_spec) if has_next_page and items else None
    return Page(items=items, has_next_page=has_next_page, next_cursor=next_cursor)
