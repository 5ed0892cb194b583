"""
SQLAlchemy adapter for the pagination engine.

Translates ``FilterExpression`` trees and sort specs into SQLAlchemy
clauses and runs the ``limit + 1`` probe query that ``assemble_page``
expects.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import BigInteger, Integer, Select, SmallInteger, and_, false, or_, true
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from market_api.pagination.cursor import (
    CursorValue,
    Page,
    SortDirection,
    SortSpec,
    assemble_page,
    build_predicate,
    decode_token,
)
from market_api.pagination.filters import And, Compare, FilterExpression, Op, Or, is_match_all

logger = logging.getLogger(__name__)


def compile_filter(expr: FilterExpression, model):
    """Return the SQLAlchemy boolean clause equivalent to *expr* on *model*."""
    if isinstance(expr, Compare):
        column = getattr(model, expr.field)
        if expr.op is Op.EQ:
            return column.is_(None) if expr.value is None else column == expr.value
        if expr.op is Op.GT:
            return column > expr.value
        return column < expr.value
    if isinstance(expr, And):
        parts = [compile_filter(c, model) for c in expr.clauses]
        return and_(*parts) if parts else true()
    if isinstance(expr, Or):
        parts = [compile_filter(c, model) for c in expr.clauses]
        return or_(*parts) if parts else false()
    raise TypeError(f"Unsupported filter expression: {expr!r}")


def order_by(model, sort_spec: SortSpec) -> list:
    """ORDER BY clauses for *sort_spec*, nulls last in either direction."""
    clauses = []
    for key in sort_spec:
        column = getattr(model, key.field)
        ordered = column.desc() if key.direction == SortDirection.DESC else column.asc()
        clauses.append(ordered.nulls_last())
    return clauses


def _int_range(column_type) -> tuple[int, int]:
    if isinstance(column_type, BigInteger):
        bits = 64
    elif isinstance(column_type, SmallInteger):
        bits = 16
    elif isinstance(column_type, Integer):
        bits = 32
    else:
        bits = 64
    return -(2 ** (bits - 1)), 2 ** (bits - 1) - 1


def _coerce(value: CursorValue, column) -> Any:
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value

    if python_type is datetime and isinstance(value, str):
        return datetime.fromisoformat(value)
    if python_type is str and isinstance(value, datetime):
        # Text that happened to look like a timestamp; decoding is lossless.
        return value.isoformat()
    if python_type is int and isinstance(value, (str, int)) and not isinstance(value, bool):
        number = int(value)
        low, high = _int_range(column.type)
        if not low <= number <= high:
            raise ValueError(f"{number} is out of range for {column.key!r}")
        return number
    if python_type is Decimal and isinstance(value, (str, int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{value!r} is not a valid decimal for {column.key!r}") from exc
    if not isinstance(value, python_type):
        raise ValueError(f"{value!r} is not a valid {python_type.__name__} for {column.key!r}")
    return value


def bind_position(position: Mapping[str, CursorValue], model) -> dict[str, Any]:
    """
    Convert decoded cursor values to the Python types of *model*'s columns.

    Raises ValueError when a field is not a column of *model* or a value
    cannot be converted.
    """
    columns = sa_inspect(model).columns
    bound: dict[str, Any] = {}
    for field, value in position.items():
        column = columns.get(field)
        if column is None:
            raise ValueError(f"{field!r} is not a column of {model.__name__}")
        bound[field] = _coerce(value, column)
    return bound


async def paginate(
    db: AsyncSession,
    stmt: Select,
    model,
    sort_spec: SortSpec,
    limit: int,
    token: str | None = None,
    nullable: Iterable[str] = (),
) -> Page:
    """
    Fetch one keyset page of *stmt* (already scoped with its own WHERE).

    A token minted under a different sort spec than *sort_spec*, or one
    whose values do not fit *model*, restarts from the first page so the
    predicate and the ORDER BY always agree.
    """
    cursor = decode_token(token)
    position = None
    if cursor is not None:
        if cursor.sort_spec != sort_spec:
            logger.info(
                "Continuation token sorted by %s does not match %s; restarting",
                [tuple(k) for k in cursor.sort_spec],
                [tuple(k) for k in sort_spec],
            )
        else:
            try:
                position = bind_position(cursor.position, model)
            except ValueError as exc:
                logger.info("Continuation token rejected for %s: %s", model.__name__, exc)

    predicate = build_predicate(position, sort_spec, nullable)
    if not is_match_all(predicate):
        stmt = stmt.where(compile_filter(predicate, model))
    stmt = stmt.order_by(*order_by(model, sort_spec)).limit(limit + 1)

    result = await db.execute(stmt)
    return assemble_page(result.scalars().all(), limit, sort_spec)
