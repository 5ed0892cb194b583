"""
Backend-neutral filter expressions.

A ``FilterExpression`` is a small tagged tree (``And`` / ``Or`` /
``Compare``) that the pagination engine produces and that a storage
layer translates into its own predicate form (see
``market_api.pagination.sql`` for SQLAlchemy).  ``evaluate`` is the
reference in-memory interpretation.
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union


class Op(str, enum.Enum):
    EQ = "eq"
    GT = "gt"
    LT = "lt"


@dataclass(frozen=True)
class Compare:
    """``field <op> value``.  ``Compare(f, Op.EQ, None)`` means *f IS NULL*."""

    field: str
    op: Op
    value: Any


@dataclass(frozen=True)
class And:
    clauses: tuple[FilterExpression, ...] = ()


@dataclass(frozen=True)
class Or:
    clauses: tuple[FilterExpression, ...] = ()


FilterExpression = Union[Compare, And, Or]

# An empty conjunction matches every record.
MATCH_ALL = And()


def is_match_all(expr: FilterExpression) -> bool:
    return isinstance(expr, And) and not expr.clauses


def field_value(record: Any, field: str) -> Any:
    """Read *field* from a mapping or an attribute-bearing object."""
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _compare(left: Any, op: Op, right: Any) -> bool:
    # Same as SQL: a null never satisfies a strict inequality.
    if op is Op.EQ:
        return left == right
    if left is None or right is None:
        return False
    if op is Op.GT:
        return left > right
    return left < right


def evaluate(expr: FilterExpression, record: Any) -> bool:
    """Return True when *record* (a mapping or an object) satisfies *expr*."""
    if isinstance(expr, Compare):
        return _compare(field_value(record, expr.field), expr.op, expr.value)
    if isinstance(expr, And):
        return all(evaluate(c, record) for c in expr.clauses)
    if isinstance(expr, Or):
        return any(evaluate(c, record) for c in expr.clauses)
    raise TypeError(f"Unsupported filter expression: {expr!r}")
