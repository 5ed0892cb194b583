# Keyset pagination.
#
#   filters — backend-neutral FilterExpression tree + in-memory evaluation
#   cursor  — sort specs, continuation token codec, predicate builder
#   sql     — SQLAlchemy translation and the async ``paginate`` helper
from market_api.pagination.cursor import (
    Cursor,
    CursorPosition,
    Page,
    SortDirection,
    SortKey,
    SortSpec,
    assemble_page,
    build_predicate,
    decode_token,
    encode_token,
    sort_spec_from_ordering,
)
from market_api.pagination.filters import MATCH_ALL, And, Compare, FilterExpression, Op, Or, evaluate
from market_api.pagination.sql import compile_filter, paginate

__all__ = [
    "MATCH_ALL",
    "And",
    "Compare",
    "Cursor",
    "CursorPosition",
    "FilterExpression",
    "Op",
    "Or",
    "Page",
    "SortDirection",
    "SortKey",
    "SortSpec",
    "assemble_page",
    "build_predicate",
    "compile_filter",
    "decode_token",
    "encode_token",
    "evaluate",
    "paginate",
    "sort_spec_from_ordering",
]
