from .adapter import Query, QueryAdapter, QueryError, QueryResult
from .filters import (
    Eq,
    FilterExpression,
    FilterOp,
    Neq,
    apply_provider_filter,
    bind_positional,
    encode_filter_value,
    parse_filter_value,
)

__all__ = [
    "Eq",
    "FilterExpression",
    "FilterOp",
    "Neq",
    "Query",
    "QueryAdapter",
    "QueryError",
    "QueryResult",
    "apply_provider_filter",
    "bind_positional",
    "encode_filter_value",
    "parse_filter_value",
]
