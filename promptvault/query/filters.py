"""
Equality / inequality filters and the positional SQL helper built on them.

On the wire a filter value is a plain string: `neq.<value>` means
"not equal", anything else means "equal". In code the two cases are the
`Eq` and `Neq` variants; callers build them explicitly and only the HTTP
edges convert to and from the string form.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Union

from sqlalchemy import TextClause, bindparam, text
from sqlalchemy.types import TypeEngine

NEQ_PREFIX = "neq."


@dataclass(frozen=True)
class Eq:
    value: Any

    operator = "="


@dataclass(frozen=True)
class Neq:
    value: Any

    operator = "!="


FilterOp = Union[Eq, Neq]


@dataclass(frozen=True)
class FilterExpression:
    column: str
    op: FilterOp


def parse_filter_value(raw: str) -> FilterOp:
    """Turn a query-string value into a filter op."""
    if raw.startswith(NEQ_PREFIX):
        return Neq(raw[len(NEQ_PREFIX):])
    return Eq(raw)


def encode_filter_value(op: FilterOp) -> str:
    """Inverse of `parse_filter_value`."""
    if isinstance(op, Neq):
        return f"{NEQ_PREFIX}{op.value}"
    return str(op.value)


def apply_provider_filter(
    query: str,
    params: list[Any],
    provider: FilterOp | str | None,
) -> tuple[str, list[Any]]:
    """
    Append `WHERE provider = $n` (or `!=`) to `query`.

    The placeholder index is `len(params) + 1` and the value is appended to
    `params` in place, so every earlier parameter must already be pushed.
    A falsy `provider` leaves both untouched.

    Returns:
        The (query, params) pair; `params` is the same list object.
    """
    if not provider:
        return query, params

    op = parse_filter_value(provider) if isinstance(provider, str) else provider
    index = len(params) + 1
    query += f" WHERE provider {op.operator} ${index}"
    params.append(op.value)
    return query, params


_POSITIONAL_RE = re.compile(r"\$(\d+)")


def bind_positional(
    query: str,
    params: list[Any],
    *,
    types: Mapping[int, TypeEngine[Any]] | None = None,
) -> tuple[TextClause, dict[str, Any]]:
    """
    Rewrite `$1, $2, ...` placeholders into SQLAlchemy named binds.

    `types` optionally maps a 1-based placeholder index to a column type,
    e.g. `{3: Uuid()}`, for values the driver cannot infer.

    Raises:
        ValueError: If a placeholder has no matching parameter.
    """
    binds: dict[str, Any] = {}

    def _replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index < 1 or index > len(params):
            raise ValueError(f"placeholder ${index} has no parameter (got {len(params)})")
        name = f"p{index}"
        binds[name] = params[index - 1]
        return f":{name}"

    rewritten = _POSITIONAL_RE.sub(_replace, query)
    clause = text(rewritten)
    if types:
        clause = clause.bindparams(
            *(bindparam(f"p{index}", type_=type_) for index, type_ in types.items())
        )
    return clause, binds


__all__ = [
    "Eq",
    "FilterExpression",
    "FilterOp",
    "NEQ_PREFIX",
    "Neq",
    "apply_provider_filter",
    "bind_positional",
    "encode_filter_value",
    "parse_filter_value",
]
