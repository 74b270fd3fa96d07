"""
Chainable query builder over the generic CRUD backend.

The backend exposes `GET/POST /api/<table>` and `GET/PUT/DELETE
/api/<table>/<id>`. A `Query` only records what the caller asked for;
awaiting it (or calling `execute()` / `single()`) sends exactly one HTTP
request chosen from the recorded state. Outcomes are never raised: every
path returns a `QueryResult` whose `error` must be checked.

Known limitations of the backend that the builder mirrors:
- `select()` is recorded but full rows always come back;
- `eq()` only has an effect for the `id` column;
- `order()` is advisory, rows arrive newest first regardless.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generator
from urllib.parse import quote

import httpx

from promptvault.logging_config import logger
from promptvault.query.filters import FilterExpression, FilterOp, encode_filter_value
from promptvault.settings import settings


@dataclass
class QueryError:
    message: str
    status: int | None = None
    details: Any = None


@dataclass
class QueryResult:
    data: Any = None
    error: QueryError | None = None
    count: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QueryAdapter:
    """
    Entry point: `adapter.from_("prompts").eq("id", 3).single()`.

    Pass `client` to reuse an existing `httpx.AsyncClient` (its transport
    is used as-is); otherwise the adapter creates and owns one.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = (base_url or settings.crud_api_base_url).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    def from_(self, table: str) -> "Query":
        return Query(self, table)

    # `from` is reserved in Python.
    table = from_

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "QueryAdapter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: Any = None,
    ) -> QueryResult:
        """
        Perform one request and fold the outcome into a `QueryResult`
        whose `data` is the decoded JSON body (or None for an empty body).
        """
        url = f"{self.base_url}{path}"
        try:
            resp = await self._client.request(
                method,
                url,
                params=params or None,
                json=payload,
            )
        except httpx.HTTPError as exc:
            logger.warning("Query %s %s failed: %s", method, url, exc)
            return QueryResult(error=QueryError(str(exc) or exc.__class__.__name__))

        body: Any = None
        if resp.content and resp.content.strip():
            try:
                body = resp.json()
            except (json.JSONDecodeError, ValueError):
                if resp.is_success:
                    return QueryResult(
                        error=QueryError("Invalid JSON response", resp.status_code, resp.text)
                    )
                body = resp.text

        if resp.is_error:
            message = f"HTTP {resp.status_code}"
            if isinstance(body, dict) and body.get("error"):
                message = str(body["error"])
            return QueryResult(error=QueryError(message, resp.status_code, body))

        if isinstance(body, dict) and body.get("error"):
            return QueryResult(
                error=QueryError(str(body["error"]), resp.status_code, body)
            )

        return QueryResult(data=body)


class Query:
    def __init__(self, adapter: QueryAdapter, table: str) -> None:
        self._adapter = adapter
        self.table = table
        self.columns = "*"
        self.order_by: tuple[str, bool] | None = None
        self.filters: list[FilterExpression] = []
        self._id: Any = None
        self._limit: int | None = None
        self._offset: int | None = None
        self._insert_payload: Any = None
        self._update_payload: dict[str, Any] | None = None
        self._delete = False

    # -- builder ------------------------------------------------------------

    def select(self, columns: str = "*") -> "Query":
        self.columns = columns
        return self

    def eq(self, column: str, value: Any) -> "Query":
        if column == "id":
            self._id = value
        else:
            logger.debug(
                "Query on %s: eq(%r) has no effect, only 'id' is supported", self.table, column
            )
        return self

    def filter(self, column: str, op: FilterOp) -> "Query":
        """Send `column=<value>` / `column=neq.<value>` on list requests."""
        self.filters.append(FilterExpression(column, op))
        return self

    def order(self, column: str, *, ascending: bool = True) -> "Query":
        self.order_by = (column, ascending)
        return self

    def limit(self, count: int) -> "Query":
        self._limit = count
        return self

    def range(self, start: int, end: int) -> "Query":
        self._offset = start
        self._limit = end - start + 1
        return self

    def insert(self, payload: dict[str, Any] | list[dict[str, Any]]) -> "Query":
        self._insert_payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> "Query":
        self._update_payload = payload
        return self

    def delete(self) -> "Query":
        self._delete = True
        return self

    # -- execution ----------------------------------------------------------

    def _item_path(self) -> str:
        return f"/{self.table}/{quote(str(self._id), safe='')}"

    def _list_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        for expr in self.filters:
            params[expr.column] = encode_filter_value(expr.op)
        if self._limit is not None:
            params["limit"] = self._limit
        if self._offset is not None:
            params["offset"] = self._offset
        return params

    async def execute(self) -> QueryResult:
        if self._id is not None:
            if self._insert_payload is not None:
                return QueryResult(
                    error=QueryError("insert cannot be combined with an id filter")
                )
            if self._update_payload is not None:
                return await self._adapter.send(
                    "PUT", self._item_path(), payload=self._update_payload
                )
            if self._delete:
                result = await self._adapter.send("DELETE", self._item_path())
                if result.ok:
                    result.data = None
                return result
            result = await self._adapter.send("GET", self._item_path())
            if result.ok:
                result.data = [] if result.data is None else [result.data]
                result.count = len(result.data)
            return result

        if self._update_payload is not None or self._delete:
            return QueryResult(
                error=QueryError("update and delete require an eq('id', ...) filter")
            )

        path = f"/{self.table}"
        if self._insert_payload is not None:
            return await self._adapter.send("POST", path, payload=self._insert_payload)

        result = await self._adapter.send("GET", path, params=self._list_params())
        if result.ok:
            data = result.data
            if data is None:
                data = []
            elif not isinstance(data, list):
                data = [data]
            result.data = data
            result.count = len(data)
        return result

    async def single(self) -> QueryResult:
        """Execute and require exactly one row."""
        result = await self._one()
        if result.ok and result.data is None:
            return QueryResult(error=QueryError("Row not found", 404))
        return result

    async def maybe_single(self) -> QueryResult:
        """Execute and accept zero or one row."""
        return await self._one()

    async def _one(self) -> QueryResult:
        result = await self.execute()
        if not result.ok:
            return result
        rows = result.data
        if rows is None:
            rows = []
        elif not isinstance(rows, list):
            rows = [rows]
        if len(rows) > 1:
            return QueryResult(
                error=QueryError(f"Expected a single row, got {len(rows)}", 406)
            )
        return QueryResult(data=rows[0] if rows else None, count=len(rows))

    def __await__(self) -> Generator[Any, None, QueryResult]:
        return self.execute().__await__()


__all__ = ["Query", "QueryAdapter", "QueryError", "QueryResult"]
