"""
Generic CRUD backend consumed by `promptvault.query.QueryAdapter`.

    GET    /api/{table}        list, newest first; `provider` filter, limit/offset
    POST   /api/{table}        insert, returns the new row (201)
    GET    /api/{table}/{id}   one row or 404 {"error": "Not found"}
    PUT    /api/{table}/{id}   partial update, returns the row
    DELETE /api/{table}/{id}   {"status": "deleted"}

Only tables listed in CRUD_TABLES and known to the ORM metadata are
reachable. Column names in request bodies must exist on the table.
"""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy import Table, Uuid, delete, insert, select, update
from sqlalchemy.exc import StatementError
from sqlalchemy.orm import Session

from promptvault.auth import require_user
from promptvault.deps import get_db
from promptvault.errors import NotFoundError, ValidationError
from promptvault.log_sanitizer import sanitize_payload_for_log
from promptvault.logging_config import logger
from promptvault.models import Base
from promptvault.query import apply_provider_filter, bind_positional
from promptvault.settings import settings

router = APIRouter(
    tags=["crud"],
    prefix="/api",
    dependencies=[Depends(require_user)],
)

_READ_ONLY_COLUMNS = {"id", "created_at", "updated_at"}


def _get_table(name: str) -> Table:
    table = Base.metadata.tables.get(name)
    if table is None or name not in settings.get_crud_tables():
        raise NotFoundError("Not found")
    return table


def _coerce_id(table: Table, raw_id: str) -> Any:
    if isinstance(table.c.id.type, Uuid):
        try:
            return uuid.UUID(raw_id)
        except ValueError:
            raise NotFoundError("Not found")
    return raw_id


def _writable_values(table: Table, data: Dict[str, Any]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for column, value in data.items():
        if column in _READ_ONLY_COLUMNS:
            continue
        if column not in table.c:
            raise ValidationError(f"Unknown column: {column}")
        values[column] = value
    return values


def _row(mapping: Any) -> Dict[str, Any]:
    return jsonable_encoder(dict(mapping))


def _execute_write(db: Session, stmt: Any, table: Table) -> Optional[Dict[str, Any]]:
    try:
        row = db.execute(stmt).mappings().first()
        db.commit()
    except StatementError as exc:
        db.rollback()
        logger.warning("CRUD write on %s rejected: %s", table.name, exc.orig or exc)
        raise ValidationError("Invalid row data")
    return _row(row) if row is not None else None


@router.get("/{table_name}")
def list_rows(
    table_name: str,
    provider: Optional[str] = Query(None, description="'<value>' or 'neq.<value>'"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
) -> list:
    table = _get_table(table_name)

    query = f"SELECT * FROM {table.name}"
    params: list = []
    if "provider" in table.c:
        query, params = apply_provider_filter(query, params, provider)
    query += " ORDER BY created_at DESC"
    if limit is not None:
        params.append(limit)
        query += f" LIMIT ${len(params)}"
        if offset:
            params.append(offset)
            query += f" OFFSET ${len(params)}"

    stmt, binds = bind_positional(query, params)
    rows = db.execute(stmt.columns(*table.c), binds).mappings().all()
    return [_row(r) for r in rows]


@router.get("/{table_name}/{row_id}")
def get_row(table_name: str, row_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    table = _get_table(table_name)
    row = db.execute(
        select(table).where(table.c.id == _coerce_id(table, row_id))
    ).mappings().first()
    if row is None:
        raise NotFoundError("Not found")
    return _row(row)


@router.post("/{table_name}", status_code=status.HTTP_201_CREATED)
def create_row(
    table_name: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    table = _get_table(table_name)
    values = _writable_values(table, payload)
    logger.debug("CRUD insert into %s: %s", table.name, sanitize_payload_for_log(values))
    row = _execute_write(db, insert(table).values(**values).returning(*table.c), table)
    return row or {}


@router.put("/{table_name}/{row_id}")
def update_row(
    table_name: str,
    row_id: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    table = _get_table(table_name)
    row_key = _coerce_id(table, row_id)
    values = _writable_values(table, payload)
    if not values:
        return JSONResponse({"status": "no changes"})
    if "updated_at" in table.c:
        values["updated_at"] = dt.datetime.now(dt.timezone.utc)

    logger.debug("CRUD update %s/%s: %s", table.name, row_id, sanitize_payload_for_log(values))
    row = _execute_write(
        db,
        update(table).where(table.c.id == row_key).values(**values).returning(*table.c),
        table,
    )
    if row is None:
        raise NotFoundError("Not found")
    return row


@router.delete("/{table_name}/{row_id}")
def delete_row(table_name: str, row_id: str, db: Session = Depends(get_db)) -> Dict[str, str]:
    table = _get_table(table_name)
    db.execute(delete(table).where(table.c.id == _coerce_id(table, row_id)))
    db.commit()
    return {"status": "deleted"}
