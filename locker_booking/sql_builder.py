"""Assemble parameterised INSERT/UPDATE statements from field mappings.

All statements use ``?`` placeholders; :class:`locker_booking.store.SqlStore`
rewrites them for drivers with a different paramstyle. Table, key and field
names always come from the declared schemas, never from request bodies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from .errors import NoFieldsError


@dataclass(frozen=True)
class Statement:
    sql: str
    bound_values: tuple[Any, ...]


@dataclass(frozen=True)
class UpdateStatement(Statement):
    clause: str
    fields: tuple[str, ...]


def is_present(value: Any) -> bool:
    # 0, False and "" are real values; only None means "not supplied"
    return value is not None


def build_update(
    table: str,
    key: str,
    resource_id: Any,
    candidate_fields: Mapping[str, Any],
    field_order: Sequence[str],
) -> UpdateStatement:
    """Build ``UPDATE <table> SET ... WHERE <key> = ?`` for supplied fields only.

    ``field_order`` is the declared field list of the entity; fields are
    emitted in that order and keys outside it are ignored. Raises
    :class:`NoFieldsError` when nothing was supplied.
    """
    clauses: list[str] = []
    values: list[Any] = []
    fields: list[str] = []
    for field in field_order:
        value = candidate_fields.get(field)
        if not is_present(value):
            continue
        clauses.append(f"{field} = ?")
        values.append(value)
        fields.append(field)

    if not clauses:
        raise NoFieldsError(details={"table": table, "id": resource_id})

    clause = ", ".join(clauses)
    values.append(resource_id)
    return UpdateStatement(
        sql=f"UPDATE {table} SET {clause} WHERE {key} = ?",
        bound_values=tuple(values),
        clause=clause,
        fields=tuple(fields),
    )


def build_replace(
    table: str,
    key: str,
    resource_id: Any,
    fields: Mapping[str, Any],
    field_order: Sequence[str],
) -> UpdateStatement:
    """Build an UPDATE that overwrites every field in ``field_order``.

    Missing optional fields are written as NULL.
    """
    if not field_order:
        raise NoFieldsError(details={"table": table, "id": resource_id})

    clause = ", ".join(f"{field} = ?" for field in field_order)
    values = [fields.get(field) for field in field_order]
    values.append(resource_id)
    return UpdateStatement(
        sql=f"UPDATE {table} SET {clause} WHERE {key} = ?",
        bound_values=tuple(values),
        clause=clause,
        fields=tuple(field_order),
    )


def build_insert(table: str, fields: Mapping[str, Any], field_order: Iterable[str]) -> Statement:
    columns = [field for field in field_order if field in fields]
    if not columns:
        raise NoFieldsError("there are no fields to insert", details={"table": table})
    placeholders = ", ".join("?" for _ in columns)
    return Statement(
        sql=f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
        bound_values=tuple(fields[column] for column in columns),
    )
