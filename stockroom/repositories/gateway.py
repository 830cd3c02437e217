"""
Tenant-scoped row gateway.

Generic CRUD over the Core tables in ``stockroom.db.tables``. Rows go in
and come out as plain dictionaries. Every operation that receives a truthy
``organization_id`` constrains the statement to that organization before
any caller-supplied modifier runs, so a modifier can narrow a query but
never widen it past the tenant boundary.

Driver errors are translated once into ``StoreError`` and the session is
rolled back before the error propagates.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import Column, MetaData, String, Table, cast, delete, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from stockroom.core.logging import get_logger
from stockroom.db import tables
from stockroom.db.errors import StoreError, StoreErrorCode, translate
from stockroom.repositories.modifiers import BoundModifier

logger = get_logger(__name__)

ORGANIZATION_COLUMN = "organizationID"

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SortCriterion:
    column: str
    ascending: bool = True


@dataclass(frozen=True)
class Search:
    """Case-insensitive substring match over any of ``columns``."""

    columns: Sequence[str] = field(default_factory=tuple)
    value: str = ""


class RowGateway:
    """
    Tenant-scoped access to rows of any table in the metadata.

    One gateway wraps one ``AsyncSession``; FastAPI hands out a session
    per request so a gateway never outlives its request.
    """

    def __init__(self, session: AsyncSession, metadata: MetaData = tables.metadata):
        self.session = session
        self.metadata = metadata

    # ==================== Resolution ====================

    def table(self, name: str) -> Table:
        try:
            return self.metadata.tables[name]
        except KeyError:
            raise StoreError(StoreErrorCode.UNKNOWN, f"Unknown table '{name}'")

    def column(self, table: Table, name: str) -> Column:
        """Resolve ``name`` on ``table``; ``other.column`` resolves in the metadata."""
        owner, _, column_name = name.rpartition(".")
        target = self.table(owner) if owner else table
        try:
            return target.c[column_name]
        except KeyError:
            raise StoreError(StoreErrorCode.BAD_FIELD, f"Unknown column '{name}'")

    def coerce(self, column: Column, value: Any) -> Any:
        """Convert string input (path parameters, JSON text) to the column type."""
        if not isinstance(value, str):
            return value

        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return value

        if python_type is str:
            return value

        try:
            if python_type is bool:
                lowered = value.strip().lower()
                if lowered in _TRUE_STRINGS:
                    return True
                if lowered in _FALSE_STRINGS:
                    return False
                raise ValueError(value)
            if python_type is datetime:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
                if parsed.tzinfo is not None:
                    parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
                return parsed
            if python_type is date:
                return date.fromisoformat(value)
            return python_type(value)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise StoreError(
                StoreErrorCode.BAD_FIELD,
                f"Invalid value for column '{column.name}'",
                e,
            )

    def values(self, table: Table, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate payload keys against the table and coerce their values."""
        values = {}
        for name, value in payload.items():
            if name not in table.c:
                raise StoreError(StoreErrorCode.BAD_FIELD, f"Unknown column '{name}'")
            values[name] = self.coerce(table.c[name], value)
        return values

    def scope(self, table: Table, statement: Executable, organization_id: Optional[int]) -> Executable:
        if not organization_id:
            return statement
        if ORGANIZATION_COLUMN not in table.c:
            raise StoreError(
                StoreErrorCode.UNKNOWN,
                f"Table '{table.name}' has no {ORGANIZATION_COLUMN} column",
            )
        return statement.where(table.c[ORGANIZATION_COLUMN] == organization_id)

    async def check_references(
        self,
        references: Optional[Mapping[str, str]],
        payload: Mapping[str, Any],
        organization_id: Optional[int],
    ) -> None:
        """
        Require every referenced row named in ``payload`` to belong to the tenant.

        ``references`` maps a payload column to the table it points at; the
        column is that table's key. A row hidden by the tenant scope reads
        the same as a dangling foreign key.
        """
        if not organization_id:
            return
        for column_name, table_name in (references or {}).items():
            value = payload.get(column_name)
            if value is None:
                continue
            try:
                await self.get(table_name, column_name, value, organization_id)
            except StoreError as e:
                if e.code != StoreErrorCode.NOT_FOUND:
                    raise
                raise StoreError(
                    StoreErrorCode.NO_REFERENCED_ROW,
                    f"No {table_name} row with {column_name}={value!r}",
                ) from e

    # ==================== Execution ====================

    async def _execute(self, statement: Executable, commit: bool = False):
        try:
            result = await self.session.execute(statement)
            if commit:
                await self.session.commit()
            return result
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise translate(e) from e

    # ==================== Operations ====================

    async def get_all(
        self,
        table_name: str,
        organization_id: Optional[int] = None,
        modify: Optional[BoundModifier] = None,
        sort_by: Optional[Sequence[SortCriterion]] = None,
        search: Optional[Search] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every visible row of a table.

        Args:
            table_name: Table to read
            organization_id: Tenant to scope to; falsy disables scoping
            modify: Bound modifier applied after scope, search and sort
            sort_by: Sort criteria, highest priority first
            search: Substring filter over text-cast columns

        Returns:
            Rows as dictionaries, in query order
        """
        table = self.table(table_name)
        statement = self.scope(table, select(table), organization_id)

        if search is not None and search.value and search.columns:
            needle = search.value.lower()
            statement = statement.where(or_(*[
                cast(self.column(table, name), String).ilike(
                    f"%{_escape_like(needle)}%", escape="\\"
                )
                for name in search.columns
            ]))

        for criterion in sort_by or ():
            column = self.column(table, criterion.column)
            statement = statement.order_by(column.asc() if criterion.ascending else column.desc())

        if modify is not None:
            statement = modify(statement)

        result = await self._execute(statement)
        return [dict(row) for row in result.mappings().all()]

    async def get(
        self,
        table_name: str,
        column_name: str,
        value: Any,
        organization_id: Optional[int] = None,
        modify: Optional[BoundModifier] = None,
    ) -> Dict[str, Any]:
        """
        Fetch one row by ``column_name == value``.

        Raises:
            StoreError: ``NOT_FOUND`` when no visible row matches
        """
        table = self.table(table_name)
        column = self.column(table, column_name)

        statement = select(table).where(column == self.coerce(column, value))
        statement = self.scope(table, statement, organization_id)
        if modify is not None:
            statement = modify(statement)

        result = await self._execute(statement)
        row = result.mappings().first()
        if row is None:
            raise StoreError(
                StoreErrorCode.NOT_FOUND,
                f"No {table_name} row with {column_name}={value!r}",
            )
        return dict(row)

    async def create(
        self,
        table_name: str,
        column_name: str,
        payload: Mapping[str, Any],
        modify: Optional[BoundModifier] = None,
        res_modify: Optional[BoundModifier] = None,
    ) -> Dict[str, Any]:
        """Insert a row, then return it as re-read through ``res_modify``."""
        table = self.table(table_name)
        values = self.values(table, payload)

        statement = insert(table).values(**values)
        if modify is not None:
            statement = modify(statement)

        result = await self._execute(statement, commit=True)

        key = values.get(column_name)
        if key is None:
            inserted = result.inserted_primary_key or ()
            for pk_column, pk_value in zip(table.primary_key.columns, inserted):
                if pk_column.name == column_name:
                    key = pk_value

        logger.debug(f"Created {table_name} row", extra={"table": table_name, "key": key})
        return await self.get(table_name, column_name, key, modify=res_modify)

    async def update(
        self,
        table_name: str,
        column_name: str,
        value: Any,
        payload: Mapping[str, Any],
        organization_id: Optional[int] = None,
        modify: Optional[BoundModifier] = None,
        res_modify: Optional[BoundModifier] = None,
    ) -> Dict[str, Any]:
        """
        Update the row keyed by ``column_name == value`` and return it.

        Zero affected rows is not an error here; the re-read raises
        ``NOT_FOUND`` when the row is not visible.
        """
        table = self.table(table_name)
        column = self.column(table, column_name)
        key = self.coerce(column, value)
        values = self.values(table, payload)

        if organization_id and values.get(ORGANIZATION_COLUMN, organization_id) != organization_id:
            raise StoreError(StoreErrorCode.BAD_FIELD, f"{ORGANIZATION_COLUMN} cannot be changed")

        if values:
            statement = update(table).where(column == key).values(**values)
            statement = self.scope(table, statement, organization_id)
            if modify is not None:
                statement = modify(statement)
            result = await self._execute(statement, commit=True)
            logger.debug(
                f"Updated {table_name} row",
                extra={"table": table_name, "key": key, "rowcount": result.rowcount},
            )

        return await self.get(
            table_name,
            column_name,
            values.get(column_name, key),
            organization_id,
            modify=res_modify,
        )

    async def delete(
        self,
        table_name: str,
        column_name: str,
        value: Any,
        organization_id: Optional[int] = None,
        modify: Optional[BoundModifier] = None,
    ) -> int:
        """Delete matching rows and return how many were removed."""
        table = self.table(table_name)
        column = self.column(table, column_name)

        statement = delete(table).where(column == self.coerce(column, value))
        statement = self.scope(table, statement, organization_id)
        if modify is not None:
            statement = modify(statement)

        result = await self._execute(statement, commit=True)
        return result.rowcount


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


__all__ = ["RowGateway", "SortCriterion", "Search"]
