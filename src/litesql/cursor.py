"""
Forward-only result cursor handed to row mappers.

`ResultSet` wraps either a live DB-API cursor or rows already collected from
one (generated keys of a batch). Columns are read by name (case-insensitive)
or by 1-based position, matching parameter positions.
"""
import datetime
import decimal
import enum
import logging
from collections.abc import Callable, Iterator, Sequence
from typing import Any

import dateutil.parser
from litesql.exceptions import DriverError, QueryError

__all__ = ['ResultSet']

logger = logging.getLogger(__name__)


class ResultSet:
    """Cursor over the rows of one executed statement.

    The cursor starts before the first row; call `next()` to advance.

    Examples
        rs = statement.execute_query()
        while rs.next():
            print(rs.get_int('id'), rs.get_string(2))
    """

    def __init__(self, description: Sequence[Sequence[Any]] | None,
                 fetchone: Callable[[], Sequence[Any] | None]) -> None:
        self.columns: list[str] = [desc[0] for desc in description or ()]
        self._index: dict[str, int] = {}
        for i, name in enumerate(self.columns):
            self._index.setdefault(name.lower(), i)
        self._fetchone = fetchone
        self.row: Sequence[Any] | None = None
        self.row_number = 0
        self.closed = False

    @classmethod
    def from_cursor(cls, cursor: Any) -> 'ResultSet':
        """Stream rows from a DB-API cursor."""
        return cls(cursor.description, cursor.fetchone)

    @classmethod
    def from_rows(cls, description: Sequence[Sequence[Any]] | None,
                  rows: Sequence[Sequence[Any]]) -> 'ResultSet':
        """Iterate rows already fetched."""
        it = iter(rows)
        return cls(description, lambda: next(it, None))

    def __iter__(self) -> Iterator['ResultSet']:
        """Advance through the remaining rows, yielding the cursor itself."""
        while self.next():
            yield self

    def __getitem__(self, column: str | int) -> Any:
        return self.get_object(column)

    def __repr__(self) -> str:
        return f'ResultSet(columns={self.columns!r}, row_number={self.row_number})'

    def next(self) -> bool:
        """Move to the next row. Returns False once the rows are exhausted."""
        if self.closed:
            return False
        try:
            row = self._fetchone()
        except DriverError as err:
            logger.error(f'Error reading row {self.row_number + 1}: {err}')
            raise QueryError(f'Error reading result row: {err}') from err
        if row is None:
            self.row = None
            self.closed = True
            return False
        self.row = row
        self.row_number += 1
        return True

    def close(self) -> None:
        """Stop reading; later `next()` calls return False."""
        self.closed = True
        self.row = None

    def find_column(self, column: str | int) -> int:
        """Return the 0-based index of a column given by name or 1-based position."""
        if isinstance(column, int):
            if not 1 <= column <= len(self.columns):
                raise IndexError(f'Column position {column} out of range 1..{len(self.columns)}')
            return column - 1
        try:
            return self._index[column.lower()]
        except KeyError:
            raise KeyError(f'No column named {column!r}; columns are {self.columns}') from None

    def get_object(self, column: str | int) -> Any:
        """Return the current row's value as the driver produced it."""
        if self.row is None:
            raise QueryError('ResultSet is not positioned on a row')
        return self.row[self.find_column(column)]

    def get_int(self, column: str | int) -> int | None:
        value = self.get_object(column)
        return None if value is None else int(value)

    def get_float(self, column: str | int) -> float | None:
        value = self.get_object(column)
        return None if value is None else float(value)

    def get_decimal(self, column: str | int) -> decimal.Decimal | None:
        value = self.get_object(column)
        if value is None or isinstance(value, decimal.Decimal):
            return value
        return decimal.Decimal(str(value))

    def get_string(self, column: str | int) -> str | None:
        value = self.get_object(column)
        return None if value is None else str(value)

    def get_bool(self, column: str | int) -> bool | None:
        value = self.get_object(column)
        return None if value is None else bool(value)

    def get_bytes(self, column: str | int) -> bytes | None:
        value = self.get_object(column)
        return None if value is None else bytes(value)

    def get_timestamp(self, column: str | int) -> datetime.datetime | None:
        """Return a datetime, parsing text values (SQLite stores ISO-8601 text).
        """
        value = self.get_object(column)
        if value is None or isinstance(value, datetime.datetime):
            return value
        if isinstance(value, datetime.date):
            return datetime.datetime.combine(value, datetime.time())
        if isinstance(value, bytes):
            value = value.decode()
        return dateutil.parser.parse(str(value))

    def get_date(self, column: str | int) -> datetime.date | None:
        value = self.get_object(column)
        if value is None:
            return None
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        return dateutil.parser.parse(str(value)).date()

    def get_enum(self, column: str | int, enum_cls: type[enum.Enum]) -> enum.Enum | None:
        """Return the enum member stored by name (or, failing that, by value)."""
        value = self.get_object(column)
        if value is None or isinstance(value, enum_cls):
            return value
        try:
            return enum_cls[value]
        except KeyError:
            return enum_cls(value)

    def to_dict(self) -> dict[str, Any]:
        """Return the current row as a column name to value dict."""
        if self.row is None:
            raise QueryError('ResultSet is not positioned on a row')
        return dict(zip(self.columns, self.row))
