"""
Prepared statements over a DB-API cursor.

DB-API drivers have no prepared-statement object, so `PreparedStatement`
holds the translated SQL, a 1-based parameter array, the pending batch and
the cursor it executes on. `NamedParamPreparedStatement` binds by name
through the name-to-positions map produced by `litesql.sql`.
"""
import datetime
import enum
import logging
import time
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any

from litesql.cursor import ResultSet
from litesql.exceptions import BindingError, DriverError, QueryError
from litesql.sql import ParsedSql
from litesql.strategy import DatabaseStrategy
from litesql.types import ValueKind, classify, to_db_value

__all__ = [
    'PreparedStatement',
    'NamedParamPreparedStatement',
    'SUCCESS_NO_INFO',
    'EXECUTE_FAILED',
]

logger = logging.getLogger(__name__)

# Batch row counts when the driver reports no per-element count.
SUCCESS_NO_INFO = -2
EXECUTE_FAILED = -3

_UNSET = object()


def dumpsql(func):
    """Decorator for logging SQL and turning driver errors into QueryError."""
    @wraps(func)
    def wrapper(self, sql: str, params: Any, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nargs: {params}')
        try:
            return func(self, sql, params, *args, **kwargs)
        except DriverError as err:
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {params}')
            raise QueryError(f'{type(err).__name__}: {err}', sql=sql) from err
        finally:
            logger.debug(f'Query time: {time.time() - start:.4f}s')
    return wrapper


def _coerce(value: Any, convert: Callable[[Any], Any], type_name: str) -> Any:
    if value is None:
        return None
    try:
        return convert(value)
    except (TypeError, ValueError) as err:
        raise BindingError(f'Cannot bind {type(value).__name__} as {type_name}: {err}') from err


def _require(value: Any, kinds: set[ValueKind], type_name: str) -> Any:
    if classify(value) not in kinds | {ValueKind.NULL}:
        raise BindingError(f'Cannot bind {type(value).__name__} as {type_name}')
    return value


class PreparedStatement:
    """Statement with positional (1-based) parameters, owned by one connection.

    Examples
        ps = PreparedStatement(conn, parse_positional_parameters(sql), strategy)
        ps.set(1, 42)
        rs = ps.execute_query()
    """

    def __init__(self, connection: Any, parsed: ParsedSql, strategy: DatabaseStrategy,
                 return_generated_keys: bool = False) -> None:
        self.connection = connection
        self.parsed = parsed
        self.strategy = strategy
        self.return_generated_keys = return_generated_keys
        self._params: list[Any] = [_UNSET] * parsed.parameter_count
        self._batch: list[tuple] = []
        self._generated_keys: ResultSet | None = None
        self.closed = False
        try:
            self.dbapi_cursor = connection.cursor()
        except DriverError as err:
            raise QueryError(f'Could not create cursor: {err}', sql=parsed.sql) from err

    def __enter__(self) -> 'PreparedStatement':
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def sql(self) -> str:
        return self.parsed.sql

    @property
    def parameter_count(self) -> int:
        return self.parsed.parameter_count

    @property
    def driver_sql(self) -> str:
        """The statement text as sent to the driver."""
        sql = self.parsed.sql
        if self.return_generated_keys:
            sql = self.strategy.returning_sql(sql)
        if self.parsed.parameter_count:
            sql = self.strategy.standardize_sql(sql)
        return sql

    def set(self, position: int, value: Any) -> None:
        """Bind `value` at a 1-based position. None binds SQL NULL."""
        if not 1 <= position <= self.parameter_count:
            raise BindingError(f'Parameter position {position} out of range 1..{self.parameter_count}')
        self._params[position - 1] = to_db_value(value)

    def set_null(self, position: int, kind: ValueKind | None = None) -> None:
        """Bind SQL NULL. `kind` documents the intended type; drivers infer it."""
        self.set(position, None)

    def set_object(self, position: int, value: Any) -> None:
        self.set(position, value)

    def set_int(self, position: int, value: Any) -> None:
        self.set(position, _coerce(value, int, 'integer'))

    def set_float(self, position: int, value: Any) -> None:
        self.set(position, _coerce(value, float, 'float'))

    def set_decimal(self, position: int, value: Any) -> None:
        self.set(position, _require(value, {ValueKind.DECIMAL, ValueKind.INTEGER}, 'decimal'))

    def set_string(self, position: int, value: Any) -> None:
        self.set(position, _coerce(value, str, 'text'))

    def set_bool(self, position: int, value: Any) -> None:
        self.set(position, _coerce(value, bool, 'boolean'))

    def set_bytes(self, position: int, value: Any) -> None:
        self.set(position, _coerce(value, bytes, 'bytes'))

    def set_timestamp(self, position: int, value: datetime.datetime | None) -> None:
        self.set(position, _require(value, {ValueKind.TIMESTAMP}, 'timestamp'))

    def set_date(self, position: int, value: datetime.date | None) -> None:
        self.set(position, _require(value, {ValueKind.DATE}, 'date'))

    def set_enum(self, position: int, value: enum.Enum | None) -> None:
        if value is not None and not isinstance(value, enum.Enum):
            raise BindingError(f'Cannot bind {type(value).__name__} as enum')
        self.set(position, None if value is None else value.name)

    def clear_parameters(self) -> None:
        self._params = [_UNSET] * self.parameter_count

    def _bound_parameters(self) -> tuple:
        for position, value in enumerate(self._params, 1):
            if value is _UNSET:
                raise BindingError(f'No value specified for parameter {position}')
        return tuple(self._params)

    @dumpsql
    def _execute(self, sql: str, params: tuple | None) -> None:
        if params is None:
            self.dbapi_cursor.execute(sql)
        else:
            self.dbapi_cursor.execute(sql, params)

    @dumpsql
    def _execute_batch(self, sql: str, params: list[tuple]) -> None:
        if self.return_generated_keys:
            rows = self.strategy.execute_batch_returning(self.dbapi_cursor, sql, params)
            self._generated_keys = ResultSet.from_rows(self.dbapi_cursor.description, rows)
        else:
            self.strategy.execute_batch(self.dbapi_cursor, sql, params)

    def _run(self) -> None:
        if self.closed:
            raise QueryError('Statement is closed', sql=self.sql)
        params = self._bound_parameters() if self.parameter_count else None
        self._generated_keys = None
        self._execute(self.driver_sql, params)

    def execute_query(self) -> ResultSet:
        """Execute and return a cursor over the result rows."""
        self._run()
        return ResultSet.from_cursor(self.dbapi_cursor)

    def execute_update(self) -> int:
        """Execute and return the driver's affected-row count as reported."""
        self._run()
        if self.return_generated_keys:
            self._generated_keys = ResultSet.from_cursor(self.dbapi_cursor)
        return self.dbapi_cursor.rowcount

    def add_batch(self) -> None:
        """Queue the currently bound parameters as one batch element."""
        self._batch.append(self._bound_parameters())

    def execute_batch(self) -> list[int]:
        """Execute every queued element in one call.

        Returns one row count per element. DB-API drivers only report an
        aggregate count for a batch, so each element reports SUCCESS_NO_INFO.
        """
        batch, self._batch = self._batch, []
        if not batch:
            logger.debug('Skipping execution of empty batch')
            self._generated_keys = ResultSet.from_rows(None, [])
            return []
        if self.closed:
            raise QueryError('Statement is closed', sql=self.sql)
        self._execute_batch(self.driver_sql, batch)
        return [SUCCESS_NO_INFO] * len(batch)

    def get_generated_keys(self) -> ResultSet:
        """Return the key rows of the last update or batch.

        Requires the statement to be created with `return_generated_keys`.
        """
        if not self.return_generated_keys:
            raise QueryError('Generated keys were not requested for this statement', sql=self.sql)
        if self._generated_keys is None:
            return ResultSet.from_rows(None, [])
        return self._generated_keys

    def close(self) -> None:
        """Close the cursor. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self._batch = []
        try:
            self.dbapi_cursor.close()
        except DriverError as err:
            logger.debug(f'Error closing cursor: {err}')


class NamedParamPreparedStatement:
    """Statement bound by parameter name.

    Binding a name sets the same value at every position the name occupies.
    Unknown names raise BindingError. Everything else is delegated to the
    underlying `PreparedStatement`.
    """

    def __init__(self, statement: PreparedStatement) -> None:
        self.statement = statement
        self.parsed = statement.parsed

    def __getattr__(self, name: str) -> Any:
        """Delegate members to the positional statement."""
        return getattr(self.statement, name)

    def __enter__(self) -> 'NamedParamPreparedStatement':
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.statement.close()

    def _fan_out(self, name: str, setter: Callable[[int, Any], None], value: Any) -> None:
        for position in self.parsed.positions(name):
            setter(position, value)

    def set(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set, value)

    def set_null(self, name: str, kind: ValueKind | None = None) -> None:
        self._fan_out(name, self.statement.set, None)

    def set_object(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_object, value)

    def set_int(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_int, value)

    def set_float(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_float, value)

    def set_decimal(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_decimal, value)

    def set_string(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_string, value)

    def set_bool(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_bool, value)

    def set_bytes(self, name: str, value: Any) -> None:
        self._fan_out(name, self.statement.set_bytes, value)

    def set_timestamp(self, name: str, value: datetime.datetime | None) -> None:
        self._fan_out(name, self.statement.set_timestamp, value)

    def set_date(self, name: str, value: datetime.date | None) -> None:
        self._fan_out(name, self.statement.set_date, value)

    def set_enum(self, name: str, value: enum.Enum | None) -> None:
        self._fan_out(name, self.statement.set_enum, value)

    def set_all(self, values: Mapping[str, Any]) -> None:
        """Bind every name the SQL references from `values`.

        Entries of `values` the SQL does not reference are ignored.
        """
        if not isinstance(values, Mapping):
            raise BindingError(f'Named parameters must be a mapping, got {type(values).__name__}')
        for name in self.parsed.parameters:
            if name not in values:
                raise BindingError(f'No value supplied for named parameter {name!r}')
            self.set(name, values[name])
