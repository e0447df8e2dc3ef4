"""
Scoped execution of statements.

Every operation follows the same lifecycle:

    acquire connection → prepare statement → bind → execute → map rows
    → close statement → release connection

Release always happens, innermost first, whether binding, execution or row
mapping fails. `Executor` implements the operations once; subclasses only
decide how a connection is acquired and released (`Db` opens one per call,
`Transaction` reuses the one it holds).
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import AbstractContextManager, contextmanager
from typing import Any, TypeVar

from litesql.cursor import ResultSet
from litesql.exceptions import BindingError, DatabaseError, RowMappingError
from litesql.row import RowMapper, as_attrdict, first_column
from litesql.sql import ParsedSql, parse_named_parameters
from litesql.sql import parse_positional_parameters
from litesql.statement import NamedParamPreparedStatement, PreparedStatement
from litesql.strategy import DatabaseStrategy

__all__ = ['Executor']

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _map_row(mapper: RowMapper[T], rs: ResultSet) -> T:
    """Apply a row mapper, reporting its failures as RowMappingError."""
    try:
        return mapper(rs)
    except DatabaseError:
        raise
    except Exception as err:
        raise RowMappingError(f'Row mapper failed on row {rs.row_number}: {err}') from err


def _map_all(mapper: RowMapper[T], rs: ResultSet) -> list[T]:
    return [_map_row(mapper, row) for row in rs]


def _bind_named(statement: PreparedStatement, args: Mapping[str, Any]) -> None:
    NamedParamPreparedStatement(statement).set_all(args)


def _bind_positional(statement: PreparedStatement, values: Sequence[Any]) -> None:
    if isinstance(values, str | bytes) or not isinstance(values, Sequence):
        raise BindingError(f'Positional parameters must be a sequence, got {type(values).__name__}')
    for position, value in enumerate(values, 1):
        statement.set(position, value)


class Executor(ABC):
    """Operations shared by `Db` and `Transaction`.
    """

    strategy: DatabaseStrategy

    @abstractmethod
    def _connection_scope(self) -> AbstractContextManager[Any]:
        """Context manager yielding a DB-API connection for one operation."""

    @contextmanager
    def _statement_scope(self, parsed: ParsedSql,
                         return_generated_keys: bool = False) -> Iterator[PreparedStatement]:
        with self._connection_scope() as connection:
            statement = PreparedStatement(connection, parsed, self.strategy,
                                          return_generated_keys=return_generated_keys)
            try:
                yield statement
            finally:
                statement.close()

    @staticmethod
    def _parse(sql: str, args: Mapping[str, Any] | None) -> ParsedSql:
        if args is None:
            return parse_positional_parameters(sql)
        return parse_named_parameters(sql)

    @staticmethod
    def _bind(statement: PreparedStatement, args: Mapping[str, Any] | None) -> None:
        if args is not None:
            _bind_named(statement, args)

    # Scoped resource access

    def use_connection(self, body: Callable[[Any], T]) -> T:
        """Call `body` with a DB-API connection and release it afterwards.
        """
        with self._connection_scope() as connection:
            return body(connection)

    def use_prepared_statement(self, sql: str, body: Callable[[PreparedStatement], T]) -> T:
        """Call `body` with a positional statement for `sql`.
        """
        with self._statement_scope(parse_positional_parameters(sql)) as statement:
            return body(statement)

    def use_named_param_prepared_statement(
            self, sql: str, body: Callable[[NamedParamPreparedStatement], T]) -> T:
        """Call `body` with a statement for `sql` bound by parameter name.
        """
        with self._statement_scope(parse_named_parameters(sql)) as statement:
            return body(NamedParamPreparedStatement(statement))

    # Updates

    def execute_update(self, sql: str, args: Mapping[str, Any] | None = None) -> int:
        """Execute an update and return the driver's affected-row count.

        With `args` the SQL's `:name` parameters are bound from the mapping;
        without it the SQL runs as written.
        """
        with self._statement_scope(self._parse(sql, args)) as statement:
            self._bind(statement, args)
            rowcount = statement.execute_update()
        logger.debug(f'Update affected {rowcount} rows')
        return rowcount

    def execute_update_positional_params(self, sql: str, *values: Any) -> int:
        """Execute an update binding `values` to the `?` markers in order.
        """
        with self._statement_scope(parse_positional_parameters(sql)) as statement:
            _bind_positional(statement, values)
            rowcount = statement.execute_update()
        logger.debug(f'Update affected {rowcount} rows')
        return rowcount

    # Queries

    def _query_one(self, parsed: ParsedSql, bind: Callable[[PreparedStatement], None],
                   row_mapper: RowMapper[T]) -> T | None:
        with self._statement_scope(parsed) as statement:
            bind(statement)
            rs = statement.execute_query()
            if not rs.next():
                return None
            return _map_row(row_mapper, rs)

    def _query_all(self, parsed: ParsedSql, bind: Callable[[PreparedStatement], None],
                   row_mapper: RowMapper[T]) -> list[T]:
        with self._statement_scope(parsed) as statement:
            bind(statement)
            results = _map_all(row_mapper, statement.execute_query())
        logger.debug(f'Query returned {len(results)} rows')
        return results

    def execute_query(self, sql: str, args: Mapping[str, Any] | None = None,
                      row_mapper: RowMapper[T] = first_column) -> T | None:
        """Map the first row of a query, or return None when there is none.

        The default mapper returns the first column, suiting aggregates
        such as `SELECT COUNT(*) ...`.
        """
        return self._query_one(self._parse(sql, args),
                               lambda statement: self._bind(statement, args), row_mapper)

    def execute_query_positional_params(self, sql: str, row_mapper: RowMapper[T],
                                        *values: Any) -> T | None:
        """Like `execute_query`, binding `values` to the `?` markers.
        """
        return self._query_one(parse_positional_parameters(sql),
                               lambda statement: _bind_positional(statement, values), row_mapper)

    def find_all(self, sql: str, args: Mapping[str, Any] | None = None,
                 row_mapper: RowMapper[T] = as_attrdict) -> list[T]:
        """Map every row of a query, in cursor order. No rows gives [].
        """
        return self._query_all(self._parse(sql, args),
                               lambda statement: self._bind(statement, args), row_mapper)

    def find_all_positional_params(self, sql: str, row_mapper: RowMapper[T],
                                   *values: Any) -> list[T]:
        """Like `find_all`, binding `values` to the `?` markers.
        """
        return self._query_all(parse_positional_parameters(sql),
                               lambda statement: _bind_positional(statement, values), row_mapper)

    # Generated keys

    def _generated_keys(self, parsed: ParsedSql, bind: Callable[[PreparedStatement], None],
                        key_mapper: RowMapper[T]) -> list[T]:
        with self._statement_scope(parsed, return_generated_keys=True) as statement:
            bind(statement)
            statement.execute_update()
            keys = _map_all(key_mapper, statement.get_generated_keys())
        logger.debug(f'Insert generated {len(keys)} keys')
        return keys

    def execute_with_generated_keys(self, sql: str, args: Mapping[str, Any],
                                    key_mapper: RowMapper[T]) -> list[T]:
        """Execute an insert and map each generated-key row, in driver order.
        """
        return self._generated_keys(parse_named_parameters(sql),
                                    lambda statement: _bind_named(statement, args), key_mapper)

    def execute_with_generated_keys_positional_params(self, sql: str, key_mapper: RowMapper[T],
                                                      *values: Any) -> list[T]:
        """Like `execute_with_generated_keys`, binding `values` to the `?` markers.
        """
        return self._generated_keys(parse_positional_parameters(sql),
                                    lambda statement: _bind_positional(statement, values), key_mapper)

    # Batches

    def _batch(self, parsed: ParsedSql, elements: Sequence[Any],
               bind: Callable[[PreparedStatement, Any], None],
               key_mapper: RowMapper[T] | None) -> list[int] | list[T]:
        with self._statement_scope(parsed, return_generated_keys=key_mapper is not None) as statement:
            for element in elements:
                statement.clear_parameters()
                bind(statement, element)
                statement.add_batch()
            rowcounts = statement.execute_batch()
            logger.debug(f'Executed batch of {len(rowcounts)} elements')
            if key_mapper is None:
                return rowcounts
            return _map_all(key_mapper, statement.get_generated_keys())

    def execute_batch(self, sql: str, args_list: Sequence[Mapping[str, Any]],
                      key_mapper: RowMapper[T] | None = None) -> list[int] | list[T]:
        """Execute `sql` once per mapping in `args_list` as a single batch.

        Without `key_mapper` return one row count per element; with it return
        the generated keys of all elements, in element order.
        """
        return self._batch(parse_named_parameters(sql), args_list, _bind_named, key_mapper)

    def execute_batch_positional_params(self, sql: str, args_list: Sequence[Sequence[Any]],
                                        key_mapper: RowMapper[T] | None = None) -> list[int] | list[T]:
        """Like `execute_batch`, each element a sequence bound to the `?` markers.
        """
        return self._batch(parse_positional_parameters(sql), args_list, _bind_positional, key_mapper)
