"""
Exception classes raised by the execution layer.

Every failure surfaced to callers derives from `DatabaseError`. Driver
exceptions are never swallowed: they are attached as ``__cause__`` of the
`QueryError` / `ConnectionFailure` that wraps them, so callers can classify
them with the driver exception groups defined at the bottom of this module.
"""
import sqlite3

import psycopg


class DatabaseError(Exception):
    """Base class for all litesql errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing a database connection.
    """


class BindingError(DatabaseError):
    """Error binding a value to a statement parameter.

    Raised before execution for a missing or unknown named parameter, an
    unbound or out-of-range position, or a value with no binder.
    """


class QueryError(DatabaseError):
    """Driver error while preparing, executing or reading a statement.
    """

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class RowMappingError(DatabaseError):
    """A row or key mapper failed while converting a result row.
    """


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    )

DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    )

UniqueViolation = (
    psycopg.errors.UniqueViolation,
    sqlite3.IntegrityError,
    )
