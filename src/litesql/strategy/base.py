"""
Base strategy interface for database-specific behaviour.

Each supported `DbType` maps to exactly one strategy class through the
registry below. A strategy builds the SQLAlchemy URL and engine arguments for
its driver, prepares freshly opened connections, and adapts statement text
and batch execution to the driver. The execution layer itself behaves the
same for every kind.
"""
import enum
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from litesql.sql import has_returning_clause, standardize_placeholders
from litesql.sql import strip_trailing

if TYPE_CHECKING:
    from litesql.options import DbConfig

logger = logging.getLogger(__name__)


class DbType(enum.Enum):
    """Supported database kinds."""
    POSTGRES = 'postgresql'
    SQLITE = 'sqlite'


_STRATEGY_REGISTRY: dict[DbType, type['DatabaseStrategy']] = {}


def register_strategy(db_type: DbType):
    """Decorator to register a strategy class for a database kind.

    Usage:
        @register_strategy(DbType.POSTGRES)
        class PostgresStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[db_type] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier ('postgresql' or 'sqlite')."""

    @abstractmethod
    def build_connection_url(self, options: 'DbConfig') -> sa.URL:
        """Build the SQLAlchemy connection URL.

        Args:
            options: Connection configuration

        Returns
            sqlalchemy.URL for the driver
        """

    @abstractmethod
    def get_engine_kwargs(self, options: 'DbConfig') -> dict[str, Any]:
        """Return extra SQLAlchemy create_engine kwargs for the driver."""

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return option field names that must have non-None/non-zero values."""

    @classmethod
    def validate_options(cls, options: 'DbConfig') -> None:
        """Validate options for this database kind.

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def configure_connection(self, raw_conn: Any) -> None:
        """Prepare a freshly opened DB-API connection."""

    def standardize_sql(self, sql: str) -> str:
        """Convert `?` markers to the driver's paramstyle."""
        return standardize_placeholders(sql, self.dialect_name)

    def returning_sql(self, sql: str) -> str:
        """Make an insert hand back its generated keys as a result set.

        Statements that already carry a RETURNING clause are left alone.
        Trailing comments and semicolons are dropped before the clause is
        appended.
        """
        if has_returning_clause(sql):
            return sql
        return strip_trailing(sql) + ' RETURNING *'

    def execute_batch(self, cursor: Any, sql: str, seq_of_params: Sequence[tuple]) -> None:
        """Run one statement for every parameter tuple."""
        cursor.executemany(sql, seq_of_params)

    def execute_batch_returning(self, cursor: Any, sql: str,
                                seq_of_params: Sequence[tuple]) -> list[tuple]:
        """Run a RETURNING statement per parameter tuple and collect its rows.

        Rows are concatenated in parameter order.
        """
        rows: list[tuple] = []
        for params in seq_of_params:
            cursor.execute(sql, params)
            rows.extend(cursor.fetchall())
        return rows
