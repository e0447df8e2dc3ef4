"""
PostgreSQL-specific strategy implementation.

Connections go through SQLAlchemy's `postgresql+psycopg` dialect (psycopg 3).
psycopg uses the `format` paramstyle, so statement text is rewritten from `?`
to `%s`, and batches that return generated keys are sent in a single
`executemany(..., returning=True)` call.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from litesql.strategy.base import DatabaseStrategy, DbType, register_strategy

if TYPE_CHECKING:
    from litesql.options import DbConfig

logger = logging.getLogger(__name__)


@register_strategy(DbType.POSTGRES)
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DbConfig') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {str(k): str(v) for k, v in options.extras.items()}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or None,
            database=options.database,
            query=query,
        )

    def get_engine_kwargs(self, options: 'DbConfig') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        return ['hostname', 'username', 'database']

    def execute_batch_returning(self, cursor: Any, sql: str,
                                seq_of_params: Sequence[tuple]) -> list[tuple]:
        """Send the whole batch at once and read each element's RETURNING rows.
        """
        rows: list[tuple] = []
        if not seq_of_params:
            return rows

        cursor.executemany(sql, seq_of_params, returning=True)
        while True:
            rows.extend(cursor.fetchall())
            if not cursor.nextset():
                break
        logger.debug(f'Batch of {len(seq_of_params)} returned {len(rows)} rows')
        return rows
