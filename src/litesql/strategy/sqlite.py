"""
SQLite-specific strategy implementation.

SQLite uses the `qmark` paramstyle, so statement text is passed as is.
Python's default datetime adapters for sqlite3 are deprecated; this strategy
registers ISO-8601 adapters and converters for declared DATE, DATETIME and
TIMESTAMP columns instead.
"""
import datetime
import decimal
import json
import logging
import sqlite3
import uuid
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from litesql.strategy.base import DatabaseStrategy, DbType, register_strategy
from litesql.types import convert_date, convert_datetime

if TYPE_CHECKING:
    from litesql.options import DbConfig

logger = logging.getLogger(__name__)


@register_strategy(DbType.SQLITE)
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DbConfig') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DbConfig') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        connect_args = {'detect_types': sqlite3.PARSE_DECLTYPES}
        if options.timeout:
            connect_args['timeout'] = options.timeout
        connect_args.update(options.extras)
        return {'connect_args': connect_args}

    @classmethod
    def get_required_options(cls) -> list[str]:
        return ['database']

    def configure_connection(self, raw_conn: Any) -> None:
        """Register type adapters and converters for SQLite.
        """
        # Adapters (Python -> SQLite)
        sqlite3.register_adapter(datetime.datetime, lambda v: v.isoformat(' '))
        sqlite3.register_adapter(datetime.date, lambda v: v.isoformat())
        sqlite3.register_adapter(datetime.time, lambda v: v.isoformat())
        sqlite3.register_adapter(decimal.Decimal, str)
        sqlite3.register_adapter(uuid.UUID, str)
        sqlite3.register_adapter(dict, json.dumps)
        sqlite3.register_adapter(list, json.dumps)

        # Converters (SQLite -> Python)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)
