"""
Connection factory built on SQLAlchemy engines.

This module provides:
1. URL and engine creation from a `DbConfig` through the per-kind strategy
2. A thread-safe engine registry (one engine per configuration)
3. `open_connection()` returning a DB-API connection for one scoped call
4. commit/rollback/close helpers used by the scoped executors
"""
import atexit
import logging
import threading
from collections.abc import Callable
from typing import Any

import sqlalchemy as sa
from litesql.exceptions import ConnectionFailure, DriverError, QueryError
from litesql.options import DbConfig
from litesql.strategy import get_strategy
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

__all__ = [
    'create_url_from_options',
    'get_engine_for_options',
    'dispose_engine',
    'dispose_all_engines',
    'open_connection',
    'commit',
    'rollback_quietly',
    'close_quietly',
]

logger = logging.getLogger(__name__)

_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DbConfig) -> sa.URL:
    """Convert DbConfig to SQLAlchemy URL.
    """
    return get_strategy(options.drivername).build_connection_url(options)


def _registry_key(options: DbConfig) -> str:
    return str(options)


def get_engine_for_options(options: DbConfig,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create the SQLAlchemy engine for the given options.

    Engines use NullPool: every acquired connection is a new physical
    session that is closed when released.
    """
    key = _registry_key(options)

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername.value}')
            return _engine_registry[key]

        strategy = get_strategy(options.drivername)
        engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
        engine_kwargs.update(strategy.get_engine_kwargs(options))
        engine_kwargs.update(kwargs)

        engine = engine_factory(create_url_from_options(options), **engine_kwargs)

        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername.value}')

        return engine


def dispose_engine(options: DbConfig) -> None:
    """Dispose the engine registered for the given options, if any.
    """
    with _engine_registry_lock:
        engine = _engine_registry.pop(_registry_key(options), None)
        if engine is not None:
            engine.dispose()
            logger.debug(f'Disposed engine for {options.drivername.value}')


def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        for engine in list(_engine_registry.values()):
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


atexit.register(dispose_all_engines)


def open_connection(options: DbConfig) -> Any:
    """Open a DB-API connection for the given options.

    The caller owns the connection and must close it.
    """
    engine = get_engine_for_options(options)
    try:
        connection = engine.raw_connection()
    except (sa.exc.SQLAlchemyError, *DriverError) as err:
        logger.error(f'Could not connect to {options.drivername.value} database {options.database}: {err}')
        raise ConnectionFailure(f'Could not connect to {options.drivername.value} '
                                f'database {options.database}: {err}') from err

    try:
        get_strategy(options.drivername).configure_connection(connection.driver_connection)
    except BaseException:
        close_quietly(connection)
        raise
    logger.debug(f'Opened connection to {options.drivername.value} database {options.database}')
    return connection


def commit(connection: Any) -> None:
    """Commit, reporting driver failures as QueryError."""
    try:
        connection.commit()
    except DriverError as err:
        raise QueryError(f'Commit failed: {err}') from err


def rollback_quietly(connection: Any) -> None:
    """Roll back while another error is propagating; a failed rollback is only logged."""
    try:
        connection.rollback()
    except Exception as e:
        logger.debug(f'Error rolling back connection: {e}')


def close_quietly(connection: Any) -> None:
    """Close the connection; a failed close is only logged."""
    try:
        connection.close()
        logger.debug('Connection closed')
    except Exception as e:
        logger.debug(f'Error closing connection: {e}')
