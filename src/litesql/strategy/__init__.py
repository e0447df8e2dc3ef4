"""
Database strategy factory: one strategy class per `DbType`.
"""
from functools import lru_cache

from litesql.strategy.base import _STRATEGY_REGISTRY
from litesql.strategy.base import DatabaseStrategy as DatabaseStrategy
from litesql.strategy.base import DbType as DbType
from litesql.strategy.base import register_strategy as register_strategy
from litesql.strategy.postgres import PostgresStrategy as PostgresStrategy
from litesql.strategy.sqlite import SQLiteStrategy as SQLiteStrategy


def _validate_db_type(db_type: DbType) -> None:
    """Raise ValueError if no strategy is registered for db_type."""
    if db_type not in _STRATEGY_REGISTRY:
        available = [t.value for t in _STRATEGY_REGISTRY]
        raise ValueError(f'Unsupported database type: {db_type}. Available: {available}')


@lru_cache(maxsize=8)
def get_strategy(db_type: DbType) -> DatabaseStrategy:
    """Get the cached strategy instance for a database kind."""
    _validate_db_type(db_type)
    return _STRATEGY_REGISTRY[db_type]()


def get_strategy_class(db_type: DbType) -> type[DatabaseStrategy]:
    """Get the strategy class for a database kind without instantiating."""
    _validate_db_type(db_type)
    return _STRATEGY_REGISTRY[db_type]


def get_available_dialects() -> list[str]:
    """Return registered dialect names."""
    return [t.value for t in _STRATEGY_REGISTRY]
