"""
Database entry point.

`Db` runs every operation on its own connection: the connection is opened
for the call, committed when the call succeeds, rolled back when it fails,
and closed in both cases.

    db = litesql.connect({'drivername': 'sqlite', 'database': 'app.db'})
    db.execute_update('insert into t (id, name) values (:id, :name)', {'id': 1, 'name': 'x'})
    names = db.find_all('select name from t', row_mapper=lambda rs: rs.get_string('name'))
"""
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import fields
from typing import Any, TypeVar

from litesql.connection import close_quietly, commit, dispose_engine
from litesql.connection import open_connection, rollback_quietly
from litesql.executor import Executor
from litesql.options import DbConfig
from litesql.strategy import get_strategy
from litesql.transaction import Transaction

from libb import load_options

__all__ = ['Db', 'connect']

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Db(Executor):
    """Database handle executing each operation on a freshly acquired connection.
    """

    def __init__(self, config: DbConfig) -> None:
        self.config = config
        self.strategy = get_strategy(config.drivername)

    def __repr__(self) -> str:
        return (f'Db(drivername={self.config.drivername.value!r}, '
                f'hostname={self.config.hostname!r}, database={self.config.database!r})')

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self.strategy.dialect_name

    def open_connection(self) -> Any:
        """Open a DB-API connection the caller must close."""
        return open_connection(self.config)

    @contextmanager
    def _connection_scope(self) -> Iterator[Any]:
        connection = self.open_connection()
        try:
            yield connection
            commit(connection)
        except BaseException:
            rollback_quietly(connection)
            raise
        finally:
            close_quietly(connection)

    def transaction(self) -> Transaction:
        """Return a context manager running operations on one connection.

        Examples
            with db.transaction() as tx:
                tx.execute_update('delete from t where id = :id', {'id': 1})
                tx.execute_update('insert into t (id) values (:id)', {'id': 2})
        """
        return Transaction(self)

    def with_transaction(self, body: Callable[[Transaction], T]) -> T:
        """Call `body` inside a transaction and return its result.
        """
        with self.transaction() as tx:
            return body(tx)

    def dispose(self) -> None:
        """Release the engine behind this handle."""
        dispose_engine(self.config)


@load_options(cls=DbConfig)
def connect(options: DbConfig | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> Db:
    """Create a `Db` for the given options

    Args:
        options: Can be:
                - DbConfig object
                - String name of a setting in `config`
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        Db handle; no connection is opened until an operation runs
    """
    if isinstance(options, DbConfig):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DbConfig)(lambda o, c: o)
        options = options_func(options, config, **kw)

    return Db(options)
