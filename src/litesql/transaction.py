"""
Transaction handling for grouped operations.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from litesql.connection import close_quietly, commit, rollback_quietly
from litesql.executor import Executor

if TYPE_CHECKING:
    from litesql.db import Db

logger = logging.getLogger(__name__)


class Transaction(Executor):
    """Context manager for running multiple operations in one transaction.

    All operations share one connection. Leaving the block commits; an
    exception rolls back. The connection is closed either way. A
    Transaction cannot be entered again while active.

    Examples
        with db.transaction() as tx:
            tx.execute_update('delete from ...', args)
            tx.execute_update('update ...', args)
    """

    def __init__(self, db: 'Db') -> None:
        self.db = db
        self.strategy = db.strategy
        self.connection = None

    def __enter__(self) -> 'Transaction':
        if self.connection is not None:
            raise RuntimeError('Nested transactions are not supported')
        self.connection = self.db.open_connection()
        logger.debug(f'Started transaction for connection {id(self.connection)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        connection, self.connection = self.connection, None
        try:
            if exc_type is not None:
                rollback_quietly(connection)
                logger.warning('Rolling back the current transaction')
            else:
                commit(connection)
                logger.debug(f'Committed transaction for connection {id(connection)}')
        finally:
            close_quietly(connection)

    @contextmanager
    def _connection_scope(self) -> Iterator[Any]:
        if self.connection is None:
            raise RuntimeError('Transaction is not active')
        yield self.connection
