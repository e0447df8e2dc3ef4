"""Tests for resource handling of Db and Transaction scopes.

Every connection and statement acquired for an operation must be released
exactly once, whether binding, execution or row mapping fails.
"""
import sqlite3
from unittest import mock

import pytest
from litesql.db import Db
from litesql.exceptions import BindingError, ConnectionFailure, QueryError
from litesql.exceptions import RowMappingError
from litesql.options import DbConfig


@pytest.fixture
def connection():
    cn = mock.MagicMock()
    cursor = cn.cursor.return_value
    cursor.description = [('n',)]
    cursor.fetchone.side_effect = [(3,), (4,), None]
    cursor.rowcount = 1
    return cn


@pytest.fixture
def mock_db(connection):
    sdb = Db(DbConfig(drivername='sqlite', database='unused.db'))
    with mock.patch.object(Db, 'open_connection', return_value=connection):
        yield sdb


def assert_released(connection, committed):
    connection.cursor.return_value.close.assert_called_once()
    connection.close.assert_called_once()
    if committed:
        connection.commit.assert_called_once()
        connection.rollback.assert_not_called()
    else:
        connection.commit.assert_not_called()
        connection.rollback.assert_called_once()


class TestDbScope:

    def test_query_commits_and_releases(self, mock_db, connection):
        assert mock_db.execute_query('select count(*) from t') == 3
        assert_released(connection, committed=True)

    def test_find_all_maps_every_row(self, mock_db, connection):
        assert mock_db.find_all('select n from t', row_mapper=lambda rs: rs.get_int('n')) == [3, 4]
        assert_released(connection, committed=True)

    def test_binding_failure_releases(self, mock_db, connection):
        with pytest.raises(BindingError):
            mock_db.execute_query('select * from t where id = :id', {})
        connection.cursor.return_value.execute.assert_not_called()
        assert_released(connection, committed=False)

    def test_execution_failure_releases(self, mock_db, connection):
        connection.cursor.return_value.execute.side_effect = sqlite3.OperationalError('boom')
        with pytest.raises(QueryError):
            mock_db.execute_update('delete from t')
        assert_released(connection, committed=False)

    def test_mapper_failure_releases(self, mock_db, connection):
        def mapper(rs):
            raise ValueError('bad row')

        with pytest.raises(RowMappingError) as exc_info:
            mock_db.find_all('select n from t', row_mapper=mapper)
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert_released(connection, committed=False)

    def test_use_connection_releases(self, mock_db, connection):
        assert mock_db.use_connection(lambda cn: cn is connection)
        connection.close.assert_called_once()
        connection.commit.assert_called_once()

    def test_positional_args_must_be_sequence(self, mock_db, connection):
        with pytest.raises(BindingError, match='must be a sequence'):
            mock_db.execute_batch_positional_params('insert into t values (?)', ['ab'])
        assert_released(connection, committed=False)

    def test_connection_failure_propagates(self):
        sdb = Db(DbConfig(drivername='sqlite', database='unused.db'))
        with mock.patch.object(Db, 'open_connection', side_effect=ConnectionFailure('down')):
            with pytest.raises(ConnectionFailure):
                sdb.execute_query('select 1')


class TestTransactionScope:

    def test_operations_share_one_connection(self, mock_db, connection):
        with mock_db.transaction() as tx:
            tx.execute_update('update t set a = 1')
            tx.execute_update('update t set a = 2')
        assert connection.cursor.call_count == 2
        connection.commit.assert_called_once()
        connection.close.assert_called_once()

    def test_exception_rolls_back(self, mock_db, connection):
        with pytest.raises(ValueError):
            with mock_db.transaction() as tx:
                tx.execute_update('update t set a = 1')
                raise ValueError('abort')
        connection.commit.assert_not_called()
        connection.rollback.assert_called_once()
        connection.close.assert_called_once()

    def test_with_transaction_returns_body_result(self, mock_db, connection):
        assert mock_db.with_transaction(lambda tx: tx.execute_query('select count(*) from t')) == 3
        connection.commit.assert_called_once()

    def test_nested_enter_raises(self, mock_db):
        tx = mock_db.transaction()
        with tx:
            with pytest.raises(RuntimeError, match='Nested transactions'):
                tx.__enter__()

    def test_inactive_transaction_raises(self, mock_db):
        tx = mock_db.transaction()
        with pytest.raises(RuntimeError, match='not active'):
            tx.execute_update('update t set a = 1')
