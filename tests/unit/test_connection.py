import sqlite3
from unittest import mock

import pytest
import sqlalchemy as sa
from litesql.connection import open_connection
from litesql.exceptions import ConnectionFailure
from litesql.options import DbConfig


@pytest.fixture
def options():
    return DbConfig(drivername='sqlite', database='unused.db')


@pytest.fixture
def engine():
    with mock.patch('litesql.connection.get_engine_for_options') as get_engine:
        yield get_engine.return_value


def test_configure_failure_closes_connection(options, engine):
    connection = engine.raw_connection.return_value
    with mock.patch('litesql.connection.get_strategy') as get_strategy:
        get_strategy.return_value.configure_connection.side_effect = sqlite3.OperationalError('boom')
        with pytest.raises(sqlite3.OperationalError):
            open_connection(options)
    connection.close.assert_called_once()


def test_connect_failure_is_wrapped(options, engine):
    engine.raw_connection.side_effect = sa.exc.OperationalError('connect', {}, Exception('refused'))
    with pytest.raises(ConnectionFailure) as exc_info:
        open_connection(options)
    assert isinstance(exc_info.value.__cause__, sa.exc.OperationalError)


def test_open_connection_configures_driver_connection(options, engine):
    connection = engine.raw_connection.return_value
    with mock.patch('litesql.connection.get_strategy') as get_strategy:
        assert open_connection(options) is connection
    get_strategy.return_value.configure_connection.assert_called_once_with(connection.driver_connection)
    connection.close.assert_not_called()
