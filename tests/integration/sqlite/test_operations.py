import dataclasses
import datetime
import enum
import sqlite3

import config
import litesql
import pytest
from litesql import SUCCESS_NO_INFO, BindingError, QueryError, RowMappingError
from litesql.exceptions import IntegrityError


class Status(enum.Enum):
    ACTIVE = 1
    INACTIVE = 2


@dataclasses.dataclass
class Item:
    id: int
    name: str
    value: int
    status: Status
    created_on: datetime.datetime


def name_of(rs):
    return rs.get_string('name')


def id_of(rs):
    return rs.get_int('id')


def count(sdb):
    return sdb.execute_query('select count(*) from test_table')


# Queries


def test_count_with_default_mapper(sl_db):
    """Test the default mapper returns the first column"""
    assert count(sl_db) == 3


def test_named_query(sl_db):
    sql = 'select count(*) from test_table where value > :min'
    assert sl_db.execute_query(sql, {'min': 15}) == 2


def test_reused_named_parameter(sl_db):
    sql = 'select count(*) from test_table where value >= :v and value <= :v + 10'
    assert sl_db.execute_query(sql, {'v': 10}) == 2


def test_extra_names_are_ignored(sl_db):
    sql = 'select name from test_table where value = :value'
    assert sl_db.execute_query(sql, {'value': 20, 'unused': 'x'}) == 'Bob'


def test_query_without_rows_returns_none(sl_db):
    assert sl_db.execute_query('select name from test_table where value = :v', {'v': 99}) is None


def test_find_all_in_cursor_order(sl_db):
    names = sl_db.find_all('select name from test_table order by value', row_mapper=name_of)
    assert names == ['Alice', 'Bob', 'Charlie']


def test_find_all_default_mapper(sl_db):
    rows = sl_db.find_all('select name, value from test_table where value < :v order by value', {'v': 25})
    assert [(row.name, row.value) for row in rows] == [('Alice', 10), ('Bob', 20)]


def test_find_all_without_rows(sl_db):
    assert sl_db.find_all('select name from test_table where value > :v', {'v': 100}) == []


def test_positional_query(sl_db):
    sql = 'select value from test_table where name = ?'
    assert sl_db.execute_query_positional_params(sql, litesql.first_column, 'Bob') == 20


def test_positional_find_all(sl_db):
    sql = 'select name from test_table where value between ? and ? order by value'
    assert sl_db.find_all_positional_params(sql, name_of, 15, 35) == ['Bob', 'Charlie']


def test_colon_inside_literal(sl_db):
    sql = "select count(*) from test_table where name <> 'a:b' and value = :v"
    assert sl_db.execute_query(sql, {'v': 10}) == 1


# Updates


def test_named_update(sl_db):
    sql = 'update test_table set value = :value where value < :limit'
    assert sl_db.execute_update(sql, {'value': 0, 'limit': 25}) == 2
    assert sl_db.execute_query('select sum(value) from test_table') == 30


def test_positional_update(sl_db):
    sql = 'update test_table set value = ? where name = ?'
    assert sl_db.execute_update_positional_params(sql, 25, 'Bob') == 1
    assert sl_db.execute_query('select value from test_table where name = :n', {'n': 'Bob'}) == 25


def test_update_is_committed_per_call(sl_db):
    sl_db.execute_update("insert into test_table (name, value) values ('Diana', 40)")
    assert count(sl_db) == 4


# Generated keys


def test_generated_keys(sl_db):
    sql = 'insert into key_gen (name) values (:name)'
    assert sl_db.execute_with_generated_keys(sql, {'name': 'a'}, id_of) == [1]
    assert sl_db.execute_with_generated_keys(sql, {'name': 'b'}, id_of) == [2]


def test_generated_keys_positional(sl_db):
    sql = 'insert into key_gen (name) values (?)'
    assert sl_db.execute_with_generated_keys_positional_params(sql, id_of, 'a') == [1]


# Batches


def test_batch_without_keys(sl_db):
    sql = 'insert into test_table (name, value) values (:name, :value)'
    result = sl_db.execute_batch(sql, [{'name': 'Diana', 'value': 40}, {'name': 'Ethan', 'value': 50}])
    assert result == [SUCCESS_NO_INFO, SUCCESS_NO_INFO] == [-2, -2]
    assert count(sl_db) == 5


def test_batch_keys_in_element_order(sl_db):
    sql = 'insert into key_gen (name) values (:name)'
    keys = sl_db.execute_batch(sql, [{'name': 'a'}, {'name': 'b'}, {'name': 'c'}], id_of)
    assert keys == [1, 2, 3]
    names = sl_db.find_all('select name from key_gen order by id', row_mapper=name_of)
    assert names == ['a', 'b', 'c']


def test_empty_batch(sl_db):
    sql = 'insert into key_gen (name) values (:name)'
    assert sl_db.execute_batch(sql, []) == []
    assert sl_db.execute_batch(sql, [], id_of) == []


def test_positional_batch(sl_db):
    sql = 'insert into key_gen (name) values (?)'
    assert sl_db.execute_batch_positional_params(sql, [('a',), ('b',)]) == [-2, -2]
    assert sl_db.execute_batch_positional_params(sql, [('c',)], id_of) == [3]


def test_failed_batch_is_rolled_back(sl_db):
    sql = 'insert into test_table (name, value) values (:name, :value)'
    with pytest.raises(QueryError) as exc_info:
        sl_db.execute_batch(sql, [{'name': 'Diana', 'value': 40}, {'name': 'Alice', 'value': 50}])
    assert isinstance(exc_info.value.__cause__, IntegrityError)
    assert count(sl_db) == 3


# Errors


def test_missing_named_parameter(sl_db):
    sql = 'insert into test_table (name, value) values (:name, :value)'
    with pytest.raises(BindingError, match="'value'"):
        sl_db.execute_update(sql, {'name': 'Diana'})
    assert count(sl_db) == 3


def test_driver_error(sl_db):
    with pytest.raises(QueryError) as exc_info:
        sl_db.execute_query('select * from missing_table where id = :id', {'id': 1})
    assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
    assert exc_info.value.sql == 'select * from missing_table where id = ?'


def test_row_mapper_error(sl_db):
    with pytest.raises(RowMappingError):
        sl_db.find_all('select name from test_table', row_mapper=lambda rs: rs.get_int('name'))


# Scoped resources


def test_use_prepared_statement(sl_db):
    def body(ps):
        ps.set_int(1, 20)
        rs = ps.execute_query()
        rs.next()
        return rs.get_string('name')

    assert sl_db.use_prepared_statement('select name from test_table where value = ?', body) == 'Bob'


def test_use_named_param_prepared_statement(sl_db):
    def body(nps):
        nps.set_string('name', 'Charlie')
        rs = nps.execute_query()
        rs.next()
        return rs.get_int('value')

    sql = 'select value from test_table where name = :name'
    assert sl_db.use_named_param_prepared_statement(sql, body) == 30


def test_use_connection(sl_db):
    def body(cn):
        cursor = cn.cursor()
        cursor.execute('select count(*) from test_table')
        return cursor.fetchone()[0]

    assert sl_db.use_connection(body) == 3


def read_item(rs):
    return Item(rs.get_int('id'), rs.get_string('name'), rs.get_int('value'),
                rs.get_enum('status', Status), rs.get_timestamp('created_on'))


def test_save_and_delete(sl_db):
    item = Item(id=10, name='Zed', value=99, status=Status.ACTIVE,
                created_on=datetime.datetime(2024, 1, 2, 3, 4, 5, 123000))
    original_count = count(sl_db)

    sql = """
insert into test_table (id, name, value, status, created_on)
values (:id, :name, :value, :status, :created_on)
"""
    assert sl_db.execute_update(sql, litesql.properties_to_map(item)) == 1
    assert count(sl_db) == original_count + 1

    saved = sl_db.execute_query('select * from test_table where id = :id', {'id': item.id}, read_item)
    assert saved == item
    assert saved.created_on.microsecond == 123000

    sql = 'delete from test_table where id = :id'
    assert sl_db.execute_update(sql, litesql.properties_to_map(item)) == 1
    assert count(sl_db) == original_count


def test_connect_from_config_setting(tmp_path):
    sdb = litesql.connect('sqlite', config=config, database=str(tmp_path / 'from_config.db'))
    assert sdb.config.drivername is litesql.DbType.SQLITE
    assert sdb.execute_query('select 1 + :n', {'n': 1}) == 2
    sdb.dispose()
