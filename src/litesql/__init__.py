"""
Named-parameter SQL execution over PostgreSQL and SQLite drivers.

Operations are methods of a `Db` handle (one connection per call) or of a
`Transaction` (one connection for the block):

    db = litesql.connect('postgresql', config=config)
    count = db.execute_query('select count(*) from t where name = :name', {'name': 'x'})
    with db.transaction() as tx:
        tx.execute_update('update t set name = :name where id = :id', {'id': 1, 'name': 'y'})
"""
__version__ = '0.1.0'

from litesql.cursor import ResultSet
from litesql.db import Db, connect
from litesql.exceptions import BindingError, ConnectionFailure, DatabaseError
from litesql.exceptions import DbConnectionError, IntegrityError
from litesql.exceptions import OperationalError, ProgrammingError, QueryError
from litesql.exceptions import RowMappingError, UniqueViolation
from litesql.options import DbConfig, DbType
from litesql.row import as_attrdict, as_dict, as_tuple, enum_column
from litesql.row import first_column, properties_to_map
from litesql.sql import ParsedSql, parse_named_parameters
from litesql.statement import EXECUTE_FAILED, SUCCESS_NO_INFO
from litesql.statement import NamedParamPreparedStatement, PreparedStatement
from litesql.transaction import Transaction
from litesql.types import ValueKind, register_adapter, unregister_adapter

__all__ = [
    'connect',
    'Db',
    'DbConfig',
    'DbType',
    'Transaction',
    'PreparedStatement',
    'NamedParamPreparedStatement',
    'ResultSet',
    'ParsedSql',
    'parse_named_parameters',
    'first_column',
    'as_dict',
    'as_attrdict',
    'as_tuple',
    'enum_column',
    'properties_to_map',
    'ValueKind',
    'register_adapter',
    'unregister_adapter',
    'SUCCESS_NO_INFO',
    'EXECUTE_FAILED',
    'DatabaseError',
    'ConnectionFailure',
    'BindingError',
    'QueryError',
    'RowMappingError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
    'UniqueViolation',
    'DbConnectionError',
]
