"""Row mappers: callables turning the current row of a ResultSet into a value."""
import dataclasses
import enum
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from litesql.cursor import ResultSet

from libb import attrdict

__all__ = [
    'RowMapper',
    'first_column',
    'as_dict',
    'as_attrdict',
    'as_tuple',
    'enum_column',
    'properties_to_map',
]

T = TypeVar('T')

RowMapper = Callable[[ResultSet], T]


def first_column(rs: ResultSet) -> Any:
    """Value of the first column, e.g. for `SELECT COUNT(*) ...`."""
    return rs.get_object(1)


def as_dict(rs: ResultSet) -> dict[str, Any]:
    return rs.to_dict()


def as_attrdict(rs: ResultSet) -> attrdict:
    return attrdict(rs.to_dict())


def as_tuple(rs: ResultSet) -> tuple:
    return tuple(rs.row)


def enum_column(column: str | int, enum_cls: type[enum.Enum]) -> RowMapper[enum.Enum]:
    """Mapper reading one column as a member of `enum_cls`."""
    def mapper(rs: ResultSet) -> enum.Enum:
        return rs.get_enum(column, enum_cls)
    return mapper


def properties_to_map(obj: Any) -> dict[str, Any]:
    """Turn an object's fields into a name to value dict for named parameters.

    Supports dataclasses, namedtuples, mappings and plain objects (public
    attributes of ``vars(obj)``).
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, '_asdict'):
        return dict(obj._asdict())
    return {k: v for k, v in vars(obj).items() if not k.startswith('_')}
