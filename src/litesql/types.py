"""
Value binding for statement parameters.

This module provides:
- ValueKind: the closed set of value kinds a parameter can be bound as
- classify: decide the kind of a Python value
- to_db_value: convert a value to what the DB-API driver expects
- register_adapter: extension point for custom domain types
- convert_date/convert_datetime: SQLite converters for declared column types
"""
import datetime
import decimal
import enum
import logging
import math
import uuid
from collections.abc import Callable
from typing import Any

import dateutil.parser
import numpy as np
import pandas as pd
import pyarrow as pa
from litesql.exceptions import BindingError

__all__ = [
    'ValueKind',
    'classify',
    'to_db_value',
    'register_adapter',
    'unregister_adapter',
    'convert_date',
    'convert_datetime',
]

logger = logging.getLogger(__name__)


class ValueKind(enum.Enum):
    """Kinds of values the binder knows how to set."""
    NULL = enum.auto()
    BOOLEAN = enum.auto()
    INTEGER = enum.auto()
    FLOAT = enum.auto()
    DECIMAL = enum.auto()
    TEXT = enum.auto()
    TIMESTAMP = enum.auto()
    DATE = enum.auto()
    TIME = enum.auto()
    BYTES = enum.auto()
    UUID = enum.auto()
    ENUM = enum.auto()
    OBJECT = enum.auto()        # passed through to the driver (arrays, json)
    CUSTOM = enum.auto()        # converted by a registered adapter


_adapters: dict[type, Callable[[Any], Any]] = {}


def register_adapter(cls: type, func: Callable[[Any], Any]) -> None:
    """Bind instances of `cls` (and subclasses) as `func(value)`.

    `func` must return a value the binder already supports, typically the
    textual representation the SQL template casts to a database type.
    """
    _adapters[cls] = func
    logger.debug(f'Registered binder adapter for {cls.__name__}')


def unregister_adapter(cls: type) -> None:
    """Remove an adapter registered with `register_adapter`."""
    _adapters.pop(cls, None)


def _find_adapter(value: Any) -> Callable[[Any], Any] | None:
    for cls in type(value).__mro__:
        if cls in _adapters:
            return _adapters[cls]
    return None


def _is_null(value: Any) -> bool:
    """Check for None and the NumPy/Pandas missing-value markers."""
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, float | np.floating) and (math.isnan(value) or math.isinf(value)):
        return True
    if isinstance(value, np.datetime64) and np.isnat(value):
        return True
    return False


def classify(value: Any) -> ValueKind:
    """Return the kind `value` binds as.

    Raises BindingError when no binder handles the value's type.
    """
    if isinstance(value, pa.Scalar):
        value = value.as_py()

    if _is_null(value):
        return ValueKind.NULL

    if _find_adapter(value) is not None:
        return ValueKind.CUSTOM

    if isinstance(value, bool | np.bool_):
        return ValueKind.BOOLEAN
    if isinstance(value, enum.Enum) and not isinstance(value, int | str):
        return ValueKind.ENUM
    if isinstance(value, int | np.integer):
        return ValueKind.INTEGER
    if isinstance(value, float | np.floating):
        return ValueKind.FLOAT
    if isinstance(value, decimal.Decimal):
        return ValueKind.DECIMAL
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, datetime.datetime | np.datetime64):
        return ValueKind.TIMESTAMP
    if isinstance(value, datetime.date):
        return ValueKind.DATE
    if isinstance(value, datetime.time):
        return ValueKind.TIME
    if isinstance(value, bytes | bytearray | memoryview):
        return ValueKind.BYTES
    if isinstance(value, uuid.UUID):
        return ValueKind.UUID
    if isinstance(value, list | tuple | dict):
        return ValueKind.OBJECT

    raise BindingError(f'No binder for value of type {type(value).__name__}')


def to_db_value(value: Any) -> Any:
    """Convert `value` to the driver-ready value for its kind.

    None and missing-value markers become None, which the driver sends as a
    typed SQL NULL. Enum members bind as their name, leaving any cast to the
    SQL text (`CAST(:x AS my_enum)` or `:x::my_enum`).
    """
    if isinstance(value, pa.Scalar):
        value = value.as_py()

    kind = classify(value)

    match kind:
        case ValueKind.NULL:
            return None
        case ValueKind.CUSTOM:
            adapted = _find_adapter(value)(value)
            if _find_adapter(adapted) is not None:
                raise BindingError(f'Adapter for {type(value).__name__} returned another adapted type')
            return to_db_value(adapted)
        case ValueKind.BOOLEAN:
            return bool(value)
        case ValueKind.INTEGER:
            return int(value)
        case ValueKind.FLOAT:
            return float(value)
        case ValueKind.TEXT:
            return value.value if isinstance(value, enum.Enum) else str(value)
        case ValueKind.TIMESTAMP:
            if isinstance(value, np.datetime64 | pd.Timestamp):
                return pd.Timestamp(value).to_pydatetime()
            return value
        case ValueKind.BYTES:
            return bytes(value)
        case ValueKind.ENUM:
            return value.name
        case _:
            return value


def convert_date(value: bytes) -> datetime.date:
    """SQLite converter for columns declared DATE."""
    return dateutil.parser.parse(value.decode()).date()


def convert_datetime(value: bytes) -> datetime.datetime:
    """SQLite converter for columns declared DATETIME or TIMESTAMP."""
    return dateutil.parser.parse(value.decode())
