from dataclasses import dataclass, field
from typing import Any

from litesql.strategy import DbType, get_available_dialects, get_strategy_class

from libb import ConfigOptions, scriptname

__all__ = ['DbConfig', 'DbType']


def _coerce_db_type(value: DbType | str) -> DbType:
    """Accept a DbType, its value ('postgresql') or its name ('POSTGRES')."""
    if isinstance(value, DbType):
        return value
    if isinstance(value, str):
        if value.upper() in DbType.__members__:
            return DbType[value.upper()]
        try:
            return DbType(value.lower())
        except ValueError:
            pass
    raise ValueError(f'drivername must be one of: {get_available_dialects()}')


@dataclass
class DbConfig(ConfigOptions):
    """Options

    supported driver names: `postgresql`, `sqlite`

    - timeout: driver connect timeout in seconds (0 for the driver default)
    - appname: PostgreSQL application_name (defaults to the running script)
    - extras: driver-specific settings; URL query parameters for PostgreSQL,
      sqlite3.connect keyword arguments for SQLite
    """
    drivername: DbType | str = DbType.POSTGRES
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    appname: str = None
    extras: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.drivername = _coerce_db_type(self.drivername)
        self.appname = self.appname or scriptname() or 'python_console'
        self.extras = dict(self.extras or {})
        get_strategy_class(self.drivername).validate_options(self)
