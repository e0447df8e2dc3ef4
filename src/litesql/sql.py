"""
Named-parameter translation for SQL text.

SQL is scanned once with a single tokenizer that protects string literals,
quoted identifiers and comments:

    SQL → Tokenize → Rewrite :name to ? → (sql, {name: positions})

Main entry points:
- `parse_named_parameters(sql)` - rewrite `:name` tokens to `?` markers
- `parse_positional_parameters(sql)` - describe SQL that already uses `?`
- `standardize_placeholders(sql, dialect)` - convert `?` to the driver paramstyle
"""
import logging
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

import cachetools
from litesql.exceptions import BindingError

__all__ = [
    'ParsedSql',
    'parse_named_parameters',
    'parse_positional_parameters',
    'count_positional_parameters',
    'standardize_placeholders',
    'has_returning_clause',
    'strip_trailing',
    'clear_parse_cache',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ParsedSql:
    """SQL rewritten to positional markers.

    Attributes
        sql: SQL text using `?` for every parameter
        parameters: parameter name to its 1-based positions, in text order
        parameter_count: total number of `?` markers in `sql`
    """
    sql: str
    parameters: Mapping[str, tuple[int, ...]]
    parameter_count: int

    def positions(self, name: str) -> tuple[int, ...]:
        """Return the positions bound by `name`.

        Raises BindingError when the SQL does not reference `name`.
        """
        try:
            return self.parameters[name]
        except KeyError:
            raise BindingError(f'Unknown named parameter: {name!r}') from None


# Order matters: literals, identifiers and comments are consumed whole so
# nothing inside them is seen as a placeholder, and runs of colons (casts
# such as `::int`) are consumed before a single-colon parameter is tried.
_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*(?:'|\Z))
    |(?P<ident>"(?:[^"]|"")*(?:"|\Z))
    |(?P<line_comment>--[^\n]*)
    |(?P<block_comment>/\*.*?(?:\*/|\Z))
    |(?P<colons>:{2,})
    |(?P<named>:(?P<name>\w+))
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)

_parse_cache: cachetools.LRUCache = cachetools.LRUCache(maxsize=512)
_parse_lock = threading.Lock()


@cachetools.cached(cache=_parse_cache, lock=_parse_lock)
def parse_named_parameters(sql: str) -> ParsedSql:
    """Rewrite `:name` tokens to `?` and record where each name occurs.

    A name used several times gets several positions. Existing `?` markers
    are kept and counted, so positions always match the rewritten text.
    A colon not followed by an identifier character is left untouched.

    Parameters
        sql: SQL text with named parameters

    Returns
        ParsedSql with the rewritten text and the name-to-positions map
    """
    parts: list[str] = []
    positions: dict[str, list[int]] = {}
    ordinal = 0
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        parts.append(sql[last_end:start])

        if match.group('named') is not None:
            ordinal += 1
            positions.setdefault(match.group('name'), []).append(ordinal)
            parts.append('?')
        else:
            if match.group('qmark') is not None:
                ordinal += 1
            parts.append(match.group(0))

        last_end = end

    parts.append(sql[last_end:])

    parsed = ParsedSql(
        sql=''.join(parts),
        parameters=MappingProxyType({name: tuple(pos) for name, pos in positions.items()}),
        parameter_count=ordinal,
    )
    logger.debug(f'Parsed {len(positions)} named parameters into {ordinal} positions')
    return parsed


def count_positional_parameters(sql: str) -> int:
    """Count `?` markers outside literals, identifiers and comments.
    """
    return sum(1 for match in _TOKENIZE.finditer(sql) if match.group('qmark') is not None)


def parse_positional_parameters(sql: str) -> ParsedSql:
    """Describe SQL that is bound by position only.
    """
    return ParsedSql(sql=sql, parameters=MappingProxyType({}),
                     parameter_count=count_positional_parameters(sql))


def standardize_placeholders(sql: str, dialect: str) -> str:
    """Convert `?` markers to the paramstyle of the dialect's driver.

    SQLite takes `?` as is. psycopg uses `%s` and parses every `%` in the
    query text, so literal percent signs are doubled.

    Parameters
        sql: SQL text using `?` markers
        dialect: Database dialect ('postgresql' or 'sqlite')

    Returns
        SQL ready for `cursor.execute(sql, params)`
    """
    if dialect != 'postgresql':
        return sql

    if '?' not in sql and '%' not in sql:
        return sql

    parts: list[str] = []
    last_end = 0
    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        parts.append(sql[last_end:start].replace('%', '%%'))
        if match.group('qmark') is not None:
            parts.append('%s')
        else:
            parts.append(match.group(0).replace('%', '%%'))
        last_end = end
    parts.append(sql[last_end:].replace('%', '%%'))

    return ''.join(parts)


_RETURNING = re.compile(r'\breturning\b', re.IGNORECASE)

_TRAILING = ' \t\r\n;'


def _is_protected(match: re.Match) -> bool:
    return any(match.group(kind) is not None
               for kind in ('string', 'ident', 'line_comment', 'block_comment'))


def has_returning_clause(sql: str) -> bool:
    """Check for a RETURNING keyword outside literals, identifiers and comments.
    """
    parts: list[str] = []
    last_end = 0
    for match in _TOKENIZE.finditer(sql):
        parts.append(sql[last_end:match.start()])
        parts.append(' ' if _is_protected(match) else match.group(0))
        last_end = match.end()
    parts.append(sql[last_end:])
    return _RETURNING.search(''.join(parts)) is not None


def strip_trailing(sql: str) -> str:
    """Drop trailing whitespace, semicolons and comments.

    Examples
        >>> strip_trailing('insert into t values (?); -- note')
        'insert into t values (?)'
    """
    end = 0
    last_end = 0
    for match in _TOKENIZE.finditer(sql):
        gap = sql[last_end:match.start()].rstrip(_TRAILING)
        if gap:
            end = last_end + len(gap)
        if match.group('line_comment') is None and match.group('block_comment') is None:
            end = match.end()
        last_end = match.end()
    gap = sql[last_end:].rstrip(_TRAILING)
    if gap:
        end = last_end + len(gap)
    return sql[:end]


def clear_parse_cache() -> None:
    """Drop memoised translations."""
    with _parse_lock:
        _parse_cache.clear()
