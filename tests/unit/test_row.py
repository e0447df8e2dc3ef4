import collections
import dataclasses
import enum

from litesql.cursor import ResultSet
from litesql.row import as_attrdict, as_dict, as_tuple, enum_column
from litesql.row import first_column, properties_to_map


class Status(enum.Enum):
    ACTIVE = 1


@dataclasses.dataclass
class Item:
    id: int
    name: str


Point = collections.namedtuple('Point', ['x', 'y'])


class Plain:
    def __init__(self):
        self.a = 1
        self._hidden = 2


def positioned(description, row):
    rs = ResultSet.from_rows(description, [row])
    rs.next()
    return rs


def test_first_column():
    assert first_column(positioned([('count',)], (3,))) == 3


def test_dict_mappers():
    rs = positioned([('id',), ('name',)], (1, 'x'))
    assert as_dict(rs) == {'id': 1, 'name': 'x'}
    row = as_attrdict(rs)
    assert row.id == 1
    assert row['name'] == 'x'
    assert as_tuple(rs) == (1, 'x')


def test_enum_column():
    rs = positioned([('status',)], ('ACTIVE',))
    assert enum_column('status', Status)(rs) is Status.ACTIVE


def test_properties_to_map():
    assert properties_to_map(Item(1, 'x')) == {'id': 1, 'name': 'x'}
    assert properties_to_map(Point(1, 2)) == {'x': 1, 'y': 2}
    assert properties_to_map({'a': 1}) == {'a': 1}
    assert properties_to_map(Plain()) == {'a': 1}
