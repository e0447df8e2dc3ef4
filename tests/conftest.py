import pathlib
import site

import pytest
from litesql.connection import dispose_all_engines
from litesql.sql import clear_parse_cache

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear the parse cache and engine registry around each test."""
    clear_parse_cache()
    yield
    clear_parse_cache()
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
