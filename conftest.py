import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def clear_cache():
    """Role lookups and the sweep lock live in the cache; start each test empty."""
    cache.clear()
    yield
    cache.clear()
