import pytest

from group_store import GroupStore
from storage import KeyValueStore


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "store.json"


@pytest.fixture
def store(store_path):
    return KeyValueStore(store_path)


@pytest.fixture
def group_store(store):
    return GroupStore(store)
