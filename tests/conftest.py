import datetime as dt

import pytest
import pytest_asyncio

from weight_tracker.models import Entry
from weight_tracker.repository import Repository
from weight_tracker.store import open_store


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "tracker.sqlite")


@pytest_asyncio.fixture
async def store(db_path):
    store = await open_store(db_path)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def repository(store):
    return Repository(store)


@pytest.fixture
def make_entry():
    def factory(day, weight=80.0, profile_id="default", **fields):
        if isinstance(day, str):
            day = dt.date.fromisoformat(day)
        return Entry(profile_id=profile_id, date=day, weight=weight, **fields)

    return factory
