import os

os.environ["ENV_STATE"] = "test"

import pytest
import pytest_asyncio

from formstore.database import create_database, create_schema, user_table
from formstore.stores.form import FormsStore


@pytest.fixture
def database_url(tmp_path) -> str:
    url = f"sqlite:///{tmp_path / 'forms.db'}"
    create_schema(url)
    return url


@pytest_asyncio.fixture
async def db(database_url):
    database = create_database(database_url)
    await database.connect()
    yield database
    await database.disconnect()


@pytest.fixture
def store(db) -> FormsStore:
    return FormsStore(db)


@pytest_asyncio.fixture
async def user_id(db) -> int:
    query = user_table.insert().values(email="owner@example.com", username="owner")
    return await db.execute(query)
