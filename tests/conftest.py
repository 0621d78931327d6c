"""Pytest fixtures for tests."""

from uuid import uuid4

import fakeredis
import pytest
import pytest_asyncio

from nohm import NohmSettings, Registry

FIND_RECORDS = [
    {"name": "numericindextest", "email": "numericindextest@hurgel.de", "gender": "male", "number": 3},
    {"name": "numericindextest", "email": "numericindextest2@hurgel.de", "gender": "male",
     "number": 4, "number2": 33},
    {"name": "numericindextest", "email": "numericindextest3@hurgel.de", "gender": "female",
     "number": 4, "number2": 1},
    {"name": "uniquefind", "email": "uniquefind@hurgel.de"},
    {"name": "indextest", "email": "indextest@hurgel.de"},
    {"name": "indextest", "email": "indextest2@hurgel.de"},
    {"name": "a_sort_first", "email": "a_sort_first@hurgel.de", "number": 1},
    {"name": "z_sort_last", "email": "z_sort_last@hurgel.de", "number": 100000},
]


@pytest_asyncio.fixture
async def redis_client():
    """In-memory redis client with its own server."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def prefix():
    """Unique key prefix for one test."""
    return f"nohmtest{uuid4().hex[:8]}"


@pytest.fixture
def registry(redis_client, prefix):
    """Registry bound to the in-memory client."""
    return Registry(redis_client, NohmSettings(prefix=prefix))


@pytest.fixture
def user_model(registry):
    """User model with unique, indexed and json properties."""
    return registry.model("User", {
        "name": {"type": "string", "unique": True, "validations": ["notEmpty"]},
        "email": {
            "type": "string",
            "unique": True,
            "validations": [{"name": "email", "options": {"optional": True}}],
        },
        "visits": {"type": "integer", "index": True},
        "country": {"type": "string", "index": True, "default_value": "Tibet",
                    "validations": ["notEmpty"]},
        "active": {"type": "bool", "default_value": False},
        "data": {"type": "json", "default_value": {}},
    })


@pytest.fixture
def role_model(registry):
    """Role model."""
    return registry.model("Role", {
        "name": {"type": "string", "default_value": "user"},
    })


@pytest.fixture
def comment_model(registry):
    """Comment model whose text must not be empty."""
    return registry.model("Comment", {
        "text": {"type": "string", "validations": ["notEmpty"]},
    })


@pytest.fixture
def find_model(registry):
    """Model used by find/sort tests, with incrementing ids."""
    return registry.model("UserFindMockup", {
        "name": {"type": "string", "default_value": "testName", "index": True,
                 "validations": ["notEmpty"]},
        "email": {"type": "string", "default_value": "testMail", "unique": True},
        "gender": {"type": "string"},
        "json": {"type": "json", "default_value": "{}"},
        "number": {"type": "integer", "default_value": 1, "index": True},
        "number2": {"type": "integer", "default_value": 200, "index": True},
        "bool": {"type": "bool", "default_value": False},
    }, id_generator="increment")


@pytest_asyncio.fixture
async def find_records(find_model):
    """Saves FIND_RECORDS in order; their ids are "1" to "8"."""
    ids = []
    for values in FIND_RECORDS:
        instance = find_model()
        instance.property(values)
        await instance.save()
        ids.append(instance.id)
    return ids
