"""
Shared pytest fixtures and configuration for dynahelpers tests.

Unit tests run against a MagicMock client. Integration tests need a
LocalStack (or DynamoDB Local) endpoint in LOCALSTACK_ENDPOINT and are
skipped otherwise.
"""

import os
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import boto3
import pytest

from dynahelpers import connection

if TYPE_CHECKING:
    from tests.helpers.localstack import LocalStackHelper


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests against LocalStack")


def pytest_collection_modifyitems(config, items):
    if os.getenv("LOCALSTACK_ENDPOINT"):
        return
    skip_integration = pytest.mark.skip(reason="LOCALSTACK_ENDPOINT not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def reset_connection():
    """Makes sure no test leaks a process-wide client into the next one."""
    connection.set_connection(None)
    yield
    connection.set_connection(None)


@pytest.fixture
def mock_client():
    """
    Creates a fully mocked boto3 DynamoDB client.

    Write operations return an empty response by default; tests configure
    reads (get_item, query, scan, batch_get_item) explicitly.
    """
    client = MagicMock()
    client.put_item.return_value = {}
    client.delete_item.return_value = {}
    client.update_item.return_value = {}
    client.batch_write_item.return_value = {"UnprocessedItems": {}}
    return client


@pytest.fixture
def no_sleep():
    """A sleep replacement that records requested delays instead of blocking."""
    delays: list[float] = []

    def sleep(delay_ms: float) -> None:
        delays.append(delay_ms)

    sleep.delays = delays  # type: ignore[attr-defined]
    return sleep


@pytest.fixture
def sample_user_data() -> dict[str, Any]:
    """Sample user record for testing."""
    return {
        "email": "test@example.com",
        "username": "testuser",
        "age": 25,
        "score": 95.5,
        "tags": ["python", "testing"],
        "active": True,
    }


@pytest.fixture
def sample_messages_data() -> list[dict[str, Any]]:
    """Messages in two rooms, sorted by timestamp."""
    return [
        {
            "room_id": "general",
            "timestamp": "2023-01-01T09:00:00Z",
            "content": "Good morning!",
            "user": "alice",
            "likes": 2,
        },
        {
            "room_id": "general",
            "timestamp": "2023-01-01T10:00:00Z",
            "content": "Hello, world!",
            "user": "bob",
            "likes": 5,
        },
        {
            "room_id": "general",
            "timestamp": "2023-01-02T11:00:00Z",
            "content": "How is everyone?",
            "user": "charlie",
            "likes": 1,
        },
        {
            "room_id": "python",
            "timestamp": "2023-01-01T10:30:00Z",
            "content": "Check out this library!",
            "user": "diana",
            "likes": 10,
        },
    ]


# Integration Test Fixtures


@pytest.fixture(scope="session")
def localstack_endpoint() -> str:
    """Get LocalStack endpoint URL from environment or default."""
    return os.getenv("LOCALSTACK_ENDPOINT", "http://localhost:4566")


@pytest.fixture(scope="session")
def localstack_client(localstack_endpoint: str):
    """
    Creates a boto3 client connected to LocalStack.

    This fixture is session-scoped to avoid creating multiple clients.
    """
    return boto3.client(
        "dynamodb",
        endpoint_url=localstack_endpoint,
        region_name="eu-south-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


@pytest.fixture(scope="session")
def localstack_helper(localstack_endpoint: str) -> "LocalStackHelper":
    """Provides a LocalStackHelper instance for integration tests."""
    from tests.helpers.localstack import LocalStackHelper

    return LocalStackHelper(endpoint_url=localstack_endpoint)


@pytest.fixture
def users_table(localstack_helper) -> str:
    """An empty table keyed by email."""
    table_name = "integration_test_users"
    localstack_helper.create_table(table_name=table_name, pk_name="email")
    localstack_helper.clear_table(table_name=table_name, pk_name="email")
    yield table_name
    localstack_helper.clear_table(table_name=table_name, pk_name="email")


@pytest.fixture
def messages_table(localstack_helper) -> str:
    """An empty table keyed by room_id and timestamp."""
    table_name = "integration_test_messages"
    localstack_helper.create_table(table_name=table_name, pk_name="room_id", sk_name="timestamp")
    localstack_helper.clear_table(table_name=table_name, pk_name="room_id", sk_name="timestamp")
    yield table_name
    localstack_helper.clear_table(table_name=table_name, pk_name="room_id", sk_name="timestamp")
