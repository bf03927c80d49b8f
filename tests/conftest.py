"""
Pytest configuration and shared fixtures for the customer aggregate API.

This module provides common test fixtures used across unit and integration
tests: environment, an in-memory SQLite store, sample payloads and API
Gateway events.
"""

import json
import os

# Powertools and the env modeler read these at import time
os.environ.update({
    "AWS_DEFAULT_REGION": "eu-central-1",
    "AWS_REGION": "eu-central-1",
    "AWS_ACCESS_KEY_ID": "test",
    "AWS_SECRET_ACCESS_KEY": "test",
    "ENVIRONMENT": "test",
    "POWERTOOLS_SERVICE_NAME": "test-customer-aggregate-api",
    "POWERTOOLS_METRICS_NAMESPACE": "TestCustomerAggregate",
    "POWERTOOLS_TRACE_DISABLED": "true",  # Disable X-Ray in tests
    "LOG_LEVEL": "DEBUG",
    "DEFAULT_PAGE_SIZE": "20",
    "MAX_PAGE_SIZE": "100",
    "DEBUG_MODE": "false",
})

from typing import Any, Callable, Dict, Iterator, List, Optional
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from customer_service.dal.db_handler import SqlCustomerHandler
from customer_service.dal.schema import metadata
from customer_service.logic.customer_service import CustomerService
from customer_service.models.input import CreateCustomerRequest


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Database fixtures
@pytest.fixture
def engine() -> Iterator[Engine]:
    """Create an in-memory SQLite database with the customer schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def customers_dal(engine: Engine) -> SqlCustomerHandler:
    """Customer store backed by the in-memory database."""
    return SqlCustomerHandler(engine_provider=lambda: engine)


@pytest.fixture
def customer_service(customers_dal: SqlCustomerHandler) -> CustomerService:
    """Customer service backed by the in-memory database."""
    return CustomerService(customers_dal=customers_dal)


@pytest.fixture
def count_rows(engine: Engine) -> Callable[..., int]:
    """Count rows of a table, optionally filtered by a WHERE clause."""

    def _count(table, *conditions) -> int:
        query = select(func.count()).select_from(table)
        if conditions:
            query = query.where(*conditions)
        with engine.connect() as connection:
            return connection.execute(query).scalar_one()

    return _count


@pytest.fixture
def sequential_ids() -> Callable[[List[str]], Callable[[], str]]:
    """Build id factories handing out the given ids in order."""

    def _factory(ids: List[str]) -> Callable[[], str]:
        iterator = iter(ids)
        return lambda: next(iterator)

    return _factory


# Sample data fixtures
@pytest.fixture
def sample_customer_data() -> Dict[str, Any]:
    """Sample create request body as sent by API clients."""
    return {
        "firstName": "Jane",
        "lastName": "Doe",
        "title": "Dr.",
        "familyStatus": "married",
        "birthDate": "1985-04-12",
        "socialSecurityNumber": "65 120485 D 012",
        "taxId": "12345678901",
        "jobStatus": "employed",
        "address": {
            "street": "Hauptstrasse",
            "houseNumber": "12a",
            "zipCode": "10115",
            "city": "Berlin",
        },
        "bankDetails": {
            "iban": "DE89370400440532013000",
            "bic": "COBADEFFXXX",
            "name": "Commerzbank",
        },
    }


@pytest.fixture
def make_create_request(sample_customer_data) -> Callable[..., CreateCustomerRequest]:
    """Build create requests from the sample data with a few fields replaced."""

    def _make(
        first_name: str = "Jane",
        last_name: str = "Doe",
        street: str = "Hauptstrasse",
        title: Optional[str] = "Dr.",
    ) -> CreateCustomerRequest:
        data = json.loads(json.dumps(sample_customer_data))
        data.update({"firstName": first_name, "lastName": last_name, "title": title})
        data["address"]["street"] = street
        return CreateCustomerRequest.model_validate(data)

    return _make


# API Gateway fixtures
@pytest.fixture
def api_gateway_event() -> Callable[..., Dict[str, Any]]:
    """Build API Gateway REST proxy events."""

    def _event(
        method: str,
        path: str,
        body: Optional[Any] = None,
        query: Optional[Dict[str, str]] = None,
        path_parameters: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        if body is not None and not isinstance(body, str):
            body = json.dumps(body)
        return {
            "resource": path,
            "path": path,
            "httpMethod": method,
            "headers": {
                "Content-Type": "application/json",
                "User-Agent": "test-agent/1.0",
            },
            "multiValueHeaders": {
                "Content-Type": ["application/json"],
                "User-Agent": ["test-agent/1.0"],
            },
            "queryStringParameters": query,
            "multiValueQueryStringParameters": {k: [v] for k, v in query.items()} if query else None,
            "pathParameters": path_parameters,
            "stageVariables": None,
            "requestContext": {
                "requestId": "test-request-id-123",
                "accountId": "123456789012",
                "stage": "test",
                "httpMethod": method,
                "path": path,
                "resourcePath": path,
                "protocol": "HTTP/1.1",
                "requestTimeEpoch": 1704110400000,
                "identity": {
                    "sourceIp": "127.0.0.1",
                    "userAgent": "test-agent/1.0",
                },
            },
            "body": body,
            "isBase64Encoded": False,
        }

    return _event


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context for testing."""
    context = Mock()
    context.function_name = "test-customers-function"
    context.function_version = "1"
    context.invoked_function_arn = "arn:aws:lambda:eu-central-1:123456789012:function:test-customers-function"
    context.memory_limit_in_mb = 512
    context.get_remaining_time_in_millis = lambda: 30000
    context.aws_request_id = "test-request-id-123"
    context.log_group_name = "/aws/lambda/test-customers-function"
    context.log_stream_name = "2024/01/01/[$LATEST]test123"
    return context


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
