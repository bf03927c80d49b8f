"""
Unit tests for the customers Lambda handler.

Requests go through the full handler with the customer service wired to an
in-memory database.
"""

import json
from typing import Any, Dict
from unittest.mock import Mock

import pytest
from pydantic_core import PydanticSerializationError

from customer_service.dal.db_handler import SqlCustomerHandler
from customer_service.handlers import customers_handler
from customer_service.handlers.customers_handler import lambda_handler
from customer_service.handlers.utils.error_handling import (
    SerializationError,
    StorageConnectionError,
    create_error_context,
    get_http_status_code,
)
from customer_service.logic.customer_service import CustomerService


def get_header(response: Dict[str, Any], name: str) -> str:
    """Read a response header from single or multi value headers."""
    if "multiValueHeaders" in response and name in response["multiValueHeaders"]:
        return response["multiValueHeaders"][name][0]
    return response["headers"][name]


@pytest.fixture
def wired_service(monkeypatch, customer_service):
    """Use the in-memory customer service in the handler."""
    monkeypatch.setattr(customers_handler, "_customer_service", customer_service)
    return customer_service


@pytest.fixture
def unreachable_store(monkeypatch):
    """Use a customer service whose database cannot be reached."""

    def _engine_provider():
        raise StorageConnectionError("Error connecting to database: (2003) Can't connect to MySQL server on '10.0.0.12'")

    service = CustomerService(customers_dal=SqlCustomerHandler(engine_provider=_engine_provider))
    monkeypatch.setattr(customers_handler, "_customer_service", service)
    return service


@pytest.fixture
def create_customer(api_gateway_event, lambda_context, sample_customer_data, wired_service):
    """Create a customer through the API and return the response body."""

    def _create(**overrides) -> Dict[str, Any]:
        payload = {**sample_customer_data, **overrides}
        response = lambda_handler(api_gateway_event("POST", "/customers", body=payload), lambda_context)
        assert response["statusCode"] == 201
        return json.loads(response["body"])

    return _create


class TestCreateCustomer:
    """Test cases for POST /customers."""

    def test_created_with_location(self, create_customer, api_gateway_event, lambda_context, sample_customer_data):
        """Test that creation returns the customer and its location."""
        event = api_gateway_event("POST", "/customers", body=sample_customer_data)

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 201
        body = json.loads(response["body"])
        assert body["id"]
        assert body["firstName"] == "Jane"
        assert body["address"]["street"] == "Hauptstrasse"
        assert body["bankDetails"]["iban"] == "DE89370400440532013000"
        assert get_header(response, "Location") == f"/customers/{body['id']}"

    def test_invalid_json_body(self, wired_service, api_gateway_event, lambda_context):
        """Test that a malformed body is a bad request."""
        event = api_gateway_event("POST", "/customers", body="{not json")

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_fields_listed(self, wired_service, api_gateway_event, lambda_context, sample_customer_data):
        """Test that missing fields are reported by their wire names."""
        del sample_customer_data["lastName"]
        event = api_gateway_event("POST", "/customers", body=sample_customer_data)

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 400
        field_errors = json.loads(response["body"])["error"]["field_errors"]
        assert {"field": "lastName", "message": "Field required"} in field_errors


class TestGetCustomer:
    """Test cases for GET /customers/{customerId}."""

    def test_get_existing_customer(self, create_customer, api_gateway_event, lambda_context):
        """Test retrieving a created customer."""
        created = create_customer()
        event = api_gateway_event("GET", f"/customers/{created['id']}", path_parameters={"customerId": created["id"]})

        response = lambda_handler(event, lambda_context)

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == created

    def test_missing_title_returned_empty(self, create_customer, api_gateway_event, lambda_context):
        """Test that a customer without title reads back with an empty title."""
        created = create_customer(title=None)
        event = api_gateway_event("GET", f"/customers/{created['id']}")

        response = lambda_handler(event, lambda_context)

        assert json.loads(response["body"])["title"] == ""

    def test_unknown_customer(self, wired_service, api_gateway_event, lambda_context):
        """Test that an unknown id is not found."""
        response = lambda_handler(api_gateway_event("GET", "/customers/does-not-exist"), lambda_context)

        assert response["statusCode"] == 404
        body = json.loads(response["body"])
        assert body["error"]["code"] == "RESOURCE_NOT_FOUND"
        assert "does-not-exist" not in body["error"]["message"]

    def test_store_unreachable(self, unreachable_store, api_gateway_event, lambda_context):
        """Test that connection failures are redacted server errors."""
        response = lambda_handler(api_gateway_event("GET", "/customers/c-1"), lambda_context)

        assert response["statusCode"] == 500
        body = json.loads(response["body"])
        assert body["error"]["code"] == "STORAGE_CONNECTION_ERROR"
        assert body["error"]["message"] == "Error connecting to database."
        assert "10.0.0.12" not in response["body"]


class TestListCustomers:
    """Test cases for GET /customers."""

    def test_pages_ordered_by_id(self, create_customer, api_gateway_event, lambda_context):
        """Test that pages split the id-ordered customers."""
        ids = sorted(create_customer(firstName=f"Customer{i}")["id"] for i in range(5))

        first = lambda_handler(
            api_gateway_event("GET", "/customers", query={"page": "1", "pageSize": "3"}), lambda_context
        )
        second = lambda_handler(
            api_gateway_event("GET", "/customers", query={"page": "2", "pageSize": "3"}), lambda_context
        )

        assert first["statusCode"] == 200
        assert [c["id"] for c in json.loads(first["body"])] == ids[:3]
        assert [c["id"] for c in json.loads(second["body"])] == ids[3:]

    def test_empty_store_returns_empty_array(self, wired_service, api_gateway_event, lambda_context):
        """Test listing with no customers."""
        response = lambda_handler(api_gateway_event("GET", "/customers"), lambda_context)

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == []

    def test_page_size_above_maximum(self, wired_service, api_gateway_event, lambda_context):
        """Test that an oversized page is a bad request."""
        response = lambda_handler(
            api_gateway_event("GET", "/customers", query={"pageSize": "101"}), lambda_context
        )

        assert response["statusCode"] == 400

    @pytest.mark.parametrize("path", ["/customers", "/customers/search"])
    def test_huge_page_is_bad_request(self, wired_service, api_gateway_event, lambda_context, path):
        """Test that a page number past the largest offset is a bad request, not a server error."""
        response = lambda_handler(
            api_gateway_event("GET", path, query={"page": "100000000000000000000", "pageSize": "10"}),
            lambda_context,
        )

        assert response["statusCode"] == 400
        body = json.loads(response["body"])
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["field_errors"] == [{"field": "page", "message": "is out of range"}]



class TestSearchCustomers:
    """Test cases for GET /customers/search."""

    def test_search_by_last_name(self, create_customer, api_gateway_event, lambda_context):
        """Test an exact-match search."""
        create_customer(lastName="Smith")
        create_customer(lastName="Jones")

        response = lambda_handler(
            api_gateway_event("GET", "/customers/search", query={"lastName": "Smith"}), lambda_context
        )

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert [c["lastName"] for c in body] == ["Smith"]

    def test_legacy_parameters(self, create_customer, api_gateway_event, lambda_context):
        """Test searching with name and address parameters."""
        create_customer(firstName="Alice")
        create_customer(firstName="Bob")

        response = lambda_handler(
            api_gateway_event("GET", "/customers/search", query={"name": "Alice", "address": "Hauptstrasse"}),
            lambda_context,
        )

        assert response["statusCode"] == 200
        assert [c["firstName"] for c in json.loads(response["body"])] == ["Alice"]

    def test_no_matches_is_no_content(self, create_customer, api_gateway_event, lambda_context):
        """Test that a search matching nothing returns 204."""
        create_customer()

        response = lambda_handler(
            api_gateway_event("GET", "/customers/search", query={"lastName": "Nobody"}), lambda_context
        )

        assert response["statusCode"] == 204
        assert response["body"] in ("", None)

    def test_padded_value_does_not_match(self, create_customer, api_gateway_event, lambda_context):
        """Test that a value with surrounding spaces is not an exact match."""
        create_customer(lastName="Doe")

        response = lambda_handler(
            api_gateway_event("GET", "/customers/search", query={"lastName": "  Doe  "}), lambda_context
        )

        assert response["statusCode"] == 204

    def test_page_past_end_is_empty_array(self, create_customer, api_gateway_event, lambda_context):
        """Test that paging beyond the matches returns an empty array."""
        create_customer()

        response = lambda_handler(
            api_gateway_event("GET", "/customers/search", query={"lastName": "Doe", "page": "9"}), lambda_context
        )

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == []


class TestUpdateCustomer:
    """Test cases for PATCH /customers/{customerId}."""

    def test_update_scalars_only(self, create_customer, api_gateway_event, lambda_context, sample_customer_data):
        """Test that an update without address keeps the stored address."""
        created = create_customer()
        payload = {**sample_customer_data, "jobStatus": "retired"}
        del payload["address"]
        del payload["bankDetails"]

        response = lambda_handler(
            api_gateway_event("PATCH", f"/customers/{created['id']}", body=payload), lambda_context
        )

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == "Customer updated"

        stored = json.loads(lambda_handler(api_gateway_event("GET", f"/customers/{created['id']}"), lambda_context)["body"])
        assert stored["jobStatus"] == "retired"
        assert stored["address"] == created["address"]

    def test_update_unknown_customer(self, wired_service, api_gateway_event, lambda_context, sample_customer_data):
        """Test that updating an unknown id is not found."""
        response = lambda_handler(
            api_gateway_event("PATCH", "/customers/does-not-exist", body=sample_customer_data), lambda_context
        )

        assert response["statusCode"] == 404


class TestDeleteCustomer:
    """Test cases for DELETE /customers/{customerId}."""

    def test_delete_then_get(self, create_customer, api_gateway_event, lambda_context):
        """Test that a deleted customer is gone."""
        created = create_customer()

        response = lambda_handler(api_gateway_event("DELETE", f"/customers/{created['id']}"), lambda_context)

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == "Customer deleted"

        response = lambda_handler(api_gateway_event("GET", f"/customers/{created['id']}"), lambda_context)
        assert response["statusCode"] == 404

    def test_delete_unknown_customer(self, wired_service, api_gateway_event, lambda_context):
        """Test that deleting an unknown id is not found."""
        response = lambda_handler(api_gateway_event("DELETE", "/customers/does-not-exist"), lambda_context)

        assert response["statusCode"] == 404


class TestHealthCheck:
    """Test cases for GET /health."""

    def test_healthy(self, wired_service, api_gateway_event, lambda_context):
        """Test the health check with a reachable store."""
        response = lambda_handler(api_gateway_event("GET", "/health"), lambda_context)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"

    def test_unhealthy(self, unreachable_store, api_gateway_event, lambda_context):
        """Test the health check with an unreachable store."""
        response = lambda_handler(api_gateway_event("GET", "/health"), lambda_context)

        assert response["statusCode"] == 503
        assert json.loads(response["body"])["status"] == "unhealthy"


class TestResponseHeaders:
    """Test cases for headers added to every response."""

    def test_security_headers(self, wired_service, api_gateway_event, lambda_context):
        """Test that security headers are set."""
        response = lambda_handler(api_gateway_event("GET", "/customers"), lambda_context)

        assert get_header(response, "X-Content-Type-Options") == "nosniff"
        assert get_header(response, "X-Frame-Options") == "DENY"
        assert get_header(response, "Content-Type") == "application/json"


class TestSerialization:
    """Test cases for response body encoding."""

    def test_encoding_failure_is_serialization_error(self):
        """Test that a model that cannot be encoded raises a serialization error."""
        model = Mock()
        model.model_dump_json.side_effect = PydanticSerializationError("Unable to serialize unknown type")
        context = create_error_context(request_id="req-1", operation="get_customer")

        with pytest.raises(SerializationError) as exc_info:
            customers_handler._serialize(model, context)

        assert exc_info.value.error_code == "SERIALIZATION_ERROR"
        assert get_http_status_code(exc_info.value) == 500
