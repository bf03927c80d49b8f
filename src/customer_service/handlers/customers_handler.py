"""
Customers Handler - Lambda function for the customer aggregate API.

This module implements the handler layer for customer operations: it routes
API Gateway events, parses path, query and body input, delegates to the
logic layer and maps results and service errors to HTTP responses.
"""

import functools
import json
import os
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from aws_lambda_powertools.event_handler import Response
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticSerializationError

from customer_service.dal import get_dal_handler
from customer_service.handlers.models.env_vars import get_handler_env_vars
from customer_service.handlers.utils.error_handling import (
    BaseServiceError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    SerializationError,
    ValidationError,
    create_api_response,
    create_error_context,
    format_error_response,
    get_http_status_code,
    log_error_metrics,
)
from customer_service.handlers.utils.observability import logger, metrics, tracer
from customer_service.handlers.utils.rest_api_resolver import CUSTOMERS_PATH, HEALTH_PATH, app
from customer_service.logic.customer_service import CustomerService
from customer_service.models.input import CreateCustomerRequest, SearchFilters, UpdateCustomerRequest
from customer_service.models.output import CustomerListOutput, HealthCheckOutput

RequestModel = TypeVar("RequestModel", bound=BaseModel)

_customer_service: Optional[CustomerService] = None


def get_customer_service() -> CustomerService:
    """Get or create the container-wide customer service."""
    global _customer_service

    if _customer_service is None:
        env_vars = get_handler_env_vars()
        _customer_service = CustomerService(
            customers_dal=get_dal_handler(),
            default_page_size=env_vars.DEFAULT_PAGE_SIZE,
            max_page_size=env_vars.MAX_PAGE_SIZE,
        )

    return _customer_service


def handle_service_errors(func: Callable[..., Response]) -> Callable[..., Response]:
    """Decorator to handle service errors and convert to HTTP responses."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BaseServiceError as e:
            log_error_metrics(e)

            error_response = format_error_response(
                error=e,
                include_details=get_handler_env_vars().debug_enabled,
            )

            return create_api_response(
                status_code=get_http_status_code(e),
                body=error_response,
            )

        except PydanticValidationError as e:
            logger.warning("Request validation failed", extra={
                "validation_errors": str(e),
                "error_count": e.error_count(),
            })

            metrics.add_metric(name="ValidationError", unit=MetricUnit.Count, value=1)

            field_errors = [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in e.errors()
            ]

            validation_error = ValidationError(
                message="Request validation failed",
                field_errors=field_errors,
            )

            return create_api_response(
                status_code=400,
                body=format_error_response(validation_error),
            )

        except Exception as e:
            logger.exception("Unexpected error in handler", extra={
                "error": str(e),
                "function_name": func.__name__,
            })

            metrics.add_metric(name="UnexpectedError", unit=MetricUnit.Count, value=1)

            unexpected_error = BaseServiceError(
                message="An unexpected error occurred",
                error_code="INTERNAL_SERVER_ERROR",
                severity=ErrorSeverity.CRITICAL,
                category=ErrorCategory.INFRASTRUCTURE,
            )

            return create_api_response(
                status_code=500,
                body=format_error_response(unexpected_error),
            )

    return wrapper


def _request_context(operation: str, resource_id: Optional[str] = None) -> ErrorContext:
    request_context = app.current_event.request_context
    request_id = request_context.request_id if request_context else "unknown"
    return create_error_context(request_id=request_id, operation=operation, resource_id=resource_id)


def _require_customer_id(customer_id: Optional[str], context: ErrorContext) -> str:
    if customer_id is None or not customer_id.strip():
        raise ValidationError(
            message="Missing customerId parameter",
            field_errors=[{"field": "customerId", "message": "required"}],
            context=context,
        )
    return customer_id.strip()


def _parse_body(model: Type[RequestModel], context: ErrorContext) -> RequestModel:
    try:
        payload = json.loads(app.current_event.body or "")
    except json.JSONDecodeError:
        raise ValidationError(message="Invalid JSON in request body", context=context)

    if not isinstance(payload, dict):
        raise ValidationError(message="Request body must be a JSON object", context=context)

    return model.model_validate(payload)


def _serialize(model: BaseModel, context: ErrorContext) -> str:
    try:
        return model.model_dump_json(by_alias=True)
    except PydanticSerializationError as e:
        raise SerializationError(message=f"Error serializing customer details: {e}", context=context) from e


@app.get(HEALTH_PATH)
@tracer.capture_method(capture_response=False)
@handle_service_errors
def health_check() -> Response:
    """
    Health check endpoint.

    Returns:
        Health status of the customer store
    """
    logger.info("Health check requested")

    env_vars = get_handler_env_vars()
    db_health = get_customer_service().health_check()
    healthy = db_health.get("status") == "healthy"

    metrics.add_metric(
        name="HealthCheckSuccess" if healthy else "HealthCheckFailure",
        unit=MetricUnit.Count,
        value=1,
    )

    response = HealthCheckOutput(
        status="healthy" if healthy else "unhealthy",
        timestamp=db_health.get("timestamp", ""),
        version=os.environ.get("SERVICE_VERSION", "unknown"),
        environment=env_vars.ENVIRONMENT,
        checks={"database": db_health},
    )

    return create_api_response(
        status_code=200 if healthy else 503,
        body=response.model_dump_json(),
    )


@app.get(f"{CUSTOMERS_PATH}/search")
@tracer.capture_method(capture_response=False)
@handle_service_errors
def search_customers() -> Response:
    """
    Search customers by id, first name, last name or street.

    Returns:
        Matching customers, or 204 when nothing matches the filters
    """
    logger.info("Search customers request received")

    context = _request_context("search_customers")
    query_params = app.current_event.query_string_parameters or {}
    filters = SearchFilters.from_query_params(query_params)

    tracer.put_annotation("search_filtered", not filters.is_empty)

    outcome = get_customer_service().search_customers(
        filters=filters,
        page=query_params.get("page"),
        page_size=query_params.get("pageSize"),
        context=context,
    )

    if outcome.no_content:
        return create_api_response(status_code=204)

    return create_api_response(
        status_code=200,
        body=_serialize(CustomerListOutput(outcome.customers), context),
    )


@app.get(f"{CUSTOMERS_PATH}/<customer_id>")
@tracer.capture_method(capture_response=False)
@handle_service_errors
def get_customer(customer_id: str) -> Response:
    """
    Get a customer with its address and bank details.

    Args:
        customer_id: Customer identifier

    Returns:
        Customer view
    """
    logger.info("Get customer request received", extra={"customer_id": customer_id})

    context = _request_context("get_customer", resource_id=customer_id)
    customer_id = _require_customer_id(customer_id, context)
    tracer.put_annotation("customer_id", customer_id)

    customer = get_customer_service().get_customer(customer_id, context=context)

    return create_api_response(
        status_code=200,
        body=_serialize(customer, context),
    )


@app.get(CUSTOMERS_PATH)
@tracer.capture_method(capture_response=False)
@handle_service_errors
def list_customers() -> Response:
    """
    List customers page by page, ordered by id.

    Returns:
        One page of customers
    """
    logger.info("List customers request received")

    context = _request_context("list_customers")
    query_params = app.current_event.query_string_parameters or {}

    customers = get_customer_service().list_customers(
        page=query_params.get("page"),
        page_size=query_params.get("pageSize"),
        context=context,
    )

    return create_api_response(
        status_code=200,
        body=_serialize(CustomerListOutput(customers), context),
    )


@app.post(CUSTOMERS_PATH)
@tracer.capture_method(capture_response=False)
@handle_service_errors
def create_customer() -> Response:
    """
    Create a customer together with its address and bank details.

    Returns:
        Created customer view
    """
    logger.info("Create customer request received")

    context = _request_context("create_customer")
    create_request = _parse_body(CreateCustomerRequest, context)

    customer = get_customer_service().create_customer(create_request, context=context)

    logger.info("Customer created successfully", extra={"customer_id": customer.id})

    return create_api_response(
        status_code=201,
        body=_serialize(customer, context),
        headers={"Location": f"{CUSTOMERS_PATH}/{customer.id}"},
    )


@app.patch(f"{CUSTOMERS_PATH}/<customer_id>")
@tracer.capture_method(capture_response=False)
@handle_service_errors
def update_customer(customer_id: str) -> Response:
    """
    Update a customer; address and bank details only when supplied.

    Args:
        customer_id: Customer identifier
    """
    logger.info("Update customer request received", extra={"customer_id": customer_id})

    context = _request_context("update_customer", resource_id=customer_id)
    customer_id = _require_customer_id(customer_id, context)
    update_request = _parse_body(UpdateCustomerRequest, context)

    tracer.put_annotation("customer_id", customer_id)

    get_customer_service().update_customer(customer_id, update_request, context=context)

    logger.info("Customer updated successfully", extra={
        "customer_id": customer_id,
        "address_updated": update_request.address is not None,
        "bank_details_updated": update_request.bank_details is not None,
    })

    return create_api_response(status_code=200, body=json.dumps("Customer updated"))


@app.delete(f"{CUSTOMERS_PATH}/<customer_id>")
@tracer.capture_method(capture_response=False)
@handle_service_errors
def delete_customer(customer_id: str) -> Response:
    """
    Delete a customer with its contracts, address and bank details.

    Args:
        customer_id: Customer identifier
    """
    logger.info("Delete customer request received", extra={"customer_id": customer_id})

    context = _request_context("delete_customer", resource_id=customer_id)
    customer_id = _require_customer_id(customer_id, context)
    tracer.put_annotation("customer_id", customer_id)

    get_customer_service().delete_customer(customer_id, context=context)

    logger.info("Customer deleted successfully", extra={"customer_id": customer_id})

    return create_api_response(status_code=200, body=json.dumps("Customer deleted"))


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Main Lambda handler function.

    Args:
        event: API Gateway REST proxy event
        context: Lambda context object

    Returns:
        API Gateway response
    """
    try:
        metrics.add_metric(name="RequestCount", unit=MetricUnit.Count, value=1)
        tracer.put_annotation("service", "customers-api")

        response = app.resolve(event, context)

        metrics.add_metric(name="RequestSuccess", unit=MetricUnit.Count, value=1)

        return response

    except Exception as e:
        metrics.add_metric(name="RequestError", unit=MetricUnit.Count, value=1)

        logger.exception("Unhandled error in lambda handler", extra={"error": str(e)})

        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json"},
            "body": json.dumps({
                "error": {
                    "code": "INTERNAL_SERVER_ERROR",
                    "message": "An unexpected error occurred",
                    "error_id": context.aws_request_id,
                }
            }),
            "isBase64Encoded": False,
        }
