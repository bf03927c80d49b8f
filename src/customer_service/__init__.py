"""
Customer Aggregate API Service Module.

This package contains the Lambda implementation of the customer API, split
into layers:

- handlers: API Gateway entry points and request/response mapping
- logic: Pagination, search outcomes and not-found decisions
- dal: Transactional persistence of the customer aggregate
- models: Pydantic models for the aggregate, requests and responses
"""

__version__ = "1.0.0"

from customer_service.handlers.utils.observability import logger, tracer, metrics
from customer_service.models.customer import Address, BankDetails, CustomerView
from customer_service.models.input import CreateCustomerRequest, UpdateCustomerRequest

__all__ = [
    "Address",
    "BankDetails",
    "CustomerView",
    "CreateCustomerRequest",
    "UpdateCustomerRequest",
    "logger",
    "tracer",
    "metrics",
]
