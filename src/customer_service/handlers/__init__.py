"""
AWS Lambda Handlers Module.

This module contains the Lambda function handlers that serve as entry points
for the customer API. Each handler follows the three-layer split:

1. Handler Layer (this module): Request/response handling, validation, routing
2. Logic Layer: Pagination, search outcome and not-found decisions
3. Data Access Layer: Transactional persistence of the customer aggregate
"""

from customer_service.handlers.utils.observability import logger, tracer, metrics
from customer_service.handlers.utils.rest_api_resolver import app, CUSTOMERS_PATH, HEALTH_PATH

__all__ = [
    "logger",
    "tracer",
    "metrics",
    "app",
    "CUSTOMERS_PATH",
    "HEALTH_PATH",
]
