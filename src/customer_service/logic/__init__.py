"""
Business Logic Layer Module.

The logic layer coordinates between the handlers and the data access layer:
it resolves pagination, classifies search outcomes and raises not-found
errors for missing customers.
"""

from customer_service.logic.customer_service import (
    CustomerNotFoundError,
    CustomerService,
    SearchOutcome,
)

__all__ = [
    "CustomerNotFoundError",
    "CustomerService",
    "SearchOutcome",
]
