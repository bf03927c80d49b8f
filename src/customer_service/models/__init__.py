"""
Service Models Package

This package contains the Pydantic models used throughout the service: the
customer aggregate, request payloads and response bodies.
"""

from .customer import Address, BankDetails, CustomerFields, CustomerView
from .input import CreateCustomerRequest, SearchFilters, UpdateCustomerRequest
from .output import CustomerListOutput, HealthCheckOutput

__all__ = [
    # Domain models
    "Address",
    "BankDetails",
    "CustomerFields",
    "CustomerView",

    # Input models
    "CreateCustomerRequest",
    "UpdateCustomerRequest",
    "SearchFilters",

    # Output models
    "CustomerListOutput",
    "HealthCheckOutput",
]
