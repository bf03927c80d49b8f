"""
Input models for request validation using Pydantic.

This module defines the request payloads accepted by the customer handlers.
"""

from typing import Annotated, Dict, Optional

from pydantic import ConfigDict, Field

from customer_service.models.customer import Address, BankDetails, CamelModel, CustomerFields

# Query parameter names kept from the first API version
LEGACY_SEARCH_ALIASES = {'name': 'firstName', 'address': 'street'}


class CreateCustomerRequest(CustomerFields):
    """Request model for creating a customer with its address and bank details."""

    address: Address

    bank_details: BankDetails


class UpdateCustomerRequest(CustomerFields):
    """
    Request model for updating a customer.

    The customer's scalar fields are always written in full; address and bank
    details are only touched when present in the payload.
    """

    address: Optional[Address] = None

    bank_details: Optional[BankDetails] = None


class SearchFilters(CamelModel):
    """Exact-match search predicates, combined with AND."""

    # Values are matched verbatim
    model_config = ConfigDict(str_strip_whitespace=False)

    id: Annotated[Optional[str], Field(description='Customer id')] = None

    first_name: Annotated[Optional[str], Field(description='Customer first name')] = None

    last_name: Annotated[Optional[str], Field(description='Customer last name')] = None

    street: Annotated[Optional[str], Field(description='Street of the customer address')] = None

    @classmethod
    def from_query_params(cls, params: Optional[Dict[str, str]]) -> 'SearchFilters':
        """Build filters from API Gateway query string parameters."""
        params = params or {}
        values = {}
        for key in ('id', 'firstName', 'lastName', 'street'):
            if key in params:
                values[key] = params[key]
        for legacy, key in LEGACY_SEARCH_ALIASES.items():
            if legacy in params and key not in values:
                values[key] = params[legacy]
        return cls.model_validate(values)

    @property
    def is_empty(self) -> bool:
        """Check if no predicate is set."""
        return all(value is None for value in self.model_dump().values())
