"""
Data Access Layer (DAL) for the customer aggregate.

This module provides the data access layer interfaces and the factory
function used by the logic layer to obtain a store implementation.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, NamedTuple, Optional, Protocol, runtime_checkable

from sqlalchemy.engine import Engine

from customer_service.models.customer import Address, BankDetails, CustomerFields, CustomerView
from customer_service.models.input import SearchFilters


class SearchPage(NamedTuple):
    """One page of search results."""

    customers: List[CustomerView]
    # Only counted when the page is empty
    total_matches: Optional[int] = None


@runtime_checkable
class DalHandler(Protocol):
    """Protocol defining the data access layer interface."""

    def create_customer(self, fields: CustomerFields, address: Address, bank_details: BankDetails) -> str:
        """Create a customer together with its address and bank details."""
        ...

    def get_customer_by_id(self, customer_id: str) -> Optional[CustomerView]:
        """Retrieve a customer view by its ID."""
        ...

    def list_customers(self, limit: int, offset: int) -> List[CustomerView]:
        """List customers ordered by ID."""
        ...

    def search_customers(self, filters: SearchFilters, limit: int, offset: int) -> SearchPage:
        """Search customers by exact-match filters."""
        ...

    def update_customer(
        self,
        customer_id: str,
        fields: CustomerFields,
        address: Optional[Address] = None,
        bank_details: Optional[BankDetails] = None,
    ) -> bool:
        """Update a customer and optionally its address and bank details."""
        ...

    def delete_customer_by_id(self, customer_id: str) -> bool:
        """Delete a customer with its contracts, address and bank details."""
        ...

    def health_check(self) -> dict[str, str]:
        """Perform a health check on the data store."""
        ...


class BaseDalHandler(ABC):
    """Abstract base class for data access layer implementations."""

    @abstractmethod
    def create_customer(self, fields: CustomerFields, address: Address, bank_details: BankDetails) -> str:
        """Create a customer together with its address and bank details."""
        pass

    @abstractmethod
    def get_customer_by_id(self, customer_id: str) -> Optional[CustomerView]:
        """Retrieve a customer view by its ID."""
        pass

    @abstractmethod
    def list_customers(self, limit: int, offset: int) -> List[CustomerView]:
        """List customers ordered by ID."""
        pass

    @abstractmethod
    def search_customers(self, filters: SearchFilters, limit: int, offset: int) -> SearchPage:
        """Search customers by exact-match filters."""
        pass

    @abstractmethod
    def update_customer(
        self,
        customer_id: str,
        fields: CustomerFields,
        address: Optional[Address] = None,
        bank_details: Optional[BankDetails] = None,
    ) -> bool:
        """Update a customer and optionally its address and bank details."""
        pass

    @abstractmethod
    def delete_customer_by_id(self, customer_id: str) -> bool:
        """Delete a customer with its contracts, address and bank details."""
        pass

    @abstractmethod
    def health_check(self) -> dict[str, str]:
        """Perform a health check on the data store."""
        pass


def get_dal_handler(
    engine_provider: Optional[Callable[[], Engine]] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> DalHandler:
    """
    Factory function to get the customer store.

    Args:
        engine_provider: Returns the engine to use, defaults to the container-wide engine
        id_factory: Returns fresh row ids, defaults to random UUIDs

    Returns:
        DAL handler instance
    """
    # Import here to avoid circular imports
    from customer_service.dal.connection import get_engine
    from customer_service.dal.db_handler import SqlCustomerHandler, generate_id

    return SqlCustomerHandler(
        engine_provider=engine_provider or get_engine,
        id_factory=id_factory or generate_id,
    )


__all__ = [
    'DalHandler',
    'BaseDalHandler',
    'SearchPage',
    'get_dal_handler',
]
