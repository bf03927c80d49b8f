"""
Business Logic Layer for Customer Management.

This module sits between the API handlers and the customer store. It
normalises pagination, decides between "no content" and an empty page for
searches, and turns missing aggregates into not-found errors.
"""

from typing import Any, List, NamedTuple, Optional, Tuple

from aws_lambda_powertools.metrics import MetricUnit

from customer_service.dal import DalHandler
from customer_service.handlers.utils.error_handling import (
    ErrorContext,
    ResourceNotFoundError,
    ValidationError,
)
from customer_service.handlers.utils.observability import logger, metrics, tracer
from customer_service.models.customer import CustomerView
from customer_service.models.input import CreateCustomerRequest, SearchFilters, UpdateCustomerRequest

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
# Largest row offset a SQL BIGINT can carry
MAX_OFFSET = 2**63 - 1


class CustomerNotFoundError(ResourceNotFoundError):
    """Raised when a customer is not found."""

    def __init__(self, customer_id: str, context: Optional[ErrorContext] = None):
        super().__init__(
            resource_type="Customer",
            resource_id=customer_id,
            context=context,
        )


class SearchOutcome(NamedTuple):
    """Result of a customer search."""

    customers: List[CustomerView]
    # True only when the filters match no customer at all
    no_content: bool


def _parse_positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 1 else None


class CustomerService:
    """Business logic service for the customer aggregate."""

    def __init__(
        self,
        customers_dal: DalHandler,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        """
        Initialize customer service.

        Args:
            customers_dal: Store for the customer aggregate
            default_page_size: Page size used when the caller gives none or an invalid one
            max_page_size: Largest page size a caller may request
        """
        self.customers_dal = customers_dal
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def normalize_pagination(
        self,
        page: Any,
        page_size: Any,
        context: Optional[ErrorContext] = None,
    ) -> Tuple[int, int]:
        """
        Resolve page and page size from raw query values.

        Missing, non-numeric or non-positive values fall back to the first page
        and the default page size.

        Returns:
            (page, page_size) tuple

        Raises:
            ValidationError: If the page size exceeds the configured maximum or
                the page lies beyond the largest possible offset
        """
        resolved_page = _parse_positive_int(page) or DEFAULT_PAGE
        resolved_page_size = _parse_positive_int(page_size) or self.default_page_size

        if resolved_page_size > self.max_page_size:
            raise ValidationError(
                message=f"pageSize {resolved_page_size} exceeds maximum of {self.max_page_size}",
                field_errors=[{
                    "field": "pageSize",
                    "message": f"must not exceed {self.max_page_size}",
                }],
                context=context,
            )

        if (resolved_page - 1) * resolved_page_size > MAX_OFFSET:
            raise ValidationError(
                message=f"page {resolved_page} is out of range",
                field_errors=[{
                    "field": "page",
                    "message": "is out of range",
                }],
                context=context,
            )

        return resolved_page, resolved_page_size

    @tracer.capture_method(capture_response=False)
    def get_customer(self, customer_id: str, context: ErrorContext) -> CustomerView:
        """
        Get the aggregate view of a customer.

        Raises:
            CustomerNotFoundError: If the customer does not exist
        """
        customer = self.customers_dal.get_customer_by_id(customer_id)
        if customer is None:
            raise CustomerNotFoundError(customer_id, context=context)

        return customer

    @tracer.capture_method(capture_response=False)
    def list_customers(self, page: Any, page_size: Any, context: ErrorContext) -> List[CustomerView]:
        """List one page of customers ordered by id."""
        page, page_size = self.normalize_pagination(page, page_size, context)
        customers = self.customers_dal.list_customers(limit=page_size, offset=(page - 1) * page_size)

        logger.info("Customers listed", extra={
            "page": page,
            "page_size": page_size,
            "count": len(customers),
        })
        return customers

    @tracer.capture_method(capture_response=False)
    def search_customers(
        self,
        filters: SearchFilters,
        page: Any,
        page_size: Any,
        context: ErrorContext,
    ) -> SearchOutcome:
        """
        Search customers by exact-match filters.

        An empty page is "no content" only when nothing matches the filters at
        all; an empty page past the end of a non-empty result is a valid page.
        """
        page, page_size = self.normalize_pagination(page, page_size, context)
        result = self.customers_dal.search_customers(filters, limit=page_size, offset=(page - 1) * page_size)

        no_content = not result.customers and not result.total_matches

        logger.info("Customers searched", extra={
            "filters": filters.model_dump(exclude_none=True),
            "page": page,
            "page_size": page_size,
            "count": len(result.customers),
            "no_content": no_content,
        })
        return SearchOutcome(customers=result.customers, no_content=no_content)

    @tracer.capture_method(capture_response=False)
    def create_customer(self, request: CreateCustomerRequest, context: ErrorContext) -> CustomerView:
        """
        Create a customer with its address and bank details.

        Returns:
            View of the created aggregate
        """
        customer_id = self.customers_dal.create_customer(
            fields=request,
            address=request.address,
            bank_details=request.bank_details,
        )

        metrics.add_metric(name="CustomerCreated", unit=MetricUnit.Count, value=1)
        tracer.put_annotation("customer_id", customer_id)

        return CustomerView(
            id=customer_id,
            title=request.title or '',
            **request.model_dump(exclude={"title"}),
        )

    @tracer.capture_method
    def update_customer(self, customer_id: str, request: UpdateCustomerRequest, context: ErrorContext) -> None:
        """
        Update a customer, and its address and bank details when supplied.

        Raises:
            CustomerNotFoundError: If the customer does not exist
        """
        updated = self.customers_dal.update_customer(
            customer_id,
            fields=request,
            address=request.address,
            bank_details=request.bank_details,
        )
        if not updated:
            raise CustomerNotFoundError(customer_id, context=context)

        metrics.add_metric(name="CustomerUpdated", unit=MetricUnit.Count, value=1)

    @tracer.capture_method
    def delete_customer(self, customer_id: str, context: ErrorContext) -> None:
        """
        Delete a customer together with its contracts, address and bank details.

        Raises:
            CustomerNotFoundError: If the customer does not exist
        """
        deleted = self.customers_dal.delete_customer_by_id(customer_id)
        if not deleted:
            raise CustomerNotFoundError(customer_id, context=context)

        metrics.add_metric(name="CustomerDeleted", unit=MetricUnit.Count, value=1)

    def health_check(self) -> dict:
        """Report the health of the customer store."""
        return self.customers_dal.health_check()
