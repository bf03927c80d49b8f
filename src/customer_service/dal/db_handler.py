"""
SQL implementation of the Data Access Layer (DAL).

This module persists the customer aggregate (Customer, Address, BankDetails)
in a relational database with SQLAlchemy Core. Every write touching more than
one table runs inside a single unit of work: one connection, one transaction,
committed on full success and rolled back on any failure.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Select, delete, func, insert, select, text, update
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.selectable import Join

from customer_service.dal import BaseDalHandler, SearchPage
from customer_service.dal.schema import address_table, bank_details_table, contract_table, customer_table
from customer_service.handlers.utils.error_handling import StorageConnectionError, StorageError
from customer_service.handlers.utils.observability import logger, tracer
from customer_service.models.customer import Address, BankDetails, CustomerFields, CustomerView
from customer_service.models.input import SearchFilters


def generate_id() -> str:
    """Return a fresh random identifier."""
    return str(uuid4())


class SqlCustomerHandler(BaseDalHandler):
    """Relational implementation of the customer aggregate store."""

    def __init__(
        self,
        engine_provider: Callable[[], Engine],
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        """
        Initialize the SQL handler.

        Args:
            engine_provider: Returns the engine to open connections from
            id_factory: Returns a fresh unique id for each new row
        """
        self._engine_provider = engine_provider
        self._id_factory = id_factory

    @contextmanager
    def _unit_of_work(self, operation: str) -> Iterator[Connection]:
        """Open a connection and transaction, commit on success, roll back on any error."""
        engine = self._engine_provider()
        try:
            connection = engine.connect()
        except SQLAlchemyError as e:
            logger.error('Could not connect to the customer store', extra={'operation': operation, 'error': str(e)})
            raise StorageConnectionError(message=f'Error connecting to database: {e}') from e

        transaction = None
        try:
            transaction = connection.begin()
            yield connection
            transaction.commit()
        except Exception:
            if transaction is not None and transaction.is_active:
                transaction.rollback()
            logger.warning('Transaction rolled back', extra={'operation': operation})
            raise
        finally:
            connection.close()

    @staticmethod
    def _aggregate_join() -> Join:
        return (
            customer_table
            .join(address_table, customer_table.c.addressId == address_table.c.id)
            .join(bank_details_table, customer_table.c.bankDetailsId == bank_details_table.c.id)
        )

    @classmethod
    def _view_query(cls) -> Select:
        c = customer_table.c
        a = address_table.c
        b = bank_details_table.c
        return select(
            c.id, c.firstName, c.lastName, func.coalesce(c.title, '').label('title'), c.familyStatus,
            c.birthDate, c.socialSecurityNumber, c.taxId, c.jobStatus,
            a.street, a.houseNumber, a.zipCode, a.city,
            b.iban, b.bic, b.name.label('bankName'),
        ).select_from(cls._aggregate_join())

    @staticmethod
    def _filter_conditions(filters: SearchFilters) -> List[Any]:
        conditions = []
        if filters.id is not None:
            conditions.append(customer_table.c.id == filters.id)
        if filters.first_name is not None:
            conditions.append(customer_table.c.firstName == filters.first_name)
        if filters.last_name is not None:
            conditions.append(customer_table.c.lastName == filters.last_name)
        if filters.street is not None:
            conditions.append(address_table.c.street == filters.street)
        return conditions

    @staticmethod
    def _row_to_view(row: Row) -> CustomerView:
        try:
            return CustomerView(
                id=row.id,
                first_name=row.firstName,
                last_name=row.lastName,
                title=row.title,
                family_status=row.familyStatus,
                birth_date=row.birthDate,
                social_security_number=row.socialSecurityNumber,
                tax_id=row.taxId,
                job_status=row.jobStatus,
                address=Address(
                    street=row.street,
                    house_number=row.houseNumber,
                    zip_code=row.zipCode,
                    city=row.city,
                ),
                bank_details=BankDetails(iban=row.iban, bic=row.bic, name=row.bankName),
            )
        except PydanticValidationError as e:
            raise StorageError(message=f'Error scanning customer {row.id}: {e}') from e

    @staticmethod
    def _customer_values(fields: CustomerFields) -> Dict[str, Any]:
        return {
            'firstName': fields.first_name,
            'lastName': fields.last_name,
            'title': fields.title,
            'familyStatus': fields.family_status,
            'birthDate': fields.birth_date,
            'socialSecurityNumber': fields.social_security_number,
            'taxId': fields.tax_id,
            'jobStatus': fields.job_status,
        }

    @staticmethod
    def _address_values(address: Address) -> Dict[str, Any]:
        return {
            'street': address.street,
            'houseNumber': address.house_number,
            'zipCode': address.zip_code,
            'city': address.city,
        }

    @staticmethod
    def _bank_details_values(bank_details: BankDetails) -> Dict[str, Any]:
        return {'iban': bank_details.iban, 'bic': bank_details.bic, 'name': bank_details.name}

    @staticmethod
    def _lock_owned_ids(connection: Connection, customer_id: str) -> Optional[Tuple[str, str]]:
        """Read the customer's addressId and bankDetailsId, locking the row."""
        row = connection.execute(
            select(customer_table.c.addressId, customer_table.c.bankDetailsId)
            .where(customer_table.c.id == customer_id)
            .with_for_update()
        ).first()
        if row is None:
            return None
        return row.addressId, row.bankDetailsId

    @tracer.capture_method
    def create_customer(self, fields: CustomerFields, address: Address, bank_details: BankDetails) -> str:
        """
        Insert the address, the bank details and the customer in one transaction.

        Args:
            fields: Customer scalar fields
            address: Address owned by the new customer
            bank_details: Bank details owned by the new customer

        Returns:
            Id of the new customer

        Raises:
            StorageError: If any insert or the commit fails; nothing is persisted
        """
        address_id = self._id_factory()
        bank_details_id = self._id_factory()
        customer_id = self._id_factory()

        try:
            with self._unit_of_work('create_customer') as connection:
                connection.execute(
                    insert(address_table).values(id=address_id, **self._address_values(address))
                )
                connection.execute(
                    insert(bank_details_table).values(id=bank_details_id, **self._bank_details_values(bank_details))
                )
                connection.execute(
                    insert(customer_table).values(
                        id=customer_id,
                        addressId=address_id,
                        bankDetailsId=bank_details_id,
                        **self._customer_values(fields),
                    )
                )
        except SQLAlchemyError as e:
            logger.error('Database error creating customer', extra={'error': str(e)})
            raise StorageError(message=f'Error creating customer: {e}') from e

        logger.info('Successfully created customer in database', extra={
            'customer_id': customer_id,
            'address_id': address_id,
            'bank_details_id': bank_details_id,
        })
        tracer.put_annotation('customer_created', customer_id)

        return customer_id

    @tracer.capture_method(capture_response=False)
    def get_customer_by_id(self, customer_id: str) -> Optional[CustomerView]:
        """
        Retrieve the aggregate view of one customer.

        Returns:
            Customer view if found, None otherwise

        Raises:
            StorageError: If the query fails
        """
        try:
            with self._unit_of_work('get_customer') as connection:
                row = connection.execute(
                    self._view_query().where(customer_table.c.id == customer_id)
                ).first()
        except SQLAlchemyError as e:
            logger.error(f'Database error retrieving customer {customer_id}', extra={'error': str(e)})
            raise StorageError(message=f'Error retrieving customer details: {e}') from e

        if row is None:
            logger.info(f'Customer not found: {customer_id}')
            return None

        return self._row_to_view(row)

    @tracer.capture_method(capture_response=False)
    def list_customers(self, limit: int, offset: int) -> List[CustomerView]:
        """
        List customers ordered by id.

        Args:
            limit: Maximum number of customers to return
            offset: Number of customers to skip

        Returns:
            Customer views, possibly empty
        """
        query = self._view_query().order_by(customer_table.c.id.asc()).limit(limit).offset(offset)
        try:
            with self._unit_of_work('list_customers') as connection:
                rows = connection.execute(query).all()
        except SQLAlchemyError as e:
            logger.error('Database error listing customers', extra={'error': str(e)})
            raise StorageError(message=f'Error retrieving customer details: {e}') from e

        logger.debug('Listed customers', extra={'count': len(rows), 'limit': limit, 'offset': offset})
        return [self._row_to_view(row) for row in rows]

    @tracer.capture_method(capture_response=False)
    def search_customers(self, filters: SearchFilters, limit: int, offset: int) -> SearchPage:
        """
        Search customers by exact-match filters, ordered by id.

        When the requested page is empty the total number of matches is counted
        as well, so callers can tell "no matches" from "past the last page".

        Returns:
            Page of customer views and, for an empty page, the total match count
        """
        conditions = self._filter_conditions(filters)
        query = self._view_query()
        if conditions:
            query = query.where(*conditions)
        query = query.order_by(customer_table.c.id.asc()).limit(limit).offset(offset)

        total_matches = None
        try:
            with self._unit_of_work('search_customers') as connection:
                rows = connection.execute(query).all()
                if not rows:
                    count_query = select(func.count()).select_from(self._aggregate_join())
                    if conditions:
                        count_query = count_query.where(*conditions)
                    total_matches = connection.execute(count_query).scalar_one()
        except SQLAlchemyError as e:
            logger.error('Database error searching customers', extra={'error': str(e)})
            raise StorageError(message=f'Error retrieving customer details: {e}') from e

        return SearchPage(customers=[self._row_to_view(row) for row in rows], total_matches=total_matches)

    @tracer.capture_method
    def update_customer(
        self,
        customer_id: str,
        fields: CustomerFields,
        address: Optional[Address] = None,
        bank_details: Optional[BankDetails] = None,
    ) -> bool:
        """
        Update the customer and, when given, its address and bank details in one transaction.

        Returns:
            True if the customer exists and was updated, False if it does not exist

        Raises:
            StorageError: If any update or the commit fails; all updates are rolled back
        """
        try:
            with self._unit_of_work('update_customer') as connection:
                owned_ids = self._lock_owned_ids(connection, customer_id)
                if owned_ids is None:
                    logger.info(f'Customer not found for update: {customer_id}')
                    return False
                address_id, bank_details_id = owned_ids

                connection.execute(
                    update(customer_table)
                    .where(customer_table.c.id == customer_id)
                    .values(**self._customer_values(fields))
                )
                if address is not None:
                    connection.execute(
                        update(address_table)
                        .where(address_table.c.id == address_id)
                        .values(**self._address_values(address))
                    )
                if bank_details is not None:
                    connection.execute(
                        update(bank_details_table)
                        .where(bank_details_table.c.id == bank_details_id)
                        .values(**self._bank_details_values(bank_details))
                    )
        except SQLAlchemyError as e:
            logger.error(f'Database error updating customer {customer_id}', extra={'error': str(e)})
            raise StorageError(message=f'Error updating customer details: {e}') from e

        logger.info('Successfully updated customer in database', extra={
            'customer_id': customer_id,
            'address_updated': address is not None,
            'bank_details_updated': bank_details is not None,
        })
        return True

    @tracer.capture_method
    def delete_customer_by_id(self, customer_id: str) -> bool:
        """
        Delete the customer, its contracts, its address and its bank details in one transaction.

        Contracts and the customer row go first so the address and bank details
        are no longer referenced when they are removed.

        Returns:
            True if the customer was deleted, False if it does not exist

        Raises:
            StorageError: If any step or the commit fails; nothing is deleted
        """
        try:
            with self._unit_of_work('delete_customer') as connection:
                owned_ids = self._lock_owned_ids(connection, customer_id)
                if owned_ids is None:
                    logger.info(f'Customer not found for deletion: {customer_id}')
                    return False
                address_id, bank_details_id = owned_ids

                contracts_deleted = connection.execute(
                    delete(contract_table).where(contract_table.c.customerId == customer_id)
                ).rowcount
                connection.execute(delete(customer_table).where(customer_table.c.id == customer_id))
                connection.execute(delete(address_table).where(address_table.c.id == address_id))
                connection.execute(delete(bank_details_table).where(bank_details_table.c.id == bank_details_id))
        except SQLAlchemyError as e:
            logger.error(f'Database error deleting customer {customer_id}', extra={'error': str(e)})
            raise StorageError(message=f'Error deleting customer: {e}') from e

        logger.info('Successfully deleted customer from database', extra={
            'customer_id': customer_id,
            'contracts_deleted': contracts_deleted,
        })
        tracer.put_annotation('customer_deleted', customer_id)
        return True

    def health_check(self) -> Dict[str, str]:
        """Check that the store answers a trivial query."""
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            with self._unit_of_work('health_check') as connection:
                connection.execute(text('SELECT 1'))
        except (SQLAlchemyError, StorageError) as e:
            logger.warning('Database health check failed', extra={'error': str(e)})
            return {'status': 'unhealthy', 'timestamp': timestamp, 'error': type(e).__name__}

        return {'status': 'healthy', 'timestamp': timestamp}
