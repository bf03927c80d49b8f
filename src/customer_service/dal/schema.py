"""
Relational schema of the customer aggregate.

The tables mirror the existing MySQL schema, including its camelCase column
names. The metadata is used to build statements and to create local and test
databases.
"""

from sqlalchemy import Column, Date, ForeignKey, MetaData, String, Table

metadata = MetaData()

address_table = Table(
    "Address",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("street", String(255), nullable=False),
    Column("houseNumber", String(20), nullable=False),
    Column("zipCode", String(20), nullable=False),
    Column("city", String(100), nullable=False),
)

bank_details_table = Table(
    "BankDetails",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("iban", String(34), nullable=False),
    Column("bic", String(11), nullable=False),
    Column("name", String(255), nullable=False),
)

customer_table = Table(
    "Customer",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("firstName", String(100), nullable=False),
    Column("lastName", String(100), nullable=False),
    Column("title", String(50), nullable=True),
    Column("familyStatus", String(50), nullable=False),
    Column("birthDate", Date, nullable=False),
    Column("socialSecurityNumber", String(50), nullable=False),
    Column("taxId", String(50), nullable=False),
    Column("jobStatus", String(50), nullable=False),
    Column("addressId", String(36), ForeignKey("Address.id"), nullable=False),
    Column("bankDetailsId", String(36), ForeignKey("BankDetails.id"), nullable=False),
)

# Owned by the contract service; only its customer reference matters here
contract_table = Table(
    "Contract",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("customerId", String(36), ForeignKey("Customer.id"), nullable=False),
)
