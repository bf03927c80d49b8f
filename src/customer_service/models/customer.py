"""
Customer aggregate domain models.

This module defines the Customer, Address and BankDetails entities that make
up the aggregate, plus the read-shaped view returned to callers. Field names
are snake_case in Python and camelCase on the wire.
"""

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Address(CamelModel):
    """Postal address exclusively owned by one customer."""

    street: Annotated[str, Field(
        min_length=1,
        max_length=255,
        description='Street name',
        examples=['Hauptstrasse']
    )]

    house_number: Annotated[str, Field(
        min_length=1,
        max_length=20,
        description='House number, may include a suffix',
        examples=['12a']
    )]

    zip_code: Annotated[str, Field(
        min_length=1,
        max_length=20,
        description='Postal code',
        examples=['10115']
    )]

    city: Annotated[str, Field(
        min_length=1,
        max_length=100,
        description='City name',
        examples=['Berlin']
    )]


class BankDetails(CamelModel):
    """Bank account exclusively owned by one customer."""

    iban: Annotated[str, Field(
        min_length=1,
        max_length=34,
        description='International bank account number',
        examples=['DE89370400440532013000']
    )]

    bic: Annotated[str, Field(
        min_length=1,
        max_length=11,
        description='Bank identifier code',
        examples=['COBADEFFXXX']
    )]

    name: Annotated[str, Field(
        min_length=1,
        max_length=255,
        description='Name of the bank',
        examples=['Commerzbank']
    )]


class CustomerFields(CamelModel):
    """Scalar fields stored on the Customer row."""

    first_name: Annotated[str, Field(
        min_length=1,
        max_length=100,
        description='Given name',
        examples=['Jane']
    )]

    last_name: Annotated[str, Field(
        min_length=1,
        max_length=100,
        description='Family name',
        examples=['Doe']
    )]

    title: Annotated[Optional[str], Field(
        max_length=50,
        description='Optional academic or honorific title',
        examples=['Dr.']
    )] = None

    family_status: Annotated[str, Field(
        min_length=1,
        max_length=50,
        description='Family status',
        examples=['married']
    )]

    birth_date: Annotated[date, Field(
        description='Date of birth',
        examples=['1990-01-31']
    )]

    social_security_number: Annotated[str, Field(
        min_length=1,
        max_length=50,
        description='Social security number',
        examples=['65 170839 J 003']
    )]

    tax_id: Annotated[str, Field(
        min_length=1,
        max_length=50,
        description='Tax identification number',
        examples=['12345678901']
    )]

    job_status: Annotated[str, Field(
        min_length=1,
        max_length=50,
        description='Employment status',
        examples=['employed']
    )]


class CustomerView(CustomerFields):
    """Read-shaped projection of the whole aggregate."""

    id: Annotated[str, Field(
        description='Unique identifier of the customer',
        examples=['3f6c1f0e-5b8a-4f7e-9d0c-2a1b3c4d5e6f']
    )]

    # The store coalesces a missing title to an empty string
    title: Annotated[str, Field(
        max_length=50,
        description='Title, empty when none was given'
    )] = ''

    address: Address

    bank_details: BankDetails
