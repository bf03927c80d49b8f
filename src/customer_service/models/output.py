"""
Output models for API responses using Pydantic.

This module defines the response bodies produced by the customer handlers.
"""

from typing import Annotated, Any, Dict, List

from pydantic import BaseModel, Field, RootModel

from customer_service.models.customer import CustomerView


class CustomerListOutput(RootModel[List[CustomerView]]):
    """Response model for list and search results, a bare JSON array."""


class HealthCheckOutput(BaseModel):
    """Response model for health check endpoint."""

    status: Annotated[str, Field(
        description='Overall health status',
        examples=['healthy', 'unhealthy']
    )]

    timestamp: Annotated[str, Field(
        description='Time of the check in ISO 8601 format'
    )]

    version: Annotated[str, Field(
        description='Deployed application version'
    )]

    environment: Annotated[str, Field(
        description='Deployment environment name'
    )]

    checks: Annotated[Dict[str, Any], Field(
        description='Per-component health results'
    )]
