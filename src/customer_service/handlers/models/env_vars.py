"""
Environment variable models for type-safe configuration.

This module defines the Pydantic model for the environment variables used by
the customer handlers, parsed once per container by aws-lambda-env-modeler.
"""

from typing import Annotated, Optional

from aws_lambda_env_modeler import get_environment_variables
from pydantic import BaseModel, Field


class CustomersHandlerEnvVars(BaseModel):
    """Environment variables for the customer handlers."""

    # Secrets Manager secret holding {username, password, host, port}
    DB_SECRET_NAME: Annotated[str, Field(
        description='Secrets Manager secret with the database credentials',
        min_length=1
    )] = 'prod/catInsurance/mysql'

    DB_NAME: Annotated[str, Field(
        description='Database (schema) name holding the customer tables',
        min_length=1
    )] = 'meowmeddb'

    DB_DRIVER: Annotated[str, Field(
        description='SQLAlchemy dialect and driver name'
    )] = 'mysql+pymysql'

    # Bypasses Secrets Manager when set, e.g. for local runs
    DATABASE_URL: Annotated[Optional[str], Field(
        description='Full SQLAlchemy database URL'
    )] = None

    DB_CONNECT_TIMEOUT: Annotated[int, Field(
        description='Database connection timeout in seconds',
        ge=1,
        le=300
    )] = 10

    AWS_REGION: Annotated[str, Field(
        description='AWS region of the secret'
    )] = 'eu-central-1'

    SECRETS_CACHE_TTL_SECONDS: Annotated[int, Field(
        description='How long fetched credentials are cached in the container',
        ge=0,
        le=3600
    )] = 300

    DEFAULT_PAGE_SIZE: Annotated[int, Field(
        description='Page size used when the request omits or mangles pageSize',
        ge=1
    )] = 20

    MAX_PAGE_SIZE: Annotated[int, Field(
        description='Largest pageSize a caller may request',
        ge=1
    )] = 100

    ENVIRONMENT: Annotated[str, Field(
        description='Deployment environment name'
    )] = 'dev'

    POWERTOOLS_SERVICE_NAME: Annotated[str, Field(
        description='Service name for AWS Powertools'
    )] = 'customer-aggregate-api'

    LOG_LEVEL: Annotated[str, Field(
        description='Log level for application logging',
        pattern=r'^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$'
    )] = 'INFO'

    DEBUG_MODE: Annotated[str, Field(
        description='Include operation details in error responses (true/false)',
        pattern=r'^(true|false)$'
    )] = 'false'

    @property
    def debug_enabled(self) -> bool:
        """Check if error details should be returned to callers."""
        return self.DEBUG_MODE.lower() == 'true'


def get_handler_env_vars() -> CustomersHandlerEnvVars:
    """
    Get typed environment variables for the customer handlers.

    Returns:
        Validated environment variables model instance
    """
    return get_environment_variables(model=CustomersHandlerEnvVars)
