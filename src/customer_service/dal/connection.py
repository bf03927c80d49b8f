"""
Database engine construction for the customer store.

Credentials come from AWS Secrets Manager unless DATABASE_URL is configured.
The engine is created once per Lambda container; connections are not pooled,
so every unit of work opens and closes its own connection.
"""

from typing import Optional, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import ArgumentError, NoSuchModuleError
from sqlalchemy.pool import NullPool

from customer_service.handlers.models.env_vars import CustomersHandlerEnvVars, get_handler_env_vars
from customer_service.handlers.utils.error_handling import StorageConnectionError
from customer_service.handlers.utils.observability import logger, tracer
from customer_service.security.secrets_manager import (
    SecretDecryptionError,
    SecretNotFoundError,
    get_database_credentials,
)

_engine: Optional[Engine] = None


def build_database_url(env_vars: CustomersHandlerEnvVars) -> Union[str, URL]:
    """
    Resolve the database URL from configuration or from the credentials secret.

    Raises:
        StorageConnectionError: If the credentials cannot be retrieved
    """
    if env_vars.DATABASE_URL:
        return env_vars.DATABASE_URL

    try:
        credentials = get_database_credentials(
            secret_name=env_vars.DB_SECRET_NAME,
            region_name=env_vars.AWS_REGION,
            cache_ttl_seconds=env_vars.SECRETS_CACHE_TTL_SECONDS,
        )
    except (SecretNotFoundError, SecretDecryptionError) as e:
        logger.error("Failed to retrieve database credentials", extra={
            "secret_name": env_vars.DB_SECRET_NAME,
            "error": str(e),
        })
        raise StorageConnectionError(message=f"Failed to retrieve database credentials: {e}") from e

    return URL.create(
        drivername=env_vars.DB_DRIVER,
        username=credentials.username,
        password=credentials.password.get_secret_value(),
        host=credentials.host,
        port=credentials.port,
        database=env_vars.DB_NAME,
    )


@tracer.capture_method
def get_engine() -> Engine:
    """
    Get or create the container-wide engine.

    Returns:
        SQLAlchemy engine bound to the customer database

    Raises:
        StorageConnectionError: If credentials or the driver are unavailable
    """
    global _engine

    if _engine is None:
        env_vars = get_handler_env_vars()
        url = build_database_url(env_vars)

        connect_args = {}
        if env_vars.DB_DRIVER.startswith("mysql") and not env_vars.DATABASE_URL:
            connect_args["connect_timeout"] = env_vars.DB_CONNECT_TIMEOUT

        try:
            _engine = create_engine(url, poolclass=NullPool, connect_args=connect_args)
        except (ArgumentError, NoSuchModuleError) as e:
            raise StorageConnectionError(message=f"Invalid database configuration: {e}") from e

        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})

    return _engine


def reset_engine() -> None:
    """Dispose of the cached engine so the next call rebuilds it."""
    global _engine

    if _engine is not None:
        _engine.dispose()
    _engine = None
