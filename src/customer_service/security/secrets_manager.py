"""
AWS Secrets Manager integration for the customer store credentials.

This module fetches the database credentials from AWS Secrets Manager, caches
them per Lambda container and validates their shape.
"""

import json
import time
from typing import Any, Dict, Optional, Union

import boto3
from aws_lambda_powertools.metrics import MetricUnit
from botocore.exceptions import BotoCoreError, ClientError
from cachetools import TTLCache
from pydantic import BaseModel, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError

from customer_service.handlers.utils.observability import logger, metrics, tracer


class SecretNotFoundError(Exception):
    """Exception raised when secret is not found."""
    pass


class SecretDecryptionError(Exception):
    """Exception raised when secret cannot be decrypted or parsed."""
    pass


class DatabaseCredentials(BaseModel):
    """Connection credentials stored in the database secret."""

    username: str = Field(min_length=1)
    password: SecretStr
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)


class AWSSecretsManager:
    """AWS Secrets Manager reader with a per-container TTL cache."""

    def __init__(
        self,
        region_name: str = "eu-central-1",
        cache_ttl_seconds: int = 300,
        endpoint_url: Optional[str] = None
    ):
        """
        Initialize AWS Secrets Manager client.

        Args:
            region_name: AWS region name
            cache_ttl_seconds: Cache TTL in seconds, 0 disables caching
            endpoint_url: Custom endpoint URL (for testing)
        """
        self.region_name = region_name
        self.cache_ttl_seconds = cache_ttl_seconds

        self.client = boto3.client(
            'secretsmanager',
            region_name=region_name,
            endpoint_url=endpoint_url
        )

        # Fetched secrets, keyed by "name:stage"
        self._cache: TTLCache = TTLCache(maxsize=32, ttl=max(cache_ttl_seconds, 1))

        logger.debug(
            "AWS Secrets Manager initialized",
            extra={"region": region_name, "cache_ttl": cache_ttl_seconds}
        )

    @tracer.capture_method
    def get_secret(
        self,
        secret_name: str,
        version_stage: str = "AWSCURRENT"
    ) -> Union[str, Dict[str, Any]]:
        """
        Get secret value from AWS Secrets Manager.

        Args:
            secret_name: Name or ARN of the secret
            version_stage: Version stage (AWSCURRENT, AWSPENDING)

        Returns:
            Secret value (string or parsed JSON dict)

        Raises:
            SecretNotFoundError: If secret doesn't exist
            SecretDecryptionError: If secret cannot be retrieved or decrypted
        """
        cache_key = f"{secret_name}:{version_stage}"

        if cache_key in self._cache:
            metrics.add_metric(name="SecretCacheHit", unit=MetricUnit.Count, value=1)
            return self._cache[cache_key]

        start_time = time.time()
        try:
            response = self.client.get_secret_value(SecretId=secret_name, VersionStage=version_stage)

        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')

            if error_code == 'ResourceNotFoundException':
                logger.error(f"Secret not found: {secret_name}")
                metrics.add_metric(name="SecretNotFound", unit=MetricUnit.Count, value=1)
                raise SecretNotFoundError(f"Secret '{secret_name}' not found") from e

            logger.error(f"Failed to retrieve secret '{secret_name}': {error_code}")
            metrics.add_metric(name="SecretRetrievalError", unit=MetricUnit.Count, value=1)
            raise SecretDecryptionError(f"Failed to retrieve secret '{secret_name}': {error_code}") from e

        except BotoCoreError as e:
            logger.error(f"Secrets Manager unreachable for '{secret_name}': {e}")
            metrics.add_metric(name="SecretRetrievalError", unit=MetricUnit.Count, value=1)
            raise SecretDecryptionError(f"Failed to retrieve secret '{secret_name}'") from e

        secret_value = self._parse_secret_value(response)

        if self.cache_ttl_seconds > 0:
            self._cache[cache_key] = secret_value

        duration_ms = (time.time() - start_time) * 1000
        metrics.add_metric(name="SecretCacheMiss", unit=MetricUnit.Count, value=1)
        metrics.add_metric(name="SecretRetrievalDuration", unit=MetricUnit.Milliseconds, value=duration_ms)

        logger.info(
            "Secret retrieved successfully",
            extra={
                "secret_name": secret_name,
                "version_id": response.get("VersionId"),
                "version_stage": version_stage,
                "duration_ms": duration_ms,
            }
        )

        return secret_value

    def clear_cache(self, secret_name: Optional[str] = None) -> None:
        """Drop one secret (all stages) or the whole cache."""
        if secret_name is None:
            self._cache.clear()
            return

        for key in [k for k in self._cache if k.startswith(f"{secret_name}:")]:
            del self._cache[key]

    def _parse_secret_value(self, response: Dict[str, Any]) -> Union[str, Dict[str, Any]]:
        """Parse secret value from AWS response."""
        if 'SecretString' not in response:
            raise SecretDecryptionError("No secret string found in response")

        secret_string = response['SecretString']
        try:
            return json.loads(secret_string)
        except (json.JSONDecodeError, TypeError):
            return secret_string


# Global secrets manager instance (lazily initialized)
_secrets_manager: Optional[AWSSecretsManager] = None


def get_secrets_manager(
    region_name: str = "eu-central-1",
    cache_ttl_seconds: int = 300
) -> AWSSecretsManager:
    """
    Get or create global secrets manager instance.

    Args:
        region_name: AWS region
        cache_ttl_seconds: Cache TTL in seconds

    Returns:
        AWSSecretsManager instance
    """
    global _secrets_manager

    if (
        _secrets_manager is None
        or _secrets_manager.region_name != region_name
        or _secrets_manager.cache_ttl_seconds != cache_ttl_seconds
    ):
        _secrets_manager = AWSSecretsManager(
            region_name=region_name,
            cache_ttl_seconds=cache_ttl_seconds
        )

    return _secrets_manager


def get_database_credentials(
    secret_name: str,
    region_name: str = "eu-central-1",
    cache_ttl_seconds: int = 300
) -> DatabaseCredentials:
    """
    Get database credentials from secrets manager.

    Args:
        secret_name: Name of the database secret
        region_name: AWS region
        cache_ttl_seconds: Cache TTL in seconds

    Returns:
        Validated database credentials

    Raises:
        SecretNotFoundError: If secret doesn't exist
        SecretDecryptionError: If secret format is invalid
    """
    secret_value = get_secrets_manager(region_name, cache_ttl_seconds).get_secret(secret_name)

    if not isinstance(secret_value, dict):
        raise SecretDecryptionError("Database secret must be a JSON object")

    try:
        return DatabaseCredentials.model_validate(secret_value)
    except PydanticValidationError as e:
        fields = sorted({str(error["loc"][0]) for error in e.errors()})
        raise SecretDecryptionError(f"Database secret has missing or invalid fields: {fields}") from e
