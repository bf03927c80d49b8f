"""
Security utilities: retrieval of the database credentials.
"""

from customer_service.security.secrets_manager import (
    AWSSecretsManager,
    DatabaseCredentials,
    SecretDecryptionError,
    SecretNotFoundError,
    get_database_credentials,
    get_secrets_manager,
)

__all__ = [
    "AWSSecretsManager",
    "DatabaseCredentials",
    "SecretDecryptionError",
    "SecretNotFoundError",
    "get_database_credentials",
    "get_secrets_manager",
]
