"""
AWS Configuration Module
Optional AWS Secrets Manager source for the wallet private key
"""

import json
from typing import Dict, Any, Optional
import boto3
from botocore.exceptions import ClientError

from utils.logger import get_logger
from utils.exceptions import ConfigurationError


logger = get_logger(__name__)


REQUIRED_SECRET_KEYS = ('WALLET_PRIVATE_KEY',)


class AWSConfig:
    """
    Reads the toolkit's secret from AWS Secrets Manager.
    One instance per (secret_id, region); results are cached.
    """

    _instances: Dict[tuple, 'AWSConfig'] = {}

    def __new__(cls, secret_id: str, region: str):
        key = (secret_id, region)
        if key not in cls._instances:
            cls._instances[key] = super().__new__(cls)
        return cls._instances[key]

    def __init__(self, secret_id: str, region: str):
        if not hasattr(self, '_initialized'):
            self.secret_id = secret_id
            self.region = region
            self._secrets_client = None
            self._secrets_cache: Optional[Dict[str, Any]] = None
            self._initialized = True
            logger.debug(f"AWS Config initialized for {secret_id} in {region}")

    @property
    def secrets_client(self):
        """Lazy initialization of Secrets Manager client"""
        if self._secrets_client is None:
            try:
                self._secrets_client = boto3.client(
                    'secretsmanager',
                    region_name=self.region
                )
            except Exception as e:
                raise ConfigurationError(
                    f"AWS Secrets Manager client initialization failed: {e}",
                    original_error=e
                )
        return self._secrets_client

    def get_secrets(self, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Retrieve the secret JSON, cached after the first call.

        Raises:
            ConfigurationError: If the secret cannot be retrieved or is incomplete
        """
        if self._secrets_cache is not None and not force_refresh:
            return self._secrets_cache

        try:
            logger.info(f"Retrieving secrets from AWS Secrets Manager: {self.secret_id}")
            response = self.secrets_client.get_secret_value(SecretId=self.secret_id)

            if 'SecretString' not in response:
                raise ConfigurationError("Binary secrets not supported")
            secrets = json.loads(response['SecretString'])

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            logger.error(f"AWS Secrets Manager error: {error_code} - {error_message}")

            if error_code == 'ResourceNotFoundException':
                raise ConfigurationError(
                    f"Secret '{self.secret_id}' not found in region '{self.region}'"
                )
            elif error_code == 'AccessDeniedException':
                raise ConfigurationError(
                    f"Access denied to secret '{self.secret_id}'. Check IAM permissions."
                )
            raise ConfigurationError(
                f"Failed to retrieve secrets: {error_code} - {error_message}"
            )

        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Secret value is not valid JSON: {e}")

        self._validate_secrets(secrets)
        self._secrets_cache = secrets
        return secrets

    def _validate_secrets(self, secrets: Dict[str, Any]) -> None:
        missing_keys = [key for key in REQUIRED_SECRET_KEYS if key not in secrets]
        if missing_keys:
            raise ConfigurationError(
                f"Missing required secret keys: {', '.join(missing_keys)}"
            )

    def get_wallet_private_key(self) -> str:
        return self.get_secrets()['WALLET_PRIVATE_KEY']

    def clear_cache(self) -> None:
        """Clear cached secrets (useful for testing or forced refresh)"""
        self._secrets_cache = None


def get_aws_config(secret_id: str, region: str) -> AWSConfig:
    """Get the shared AWSConfig for a secret"""
    return AWSConfig(secret_id, region)
