"""
Private key loading.

Order of sources:
1. PRIVATE_KEY from the environment / .env (via settings)
2. WALLET_PRIVATE_KEY in AWS Secrets Manager, when AWS_SECRET_ID is set
"""

import re
from typing import Optional

from config.aws_config import get_aws_config
from config.settings import HedgeSettings
from utils.logger import get_logger
from utils.exceptions import AuthenticationError, ConfigurationError


logger = get_logger(__name__)

_KEY_RE = re.compile(r'^(0x)?[0-9a-fA-F]{64}$')


def normalize_private_key(raw: str) -> str:
    """Strip whitespace and return the key as 0x + 64 hex chars"""
    key = raw.strip()
    if not _KEY_RE.match(key):
        raise AuthenticationError(
            "Invalid private key format. Expected 32 bytes of hex (0x prefix optional)."
        )
    return key if key.startswith('0x') else '0x' + key


def load_private_key(settings: HedgeSettings) -> str:
    """
    Load the trader/filler key.

    Raises:
        AuthenticationError: If no source yields a usable key
    """
    if settings.private_key is not None and settings.private_key.get_secret_value().strip():
        logger.info("Loaded private key from environment")
        return normalize_private_key(settings.private_key.get_secret_value())

    if settings.aws_secret_id:
        try:
            raw = get_aws_config(settings.aws_secret_id, settings.aws_region).get_wallet_private_key()
        except ConfigurationError as e:
            raise AuthenticationError(
                f"Could not load private key from AWS Secrets Manager: {e.message}",
                original_error=e
            )
        logger.info("Loaded private key from AWS Secrets Manager")
        return normalize_private_key(raw)

    raise AuthenticationError(
        "No private key configured. Set PRIVATE_KEY in .env or AWS_SECRET_ID for Secrets Manager."
    )


def load_admin_private_key(settings: HedgeSettings, fallback: Optional[str] = None) -> str:
    """Key used to arm the hedge contract; defaults to the trader key"""
    if settings.admin_private_key is not None and settings.admin_private_key.get_secret_value().strip():
        return normalize_private_key(settings.admin_private_key.get_secret_value())
    if fallback is not None:
        return fallback
    return load_private_key(settings)
