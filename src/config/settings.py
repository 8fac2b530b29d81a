"""
Runtime Configuration for the Limit Order Hedge Toolkit

pydantic-settings based configuration. Every field can be set in `.env`
or overridden by an environment variable of the same name (case-insensitive).

Usage:
    from config.settings import get_settings

    settings = get_settings()
    threshold = settings.volatility_threshold

    # Override via environment:
    # export VOLATILITY_THRESHOLD=3000
"""

import re
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from config.constants import (
    BASE_CHAIN_ID,
    BASE_RPC_URLS,
    DAI_ADDRESS,
    DEFAULT_FILL_GAS_LIMIT,
    DEFAULT_MAKING_AMOUNT,
    DEFAULT_TAKING_AMOUNT,
    DYNAMIC_FEE_HOOK_ADDRESS,
    LIMIT_ORDER_PROTOCOL_ADDRESS,
    LOG_LEVEL,
    MAX_UINT24,
    MAX_UINT40,
    USDC_ADDRESS,
    VOLATILITY_CHECKER_ADDRESS,
    VOLATILITY_THRESHOLD,
)


_ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')


class HedgeSettings(BaseSettings):
    """
    Per-run configuration for the order flows.

    Example: VOLATILITY_THRESHOLD=3000 DRY_RUN=true python src/main.py volatility
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # ============================================================================
    # CREDENTIALS
    # ============================================================================

    private_key: Optional[SecretStr] = Field(
        default=None,
        description="Trader/filler wallet key (hex, 0x prefix optional)"
    )

    admin_private_key: Optional[SecretStr] = Field(
        default=None,
        description="Key allowed to arm the hedge contract; falls back to private_key"
    )

    aws_secret_id: Optional[str] = Field(
        default=None,
        description="Secrets Manager secret holding WALLET_PRIVATE_KEY (used when PRIVATE_KEY is unset)"
    )

    aws_region: str = Field(default="eu-central-1")

    # ============================================================================
    # NETWORK
    # ============================================================================

    base_rpc_url: Optional[str] = Field(
        default=None,
        description="Preferred RPC endpoint, tried before rpc_urls"
    )

    rpc_urls: Annotated[List[str], NoDecode] = Field(default_factory=lambda: list(BASE_RPC_URLS))

    expected_chain_id: int = Field(
        default=BASE_CHAIN_ID,
        description="Abort if the connected node reports a different chain id (0 disables the check)",
        ge=0
    )

    limit_order_protocol_address: str = Field(default=LIMIT_ORDER_PROTOCOL_ADDRESS)

    # ============================================================================
    # VOLATILITY FLOW
    # ============================================================================

    volatility_checker_address: str = Field(default=VOLATILITY_CHECKER_ADDRESS)

    dynamic_fee_hook_address: str = Field(default=DYNAMIC_FEE_HOOK_ADDRESS)

    volatility_threshold: int = Field(
        default=VOLATILITY_THRESHOLD,
        description="checkVolatility threshold (uint24)",
        ge=0,
        le=MAX_UINT24
    )

    volatility_min_result: int = Field(
        default=0,
        description="Fill allowed only when checkVolatility returns more than this",
        ge=0
    )

    # ============================================================================
    # HEDGE FLOW
    # ============================================================================

    trader_hedge_address: Optional[str] = Field(
        default=None,
        description="Deployed TraderHedgeLOP contract (required by the hedge flow)"
    )

    # ============================================================================
    # ORDER
    # ============================================================================

    dai_address: str = Field(default=DAI_ADDRESS)

    usdc_address: str = Field(default=USDC_ADDRESS)

    making_amount: Decimal = Field(
        default=Decimal(DEFAULT_MAKING_AMOUNT),
        description="Amount of maker asset to sell (whole tokens)",
        gt=0
    )

    taking_amount: Decimal = Field(
        default=Decimal(DEFAULT_TAKING_AMOUNT),
        description="Amount of taker asset to receive (whole tokens)",
        gt=0
    )

    order_expiry_seconds: int = Field(
        default=0,
        description="Order lifetime from now; 0 = no expiration",
        ge=0,
        le=MAX_UINT40
    )

    order_nonce: int = Field(default=0, ge=0, le=MAX_UINT40)

    # ============================================================================
    # EXECUTION
    # ============================================================================

    fill_gas_limit: int = Field(
        default=DEFAULT_FILL_GAS_LIMIT,
        description="Gas limit used when estimation fails",
        gt=21_000
    )

    dry_run: bool = Field(
        default=False,
        description="Sign and build calldata, but send no transactions"
    )

    log_level: str = Field(default=LOG_LEVEL)

    # ============================================================================
    # VALIDATORS
    # ============================================================================

    @field_validator('trader_hedge_address', mode='before')
    @classmethod
    def blank_hedge_address(cls, v):
        # TRADER_HEDGE_ADDRESS= (blank) in .env means "not deployed yet"
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator(
        'limit_order_protocol_address',
        'volatility_checker_address',
        'dynamic_fee_hook_address',
        'trader_hedge_address',
        'dai_address',
        'usdc_address',
    )
    @classmethod
    def validate_address(cls, v):
        if v is None:
            return v
        if not _ADDRESS_RE.match(v):
            raise ValueError(f"Invalid address: {v!r} (expected 0x + 40 hex chars)")
        return v

    @field_validator('rpc_urls', mode='before')
    @classmethod
    def split_rpc_urls(cls, v):
        # RPC_URLS="https://a,https://b" in .env
        if isinstance(v, str):
            return [u.strip() for u in v.split(',') if u.strip()]
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    def rpc_endpoints(self) -> List[str]:
        """BASE_RPC_URL first, then rpc_urls, without duplicates"""
        endpoints: List[str] = []
        for url in ([self.base_rpc_url] if self.base_rpc_url else []) + list(self.rpc_urls):
            if url not in endpoints:
                endpoints.append(url)
        return endpoints


_settings: Optional[HedgeSettings] = None


def get_settings() -> HedgeSettings:
    """Get singleton settings instance"""
    global _settings
    if _settings is None:
        _settings = HedgeSettings()
    return _settings


def reload_settings() -> HedgeSettings:
    """Force reload settings from environment"""
    global _settings
    _settings = HedgeSettings()
    return _settings


__all__ = ['get_settings', 'reload_settings', 'HedgeSettings']
