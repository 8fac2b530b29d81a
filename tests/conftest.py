"""
Test Configuration Module
Provides fixtures and shared test utilities
"""

import pytest
import sys
import os
from unittest.mock import Mock, AsyncMock, MagicMock
from decimal import Decimal

from eth_account import Account

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

from config.constants import (
    BASE_CHAIN_ID,
    DAI_ADDRESS,
    LIMIT_ORDER_PROTOCOL_ADDRESS,
    USDC_ADDRESS,
)
from config.settings import HedgeSettings
from core.chain_client import ChainClient
from core.limit_order import LimitOrder


# Well-known development key (Hardhat/Anvil account #0), never funded on mainnet
TEST_PRIVATE_KEY = '0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80'
TEST_ADDRESS = '0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266'

HEDGE_ADDRESS = '0x1234567890123456789012345678901234567890'


@pytest.fixture
def test_key():
    return TEST_PRIVATE_KEY


@pytest.fixture
def test_address():
    return TEST_ADDRESS


@pytest.fixture
def settings():
    """Settings isolated from .env and with a hedge contract configured"""
    return HedgeSettings(
        _env_file=None,
        private_key=TEST_PRIVATE_KEY,
        trader_hedge_address=HEDGE_ADDRESS,
        rpc_urls=['https://rpc-a.example', 'https://rpc-b.example'],
    )


@pytest.fixture
def mock_aws_secrets(monkeypatch):
    """Mock AWS Secrets Manager for testing"""
    mock_get_secrets = MagicMock(return_value={
        'WALLET_PRIVATE_KEY': TEST_PRIVATE_KEY
    })

    monkeypatch.setattr(
        'config.aws_config.AWSConfig.get_secrets',
        mock_get_secrets
    )

    return mock_get_secrets


@pytest.fixture
def connected_client(settings):
    """ChainClient that skips connect(); _w3 is a Mock"""
    client = ChainClient(settings)
    client._is_initialized = True
    client._account = Account.from_key(TEST_PRIVATE_KEY)
    client._private_key = TEST_PRIVATE_KEY
    client._chain_id = BASE_CHAIN_ID
    client._rpc_url = 'https://rpc-a.example'
    client._w3 = Mock()
    return client


@pytest.fixture
def mock_chain_client():
    """Async stand-in for ChainClient as seen by the order flows"""
    decimals = {DAI_ADDRESS.lower(): 18, USDC_ADDRESS.lower(): 6}

    client = Mock(spec=ChainClient)
    client.address = TEST_ADDRESS
    client.private_key = TEST_PRIVATE_KEY
    client.get_chain_id = AsyncMock(return_value=BASE_CHAIN_ID)
    client.get_token_decimals = AsyncMock(side_effect=lambda token: decimals[token.lower()])
    client.get_token_balance = AsyncMock(return_value=10**24)
    client.ensure_allowance = AsyncMock(return_value='0x' + 'aa' * 32)
    client.send_transaction = AsyncMock(return_value={
        'transactionHash': '0x' + 'bb' * 32,
        'status': 1,
        'gasUsed': 180_000,
    })
    client.call = AsyncMock(return_value=(1).to_bytes(32, 'big'))
    return client


@pytest.fixture
def sample_order():
    """0.1 DAI -> 0.1 USDC order without extension"""
    return LimitOrder(
        maker_asset=DAI_ADDRESS,
        taker_asset=USDC_ADDRESS,
        making_amount=10**17,
        taking_amount=10**5,
        maker=TEST_ADDRESS,
        base_salt=42,
    )


@pytest.fixture
def chain_id():
    return BASE_CHAIN_ID


@pytest.fixture
def lop_address():
    return LIMIT_ORDER_PROTOCOL_ADDRESS


@pytest.fixture
def making_amount():
    return Decimal('0.1')
