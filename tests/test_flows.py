"""
Tests for the order flows
"""

import time

import pytest
from unittest.mock import AsyncMock
from eth_abi import decode

from config.constants import DAI_ADDRESS, LIMIT_ORDER_PROTOCOL_ADDRESS, USDC_ADDRESS
from core.extension import Extension
from core.limit_order_contract import FILL_ORDER_ARGS_SELECTOR
from core.predicate import hedge_predicate, volatility_predicate
from core.signer import recover_signer
from strategies.base_flow import BaseOrderFlow, FlowResult
from strategies.trader_hedge_flow import DEMO_SETTER_SIGNATURE, TraderHedgeFlow
from strategies.volatility_flow import VolatilityHedgeFlow
from utils.exceptions import (
    ConfigurationError,
    FlowError,
    HedgeError,
    HedgeNotArmedError,
    InsufficientBalanceError,
    TransactionRevertedError,
)
from utils.helpers import encode_function_call

from conftest import HEDGE_ADDRESS, TEST_ADDRESS


FILL_TX_HASH = '0x' + 'bb' * 32


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


@pytest.mark.asyncio
class TestVolatilityHedgeFlow:
    """Test the DAI -> USDC volatility-gated flow"""

    async def test_builds_order_with_volatility_predicate(self, mock_chain_client, settings):
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        order = await flow.build_order()

        assert order.making_amount == 10**17
        assert order.taking_amount == 10**5
        assert _same(order.maker_asset, DAI_ADDRESS)
        assert _same(order.taker_asset, USDC_ADDRESS)
        assert order.maker == TEST_ADDRESS
        assert order.extension.predicate == volatility_predicate(
            settings.volatility_checker_address,
            settings.dynamic_fee_hook_address,
            settings.volatility_threshold,
        )
        assert order.maker_traits.has_extension()
        assert order.maker_traits.expiration() == 0

    async def test_expiry_from_settings(self, mock_chain_client, settings):
        settings = settings.model_copy(update={'order_expiry_seconds': 600})
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        order = await flow.build_order()

        assert order.maker_traits.expiration() > 0

    async def test_nonce_from_settings(self, mock_chain_client, settings):
        settings = settings.model_copy(update={'order_nonce': 3})
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        order = await flow.build_order()

        assert order.maker_traits.nonce_or_epoch() == 3

    async def test_full_run(self, mock_chain_client, settings):
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        result = await flow.run()

        assert isinstance(result, FlowResult)
        assert result.status == 'filled'
        assert result.tx_hash == FILL_TX_HASH
        assert recover_signer(flow.order, result.signature, 8453, LIMIT_ORDER_PROTOCOL_ADDRESS) == TEST_ADDRESS

        mock_chain_client.ensure_allowance.assert_awaited_once_with(
            flow.order.maker_asset,
            settings.limit_order_protocol_address,
            10**17,
            unlimited=True
        )
        to, calldata = mock_chain_client.send_transaction.await_args[0]
        assert to == settings.limit_order_protocol_address
        assert bytes.fromhex(calldata[2:])[:4] == FILL_ORDER_ARGS_SELECTOR
        assert mock_chain_client.send_transaction.await_args[1]['fallback_gas'] == settings.fill_gas_limit

    async def test_fill_args_carry_signed_extension(self, mock_chain_client, settings):
        flow = VolatilityHedgeFlow(mock_chain_client, settings.model_copy(update={'dry_run': True}))

        result = await flow.run()

        raw = bytes.fromhex(result.calldata[2:])
        decoded = decode(
            ['(uint256,uint256,uint256,uint256,uint256,uint256,uint256,uint256)',
             'bytes32', 'bytes32', 'uint256', 'uint256', 'bytes'],
            raw[4:]
        )
        order_tuple, _, _, amount, taker_traits, args = decoded
        assert order_tuple == flow.order.as_abi_tuple()
        assert amount == flow.order.making_amount
        assert (taker_traits >> 255) & 1 == 1
        assert taker_traits & ((1 << 185) - 1) == flow.order.taking_amount
        assert Extension.decode(args) == flow.order.extension
        flow.order.validate_extension()

    async def test_dry_run_sends_nothing(self, mock_chain_client, settings):
        flow = VolatilityHedgeFlow(mock_chain_client, settings.model_copy(update={'dry_run': True}))

        result = await flow.run()

        assert result.status == 'dry_run'
        assert result.dry_run is True
        assert result.tx_hash is None
        assert result.calldata.startswith('0x')
        mock_chain_client.ensure_allowance.assert_not_awaited()
        mock_chain_client.send_transaction.assert_not_awaited()

    async def test_insufficient_balance(self, mock_chain_client, settings):
        mock_chain_client.get_token_balance = AsyncMock(return_value=10)
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await flow.run()

        assert exc_info.value.required == 10**17
        assert exc_info.value.available == 10
        assert flow.result.status == 'failed'
        mock_chain_client.send_transaction.assert_not_awaited()

    async def test_revert_propagates(self, mock_chain_client, settings):
        mock_chain_client.send_transaction = AsyncMock(
            side_effect=TransactionRevertedError("reverted", tx_hash=FILL_TX_HASH)
        )
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        with pytest.raises(TransactionRevertedError):
            await flow.run()

        assert flow.get_status()['stage'] == 'fill'

    async def test_unexpected_error_wrapped(self, mock_chain_client, settings):
        mock_chain_client.get_token_decimals = AsyncMock(side_effect=RuntimeError("rpc exploded"))
        flow = VolatilityHedgeFlow(mock_chain_client, settings)

        with pytest.raises(FlowError) as exc_info:
            await flow.run()

        assert exc_info.value.stage == 'build_order'
        assert exc_info.value.flow == 'volatility'
        assert isinstance(exc_info.value.original_error, RuntimeError)


@pytest.mark.asyncio
class TestTraderHedgeFlow:
    """Test the USDC -> DAI hedge-gated flow"""

    async def test_requires_hedge_address(self, mock_chain_client, settings):
        settings = settings.model_copy(update={'trader_hedge_address': None})
        flow = TraderHedgeFlow(mock_chain_client, settings)

        with pytest.raises(ConfigurationError) as exc_info:
            await flow.run()

        assert exc_info.value.error_code == 'MISSING_HEDGE_ADDRESS'
        mock_chain_client.get_token_decimals.assert_not_awaited()

    async def test_builds_order_with_hedge_predicate(self, mock_chain_client, settings):
        flow = TraderHedgeFlow(mock_chain_client, settings)

        order = await flow.build_order()

        assert _same(order.maker_asset, USDC_ADDRESS)
        assert _same(order.taker_asset, DAI_ADDRESS)
        assert order.making_amount == 10**5
        assert order.taking_amount == 10**17
        assert order.extension.predicate == hedge_predicate(HEDGE_ADDRESS, TEST_ADDRESS)
        assert order.maker_traits.has_extension()
        assert order.maker_traits.expiration() == 0

    async def test_expiry_and_nonce_from_settings(self, mock_chain_client, settings):
        settings = settings.model_copy(update={'order_expiry_seconds': 600, 'order_nonce': 7})
        flow = TraderHedgeFlow(mock_chain_client, settings)

        before = int(time.time())
        order = await flow.build_order()

        assert before + 600 <= order.maker_traits.expiration() <= int(time.time()) + 600
        assert order.maker_traits.nonce_or_epoch() == 7
        assert order.maker_traits.has_extension()

    async def test_missing_hedge_contract(self, mock_chain_client, settings):
        mock_chain_client.call = AsyncMock(return_value=b'')
        flow = TraderHedgeFlow(mock_chain_client, settings)

        with pytest.raises(HedgeError, match="No hedge contract found") as exc_info:
            await flow.run()

        assert exc_info.value.error_code == 'NO_HEDGE_CONTRACT'
        mock_chain_client.ensure_allowance.assert_not_awaited()

    async def test_full_run_arms_then_fills(self, mock_chain_client, settings):
        admin_key = '0x' + '2' * 64
        arm_receipt = {'transactionHash': '0x' + 'cc' * 32, 'status': 1}
        fill_receipt = {'transactionHash': FILL_TX_HASH, 'status': 1}
        mock_chain_client.send_transaction = AsyncMock(side_effect=[arm_receipt, fill_receipt])
        flow = TraderHedgeFlow(mock_chain_client, settings, admin_private_key=admin_key)

        result = await flow.run()

        assert result.status == 'filled'
        assert result.tx_hash == FILL_TX_HASH
        assert result.details['arm_tx_hash'] == '0x' + 'cc' * 32

        arm_call, fill_call = mock_chain_client.send_transaction.await_args_list
        expected = '0x' + encode_function_call(
            DEMO_SETTER_SIGNATURE, ['address', 'address'], ['0x' + '00' * 20, TEST_ADDRESS]
        ).hex()
        assert arm_call[0] == (HEDGE_ADDRESS, expected)
        assert arm_call[1]['private_key'] == admin_key
        assert fill_call[0][0] == settings.limit_order_protocol_address

        mock_chain_client.call.assert_awaited_once()
        mock_chain_client.ensure_allowance.assert_awaited_once_with(
            flow.order.maker_asset,
            settings.limit_order_protocol_address,
            10**5,
            unlimited=False
        )

    async def test_hedge_not_armed(self, mock_chain_client, settings):
        mock_chain_client.call = AsyncMock(return_value=(0).to_bytes(32, 'big'))
        flow = TraderHedgeFlow(mock_chain_client, settings)

        with pytest.raises(HedgeNotArmedError) as exc_info:
            await flow.run()

        assert exc_info.value.trader == TEST_ADDRESS
        assert mock_chain_client.send_transaction.await_count == 1
        mock_chain_client.ensure_allowance.assert_not_awaited()

    async def test_arming_revert_is_hedge_error(self, mock_chain_client, settings):
        mock_chain_client.send_transaction = AsyncMock(
            side_effect=TransactionRevertedError("reverted", tx_hash='0x01')
        )
        flow = TraderHedgeFlow(mock_chain_client, settings)

        with pytest.raises(HedgeError, match="Failed to enable hedge"):
            await flow.run()

    async def test_dry_run_skips_arming_and_fill(self, mock_chain_client, settings):
        flow = TraderHedgeFlow(mock_chain_client, settings.model_copy(update={'dry_run': True}))

        result = await flow.run()

        assert result.status == 'dry_run'
        assert 'arm_tx_hash' not in result.details
        mock_chain_client.send_transaction.assert_not_awaited()
        mock_chain_client.call.assert_not_awaited()
        mock_chain_client.get_token_balance.assert_awaited_once()


class TestBaseOrderFlow:
    """Test the abstract base"""

    def test_cannot_instantiate(self, mock_chain_client, settings):
        with pytest.raises(TypeError):
            BaseOrderFlow(mock_chain_client, settings)

    def test_result_to_dict(self):
        result = FlowResult(flow='volatility', status='filled', details={'approval_tx_hash': '0x1'})

        data = result.to_dict()

        assert data['flow'] == 'volatility'
        assert data['approval_tx_hash'] == '0x1'
