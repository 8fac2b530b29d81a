"""
Tests for the command line entry point
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

import main
from strategies.base_flow import FlowResult
from strategies.trader_hedge_flow import TraderHedgeFlow
from strategies.volatility_flow import VolatilityHedgeFlow
from utils.exceptions import ConfigurationError, HedgeNotArmedError, RPCConnectionError


@pytest.fixture
def patched_main(settings):
    with patch('main.setup_logging') as mock_logging, \
         patch('main.get_settings', return_value=settings), \
         patch('main.run_flow', new_callable=AsyncMock) as mock_run:
        mock_run.return_value = FlowResult(flow='volatility', order_hash='0x01', status='filled')
        yield mock_run, mock_logging


class TestArgumentParsing:
    """Test CLI arguments"""

    def test_flow_choices(self):
        args = main.build_parser().parse_args(['hedge', '--dry-run', '--log-level', 'debug'])

        assert args.flow == 'hedge'
        assert args.dry_run is True
        assert args.log_level == 'DEBUG'

    def test_unknown_flow_exits(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(['arbitrage'])


class TestMain:
    """Test exit codes"""

    def test_success_returns_zero(self, patched_main, settings):
        mock_run, _ = patched_main

        assert main.main(['volatility']) == 0
        mock_run.assert_awaited_once_with('volatility', settings)

    def test_dry_run_flag_overrides_settings(self, patched_main):
        mock_run, _ = patched_main

        assert main.main(['hedge', '--dry-run']) == 0
        passed_settings = mock_run.await_args[0][1]
        assert passed_settings.dry_run is True

    def test_log_level_flag(self, patched_main):
        _, mock_logging = patched_main

        main.main(['volatility', '--log-level', 'WARNING'])

        mock_logging.assert_called_once_with('WARNING')

    def test_toolkit_error_returns_one(self, patched_main):
        mock_run, _ = patched_main
        mock_run.side_effect = HedgeNotArmedError("not armed")

        assert main.main(['hedge']) == 1

    def test_rpc_failure_returns_one(self, patched_main):
        mock_run, _ = patched_main
        mock_run.side_effect = RPCConnectionError("no rpc", endpoints=['https://a'])

        assert main.main(['volatility']) == 1

    def test_unexpected_error_returns_one(self, patched_main):
        mock_run, _ = patched_main
        mock_run.side_effect = RuntimeError("boom")

        assert main.main(['volatility']) == 1

    def test_keyboard_interrupt_returns_one(self, patched_main):
        mock_run, _ = patched_main
        mock_run.side_effect = KeyboardInterrupt()

        assert main.main(['volatility']) == 1


class TestCreateFlow:
    """Test flow selection"""

    def test_create_flows(self, settings):
        client = Mock()

        assert isinstance(main.create_flow('volatility', client, settings), VolatilityHedgeFlow)
        hedge = main.create_flow('hedge', client, settings, admin_private_key='0x' + '2' * 64)
        assert isinstance(hedge, TraderHedgeFlow)
        assert hedge.admin_private_key == '0x' + '2' * 64

    def test_unknown_flow(self, settings):
        with pytest.raises(ValueError):
            main.create_flow('arbitrage', Mock(), settings)


@pytest.mark.asyncio
class TestRunFlow:
    """Test the connect/run/close sequence"""

    async def test_client_closed_after_failure(self, settings):
        with patch('main.ChainClient') as mock_client_cls:
            client = mock_client_cls.return_value
            client.connect = AsyncMock(side_effect=RPCConnectionError("no rpc"))
            client.close = AsyncMock()

            with pytest.raises(RPCConnectionError):
                await main.run_flow('volatility', settings)

            client.close.assert_awaited_once()

    async def test_runs_flow(self, settings):
        expected = FlowResult(flow='volatility', status='dry_run', dry_run=True)
        with patch('main.ChainClient') as mock_client_cls, \
             patch('main.VolatilityHedgeFlow') as mock_flow_cls:
            client = mock_client_cls.return_value
            client.connect = AsyncMock()
            client.check_gas_balance = AsyncMock()
            client.close = AsyncMock()
            mock_flow_cls.return_value.run = AsyncMock(return_value=expected)

            result = await main.run_flow('volatility', settings)

        assert result is expected
        client.connect.assert_awaited_once_with(settings.private_key.get_secret_value())

    async def test_missing_hedge_address_fails_before_connecting(self, settings):
        settings = settings.model_copy(update={'trader_hedge_address': None})
        with patch('main.ChainClient') as mock_client_cls, \
             patch('main.load_private_key') as mock_load_key:
            with pytest.raises(ConfigurationError) as exc_info:
                await main.run_flow('hedge', settings)

        assert exc_info.value.error_code == 'MISSING_HEDGE_ADDRESS'
        mock_load_key.assert_not_called()
        mock_client_cls.assert_not_called()
