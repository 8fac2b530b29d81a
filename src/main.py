"""
Main Entry Point for the Limit Order Hedge Toolkit

Runs one order flow end to end: load key, connect, build and sign the
order, prepare (balances, approvals, hedge arming) and fill.

    python src/main.py volatility [--dry-run]
    python src/main.py hedge [--dry-run] [--log-level DEBUG]
"""

import os
import sys
import argparse
import asyncio
from typing import List, Optional

from pydantic import ValidationError

# Add src to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config.settings import HedgeSettings, get_settings
from core.chain_client import ChainClient
from strategies.base_flow import BaseOrderFlow, FlowResult
from strategies.trader_hedge_flow import TraderHedgeFlow
from strategies.volatility_flow import VolatilityHedgeFlow
from utils.exceptions import LimitOrderToolError
from utils.keys import load_admin_private_key, load_private_key
from utils.logger import get_logger, setup_logging


logger = get_logger(__name__)

FLOW_CLASSES = {
    'volatility': VolatilityHedgeFlow,
    'hedge': TraderHedgeFlow,
}
FLOWS = tuple(FLOW_CLASSES)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='limit-order-hedge',
        description='Create, sign and fill predicate-gated limit orders on Base'
    )
    parser.add_argument('flow', choices=FLOWS, help='Order flow to run')
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Sign and build calldata without sending transactions'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        type=str.upper,
        default=None,
        help='Override LOG_LEVEL'
    )
    return parser


def create_flow(
    name: str,
    client: ChainClient,
    settings: HedgeSettings,
    admin_private_key: Optional[str] = None
) -> BaseOrderFlow:
    if name == 'volatility':
        return VolatilityHedgeFlow(client, settings)
    if name == 'hedge':
        return TraderHedgeFlow(client, settings, admin_private_key=admin_private_key)
    raise ValueError(f"Unknown flow: {name}")


async def run_flow(name: str, settings: HedgeSettings) -> FlowResult:
    """Connect, run one flow and always release the client"""
    if name not in FLOW_CLASSES:
        raise ValueError(f"Unknown flow: {name}")
    FLOW_CLASSES[name].check_settings(settings)

    private_key = load_private_key(settings)
    admin_key = load_admin_private_key(settings, fallback=private_key) if name == 'hedge' else None

    client = ChainClient(settings)
    try:
        await client.connect(private_key)
        await client.check_gas_balance()
        flow = create_flow(name, client, settings, admin_private_key=admin_key)
        return await flow.run()
    finally:
        await client.close()


def print_summary(result: FlowResult) -> None:
    print("\n" + "=" * 60)
    print(f"Flow:        {result.flow}")
    print(f"Status:      {result.status}{' (dry run)' if result.dry_run else ''}")
    print(f"Order hash:  {result.order_hash}")
    if result.tx_hash:
        print(f"Fill tx:     {result.tx_hash}")
    for key, value in result.details.items():
        print(f"{key}: {value}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Returns:
        Process exit code (0 on success, 1 on any failure)
    """
    args = build_parser().parse_args(argv)

    try:
        setup_logging(args.log_level)
        settings = get_settings()
        if args.log_level is None and settings.log_level:
            setup_logging(settings.log_level)
        if args.dry_run:
            settings = settings.model_copy(update={'dry_run': True})
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info(f"Starting {args.flow} flow (dry_run={settings.dry_run})...")

    try:
        result = asyncio.run(run_flow(args.flow, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    except LimitOrderToolError as e:
        logger.error(f"{args.flow} flow failed: {e}")
        return 1
    except Exception as e:
        logger.critical(f"Unexpected error: {e}", exc_info=True)
        return 1

    print_summary(result)
    logger.info(f"{args.flow} flow finished with status {result.status}")
    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
