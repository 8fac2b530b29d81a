#!/usr/bin/env python3
"""
Approve the Limit Order Protocol to spend a maker token

Run this once per maker token if you prefer not to approve inside each flow.

Usage:
    python scripts/set_allowance.py                    # infinite DAI allowance
    python scripts/set_allowance.py --token usdc --amount 0.1
    python scripts/set_allowance.py --token 0x...      # any ERC20

What it does:
- Checks the wallet's native balance for gas
- Reads the current allowance and skips the approval if it already covers the amount
- Sends approve(LOP, amount) and waits for confirmation
"""

import sys
import argparse
import asyncio
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from config.constants import MAX_UINT256
from config.settings import get_settings
from core.chain_client import ChainClient
from utils.exceptions import LimitOrderToolError
from utils.helpers import format_units, parse_units
from utils.keys import load_private_key
from utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def resolve_token(token: str, settings) -> str:
    aliases = {'dai': settings.dai_address, 'usdc': settings.usdc_address}
    return aliases.get(token.lower(), token)


async def set_allowance(token: str, amount: str = None) -> None:
    settings = get_settings()
    token_address = resolve_token(token, settings)
    spender = settings.limit_order_protocol_address

    client = ChainClient(settings)
    try:
        await client.connect(load_private_key(settings))
        logger.info(f"Wallet: {client.address}")
        await client.check_gas_balance()

        decimals = await client.get_token_decimals(token_address)
        raw_amount = MAX_UINT256 if amount is None else parse_units(amount, decimals)

        current = await client.get_allowance(token_address, spender)
        logger.info(f"Current allowance: {format_units(current, decimals)}")

        tx_hash = await client.ensure_allowance(
            token_address,
            spender,
            raw_amount,
            unlimited=amount is None
        )
        if tx_hash:
            logger.info(f"Allowance set successfully (tx {tx_hash})")
    finally:
        await client.close()


def main() -> None:
    parser = argparse.ArgumentParser(description='Approve the Limit Order Protocol to spend a token')
    parser.add_argument('--token', default='dai', help="'dai', 'usdc' or a token address")
    parser.add_argument('--amount', default=None, help='Whole-token amount (default: infinite)')
    args = parser.parse_args()

    setup_logging()
    logger.info("=" * 80)
    logger.info("Limit Order Protocol Allowance Setup")
    logger.info("=" * 80)
    asyncio.run(set_allowance(args.token, args.amount))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Cancelled by user")
        sys.exit(1)
    except LimitOrderToolError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)
