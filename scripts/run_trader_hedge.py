#!/usr/bin/env python3
"""
Run the trader hedge USDC -> DAI order flow

Usage:
    python scripts/run_trader_hedge.py [--dry-run]

Requires TRADER_HEDGE_ADDRESS (the deployed hedge contract) in .env.
ADMIN_PRIVATE_KEY arms the hedge; it defaults to the trader key.

What it does:
- Trader pre-signs a USDC -> DAI order gated on isHedgeActiveFor(trader)
- Admin arms the hedge via demoSetter(address(0), trader)
- Checks balance, approves the exact making amount and fills the order
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from main import main


if __name__ == "__main__":
    sys.exit(main(['hedge'] + sys.argv[1:]))
