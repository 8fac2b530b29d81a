#!/usr/bin/env python3
"""
Run the volatility-gated DAI -> USDC order flow

Usage:
    python scripts/run_hedge.py [--dry-run]

What it does:
- Builds a DAI -> USDC limit order whose predicate calls the volatility
  checker for the dynamic-fee hook
- Signs it with PRIVATE_KEY (or the AWS Secrets Manager wallet key)
- Approves the Limit Order Protocol and fills the order from the same wallet

The fill reverts on-chain while volatility is below the threshold.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from main import main


if __name__ == "__main__":
    sys.exit(main(['volatility'] + sys.argv[1:]))
