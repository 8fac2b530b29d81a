"""
Base Order Flow Abstract Class
Defines the one-shot lifecycle shared by every order flow:

    on_start -> build_order -> sign -> prepare -> fill
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from config.settings import HedgeSettings
from core.chain_client import ChainClient
from core.limit_order import LimitOrder
from core.limit_order_contract import build_fill_calldata
from core.maker_traits import MakerTraits
from core.signer import SignedOrder, sign_order
from core.taker_traits import AmountMode, TakerTraits
from utils.exceptions import FlowError, InsufficientBalanceError, LimitOrderToolError
from utils.helpers import format_units, parse_units
from utils.logger import get_logger, log_error_with_context, log_tx_event


logger = get_logger(__name__)


@dataclass
class FlowResult:
    """Outcome of a single flow run"""
    flow: str
    order_hash: Optional[str] = None
    signature: Optional[str] = None
    calldata: Optional[str] = None
    tx_hash: Optional[str] = None
    status: str = 'pending'
    dry_run: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'flow': self.flow,
            'order_hash': self.order_hash,
            'signature': self.signature,
            'calldata': self.calldata,
            'tx_hash': self.tx_hash,
            'status': self.status,
            'dry_run': self.dry_run,
            **self.details,
        }


class BaseOrderFlow(ABC):
    """
    Abstract base class for order flows
    Subclasses build the order and may override prepare() for approvals
    or other on-chain setup before the fill.
    """

    name = 'base'

    def __init__(self, client: ChainClient, settings: HedgeSettings):
        """
        Initialize flow

        Args:
            client: Connected chain client (the maker and filler account)
            settings: Run configuration
        """
        self.client = client
        self.settings = settings
        self.dry_run = settings.dry_run
        self.order: Optional[LimitOrder] = None
        self.signed: Optional[SignedOrder] = None
        self.result = FlowResult(flow=self.name, dry_run=self.dry_run)
        self._stage = 'init'

        logger.info(f"Flow initialized: {self.name} (dry_run={self.dry_run})")

    @abstractmethod
    async def build_order(self) -> LimitOrder:
        """Create the unsigned order, extension included"""
        pass

    @classmethod
    def check_settings(cls, settings: HedgeSettings) -> None:
        """
        Offline configuration check, run before any key loading or RPC.

        Raises:
            ConfigurationError: If a setting the flow needs is missing
        """
        pass

    def build_maker_traits(self) -> MakerTraits:
        """Default traits with the configured nonce and optional expiry"""
        traits = MakerTraits.default().with_nonce(self.settings.order_nonce)
        if self.settings.order_expiry_seconds:
            traits.with_expiration(int(time.time()) + self.settings.order_expiry_seconds)
        return traits

    async def run(self) -> FlowResult:
        """
        Execute the flow once.

        Raises:
            LimitOrderToolError: Toolkit errors propagate unchanged
            FlowError: Any other failure, tagged with the stage it happened in
        """
        try:
            self._stage = 'start'
            await self.on_start()

            self._stage = 'build_order'
            self.order = await self.build_order()
            logger.info(f"Order built: {self.order}")

            self._stage = 'sign'
            self.signed = await self.sign()
            self.result.order_hash = self.signed.order_hash
            self.result.signature = self.signed.signature
            log_tx_event(logger, 'ORDER_SIGNED', order_hash=self.signed.order_hash, flow=self.name)

            self._stage = 'prepare'
            await self.prepare()

            self._stage = 'fill'
            await self.fill()
        except LimitOrderToolError as e:
            self.result.status = 'failed'
            await self.on_error(e)
            raise
        except Exception as e:
            self.result.status = 'failed'
            await self.on_error(e)
            raise FlowError(
                f"Flow {self.name} failed during {self._stage}: {e}",
                flow=self.name,
                stage=self._stage,
                original_error=e
            )

        return self.result

    async def on_start(self) -> None:
        """
        Hook called before the order is built
        Override in subclass for custom validation
        """
        logger.debug(f"Flow {self.name} starting")

    async def on_error(self, error: Exception) -> None:
        log_error_with_context(
            logger, f"Flow {self.name} failed during {self._stage}", error,
            flow=self.name, stage=self._stage
        )

    async def sign(self) -> SignedOrder:
        """Sign the built order with the connected account"""
        chain_id = await self.client.get_chain_id()
        return sign_order(
            self.order,
            self.client.private_key,
            chain_id,
            self.settings.limit_order_protocol_address
        )

    async def prepare(self) -> None:
        """Hook for balance checks and approvals before the fill"""
        pass

    def taker_traits(self) -> TakerTraits:
        """Fill the exact making amount, paying at most taking_amount"""
        return (
            TakerTraits.default()
            .set_amount_mode(AmountMode.MAKER)
            .set_threshold(self.order.taking_amount)
            .set_extension(self.order.extension)
        )

    async def fill(self) -> None:
        calldata = build_fill_calldata(
            self.order,
            self.signed.signature,
            self.order.making_amount,
            self.taker_traits()
        )
        self.result.calldata = calldata

        if self.dry_run:
            logger.info(f"[DRY RUN] Would send fill to {self.settings.limit_order_protocol_address}")
            logger.info(f"[DRY RUN] Calldata: {calldata}")
            self.result.status = 'dry_run'
            return

        self.result.tx_hash = await self._submit_fill(calldata)
        self.result.status = 'filled'

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _to_raw_amount(self, token: str, amount: Decimal) -> int:
        decimals = await self.client.get_token_decimals(token)
        return parse_units(amount, decimals)

    async def _check_balance(self, token: str, required: int) -> int:
        """
        Raises:
            InsufficientBalanceError: If the connected account holds less than required
        """
        available = await self.client.get_token_balance(token)
        decimals = await self.client.get_token_decimals(token)
        logger.info(
            f"Balance of {token}: {format_units(available, decimals)} "
            f"(need {format_units(required, decimals)})"
        )
        if available < required:
            raise InsufficientBalanceError(
                f"Insufficient balance of {token}: have {available}, need {required}",
                required=required,
                available=available,
                token=token
            )
        return available

    async def _approve_maker_asset(self, unlimited: bool) -> Optional[str]:
        if self.dry_run:
            logger.info(f"[DRY RUN] Would ensure allowance of {self.order.making_amount} {self.order.maker_asset}")
            return None
        tx_hash = await self.client.ensure_allowance(
            self.order.maker_asset,
            self.settings.limit_order_protocol_address,
            self.order.making_amount,
            unlimited=unlimited
        )
        if tx_hash:
            self.result.details['approval_tx_hash'] = tx_hash
        return tx_hash

    async def _submit_fill(self, calldata: str) -> str:
        logger.info("Sending fill transaction...")
        receipt = await self.client.send_transaction(
            self.settings.limit_order_protocol_address,
            calldata,
            fallback_gas=self.settings.fill_gas_limit
        )
        tx_hash = receipt['transactionHash']
        log_tx_event(
            logger, 'ORDER_FILLED',
            tx_hash=tx_hash,
            order_hash=self.result.order_hash,
            gas_used=receipt.get('gasUsed')
        )
        return tx_hash

    def get_status(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'stage': self._stage,
            'dry_run': self.dry_run,
            'result': self.result.to_dict(),
        }
