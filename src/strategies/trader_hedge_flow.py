"""
Trader hedge order flow

The trader pre-signs a USDC -> DAI order that stays unfillable until an
external hedge contract is armed for them:

    hedge.isHedgeActiveFor(trader) > 0

Arming is normally done by an off-chain watcher; here the admin key calls
demoSetter(address(0), trader) directly, then the order is filled.
"""

from typing import Optional

from eth_abi import decode

from config.constants import DEFAULT_APPROVE_GAS_LIMIT, ZERO_ADDRESS
from core.extension import ExtensionBuilder
from core.limit_order import LimitOrder
from core.predicate import hedge_active_calldata, hedge_predicate
from strategies.base_flow import BaseOrderFlow
from utils.exceptions import ConfigurationError, HedgeError, HedgeNotArmedError, TransactionError
from utils.helpers import bytes_to_hex, encode_function_call
from utils.logger import get_logger, log_tx_event


logger = get_logger(__name__)

DEMO_SETTER_SIGNATURE = "demoSetter(address,address)"


class TraderHedgeFlow(BaseOrderFlow):
    """
    USDC -> DAI order gated on the trader's hedge being active.

    The connected account is trader and filler; admin_private_key (if given)
    arms the hedge.
    """

    name = 'hedge'

    def __init__(self, client, settings, admin_private_key: Optional[str] = None):
        super().__init__(client, settings)
        self.admin_private_key = admin_private_key

    @classmethod
    def check_settings(cls, settings) -> None:
        if not settings.trader_hedge_address:
            raise ConfigurationError(
                "TRADER_HEDGE_ADDRESS is not set. Deploy the hedge contract and add its address to .env",
                error_code='MISSING_HEDGE_ADDRESS'
            )

    @property
    def hedge_address(self) -> str:
        self.check_settings(self.settings)
        return self.settings.trader_hedge_address

    async def on_start(self) -> None:
        logger.info(f"Hedge contract: {self.hedge_address}")

    async def build_order(self) -> LimitOrder:
        s = self.settings
        trader = self.client.address
        making_amount = await self._to_raw_amount(s.usdc_address, s.making_amount)
        taking_amount = await self._to_raw_amount(s.dai_address, s.taking_amount)

        extension = ExtensionBuilder().with_predicate(hedge_predicate(self.hedge_address, trader)).build()
        return LimitOrder(
            maker_asset=s.usdc_address,
            taker_asset=s.dai_address,
            making_amount=making_amount,
            taking_amount=taking_amount,
            maker=trader,
            maker_traits=self.build_maker_traits(),
            extension=extension,
        )

    async def is_hedge_active(self, trader: str) -> int:
        """
        Raw isHedgeActiveFor(trader) value (0 = not armed)

        Raises:
            HedgeError: If the hedge address returns no data (no contract deployed)
        """
        result = await self.client.call(self.hedge_address, bytes_to_hex(hedge_active_calldata(trader)))
        if len(result) < 32:
            raise HedgeError(
                f"No hedge contract found at {self.hedge_address} (isHedgeActiveFor returned {len(result)} bytes)",
                error_code='NO_HEDGE_CONTRACT',
                details={'hedge_address': self.hedge_address}
            )
        return decode(['uint256'], result)[0]

    async def arm_hedge(self, trader: str) -> str:
        """
        Arm the hedge for trader and confirm it on-chain.

        Raises:
            HedgeError: If the arming transaction fails
            HedgeNotArmedError: If the contract still reports the hedge inactive
        """
        logger.info(f"Enabling hedge for trader: {trader}...")
        calldata = bytes_to_hex(encode_function_call(
            DEMO_SETTER_SIGNATURE, ['address', 'address'], [ZERO_ADDRESS, trader]
        ))
        try:
            receipt = await self.client.send_transaction(
                self.hedge_address,
                calldata,
                fallback_gas=DEFAULT_APPROVE_GAS_LIMIT,
                private_key=self.admin_private_key
            )
        except TransactionError as e:
            raise HedgeError(f"Failed to enable hedge: {e.message}", original_error=e)

        tx_hash = receipt['transactionHash']
        log_tx_event(logger, 'HEDGE_ARMED', tx_hash=tx_hash, trader=trader)

        active = await self.is_hedge_active(trader)
        if active == 0:
            raise HedgeNotArmedError(
                f"Hedge contract reports no active hedge for {trader} after arming",
                trader=trader
            )
        logger.info(f"Hedge armed on-chain (isHedgeActiveFor={active})")
        return tx_hash

    async def prepare(self) -> None:
        trader = self.order.maker
        if self.dry_run:
            logger.info(f"[DRY RUN] Would enable hedge for {trader} via {self.hedge_address}")
        else:
            self.result.details['arm_tx_hash'] = await self.arm_hedge(trader)

        await self._check_balance(self.order.maker_asset, self.order.making_amount)
        await self._approve_maker_asset(unlimited=False)
