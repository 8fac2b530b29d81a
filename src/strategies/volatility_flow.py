"""
Volatility-gated order flow

Sells DAI for USDC through the Limit Order Protocol. The order carries a
predicate that asks the volatility checker about the dynamic-fee hook, so
the protocol refuses the fill unless

    checker.checkVolatility(hook, threshold) > min_result
"""

from core.extension import ExtensionBuilder
from core.limit_order import LimitOrder
from core.predicate import volatility_predicate
from strategies.base_flow import BaseOrderFlow
from utils.logger import get_logger


logger = get_logger(__name__)


class VolatilityHedgeFlow(BaseOrderFlow):
    """
    DAI -> USDC order, fillable only in high-volatility regimes.

    The connected account is both maker and filler.
    """

    name = 'volatility'

    async def build_order(self) -> LimitOrder:
        s = self.settings
        making_amount = await self._to_raw_amount(s.dai_address, s.making_amount)
        taking_amount = await self._to_raw_amount(s.usdc_address, s.taking_amount)

        predicate = volatility_predicate(
            s.volatility_checker_address,
            s.dynamic_fee_hook_address,
            s.volatility_threshold,
            s.volatility_min_result
        )
        logger.info(
            f"Volatility predicate: checker={s.volatility_checker_address} "
            f"hook={s.dynamic_fee_hook_address} threshold={s.volatility_threshold}"
        )

        return LimitOrder(
            maker_asset=s.dai_address,
            taker_asset=s.usdc_address,
            making_amount=making_amount,
            taking_amount=taking_amount,
            maker=self.client.address,
            maker_traits=self.build_maker_traits(),
            extension=ExtensionBuilder().with_predicate(predicate).build(),
        )

    async def prepare(self) -> None:
        await self._check_balance(self.order.maker_asset, self.order.making_amount)
        await self._approve_maker_asset(unlimited=True)
