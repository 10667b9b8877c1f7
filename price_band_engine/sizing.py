"""
Price Band Engine - Trade Sizing.

============================================================
PURPOSE
============================================================
Size the corrective trade for a breached band.

    BELOW_FLOOR    amount = (floor - price) / price + buffer
    ABOVE_CEILING  amount = (price - ceiling) / price + buffer

The amount is the managed token leg, which is always the
exact leg of the swap. The buffer (smallest units) keeps
truncation from under-shooting the band edge.

============================================================
"""

import logging
from typing import Optional

from .config import SizingConfig
from .fixed_point import DEFAULT_DECIMALS, fixed_div
from .types import (
    BreachState,
    CorrectiveTrade,
    DegenerateInputError,
    NegativeTradeAmountError,
    PriceBand,
    TradeDirection,
)


logger = logging.getLogger(__name__)


class TradeSizer:
    """
    Corrective trade sizing.

    Never returns a zero or negative trade.
    """

    def __init__(
        self,
        config: Optional[SizingConfig] = None,
        decimals: int = DEFAULT_DECIMALS,
    ):
        self._config = config or SizingConfig()
        self._decimals = decimals
        if self._config.rounding_buffer_units < 1:
            raise ValueError("rounding_buffer_units must be at least 1")

    @property
    def buffer(self) -> int:
        return self._config.rounding_buffer_units

    def size(
        self,
        breach: BreachState,
        current_price: int,
        band: PriceBand,
    ) -> CorrectiveTrade:
        """
        Size the trade for a breach.

        Args:
            breach: Breach classification of this pass
            current_price: Market price (fixed point)
            band: Price band of this pass

        Returns:
            CorrectiveTrade

        Raises:
            ValueError: If called without a breach
            DegenerateInputError: If price is not positive
            NegativeTradeAmountError: If the band edge is on the wrong side
        """
        if breach is BreachState.NO_BREACH:
            raise ValueError("TradeSizer called without a breach")
        if current_price <= 0:
            raise DegenerateInputError(f"price must be positive, got {current_price}")

        if breach is BreachState.BELOW_FLOOR:
            delta = band.floor - current_price
            direction = TradeDirection.BUY_MANAGED_TOKEN
        else:
            delta = current_price - band.ceiling
            direction = TradeDirection.SELL_MANAGED_TOKEN

        if delta < 0:
            raise NegativeTradeAmountError(
                f"{breach.value} with price {current_price} on the wrong side "
                f"of band [{band.floor}, {band.ceiling}]"
            )

        amount = fixed_div(delta, current_price, self._decimals) + self.buffer

        logger.debug(f"Sized {direction.value}: {amount} (buffer {self.buffer})")
        return CorrectiveTrade(direction=direction, amount=amount)
