"""
Price Band Engine - Band Pricing and Breach Detection.

============================================================
PURPOSE
============================================================
Pure functions that turn reserve state into a price band
and classify the market price against it.

    floor   = reserve_value / token_supply
    ceiling = floor * multiplier_bps / 10000

BREACH RULES:
    DIRECT  price < floor            -> BELOW_FLOOR
            price > ceiling          -> ABOVE_CEILING
    RATIO   backing_bps > 10000      -> BELOW_FLOOR
            backing_bps * mult_bps
              < 10000 * 10000        -> ABOVE_CEILING

The floor check always runs first. A detector instance
is bound to one rule so a pass cannot mix them.

============================================================
"""

import logging
from typing import Optional

from .config import BreachConfig
from .fixed_point import BPS_SCALE, DEFAULT_DECIMALS, apply_bps, fixed_div
from .types import (
    BreachRule,
    BreachState,
    DegenerateInputError,
    DegenerateSupplyError,
    PriceBand,
)


logger = logging.getLogger(__name__)


# ============================================================
# PRICE BAND
# ============================================================

def compute_band(
    reserve_value: int,
    token_supply: int,
    ceiling_multiplier_bps: int,
    decimals: int = DEFAULT_DECIMALS,
) -> PriceBand:
    """
    Compute floor and ceiling prices.

    Args:
        reserve_value: Reserve valuation (fixed point)
        token_supply: Managed token total supply (fixed point)
        ceiling_multiplier_bps: Ceiling multiplier in basis points

    Returns:
        PriceBand

    Raises:
        DegenerateSupplyError: If token_supply is zero
        DegenerateInputError: On negative inputs
    """
    if token_supply == 0:
        raise DegenerateSupplyError("managed token totalSupply is zero")
    if token_supply < 0:
        raise DegenerateInputError(f"negative token supply: {token_supply}")
    if reserve_value < 0:
        raise DegenerateInputError(f"negative reserve value: {reserve_value}")
    if ceiling_multiplier_bps < 0:
        raise DegenerateInputError(
            f"negative ceiling multiplier: {ceiling_multiplier_bps} bps"
        )

    floor = fixed_div(reserve_value, token_supply, decimals)
    ceiling = apply_bps(floor, ceiling_multiplier_bps)
    return PriceBand(floor=floor, ceiling=ceiling)


class PriceBandCalculator:
    """Band computation bound to the engine's fixed-point precision."""

    def __init__(self, decimals: int = DEFAULT_DECIMALS):
        self._decimals = decimals

    def compute_band(
        self,
        reserve_value: int,
        token_supply: int,
        ceiling_multiplier_bps: int,
    ) -> PriceBand:
        return compute_band(
            reserve_value,
            token_supply,
            ceiling_multiplier_bps,
            self._decimals,
        )


# ============================================================
# BREACH DETECTION
# ============================================================

def detect_direct(current_price: int, band: PriceBand) -> BreachState:
    """Classify by comparing the market price with the band edges."""
    if current_price < band.floor:
        return BreachState.BELOW_FLOOR
    if current_price > band.ceiling:
        return BreachState.ABOVE_CEILING
    return BreachState.NO_BREACH


def detect_ratio(backing_ratio_bps: int, ceiling_multiplier_bps: int) -> BreachState:
    """
    Classify from the reserve backing ratio.

    A backing above 100% means the floor has risen above the
    price. A backing times multiplier below 100% means the
    price has outgrown the ceiling.
    """
    if backing_ratio_bps > BPS_SCALE:
        return BreachState.BELOW_FLOOR
    if backing_ratio_bps * ceiling_multiplier_bps < BPS_SCALE * BPS_SCALE:
        return BreachState.ABOVE_CEILING
    return BreachState.NO_BREACH


def detect(
    current_price: int,
    band: PriceBand,
    backing_ratio_bps: Optional[int] = None,
    ceiling_multiplier_bps: Optional[int] = None,
    rule: BreachRule = BreachRule.DIRECT,
) -> BreachState:
    """
    Classify the market price against the band.

    Args:
        current_price: Market price of the managed token (fixed point)
        band: Price band for this pass
        backing_ratio_bps: Reserve backing, required for RATIO
        ceiling_multiplier_bps: Ceiling multiplier, required for RATIO
        rule: Breach rule of the engine

    Returns:
        Exactly one BreachState
    """
    if rule is BreachRule.RATIO:
        if backing_ratio_bps is None or ceiling_multiplier_bps is None:
            raise DegenerateInputError(
                "RATIO breach rule needs backing ratio and ceiling multiplier"
            )
        return detect_ratio(backing_ratio_bps, ceiling_multiplier_bps)
    return detect_direct(current_price, band)


class BreachDetector:
    """Breach classification bound to a single rule."""

    def __init__(self, config: Optional[BreachConfig] = None):
        self._config = config or BreachConfig()

    @property
    def rule(self) -> BreachRule:
        return self._config.rule

    def detect(
        self,
        current_price: int,
        band: PriceBand,
        backing_ratio_bps: Optional[int] = None,
        ceiling_multiplier_bps: Optional[int] = None,
    ) -> BreachState:
        state = detect(
            current_price,
            band,
            backing_ratio_bps,
            ceiling_multiplier_bps,
            rule=self._config.rule,
        )
        logger.debug(f"Breach ({self._config.rule.value}): {state.value}")
        return state
