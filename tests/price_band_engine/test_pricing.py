"""
Band Pricing and Breach Detection Tests.
"""

import pytest

from price_band_engine.config import BreachConfig
from price_band_engine.fixed_point import ONE, to_fixed
from price_band_engine.pricing import (
    BreachDetector,
    PriceBandCalculator,
    compute_band,
    detect,
    detect_direct,
    detect_ratio,
)
from price_band_engine.types import (
    BreachRule,
    BreachState,
    DegenerateInputError,
    DegenerateSupplyError,
    PriceBand,
)


# ============================================================
# PRICE BAND TESTS
# ============================================================

class TestComputeBand:
    """Tests for floor and ceiling computation."""

    def test_floor_is_reserve_over_supply(self):
        """1M reserve over 2M supply is a 0.5 floor."""
        band = compute_band(1_000_000 * ONE, 2_000_000 * ONE, 15_000)
        assert band.floor == ONE // 2
        assert band.ceiling == to_fixed("0.75")

    def test_ceiling_never_below_floor_for_multiplier_at_least_one(self):
        """A multiplier of 10000 bps collapses the band to a point."""
        band = compute_band(3 * ONE, 7 * ONE, 10_000)
        assert band.ceiling == band.floor

    @pytest.mark.parametrize("reserve,supply", [
        (1_000_000 * ONE, 2_000_000 * ONE),
        (ONE, 3 * ONE),
        (7, 3),
        (123_456_789 * ONE + 1, 987_654_321),
        (0, ONE),
    ])
    @pytest.mark.parametrize("multiplier", [10_000, 10_001, 15_000, 20_000, 99_999])
    def test_ceiling_at_least_floor(self, reserve, supply, multiplier):
        """Any multiplier of at least 10000 bps keeps the ceiling above the floor."""
        band = compute_band(reserve, supply, multiplier)
        assert band.ceiling >= band.floor

    @pytest.mark.parametrize("reserve,supply,multiplier", [
        (1_000_000 * ONE, 2_000_000 * ONE, 15_000),
        (ONE, 3 * ONE, 12_345),
        (10 ** 30 + 17, 10 ** 25 - 3, 10_000),
    ])
    def test_repeated_inputs_give_identical_bands(self, reserve, supply, multiplier):
        """Identical inputs never drift across repeated computations."""
        calculator = PriceBandCalculator()
        first = calculator.compute_band(reserve, supply, multiplier)
        for _ in range(50):
            assert calculator.compute_band(reserve, supply, multiplier) == first
            assert compute_band(reserve, supply, multiplier) == first

    def test_floor_truncates(self):
        """Non-terminating floors truncate at 18 decimals."""
        band = compute_band(ONE, 3 * ONE, 10_000)
        assert band.floor == 333_333_333_333_333_333

    def test_zero_supply_raises(self):
        """Zero supply is a degenerate supply error."""
        with pytest.raises(DegenerateSupplyError):
            compute_band(ONE, 0, 15_000)

    def test_zero_supply_is_degenerate_input(self):
        """DegenerateSupplyError is a DegenerateInputError."""
        with pytest.raises(DegenerateInputError):
            compute_band(ONE, 0, 15_000)

    def test_negative_inputs_raise(self):
        """Negative reserve, supply or multiplier are rejected."""
        with pytest.raises(DegenerateInputError):
            compute_band(-ONE, ONE, 15_000)
        with pytest.raises(DegenerateInputError):
            compute_band(ONE, -ONE, 15_000)
        with pytest.raises(DegenerateInputError):
            compute_band(ONE, ONE, -1)

    def test_zero_reserve_gives_zero_band(self):
        """An empty reserve gives a zero floor and ceiling."""
        band = compute_band(0, ONE, 15_000)
        assert band == PriceBand(floor=0, ceiling=0)

    def test_band_contains_edges(self):
        """The band is closed on both ends."""
        band = compute_band(1_000_000 * ONE, 2_000_000 * ONE, 15_000)
        assert band.contains(band.floor)
        assert band.contains(band.ceiling)
        assert not band.contains(band.floor - 1)
        assert not band.contains(band.ceiling + 1)

    def test_calculator_delegates(self):
        """The calculator computes the same band."""
        calculator = PriceBandCalculator()
        assert calculator.compute_band(1_000_000 * ONE, 2_000_000 * ONE, 15_000) == (
            compute_band(1_000_000 * ONE, 2_000_000 * ONE, 15_000)
        )


# ============================================================
# DIRECT RULE TESTS
# ============================================================

class TestDirectRule:
    """Tests for the price comparison rule."""

    band = PriceBand(floor=ONE // 2, ceiling=to_fixed("0.75"))

    def test_below_floor(self):
        """Price under the floor."""
        assert detect_direct(to_fixed("0.4"), self.band) is BreachState.BELOW_FLOOR

    def test_above_ceiling(self):
        """Price over the ceiling."""
        assert detect_direct(to_fixed("0.9"), self.band) is BreachState.ABOVE_CEILING

    def test_inside_band(self):
        """Price strictly inside."""
        assert detect_direct(to_fixed("0.6"), self.band) is BreachState.NO_BREACH

    def test_edges_are_inside(self):
        """Price equal to floor or ceiling is not a breach."""
        assert detect_direct(self.band.floor, self.band) is BreachState.NO_BREACH
        assert detect_direct(self.band.ceiling, self.band) is BreachState.NO_BREACH

    def test_floor_checked_first_on_inverted_band(self):
        """If floor > ceiling the floor check wins."""
        inverted = PriceBand(floor=ONE, ceiling=ONE // 2)
        assert detect_direct(to_fixed("0.7"), inverted) is BreachState.BELOW_FLOOR

    def test_zero_price_is_below_floor(self):
        """A zero price breaches any positive floor."""
        assert detect_direct(0, self.band) is BreachState.BELOW_FLOOR


# ============================================================
# RATIO RULE TESTS
# ============================================================

class TestRatioRule:
    """Tests for the backing ratio rule."""

    def test_over_collateralized_is_below_floor(self):
        """Backing above 100% means price fell under the floor."""
        assert detect_ratio(10_001, 15_000) is BreachState.BELOW_FLOOR

    def test_under_backed_times_multiplier_is_above_ceiling(self):
        """backing * multiplier below 100% means price outgrew the ceiling."""
        assert detect_ratio(6_000, 15_000) is BreachState.ABOVE_CEILING

    def test_inside_band(self):
        """Backing between 1/multiplier and 100%."""
        assert detect_ratio(10_000, 15_000) is BreachState.NO_BREACH
        assert detect_ratio(7_000, 15_000) is BreachState.NO_BREACH

    def test_boundary_is_inside(self):
        """backing * multiplier exactly 100% is not a breach."""
        assert detect_ratio(5_000, 20_000) is BreachState.NO_BREACH

    def test_floor_checked_first(self):
        """Backing above 100% wins even with a zero multiplier."""
        assert detect_ratio(12_000, 0) is BreachState.BELOW_FLOOR

    def test_detect_ratio_ignores_price(self):
        """The ratio rule does not look at the market price."""
        band = PriceBand(floor=ONE // 2, ceiling=to_fixed("0.75"))
        state = detect(
            to_fixed("0.4"),
            band,
            backing_ratio_bps=10_000,
            ceiling_multiplier_bps=15_000,
            rule=BreachRule.RATIO,
        )
        assert state is BreachState.NO_BREACH

    def test_detect_ratio_requires_inputs(self):
        """RATIO without backing or multiplier is degenerate."""
        band = PriceBand(floor=ONE // 2, ceiling=to_fixed("0.75"))
        with pytest.raises(DegenerateInputError):
            detect(to_fixed("0.4"), band, rule=BreachRule.RATIO)


# ============================================================
# DETECTOR TESTS
# ============================================================

class TestBreachDetector:
    """Tests for the rule-bound detector."""

    band = PriceBand(floor=ONE // 2, ceiling=to_fixed("0.75"))

    def test_default_rule_is_direct(self):
        """Engines compare prices unless configured otherwise."""
        detector = BreachDetector()
        assert detector.rule is BreachRule.DIRECT
        assert detector.detect(to_fixed("0.4"), self.band) is BreachState.BELOW_FLOOR

    def test_configured_ratio_rule(self):
        """A RATIO detector uses the backing ratio."""
        detector = BreachDetector(BreachConfig(rule=BreachRule.RATIO))
        state = detector.detect(
            to_fixed("0.6"),
            self.band,
            backing_ratio_bps=11_000,
            ceiling_multiplier_bps=15_000,
        )
        assert state is BreachState.BELOW_FLOOR

    def test_exactly_one_state(self):
        """Every price maps to exactly one state."""
        detector = BreachDetector()
        for text in ("0", "0.1", "0.5", "0.6", "0.75", "0.76", "5"):
            state = detector.detect(to_fixed(text), self.band)
            assert isinstance(state, BreachState)
