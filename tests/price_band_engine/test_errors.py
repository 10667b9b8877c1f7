"""
Error Taxonomy Tests.
"""

import pytest

from price_band_engine.errors import (
    CRITICAL_ERROR_CODES,
    ERROR_CODES,
    ErrorCategory,
    ErrorSeverity,
    classify_exception,
    get_error_info,
    is_critical,
)
from price_band_engine.types import (
    AllowanceGrantError,
    DegenerateInputError,
    DegenerateSupplyError,
    NegativeTradeAmountError,
    PriceBandEngineError,
    RemoteReadError,
    SwapRejectedError,
)


class TestClassification:
    """Exceptions map to registry codes."""

    @pytest.mark.parametrize("exc, code", [
        (DegenerateSupplyError("zero"), "INP_ZERO_SUPPLY"),
        (DegenerateInputError("bad"), "INP_DEGENERATE"),
        (NegativeTradeAmountError("neg"), "DEC_NEGATIVE_TRADE"),
        (RemoteReadError("read", "reserveStatus"), "READ_FAILED"),
        (AllowanceGrantError("grant"), "AUTH_GRANT_FAILED"),
        (SwapRejectedError("swap"), "SWAP_REJECTED"),
        (RuntimeError("other"), "INT_UNEXPECTED_ERROR"),
        (PriceBandEngineError("base"), "INT_UNEXPECTED_ERROR"),
    ])
    def test_classify(self, exc, code):
        """Most specific code wins."""
        assert classify_exception(exc) == code

    def test_all_codes_registered(self):
        """Every classified code has registry info."""
        for code in (
            "INP_ZERO_SUPPLY",
            "INP_DEGENERATE",
            "DEC_NEGATIVE_TRADE",
            "READ_FAILED",
            "AUTH_GRANT_FAILED",
            "SWAP_REJECTED",
            "INT_UNEXPECTED_ERROR",
        ):
            assert code in ERROR_CODES
            assert ERROR_CODES[code].code == code


class TestRegistry:
    """Registry lookups."""

    def test_categories(self):
        """Codes carry their category."""
        assert get_error_info("READ_FAILED").category is ErrorCategory.READ
        assert get_error_info("AUTH_GRANT_FAILED").category is ErrorCategory.AUTHORIZATION
        assert get_error_info("SWAP_REJECTED").category is ErrorCategory.SWAP

    def test_unknown_code(self):
        """Unknown codes fall back to an internal error."""
        info = get_error_info("NOPE")
        assert info.category is ErrorCategory.INTERNAL
        assert info.severity is ErrorSeverity.ERROR

    def test_critical_codes(self):
        """Write-path failures are critical, reads are not."""
        assert is_critical("AUTH_GRANT_FAILED")
        assert is_critical("SWAP_REJECTED")
        assert is_critical("DEC_NEGATIVE_TRADE")
        assert not is_critical("READ_FAILED")
        assert CRITICAL_ERROR_CODES == {
            "AUTH_GRANT_FAILED",
            "SWAP_REJECTED",
            "DEC_NEGATIVE_TRADE",
        }


class TestExceptionDetails:
    """Exceptions keep their context."""

    def test_remote_read_error(self):
        """Operation and cause are kept."""
        cause = ConnectionError("timeout")
        error = RemoteReadError("failed", "totalSupply", cause)
        assert error.operation == "totalSupply"
        assert error.original_error is cause

    def test_allowance_grant_error(self):
        """Failed spenders are listed."""
        error = AllowanceGrantError("x", failed_spenders=("0xPool",), errors=(ValueError(),))
        assert error.failed_spenders == ["0xPool"]
        assert len(error.errors) == 1

    def test_swap_rejected_error(self):
        """The tx hash is kept when known."""
        assert SwapRejectedError("x", tx_hash="0x1").tx_hash == "0x1"
