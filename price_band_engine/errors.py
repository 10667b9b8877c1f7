"""
Price Band Engine - Error Taxonomy.

============================================================
PURPOSE
============================================================
Classification of control loop failures.

ERROR CATEGORIES:
1. Input Errors - Undefined ratios (zero supply, bad price)
2. Decision Errors - Band and breach disagree
3. Read Errors - Remote state could not be fetched
4. Authorization Errors - Allowance grant failed
5. Swap Errors - Vault rejected the swap
6. Internal Errors - Anything unexpected

Every failure is fatal to its pass and never retried
within the pass. The next scheduled pass starts fresh.

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Set

from .types import (
    AllowanceGrantError,
    DegenerateInputError,
    DegenerateSupplyError,
    NegativeTradeAmountError,
    RemoteReadError,
    SwapRejectedError,
)


# ============================================================
# ERROR CATEGORIES
# ============================================================

class ErrorCategory(Enum):
    """Error category classification."""

    INPUT = "INPUT"
    """Degenerate input."""

    DECISION = "DECISION"
    """Inconsistent decision inputs."""

    READ = "READ"
    """Remote read failed."""

    AUTHORIZATION = "AUTHORIZATION"
    """Allowance grant failed."""

    SWAP = "SWAP"
    """Swap rejected or reverted."""

    INTERNAL = "INTERNAL"
    """Internal system error."""


class ErrorSeverity(Enum):
    """Error severity levels."""

    WARNING = "WARNING"
    """Non-critical, informational."""

    ERROR = "ERROR"
    """Standard error, needs attention."""

    CRITICAL = "CRITICAL"
    """Funds or authorization may be in an unexpected state."""


# ============================================================
# ERROR CODE REGISTRY
# ============================================================

@dataclass(frozen=True)
class ErrorCodeInfo:
    """Information about an error code."""

    code: str
    """Error code."""

    category: ErrorCategory
    """Error category."""

    severity: ErrorSeverity
    """Error severity."""

    description: str
    """Human-readable description."""

    recommended_action: str
    """Recommended action to take."""


ERROR_CODES: Dict[str, ErrorCodeInfo] = {
    "INP_ZERO_SUPPLY": ErrorCodeInfo(
        code="INP_ZERO_SUPPLY",
        category=ErrorCategory.INPUT,
        severity=ErrorSeverity.ERROR,
        description="Managed token total supply is zero",
        recommended_action="Check the token contract address and supply",
    ),
    "INP_DEGENERATE": ErrorCodeInfo(
        code="INP_DEGENERATE",
        category=ErrorCategory.INPUT,
        severity=ErrorSeverity.ERROR,
        description="Input makes the band or trade size undefined",
        recommended_action="Check price input and reserve state",
    ),
    "DEC_NEGATIVE_TRADE": ErrorCodeInfo(
        code="DEC_NEGATIVE_TRADE",
        category=ErrorCategory.DECISION,
        severity=ErrorSeverity.CRITICAL,
        description="Trade sizing disagrees with breach classification",
        recommended_action="Investigate breach rule and band inputs",
    ),
    "READ_FAILED": ErrorCodeInfo(
        code="READ_FAILED",
        category=ErrorCategory.READ,
        severity=ErrorSeverity.WARNING,
        description="Remote read failed before any decision",
        recommended_action="Check RPC connectivity; next pass retries",
    ),
    "AUTH_GRANT_FAILED": ErrorCodeInfo(
        code="AUTH_GRANT_FAILED",
        category=ErrorCategory.AUTHORIZATION,
        severity=ErrorSeverity.CRITICAL,
        description="Allowance grant failed, swap not attempted",
        recommended_action="Check relay balance and gas; partial grants are not rolled back",
    ),
    "SWAP_REJECTED": ErrorCodeInfo(
        code="SWAP_REJECTED",
        category=ErrorCategory.SWAP,
        severity=ErrorSeverity.CRITICAL,
        description="Vault rejected the swap (slippage, deadline, balance)",
        recommended_action="Review limits and relay balances",
    ),
    "INT_UNEXPECTED_ERROR": ErrorCodeInfo(
        code="INT_UNEXPECTED_ERROR",
        category=ErrorCategory.INTERNAL,
        severity=ErrorSeverity.ERROR,
        description="Unexpected internal error",
        recommended_action="Investigate error logs",
    ),
}


# Most specific class first
_EXCEPTION_CODES = (
    (DegenerateSupplyError, "INP_ZERO_SUPPLY"),
    (DegenerateInputError, "INP_DEGENERATE"),
    (NegativeTradeAmountError, "DEC_NEGATIVE_TRADE"),
    (RemoteReadError, "READ_FAILED"),
    (AllowanceGrantError, "AUTH_GRANT_FAILED"),
    (SwapRejectedError, "SWAP_REJECTED"),
)


def classify_exception(exc: BaseException) -> str:
    """
    Map an exception to its error code.

    Args:
        exc: Exception raised during a pass

    Returns:
        Registry error code
    """
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return code
    return "INT_UNEXPECTED_ERROR"


def get_error_info(code: str) -> ErrorCodeInfo:
    """
    Get error info for a code.

    Args:
        code: Error code

    Returns:
        ErrorCodeInfo or default unknown error
    """
    return ERROR_CODES.get(code, ErrorCodeInfo(
        code=code,
        category=ErrorCategory.INTERNAL,
        severity=ErrorSeverity.ERROR,
        description=f"Unknown error: {code}",
        recommended_action="Investigate error",
    ))


def is_critical(code: str) -> bool:
    """Check if an error code is critical."""
    return get_error_info(code).severity == ErrorSeverity.CRITICAL


CRITICAL_ERROR_CODES: Set[str] = {
    code for code, info in ERROR_CODES.items()
    if info.severity == ErrorSeverity.CRITICAL
}
