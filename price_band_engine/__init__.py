"""
Price Band Engine Package.

============================================================
PURPOSE
============================================================
Keeps a reserve-backed token's market price inside a band
derived from its reserve.

    floor   = reserve value / token supply
    ceiling = floor * multiplier

Below the floor the relay buys the token, above the
ceiling it sells. Each correction is one swap preceded by
two concurrent allowance grants.

AUTHORITY BOUNDARIES:
    CAN:
        - Read reserve, supply and multiplier
        - Grant allowances to the pool and the vault
        - Submit one corrective swap per pass

    MUST NOT:
        - Retry within a pass
        - Roll back partial grants
        - Schedule itself

============================================================
MODULES
============================================================
- types: States, snapshots, swap instructions, exceptions
- fixed_point: 18-decimal integer arithmetic
- config: Engine configuration
- errors: Error taxonomy and codes
- pricing: Band computation and breach detection
- sizing: Corrective trade sizing
- allowance: Concurrent allowance grants
- swap_executor: Swap instruction build and submit
- state_machine: Pass lifecycle
- driver: Control loop pass
- adapters: Web3 and mock collaborators
- cli: Single-pass command line

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    # Enums
    BreachState,
    BreachRule,
    TradeDirection,
    SwapKind,
    PassState,
    PassResultCode,
    # Dataclasses
    ReserveStatus,
    PriceBand,
    CorrectiveTrade,
    AllowanceGrant,
    BatchSwapStep,
    FundManagement,
    SwapInstruction,
    TransactionReceipt,
    PassResult,
    # Exceptions
    PriceBandEngineError,
    DegenerateInputError,
    DegenerateSupplyError,
    NegativeTradeAmountError,
    RemoteReadError,
    AllowanceGrantError,
    SwapRejectedError,
)

# ============================================================
# FIXED POINT
# ============================================================
from .fixed_point import (
    DEFAULT_DECIMALS,
    ONE,
    BPS_SCALE,
    to_fixed,
    from_fixed,
    format_fixed,
    fixed_div,
    fixed_mul,
    apply_bps,
)

# ============================================================
# CONFIGURATION
# ============================================================
from .config import (
    BreachConfig,
    SizingConfig,
    SwapConfig,
    ContractsConfig,
    EngineConfig,
)

# ============================================================
# ERRORS
# ============================================================
from .errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorCodeInfo,
    ERROR_CODES,
    CRITICAL_ERROR_CODES,
    classify_exception,
    get_error_info,
    is_critical,
)

# ============================================================
# CORE
# ============================================================
from .pricing import (
    PriceBandCalculator,
    BreachDetector,
    compute_band,
    detect,
)
from .sizing import TradeSizer
from .allowance import AllowanceOrchestrator
from .swap_executor import SwapAssets, SwapExecutor
from .state_machine import (
    VALID_TRANSITIONS,
    StateTransitionEvent,
    TransitionGuard,
    PassStateMachine,
)
from .driver import ControlLoopDriver, create_driver


# ============================================================
# VERSION
# ============================================================
__version__ = "0.1.0"


# ============================================================
# ALL EXPORTS
# ============================================================
__all__ = [
    # Types
    "BreachState",
    "BreachRule",
    "TradeDirection",
    "SwapKind",
    "PassState",
    "PassResultCode",
    "ReserveStatus",
    "PriceBand",
    "CorrectiveTrade",
    "AllowanceGrant",
    "BatchSwapStep",
    "FundManagement",
    "SwapInstruction",
    "TransactionReceipt",
    "PassResult",
    "PriceBandEngineError",
    "DegenerateInputError",
    "DegenerateSupplyError",
    "NegativeTradeAmountError",
    "RemoteReadError",
    "AllowanceGrantError",
    "SwapRejectedError",
    # Fixed point
    "DEFAULT_DECIMALS",
    "ONE",
    "BPS_SCALE",
    "to_fixed",
    "from_fixed",
    "format_fixed",
    "fixed_div",
    "fixed_mul",
    "apply_bps",
    # Config
    "BreachConfig",
    "SizingConfig",
    "SwapConfig",
    "ContractsConfig",
    "EngineConfig",
    # Errors
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCodeInfo",
    "ERROR_CODES",
    "CRITICAL_ERROR_CODES",
    "classify_exception",
    "get_error_info",
    "is_critical",
    # Core
    "PriceBandCalculator",
    "BreachDetector",
    "compute_band",
    "detect",
    "TradeSizer",
    "AllowanceOrchestrator",
    "SwapAssets",
    "SwapExecutor",
    "VALID_TRANSITIONS",
    "StateTransitionEvent",
    "TransitionGuard",
    "PassStateMachine",
    "ControlLoopDriver",
    "create_driver",
]
