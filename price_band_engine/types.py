"""
Price Band Engine - Types.

============================================================
PURPOSE
============================================================
All type definitions for the Price Band Engine.

NUMERIC REPRESENTATION:
    All monetary values are integer-scaled fixed point with
    18 decimals (the on-chain "wei" representation).
    Decimal is only used for display and for parsing input.

OWNERSHIP:
    Every value defined here belongs to the single control
    loop pass that created it. Nothing is shared between
    passes.

============================================================
"""

from datetime import datetime
from typing import Optional, Dict, Any, List, Sequence, Tuple
from dataclasses import dataclass, field
from enum import Enum
import uuid


# ============================================================
# BREACH CLASSIFICATION
# ============================================================

class BreachState(Enum):
    """Position of the market price relative to the band."""

    NO_BREACH = "NO_BREACH"
    """Price is inside [floor, ceiling]."""

    BELOW_FLOOR = "BELOW_FLOOR"
    """Price is under the reserve-implied floor."""

    ABOVE_CEILING = "ABOVE_CEILING"
    """Price is over the ceiling."""

    def is_breach(self) -> bool:
        """Check if a corrective trade is required."""
        return self is not BreachState.NO_BREACH


class BreachRule(Enum):
    """Which breach predicate an engine instance uses."""

    DIRECT = "DIRECT"
    """Compare the market price against floor and ceiling."""

    RATIO = "RATIO"
    """Derive the breach from the reserve backing ratio."""


class TradeDirection(Enum):
    """Direction of a corrective trade, from the managed token's side."""

    BUY_MANAGED_TOKEN = "BUY_MANAGED_TOKEN"
    """Pay reference asset, receive managed token."""

    SELL_MANAGED_TOKEN = "SELL_MANAGED_TOKEN"
    """Pay managed token, receive reference asset."""

    @property
    def is_buying(self) -> bool:
        return self is TradeDirection.BUY_MANAGED_TOKEN


class SwapKind(Enum):
    """Call shape of a batch swap."""

    GIVEN_OUT = "GIVEN_OUT"
    """Exact output amount, input solved by the vault."""

    GIVEN_IN = "GIVEN_IN"
    """Exact input amount, output solved by the vault."""


# ============================================================
# CONTROL LOOP PASS STATES
# ============================================================

class PassState(Enum):
    """
    Control loop pass state.

    State Machine:

    IDLE
      │
      ▼
    FETCHING ──────────────────────┐
      │                            │
      ▼                            │
    DECIDING ──► NO_ACTION ──┐     │
      │                      │     │
      ▼                      │     │
    GRANTING_ALLOWANCES ─────┼─────┤
      │                      │     │
      ▼                      │     ▼
    SWAPPING ────────────────┼──► FAILED
      │                      │
      ▼                      │
    REPORTED ──────────────► DONE
    """

    IDLE = "IDLE"
    """Pass created, nothing done yet."""

    FETCHING = "FETCHING"
    """Reading reserve, supply and multiplier."""

    DECIDING = "DECIDING"
    """Computing band and breach classification."""

    NO_ACTION = "NO_ACTION"
    """Price inside the band, nothing to submit."""

    GRANTING_ALLOWANCES = "GRANTING_ALLOWANCES"
    """Submitting the two allowance grants."""

    SWAPPING = "SWAPPING"
    """Submitting the swap instruction."""

    REPORTED = "REPORTED"
    """Swap accepted and outcome logged."""

    DONE = "DONE"
    """Pass completed."""

    FAILED = "FAILED"
    """Pass aborted by an error."""

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in {PassState.DONE, PassState.FAILED}


class PassResultCode(Enum):
    """Outcome of a control loop pass."""

    NO_ACTION = "NO_ACTION"
    """Price inside the band."""

    BOUGHT = "BOUGHT"
    """Managed token bought below floor."""

    SOLD = "SOLD"
    """Managed token sold above ceiling."""

    FAILED = "FAILED"
    """Pass failed, see error code."""


# ============================================================
# SNAPSHOTS AND DERIVED VALUES
# ============================================================

@dataclass(frozen=True)
class ReserveStatus:
    """Reserve snapshot read once per pass."""

    total_reserve_value: int
    """Total reserve valuation in the reference asset (18 decimals)."""

    backing_ratio_bps: int
    """Reserve backing of the token supply in basis points."""


@dataclass(frozen=True)
class PriceBand:
    """Floor and ceiling price, both 18-decimal fixed point."""

    floor: int
    ceiling: int

    def contains(self, price: int) -> bool:
        return self.floor <= price <= self.ceiling


@dataclass(frozen=True)
class CorrectiveTrade:
    """Trade that moves the price back toward the band."""

    direction: TradeDirection
    """Buy or sell the managed token."""

    amount: int
    """Managed token amount (18 decimals). Always the exact leg."""

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Trade amount must be positive, got {self.amount}")

    @property
    def is_buying(self) -> bool:
        return self.direction.is_buying


@dataclass(frozen=True)
class AllowanceGrant:
    """Permission for a spender to move an asset out of the owner's balance."""

    owner: str
    """Relay identity address."""

    spender: str
    """Counterparty address."""

    asset: str
    """Token address."""

    amount: int
    """Allowance in token units (18 decimals)."""


# ============================================================
# SWAP INSTRUCTION
# ============================================================

@dataclass(frozen=True)
class BatchSwapStep:
    """One hop of a vault batch swap."""

    pool_id: bytes
    asset_in_index: int
    asset_out_index: int
    amount: int
    user_data: str = "0x"


@dataclass(frozen=True)
class FundManagement:
    """Where the vault takes funds from and sends them to."""

    sender: str
    recipient: str
    from_internal_balance: bool = False
    to_internal_balance: bool = False


@dataclass(frozen=True)
class SwapInstruction:
    """
    Fully specified swap, constructed fresh per trade.

    assets[0] is always the asset paid in, assets[1] the asset
    paid out. The managed token amount is the exact leg.
    """

    kind: SwapKind
    pool_id: bytes
    asset_in: str
    asset_out: str
    amount_specified: int
    funds: FundManagement
    limits: Tuple[int, ...]
    deadline: int
    """Unix timestamp after which the vault must reject the swap."""

    min_amount_out: Optional[int] = None
    """Only set for GIVEN_IN swaps."""

    @property
    def assets(self) -> List[str]:
        return [self.asset_in, self.asset_out]

    @property
    def steps(self) -> List[BatchSwapStep]:
        return [
            BatchSwapStep(
                pool_id=self.pool_id,
                asset_in_index=0,
                asset_out_index=1,
                amount=self.amount_specified,
            )
        ]


# ============================================================
# REMOTE RESULTS
# ============================================================

@dataclass
class TransactionReceipt:
    """Normalized result of a submitted transaction."""

    tx_hash: str
    """Transaction hash (0x-prefixed hex)."""

    status: int = 1
    """1 on success, 0 on revert."""

    block_number: Optional[int] = None
    """Block the transaction was mined in."""

    raw: Dict[str, Any] = field(default_factory=dict)
    """Raw node receipt."""

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass
class PassResult:
    """Outcome of one control loop pass. Returned, never raised."""

    pass_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Unique pass ID."""

    state: PassState = PassState.IDLE
    """Final pass state."""

    result_code: Optional[PassResultCode] = None
    """Outcome code."""

    current_price: Optional[int] = None
    """Price the pass was invoked with."""

    reserve: Optional[ReserveStatus] = None
    band: Optional[PriceBand] = None
    breach: Optional[BreachState] = None
    trade: Optional[CorrectiveTrade] = None
    grants: List[AllowanceGrant] = field(default_factory=list)
    receipt: Optional[TransactionReceipt] = None

    # Error info
    error_code: Optional[str] = None
    """Registry error code if failed."""

    error_message: Optional[str] = None
    """Exception detail if failed."""

    # Timestamps
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    history: List[Any] = field(default_factory=list)
    """State transition events."""

    @property
    def success(self) -> bool:
        return self.state == PassState.DONE

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "pass_id": self.pass_id,
            "state": self.state.value,
            "result_code": self.result_code.value if self.result_code else None,
            "breach": self.breach.value if self.breach else None,
            "floor": self.band.floor if self.band else None,
            "ceiling": self.band.ceiling if self.band else None,
            "trade_direction": self.trade.direction.value if self.trade else None,
            "trade_amount": self.trade.amount if self.trade else None,
            "tx_hash": self.receipt.tx_hash if self.receipt else None,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "duration_seconds": self.duration_seconds,
        }


# ============================================================
# EXCEPTIONS
# ============================================================

class PriceBandEngineError(Exception):
    """Base exception for the Price Band Engine."""
    pass


class DegenerateInputError(PriceBandEngineError):
    """Input makes a ratio undefined (zero divisor, negative value)."""
    pass


class DegenerateSupplyError(DegenerateInputError):
    """Managed token total supply is zero."""
    pass


class NegativeTradeAmountError(PriceBandEngineError):
    """Sizing produced a negative difference; band and breach disagree."""
    pass


class RemoteReadError(PriceBandEngineError):
    """A remote read failed before any decision was made."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.original_error = original_error


class AllowanceGrantError(PriceBandEngineError):
    """One or both allowance grants failed."""

    def __init__(
        self,
        message: str,
        failed_spenders: Sequence[str] = (),
        errors: Sequence[BaseException] = (),
    ):
        super().__init__(message)
        self.failed_spenders = list(failed_spenders)
        self.errors = list(errors)


class SwapRejectedError(PriceBandEngineError):
    """The vault rejected or reverted the swap."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.original_error = original_error
