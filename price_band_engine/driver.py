"""
Price Band Engine - Control Loop Driver.

============================================================
PURPOSE
============================================================
Runs one control loop pass end to end.

It receives the current market price from the scheduler,
reads reserve state, decides and, when the band is
breached, corrects the price with one swap.

============================================================
PASS WORKFLOW
============================================================
1. FETCHING   read reserve status, token supply and
              ceiling multiplier
2. DECIDING   compute the band, classify the price
3. NO_ACTION  price inside the band, stop
4. GRANTING   size the trade, grant both counterparties
5. SWAPPING   submit the swap through the proxy pool
6. REPORTED   log the accepted swap

Every failure ends the pass in FAILED. The pass result is
returned, never raised, so the scheduler keeps running.

============================================================
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from .adapters.base import Counterparty, Pool, RelayIdentity, ReserveReader, Token
from .allowance import AllowanceOrchestrator
from .config import EngineConfig
from .errors import classify_exception, get_error_info, ErrorSeverity
from .fixed_point import format_fixed
from .pricing import BreachDetector, PriceBandCalculator
from .sizing import TradeSizer
from .state_machine import PassStateMachine
from .swap_executor import SwapAssets, SwapExecutor
from .types import (
    BreachState,
    PassResult,
    PassResultCode,
)


logger = logging.getLogger(__name__)


# ============================================================
# CONTROL LOOP DRIVER
# ============================================================

class ControlLoopDriver:
    """
    Control loop pass driver.

    AUTHORITY BOUNDARIES:
    - CAN: Read reserve state, grant allowances, submit one swap
    - MUST NOT: Retry a failed step within the pass
    - MUST NOT: Roll back a partial allowance grant
    - MUST NOT: Schedule itself
    """

    def __init__(
        self,
        config: EngineConfig,
        reserve: ReserveReader,
        managed_token: Token,
        reference_token: Token,
        pool: Pool,
        vault: Counterparty,
        clock: Optional[Callable[[], float]] = None,
        on_pass_complete: Optional[Callable[[PassResult], Awaitable[None]]] = None,
    ):
        """
        Initialize the driver.

        Args:
            config: Engine configuration
            reserve: Reserve contract
            managed_token: Managed token contract
            reference_token: Reference asset contract
            pool: Proxy pool contract
            vault: Vault counterparty
            clock: Time source for swap deadlines
            on_pass_complete: Callback with every finished pass
        """
        self._config = config
        self._reserve = reserve
        self._managed = managed_token
        self._reference = reference_token
        self._pool = pool
        self._vault = vault
        self._clock = clock or time.time
        self._on_pass_complete = on_pass_complete
        self._service = config.service_name

        self._calculator = PriceBandCalculator(config.fixed_point_decimals)
        self._detector = BreachDetector(config.breach)
        self._sizer = TradeSizer(config.sizing, config.fixed_point_decimals)
        self._orchestrator = AllowanceOrchestrator(
            managed_token,
            reference_token,
            service_name=self._service,
        )
        self._executor = SwapExecutor(
            config.swap,
            clock=self._clock,
            service_name=self._service,
        )

        # Statistics
        self._stats = {
            "total_passes": 0,
            "no_action": 0,
            "bought": 0,
            "sold": 0,
            "failed": 0,
        }

    @property
    def config(self) -> EngineConfig:
        return self._config

    def get_statistics(self) -> Dict[str, int]:
        """Get pass statistics."""
        return dict(self._stats)

    # --------------------------------------------------------
    # PASS
    # --------------------------------------------------------

    async def run_control_loop_pass(
        self,
        current_price: int,
        relay: RelayIdentity,
    ) -> PassResult:
        """
        Run one control loop pass.

        Args:
            current_price: Market price of the managed token (fixed point)
            relay: Relay identity that owns funds and signs

        Returns:
            PassResult (never raises for pass failures)
        """
        self._stats["total_passes"] += 1
        machine = PassStateMachine(PassResult(current_price=current_price))
        result = machine.result

        logger.info(f"[{self._service}] executing...")
        logger.info(f"[{self._service}] proxy pool: {self._pool.address}")

        try:
            await self._run(machine, current_price, relay)
        except Exception as e:
            self._fail(machine, e)

        self._count(result)
        await self._notify(result)
        return result

    async def _run(
        self,
        machine: PassStateMachine,
        current_price: int,
        relay: RelayIdentity,
    ) -> None:
        result = machine.result

        # Inputs
        machine.mark_fetching()
        reserve = await self._reserve.reserve_status()
        supply = await self._managed.total_supply()
        multiplier = await self._pool.ceiling_multiplier_bps()
        result.reserve = reserve

        # Decision
        machine.mark_deciding()
        band = self._calculator.compute_band(
            reserve.total_reserve_value, supply, multiplier
        )
        result.band = band
        logger.info(f"[{self._service}] reserve floor: {format_fixed(band.floor)}")
        logger.info(f"[{self._service}] reserve ceiling: {format_fixed(band.ceiling)}")

        breach = self._detector.detect(
            current_price,
            band,
            backing_ratio_bps=reserve.backing_ratio_bps,
            ceiling_multiplier_bps=multiplier,
        )
        result.breach = breach

        if not breach.is_breach():
            logger.info(
                f"[{self._service}] price {format_fixed(current_price)} inside band, "
                f"no action"
            )
            result.result_code = PassResultCode.NO_ACTION
            machine.mark_no_action()
            machine.mark_done()
            return

        price = format_fixed(current_price)
        if breach is BreachState.BELOW_FLOOR:
            logger.info(
                f"[{self._service}] price {price} is below the floor "
                f"{format_fixed(band.floor)}"
            )
        else:
            logger.info(
                f"[{self._service}] price {price} is above the ceiling "
                f"{format_fixed(band.ceiling)}"
            )

        # Correction
        result.trade = self._sizer.size(breach, current_price, band)
        machine.mark_granting()

        result.grants = await self._orchestrator.grant(
            result.trade,
            relay,
            (self._pool.address, self._vault.address),
        )
        machine.mark_swapping()

        assets = SwapAssets(
            managed=self._managed.address,
            reference=self._reference.address,
            managed_symbol=self._managed.symbol,
            reference_symbol=self._reference.symbol,
        )
        result.receipt = await self._executor.execute(
            result.trade, self._pool, assets, relay
        )
        machine.mark_reported()

        amount = format_fixed(result.trade.amount)
        if result.trade.is_buying:
            result.result_code = PassResultCode.BOUGHT
            logger.info(
                f"[{self._service}] Bought {amount} {assets.managed_symbol} "
                f"with {assets.reference_symbol}, tx hash: {result.receipt.tx_hash}"
            )
        else:
            result.result_code = PassResultCode.SOLD
            logger.info(
                f"[{self._service}] Sold {amount} {assets.managed_symbol} "
                f"for {assets.reference_symbol}, tx hash: {result.receipt.tx_hash}"
            )
        machine.mark_done()

    # --------------------------------------------------------
    # OUTCOME
    # --------------------------------------------------------

    def _fail(self, machine: PassStateMachine, error: Exception) -> None:
        code = classify_exception(error)
        info = get_error_info(code)
        result = machine.result
        stage = result.state.value

        log_func = {
            ErrorSeverity.WARNING: logger.warning,
            ErrorSeverity.ERROR: logger.error,
            ErrorSeverity.CRITICAL: logger.critical,
        }.get(info.severity, logger.error)
        log_func(
            f"[{self._service}] pass failed in {stage} [{code}]: {error}",
            exc_info=code == "INT_UNEXPECTED_ERROR",
        )

        result.result_code = PassResultCode.FAILED
        machine.mark_failed(
            reason=f"{info.description} during {stage}",
            error_code=code,
            error=str(error),
        )

    def _count(self, result: PassResult) -> None:
        key = {
            PassResultCode.NO_ACTION: "no_action",
            PassResultCode.BOUGHT: "bought",
            PassResultCode.SOLD: "sold",
        }.get(result.result_code, "failed")
        self._stats[key] += 1

    async def _notify(self, result: PassResult) -> None:
        if self._on_pass_complete is None:
            return
        try:
            await self._on_pass_complete(result)
        except Exception as e:
            logger.error(f"[{self._service}] pass callback error: {e}")


def create_driver(
    config: EngineConfig,
    deployment: Any,
    clock: Optional[Callable[[], float]] = None,
) -> ControlLoopDriver:
    """
    Wire a driver to a mock or web3 deployment.

    Args:
        config: Engine configuration
        deployment: MockDeployment or Web3Deployment
        clock: Time source for swap deadlines

    Returns:
        ControlLoopDriver
    """
    return ControlLoopDriver(
        config=config,
        reserve=deployment.reserve,
        managed_token=deployment.managed_token,
        reference_token=deployment.reference_token,
        pool=deployment.pool,
        vault=deployment.vault,
        clock=clock,
    )
