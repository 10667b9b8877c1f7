"""
Price Band Engine - Swap Execution.

============================================================
PURPOSE
============================================================
Build and submit the corrective swap through the proxy
pool.

CALL SHAPES (managed token is always the exact leg):
    BUY   batchSwapExactOut  assets = [reference, managed]
    SELL  batchSwapExactIn   assets = [managed, reference]

Every instruction carries:
- deadline = now + horizon (the vault rejects stale swaps)
- per-asset limits, independent of the allowances
- sender = recipient = relay, no internal balances

A rejection fails the pass. It is never retried here.

============================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .adapters.base import Pool, RelayIdentity
from .config import SwapConfig
from .fixed_point import format_fixed
from .types import (
    CorrectiveTrade,
    FundManagement,
    SwapInstruction,
    SwapKind,
    SwapRejectedError,
    TransactionReceipt,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapAssets:
    """Token addresses and symbols of the pair."""

    managed: str
    reference: str
    managed_symbol: str = "kCUR"
    reference_symbol: str = "cUSD"


class SwapExecutor:
    """
    Corrective swap submission.
    """

    def __init__(
        self,
        config: Optional[SwapConfig] = None,
        clock: Optional[Callable[[], float]] = None,
        service_name: str = "FloorCeiling Service",
    ):
        self._config = config or SwapConfig()
        self._clock = clock or time.time
        self._service = service_name

    def build_instruction(
        self,
        trade: CorrectiveTrade,
        pool_id: bytes,
        assets: SwapAssets,
        relay: RelayIdentity,
    ) -> SwapInstruction:
        """
        Build a fresh swap instruction for the trade.

        Args:
            trade: Corrective trade
            pool_id: Pool ID of the managed token pool
            assets: Pair addresses
            relay: Relay identity paying and receiving

        Returns:
            SwapInstruction
        """
        funds = FundManagement(sender=relay.address, recipient=relay.address)
        deadline = int(self._clock()) + self._config.deadline_horizon_seconds
        limits = tuple(self._config.asset_limits)

        if trade.is_buying:
            return SwapInstruction(
                kind=SwapKind.GIVEN_OUT,
                pool_id=pool_id,
                asset_in=assets.reference,
                asset_out=assets.managed,
                amount_specified=trade.amount,
                funds=funds,
                limits=limits,
                deadline=deadline,
            )

        return SwapInstruction(
            kind=SwapKind.GIVEN_IN,
            pool_id=pool_id,
            asset_in=assets.managed,
            asset_out=assets.reference,
            amount_specified=trade.amount,
            funds=funds,
            limits=limits,
            deadline=deadline,
            min_amount_out=self._config.min_amount_out,
        )

    async def execute(
        self,
        trade: CorrectiveTrade,
        pool: Pool,
        assets: SwapAssets,
        relay: RelayIdentity,
    ) -> TransactionReceipt:
        """
        Submit the swap for a corrective trade.

        Args:
            trade: Corrective trade
            pool: Proxy pool
            assets: Pair addresses
            relay: Relay identity

        Returns:
            TransactionReceipt of the accepted swap

        Raises:
            SwapRejectedError: If the vault rejects or reverts
        """
        try:
            pool_id = await pool.pool_id()
        except Exception as e:
            raise SwapRejectedError(
                f"pool id unavailable, swap not submitted: {e}",
                original_error=e,
            ) from e
        instruction = self.build_instruction(trade, pool_id, assets, relay)
        amount = format_fixed(trade.amount)

        try:
            if instruction.kind is SwapKind.GIVEN_OUT:
                logger.info(
                    f"[{self._service}] buying {assets.managed_symbol} ({amount}) "
                    f"with {assets.reference_symbol}"
                )
                receipt = await pool.batch_swap_exact_out(
                    relay,
                    instruction.steps,
                    instruction.assets,
                    instruction.amount_specified,
                    instruction.funds,
                    instruction.limits,
                    instruction.deadline,
                )
            else:
                logger.info(
                    f"[{self._service}] selling {assets.managed_symbol} ({amount}) "
                    f"for {assets.reference_symbol}"
                )
                receipt = await pool.batch_swap_exact_in(
                    relay,
                    instruction.steps,
                    instruction.assets,
                    instruction.amount_specified,
                    instruction.min_amount_out,
                    instruction.funds,
                    instruction.limits,
                    instruction.deadline,
                )
        except SwapRejectedError:
            raise
        except Exception as e:
            raise SwapRejectedError(
                f"{instruction.kind.value} swap rejected: {e}",
                original_error=e,
            ) from e

        if not receipt.succeeded:
            raise SwapRejectedError(
                f"{instruction.kind.value} swap reverted: {receipt.tx_hash}",
                tx_hash=receipt.tx_hash,
            )

        return receipt
