"""
Price Band Engine - Allowance Orchestration.

============================================================
PURPOSE
============================================================
Authorize both counterparties that move funds during the
swap: the proxy pool and the vault.

RULES:
- Exactly two grants, submitted concurrently
- Same asset and amount for both:
    BUY   reference asset, full relay balance
          (the paid amount is solved by the vault)
    SELL  managed token, exact trade amount
- Both grants settle before the outcome is judged
- Any failed grant aborts the pass; a successful sibling
  grant is left in place (approve is an overwrite, the
  next pass re-grants)

============================================================
"""

import asyncio
import logging
from typing import List, Sequence, Tuple

from .adapters.base import RelayIdentity, Token
from .fixed_point import format_fixed
from .types import (
    AllowanceGrant,
    AllowanceGrantError,
    CorrectiveTrade,
    TransactionReceipt,
)


logger = logging.getLogger(__name__)


class AllowanceOrchestrator:
    """
    Fan-out/fan-in allowance grants for one corrective trade.
    """

    def __init__(
        self,
        managed_token: Token,
        reference_token: Token,
        service_name: str = "FloorCeiling Service",
    ):
        self._managed = managed_token
        self._reference = reference_token
        self._service = service_name

    def paying_token(self, trade: CorrectiveTrade) -> Token:
        """Token that leaves the relay's balance for this trade."""
        return self._reference if trade.is_buying else self._managed

    async def grant_amount(self, trade: CorrectiveTrade, relay: RelayIdentity) -> int:
        """
        Allowance needed for the trade.

        Buying fixes the managed token received, so the
        reference amount paid is unknown in advance and the
        whole reference balance is granted.
        """
        if trade.is_buying:
            return await self._reference.balance_of(relay.address)
        return trade.amount

    async def grant(
        self,
        trade: CorrectiveTrade,
        relay: RelayIdentity,
        counterparties: Sequence[str],
    ) -> List[AllowanceGrant]:
        """
        Grant both counterparties permission to spend the paying asset.

        Args:
            trade: Corrective trade of this pass
            relay: Relay identity that owns the funds
            counterparties: (pool_spender, vault_spender)

        Returns:
            The two grants, in counterparty order

        Raises:
            AllowanceGrantError: If either grant fails
        """
        if len(counterparties) != 2:
            raise ValueError(f"expected two counterparties, got {len(counterparties)}")

        token = self.paying_token(trade)
        try:
            amount = await self.grant_amount(trade, relay)
        except Exception as e:
            raise AllowanceGrantError(
                f"{token.symbol} balance unavailable, no allowance granted: {e}",
                failed_spenders=counterparties,
                errors=[e],
            ) from e

        grants = [
            AllowanceGrant(
                owner=relay.address,
                spender=spender,
                asset=token.address,
                amount=amount,
            )
            for spender in counterparties
        ]

        logger.info(
            f"[{self._service}] granting {format_fixed(amount)} {token.symbol} "
            f"to {', '.join(counterparties)}"
        )

        outcomes = await asyncio.gather(
            *(token.approve(relay, g.spender, g.amount) for g in grants),
            return_exceptions=True,
        )

        failures = self._collect_failures(grants, outcomes)
        if failures:
            spenders = [spender for spender, _ in failures]
            errors = [error for _, error in failures]
            detail = "; ".join(f"{s}: {e}" for s, e in failures)
            raise AllowanceGrantError(
                f"{len(failures)} of {len(grants)} {token.symbol} allowance grants failed: {detail}",
                failed_spenders=spenders,
                errors=errors,
            )

        logger.info(f"[{self._service}] {token.symbol} allowances granted")
        return grants

    def _collect_failures(
        self,
        grants: Sequence[AllowanceGrant],
        outcomes: Sequence[object],
    ) -> List[Tuple[str, BaseException]]:
        failures = []
        for grant, outcome in zip(grants, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                failures.append((grant.spender, outcome))
            elif isinstance(outcome, TransactionReceipt) and not outcome.succeeded:
                failures.append(
                    (grant.spender, RuntimeError(f"approve reverted: {outcome.tx_hash}"))
                )
        return failures
