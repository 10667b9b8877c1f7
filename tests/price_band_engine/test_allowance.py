"""
Allowance Orchestration Tests.

============================================================
PURPOSE
============================================================
Grants go to both counterparties, concurrently, with the
asset and amount fixed by the trade direction.

============================================================
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from price_band_engine.adapters.mock import MockConfig, MockRevertError, create_mock_deployment
from price_band_engine.allowance import AllowanceOrchestrator
from price_band_engine.fixed_point import ONE, to_fixed
from price_band_engine.types import (
    AllowanceGrantError,
    CorrectiveTrade,
    TradeDirection,
    TransactionReceipt,
)


BUY = CorrectiveTrade(TradeDirection.BUY_MANAGED_TOKEN, to_fixed("0.25") + 1)
SELL = CorrectiveTrade(TradeDirection.SELL_MANAGED_TOKEN, 166_666_666_666_666_667)


def _orchestrator(deployment) -> AllowanceOrchestrator:
    return AllowanceOrchestrator(deployment.managed_token, deployment.reference_token)


def _spenders(deployment):
    return (deployment.pool.address, deployment.vault.address)


class TestGrantAmounts:
    """Asset and amount per direction."""

    @pytest.mark.asyncio
    async def test_buy_grants_full_reference_balance(self, deployment):
        """Buying grants the whole reference balance to both spenders."""
        grants = await _orchestrator(deployment).grant(
            BUY, deployment.relay, _spenders(deployment)
        )

        reference = deployment.reference_token.address
        assert [g.spender for g in grants] == list(_spenders(deployment))
        assert all(g.asset == reference for g in grants)
        assert all(g.amount == 100_000 * ONE for g in grants)
        for spender in _spenders(deployment):
            assert deployment.chain.allowance(
                reference, deployment.relay.address, spender
            ) == 100_000 * ONE

    @pytest.mark.asyncio
    async def test_sell_grants_exact_managed_amount(self, deployment):
        """Selling grants exactly the trade amount of the managed token."""
        grants = await _orchestrator(deployment).grant(
            SELL, deployment.relay, _spenders(deployment)
        )

        managed = deployment.managed_token.address
        assert all(g.asset == managed for g in grants)
        assert all(g.amount == SELL.amount for g in grants)
        assert all(g.owner == deployment.relay.address for g in grants)

    @pytest.mark.asyncio
    async def test_buy_approves_on_reference_contract(self, deployment):
        """Approvals are sent to the asset being paid."""
        await _orchestrator(deployment).grant(BUY, deployment.relay, _spenders(deployment))

        assert deployment.chain.operations("cUSD").count("cUSD.approve") == 2
        assert "kCUR.approve" not in deployment.chain.operations()

    @pytest.mark.asyncio
    async def test_two_counterparties_required(self, deployment):
        """Exactly two spenders."""
        with pytest.raises(ValueError):
            await _orchestrator(deployment).grant(
                SELL, deployment.relay, (deployment.pool.address,)
            )


class TestConcurrency:
    """Fan-out / fan-in behaviour."""

    @pytest.mark.asyncio
    async def test_grants_are_concurrent(self):
        """Both approvals are in flight before either finishes."""
        deployment = create_mock_deployment(MockConfig(latency_seconds=0.05))

        await _orchestrator(deployment).grant(SELL, deployment.relay, _spenders(deployment))

        approves = [c for c in deployment.chain.calls if c.operation == "approve"]
        assert len(approves) == 2
        # Second call recorded before the first one's latency elapsed
        assert approves[1].at - approves[0].at < 0.05

    @pytest.mark.asyncio
    async def test_one_failure_fails_the_phase(self):
        """A single failed grant raises after both settle."""
        token = AsyncMock()
        token.address = "0xToken"
        token.symbol = "kCUR"
        token.approve.side_effect = [
            TransactionReceipt(tx_hash="0x01"),
            MockRevertError("out of gas"),
        ]
        relay = AsyncMock()
        relay.address = "0xRelay"

        orchestrator = AllowanceOrchestrator(token, AsyncMock())
        with pytest.raises(AllowanceGrantError) as exc_info:
            await orchestrator.grant(SELL, relay, ("0xPool", "0xVault"))

        assert token.approve.await_count == 2
        assert exc_info.value.failed_spenders == ["0xVault"]
        assert isinstance(exc_info.value.errors[0], MockRevertError)

    @pytest.mark.asyncio
    async def test_sibling_grant_is_not_rolled_back(self, deployment):
        """The successful grant stays in place."""
        managed = deployment.managed_token
        original = managed.approve

        async def approve(owner, spender, amount):
            if spender == deployment.pool.address:
                await asyncio.sleep(0)
                raise MockRevertError("pool approve reverted")
            return await original(owner, spender, amount)

        managed.approve = approve

        with pytest.raises(AllowanceGrantError) as exc_info:
            await _orchestrator(deployment).grant(SELL, deployment.relay, _spenders(deployment))

        assert exc_info.value.failed_spenders == [deployment.pool.address]
        assert deployment.chain.allowance(
            managed.address, deployment.relay.address, deployment.vault.address
        ) == SELL.amount
        assert deployment.chain.allowance(
            managed.address, deployment.relay.address, deployment.pool.address
        ) == 0

    @pytest.mark.asyncio
    async def test_reverted_receipt_counts_as_failure(self):
        """A status-0 receipt fails the grant."""
        token = AsyncMock()
        token.address = "0xToken"
        token.symbol = "kCUR"
        token.approve.return_value = TransactionReceipt(tx_hash="0xdead", status=0)
        relay = AsyncMock()
        relay.address = "0xRelay"

        orchestrator = AllowanceOrchestrator(token, AsyncMock())
        with pytest.raises(AllowanceGrantError) as exc_info:
            await orchestrator.grant(SELL, relay, ("0xPool", "0xVault"))

        assert exc_info.value.failed_spenders == ["0xPool", "0xVault"]
