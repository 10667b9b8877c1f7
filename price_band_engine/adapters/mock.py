"""
Price Band Engine - Mock Chain Adapters.

============================================================
PURPOSE
============================================================
In-memory reserve, tokens, pool and vault for tests and
dry runs.

FEATURES:
- Balances and allowances tracked per owner/spender
- Vault-style swap settlement with limits and deadline
- Error injection per operation
- Ordered call log for sequencing assertions

============================================================
"""

import asyncio
import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..fixed_point import ONE, fixed_div, fixed_mul
from ..types import (
    BatchSwapStep,
    FundManagement,
    RemoteReadError,
    ReserveStatus,
    TransactionReceipt,
)
from .base import Counterparty, Pool, RelayIdentity, ReserveReader, Token


logger = logging.getLogger(__name__)


class MockRevertError(Exception):
    """Simulated contract revert."""
    pass


# ============================================================
# MOCK CONFIGURATION
# ============================================================

@dataclass
class MockConfig:
    """Configuration for the mock chain."""

    # Reserve
    reserve_value: int = 1_000_000 * ONE
    """Reserve valuation (fixed point)."""

    backing_ratio_bps: int = 10_000
    """Reserve backing in basis points."""

    # Managed token
    managed_supply: int = 2_000_000 * ONE
    """Managed token total supply."""

    ceiling_multiplier_bps: int = 15_000
    """Proxy pool ceiling multiplier."""

    # Pool pricing
    pool_price: int = ONE // 2
    """Managed token price in reference asset used to settle swaps."""

    # Relay balances
    relay_managed_balance: int = 100_000 * ONE
    relay_reference_balance: int = 100_000 * ONE

    # Latency simulation
    latency_seconds: float = 0.0
    """Simulated latency per call; 0 still yields to the loop."""


@dataclass
class MockRelay(RelayIdentity):
    """Relay identity with a fixed address."""

    relay_address: str = "0x000000000000000000000000000000000000bEEF"

    @property
    def address(self) -> str:
        return self.relay_address


@dataclass
class MockCall:
    """One recorded remote call."""

    contract: str
    operation: str
    args: Tuple = ()
    at: float = field(default_factory=time.monotonic)


# ============================================================
# MOCK CHAIN
# ============================================================

class MockChain:
    """
    Shared ledger for the mock contracts.

    Holds balances and allowances, the call log and the
    error injection table.
    """

    def __init__(
        self,
        config: Optional[MockConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._config = config or MockConfig()
        self._clock = clock or time.time
        self._tx_counter = 0

        self.balances: Dict[Tuple[str, str], int] = {}
        """(token, owner) -> balance."""

        self.allowances: Dict[Tuple[str, str, str], int] = {}
        """(token, owner, spender) -> allowance."""

        self.calls: List[MockCall] = []
        self._failures: Dict[Tuple[str, str], Exception] = {}

    @property
    def config(self) -> MockConfig:
        return self._config

    def now(self) -> float:
        return self._clock()

    # --------------------------------------------------------
    # ERROR INJECTION
    # --------------------------------------------------------

    def fail(self, contract: str, operation: str, error: Exception) -> None:
        """Make every call of contract.operation raise error."""
        self._failures[(contract, operation)] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    async def record(self, contract: str, operation: str, *args) -> None:
        """Log a call, simulate latency and raise injected errors."""
        self.calls.append(MockCall(contract=contract, operation=operation, args=args))
        await asyncio.sleep(self._config.latency_seconds)
        error = self._failures.get((contract, operation))
        if error is not None:
            raise error

    def operations(self, contract: Optional[str] = None) -> List[str]:
        """Operation names in call order, optionally for one contract."""
        return [
            f"{c.contract}.{c.operation}"
            for c in self.calls
            if contract is None or c.contract == contract
        ]

    def write_calls(self) -> List[MockCall]:
        """Calls that would have submitted a transaction."""
        writes = {"approve", "batchSwapExactOut", "batchSwapExactIn"}
        return [c for c in self.calls if c.operation in writes]

    # --------------------------------------------------------
    # LEDGER
    # --------------------------------------------------------

    def next_receipt(self) -> TransactionReceipt:
        self._tx_counter += 1
        tx_hash = "0x" + hashlib.sha256(str(self._tx_counter).encode()).hexdigest()
        return TransactionReceipt(tx_hash=tx_hash, status=1, block_number=self._tx_counter)

    def balance(self, token: str, owner: str) -> int:
        return self.balances.get((token, owner), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return self.allowances.get((token, owner, spender), 0)

    def transfer(self, token: str, sender: str, recipient: str, amount: int) -> None:
        if self.balance(token, sender) < amount:
            raise MockRevertError(f"insufficient {token} balance for {sender}")
        self.balances[(token, sender)] = self.balance(token, sender) - amount
        self.balances[(token, recipient)] = self.balance(token, recipient) + amount


# ============================================================
# MOCK CONTRACTS
# ============================================================

class MockReserve(ReserveReader):
    """Reserve returning the configured snapshot."""

    def __init__(self, chain: MockChain):
        self._chain = chain

    async def reserve_status(self) -> ReserveStatus:
        try:
            await self._chain.record("Reserve", "reserveStatus")
        except Exception as e:
            raise RemoteReadError("reserveStatus failed", "reserveStatus", e) from e
        return ReserveStatus(
            total_reserve_value=self._chain.config.reserve_value,
            backing_ratio_bps=self._chain.config.backing_ratio_bps,
        )


class MockToken(Token):
    """ERC20 token on the mock ledger."""

    def __init__(
        self,
        chain: MockChain,
        token_address: str,
        token_symbol: str,
        supply: int = 0,
    ):
        self._chain = chain
        self._address = token_address
        self._symbol = token_symbol
        self._supply = supply

    @property
    def address(self) -> str:
        return self._address

    @property
    def symbol(self) -> str:
        return self._symbol

    async def total_supply(self) -> int:
        try:
            await self._chain.record(self._symbol, "totalSupply")
        except Exception as e:
            raise RemoteReadError(f"{self._symbol}.totalSupply failed", "totalSupply", e) from e
        return self._supply

    async def balance_of(self, owner: str) -> int:
        try:
            await self._chain.record(self._symbol, "balanceOf", owner)
        except Exception as e:
            raise RemoteReadError(f"{self._symbol}.balanceOf failed", "balanceOf", e) from e
        return self._chain.balance(self._address, owner)

    async def approve(
        self,
        owner: RelayIdentity,
        spender: str,
        amount: int,
    ) -> TransactionReceipt:
        await self._chain.record(self._symbol, "approve", owner.address, spender, amount)
        self._chain.allowances[(self._address, owner.address, spender)] = amount
        return self._chain.next_receipt()


class MockVault(Counterparty):
    """Vault that pulls funds during a swap."""

    def __init__(self, vault_address: str):
        self._address = vault_address

    @property
    def address(self) -> str:
        return self._address


class MockPool(Pool):
    """
    Proxy pool settling swaps at a fixed price.

    Settlement pulls from the relay only if both the proxy
    pool and the vault hold sufficient allowance.
    """

    def __init__(
        self,
        chain: MockChain,
        proxy_address: str,
        vault: MockVault,
        managed_token: MockToken,
        reference_token: MockToken,
        pool_id_value: bytes = b"\x01" * 32,
    ):
        self._chain = chain
        self._address = proxy_address
        self._vault = vault
        self._managed = managed_token
        self._reference = reference_token
        self._pool_id = pool_id_value

    @property
    def address(self) -> str:
        return self._address

    async def pool_id(self) -> bytes:
        try:
            await self._chain.record("Pool", "getPoolId")
        except Exception as e:
            raise RemoteReadError("getPoolId failed", "getPoolId", e) from e
        return self._pool_id

    async def ceiling_multiplier_bps(self) -> int:
        try:
            await self._chain.record("ProxyPool", "ceilingMultiplier")
        except Exception as e:
            raise RemoteReadError("ceilingMultiplier failed", "ceilingMultiplier", e) from e
        return self._chain.config.ceiling_multiplier_bps

    def _price_of(self, asset_in: str) -> int:
        """Units of asset_out per unit of asset_in."""
        price = self._chain.config.pool_price
        if asset_in == self._managed.address:
            return price
        return fixed_div(ONE, price)

    def _check_common(
        self,
        steps: Sequence[BatchSwapStep],
        assets: Sequence[str],
        funds: FundManagement,
        deadline: int,
    ) -> None:
        if len(steps) != 1 or len(assets) != 2:
            raise MockRevertError("expected one step over two assets")
        if steps[0].pool_id != self._pool_id:
            raise MockRevertError("unknown pool id")
        if self._chain.now() > deadline:
            raise MockRevertError("SWAP_DEADLINE")
        if funds.from_internal_balance or funds.to_internal_balance:
            raise MockRevertError("internal balances not supported")

    def _settle(
        self,
        funds: FundManagement,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        amount_out: int,
        limits: Sequence[int],
    ) -> TransactionReceipt:
        if amount_in > limits[0]:
            raise MockRevertError("SWAP_LIMIT")
        for spender in (self._address, self._vault.address):
            if self._chain.allowance(asset_in, funds.sender, spender) < amount_in:
                raise MockRevertError(f"insufficient allowance for {spender}")
        self._chain.transfer(asset_in, funds.sender, self._vault.address, amount_in)
        self._chain.balances[(asset_out, self._vault.address)] = (
            self._chain.balance(asset_out, self._vault.address) + amount_out
        )
        self._chain.transfer(asset_out, self._vault.address, funds.recipient, amount_out)
        return self._chain.next_receipt()

    async def batch_swap_exact_out(
        self,
        relay: RelayIdentity,
        steps: Sequence[BatchSwapStep],
        assets: Sequence[str],
        amount_out: int,
        funds: FundManagement,
        limits: Sequence[int],
        deadline: int,
    ) -> TransactionReceipt:
        await self._chain.record(
            "ProxyPool", "batchSwapExactOut", tuple(assets), amount_out, tuple(limits), deadline
        )
        self._check_common(steps, assets, funds, deadline)
        amount_in = fixed_div(amount_out, self._price_of(assets[0])) + 1
        return self._settle(funds, assets[0], assets[1], amount_in, amount_out, limits)

    async def batch_swap_exact_in(
        self,
        relay: RelayIdentity,
        steps: Sequence[BatchSwapStep],
        assets: Sequence[str],
        amount_in: int,
        min_amount_out: int,
        funds: FundManagement,
        limits: Sequence[int],
        deadline: int,
    ) -> TransactionReceipt:
        await self._chain.record(
            "ProxyPool", "batchSwapExactIn", tuple(assets), amount_in, min_amount_out,
            tuple(limits), deadline,
        )
        self._check_common(steps, assets, funds, deadline)
        amount_out = fixed_mul(amount_in, self._price_of(assets[0]))
        if amount_out < min_amount_out:
            raise MockRevertError("BAL#507 SWAP_LIMIT: amount out below minimum")
        return self._settle(funds, assets[0], assets[1], amount_in, amount_out, limits)


# ============================================================
# FACTORY
# ============================================================

@dataclass
class MockDeployment:
    """All mock contracts wired to one chain."""

    chain: MockChain
    relay: MockRelay
    reserve: MockReserve
    managed_token: MockToken
    reference_token: MockToken
    pool: MockPool
    vault: MockVault


def create_mock_deployment(
    config: Optional[MockConfig] = None,
    clock: Optional[Callable[[], float]] = None,
    managed_symbol: str = "kCUR",
    reference_symbol: str = "cUSD",
) -> MockDeployment:
    """
    Create a funded mock deployment.

    Args:
        config: Mock configuration
        clock: Time source for deadline checks

    Returns:
        MockDeployment
    """
    chain = MockChain(config, clock)
    cfg = chain.config
    relay = MockRelay()

    managed = MockToken(
        chain,
        "0x00000000000000000000000000000000000000a2",
        managed_symbol,
        supply=cfg.managed_supply,
    )
    reference = MockToken(
        chain,
        "0x00000000000000000000000000000000000000a3",
        reference_symbol,
    )
    vault = MockVault("0x00000000000000000000000000000000000000a6")
    pool = MockPool(
        chain,
        "0x00000000000000000000000000000000000000a4",
        vault,
        managed,
        reference,
    )

    chain.balances[(managed.address, relay.address)] = cfg.relay_managed_balance
    chain.balances[(reference.address, relay.address)] = cfg.relay_reference_balance

    logger.debug("Mock deployment created")

    return MockDeployment(
        chain=chain,
        relay=relay,
        reserve=MockReserve(chain),
        managed_token=managed,
        reference_token=reference,
        pool=pool,
        vault=vault,
    )
