"""
Price Band Engine - Remote Collaborator Interfaces.

============================================================
PURPOSE
============================================================
Capability interfaces for the on-chain contracts the
engine talks to. Callers depend on these, never on a
concrete contract binding.

READS:
- ReserveReader.reserve_status
- TokenReader.total_supply / balance_of
- PoolReader.pool_id / ceiling_multiplier_bps

WRITES:
- TokenWriter.approve
- PoolWriter.batch_swap_exact_out / batch_swap_exact_in

DESIGN PRINCIPLES:
- Chain-agnostic interface
- Fully testable with the mock adapters
- Writes return a normalized TransactionReceipt

============================================================
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ..types import (
    BatchSwapStep,
    FundManagement,
    ReserveStatus,
    TransactionReceipt,
)


# ============================================================
# IDENTITIES
# ============================================================

class RelayIdentity(ABC):
    """Externally managed signing identity that submits every transaction."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksum address of the relay."""
        pass


class Counterparty(ABC):
    """Contract that may pull funds from the relay during a swap."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass


# ============================================================
# RESERVE
# ============================================================

class ReserveReader(ABC):
    """Read access to the reserve contract."""

    @abstractmethod
    async def reserve_status(self) -> ReserveStatus:
        """
        Read the reserve snapshot.

        Raises:
            RemoteReadError: If the read fails
        """
        pass


# ============================================================
# TOKENS
# ============================================================

class TokenReader(ABC):
    """Read access to an ERC20 token."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @property
    @abstractmethod
    def symbol(self) -> str:
        pass

    @abstractmethod
    async def total_supply(self) -> int:
        pass

    @abstractmethod
    async def balance_of(self, owner: str) -> int:
        pass


class TokenWriter(ABC):
    """Write access to an ERC20 token."""

    @abstractmethod
    async def approve(
        self,
        owner: RelayIdentity,
        spender: str,
        amount: int,
    ) -> TransactionReceipt:
        """
        Let spender move up to amount out of owner's balance.

        Overwrites any previous allowance for the same spender.
        """
        pass


class Token(TokenReader, TokenWriter):
    """ERC20 token with read and write access."""
    pass


# ============================================================
# POOL
# ============================================================

class PoolReader(ABC):
    """Read access to the managed token's pool."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    async def pool_id(self) -> bytes:
        pass

    @abstractmethod
    async def ceiling_multiplier_bps(self) -> int:
        pass


class PoolWriter(ABC):
    """Swap submission through the proxy pool."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
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
        """Swap for an exact output amount of assets[1]."""
        pass

    @abstractmethod
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
        """Swap an exact input amount of assets[0]."""
        pass


class Pool(PoolReader, PoolWriter):
    """Proxy pool with read and swap access."""
    pass
