"""
Price Band Engine - Web3 Adapters.

============================================================
PURPOSE
============================================================
AsyncWeb3 bindings of the collaborator interfaces.

- Web3Connection owns the aiohttp session and the provider
- Web3RelaySigner signs with a key supplied from outside
  and sends under a lock, advancing the nonce only after
  the node accepts, so concurrent grants never share a nonce
- Reads wrap any failure in RemoteReadError
- Writes wait for the receipt and return it normalized;
  reverts come back with status 0

Gas and fee fields are left to web3 (node estimation).

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..config import EngineConfig
from ..types import (
    BatchSwapStep,
    FundManagement,
    RemoteReadError,
    ReserveStatus,
    TransactionReceipt,
)
from .abis import ERC20_ABI, POOL_ABI, PROXY_POOL_ABI, RESERVE_ABI
from .base import Counterparty, Pool, RelayIdentity, ReserveReader, Token


logger = logging.getLogger(__name__)


DEFAULT_RECEIPT_TIMEOUT = 120.0


# ============================================================
# CONNECTION
# ============================================================

class Web3Connection:
    """
    JSON-RPC connection shared by all contract bindings.

    Usage:
        async with Web3Connection(rpc_url) as conn:
            ...
    """

    def __init__(
        self,
        rpc_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT,
    ) -> None:
        self._rpc_url = rpc_url
        self._session = session
        self._owns_session = session is None
        self._provider = AsyncHTTPProvider(rpc_url)
        self.w3 = AsyncWeb3(self._provider)
        self.receipt_timeout = receipt_timeout

    async def connect(self) -> None:
        """Attach the HTTP session and check the node answers."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        await self._provider.cache_async_session(self._session)

        if not await self.w3.is_connected():
            await self.disconnect()
            raise RemoteReadError(f"Cannot connect to RPC {self._rpc_url}", "connect")
        logger.info("Web3 connection established")

    async def disconnect(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
        logger.info("Web3 connection closed")

    async def __aenter__(self) -> "Web3Connection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    def contract(self, address: str, abi: list) -> Any:
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(address),
            abi=abi,
        )


def normalize_receipt(tx_hash: Any, receipt: Dict[str, Any]) -> TransactionReceipt:
    """Convert a node receipt into a TransactionReceipt."""
    return TransactionReceipt(
        tx_hash=AsyncWeb3.to_hex(tx_hash),
        status=int(receipt.get("status", 0)),
        block_number=receipt.get("blockNumber"),
        raw=dict(receipt),
    )


# ============================================================
# RELAY SIGNER
# ============================================================

class Web3RelaySigner(RelayIdentity):
    """
    Relay identity backed by a local key.

    Key management is external; the key is only used to
    sign transactions built by the contract bindings.
    """

    def __init__(
        self,
        connection: Web3Connection,
        account: LocalAccount,
        chain_id: Optional[int] = None,
    ) -> None:
        self._conn = connection
        self._account = account
        self._chain_id = chain_id
        self._nonce: Optional[int] = None
        self._nonce_lock = asyncio.Lock()

    @classmethod
    def from_key(
        cls,
        connection: Web3Connection,
        private_key: str,
        chain_id: Optional[int] = None,
    ) -> "Web3RelaySigner":
        return cls(connection, Account.from_key(private_key), chain_id)

    @property
    def address(self) -> str:
        return self._account.address

    async def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = await self._conn.w3.eth.chain_id
        return self._chain_id

    async def _send(self, contract_call: Any) -> Tuple[Any, int]:
        # Nonce advances only after the node accepts the transaction.
        async with self._nonce_lock:
            if self._nonce is None:
                self._nonce = await self._conn.w3.eth.get_transaction_count(
                    self.address, "pending"
                )
            nonce = self._nonce
            try:
                tx = await contract_call.build_transaction({
                    "from": self.address,
                    "nonce": nonce,
                    "chainId": await self._get_chain_id(),
                })
                signed = self._account.sign_transaction(tx)
                tx_hash = await self._conn.w3.eth.send_raw_transaction(
                    signed.raw_transaction
                )
            except Exception:
                self._nonce = None
                raise
            self._nonce = nonce + 1
            return tx_hash, nonce

    async def submit(self, contract_call: Any, label: str) -> TransactionReceipt:
        """
        Build, sign and send a contract call, then wait for its receipt.

        Sends are serialized per relay; receipt waits run concurrently.

        Args:
            contract_call: Bound contract function (contract.functions.x(...))
            label: Name used in log lines

        Returns:
            TransactionReceipt (status 0 on revert)
        """
        tx_hash, nonce = await self._send(contract_call)

        logger.info(f"{label} TX sent: {AsyncWeb3.to_hex(tx_hash)} (nonce {nonce})")

        receipt = await self._conn.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._conn.receipt_timeout
        )
        result = normalize_receipt(tx_hash, receipt)
        if not result.succeeded:
            logger.warning(f"{label} TX reverted: {result.tx_hash}")
        return result


def _require_signer(relay: RelayIdentity) -> Web3RelaySigner:
    if not isinstance(relay, Web3RelaySigner):
        raise TypeError(f"Web3 contracts need a Web3RelaySigner, got {type(relay).__name__}")
    return relay


# ============================================================
# CONTRACT BINDINGS
# ============================================================

class Web3Reserve(ReserveReader):
    """Reserve contract."""

    def __init__(self, connection: Web3Connection, address: str) -> None:
        self._contract = connection.contract(address, RESERVE_ABI)

    async def reserve_status(self) -> ReserveStatus:
        try:
            status = await self._contract.functions.reserveStatus().call()
        except Exception as e:
            raise RemoteReadError("reserveStatus failed", "reserveStatus", e) from e
        return ReserveStatus(
            total_reserve_value=int(status[0]),
            backing_ratio_bps=int(status[2]),
        )


class Web3Token(Token):
    """ERC20 token contract."""

    def __init__(self, connection: Web3Connection, address: str, symbol: str) -> None:
        self._contract = connection.contract(address, ERC20_ABI)
        self._symbol = symbol

    @property
    def address(self) -> str:
        return self._contract.address

    @property
    def symbol(self) -> str:
        return self._symbol

    async def total_supply(self) -> int:
        try:
            return int(await self._contract.functions.totalSupply().call())
        except Exception as e:
            raise RemoteReadError(f"{self._symbol}.totalSupply failed", "totalSupply", e) from e

    async def balance_of(self, owner: str) -> int:
        try:
            return int(await self._contract.functions.balanceOf(
                AsyncWeb3.to_checksum_address(owner)
            ).call())
        except Exception as e:
            raise RemoteReadError(f"{self._symbol}.balanceOf failed", "balanceOf", e) from e

    async def approve(
        self,
        owner: RelayIdentity,
        spender: str,
        amount: int,
    ) -> TransactionReceipt:
        signer = _require_signer(owner)
        call = self._contract.functions.approve(
            AsyncWeb3.to_checksum_address(spender), amount
        )
        return await signer.submit(call, f"{self._symbol}.approve")


class Web3Vault(Counterparty):
    """Vault address; the engine never calls it directly."""

    def __init__(self, address: str) -> None:
        self._address = AsyncWeb3.to_checksum_address(address)

    @property
    def address(self) -> str:
        return self._address


def _step_args(steps: Sequence[BatchSwapStep]) -> list:
    return [
        (
            step.pool_id,
            step.asset_in_index,
            step.asset_out_index,
            step.amount,
            AsyncWeb3.to_bytes(hexstr=step.user_data),
        )
        for step in steps
    ]


def _funds_args(funds: FundManagement) -> tuple:
    return (
        AsyncWeb3.to_checksum_address(funds.sender),
        funds.from_internal_balance,
        AsyncWeb3.to_checksum_address(funds.recipient),
        funds.to_internal_balance,
    )


class Web3ProxyPool(Pool):
    """
    Proxy pool binding.

    Pool id comes from the weighted pool; the multiplier
    and the swaps go through the proxy.
    """

    def __init__(
        self,
        connection: Web3Connection,
        proxy_address: str,
        pool_address: str,
    ) -> None:
        self._proxy = connection.contract(proxy_address, PROXY_POOL_ABI)
        self._pool = connection.contract(pool_address, POOL_ABI)

    @property
    def address(self) -> str:
        return self._proxy.address

    async def pool_id(self) -> bytes:
        try:
            return bytes(await self._pool.functions.getPoolId().call())
        except Exception as e:
            raise RemoteReadError("getPoolId failed", "getPoolId", e) from e

    async def ceiling_multiplier_bps(self) -> int:
        try:
            return int(await self._proxy.functions.ceilingMultiplier().call())
        except Exception as e:
            raise RemoteReadError("ceilingMultiplier failed", "ceilingMultiplier", e) from e

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
        signer = _require_signer(relay)
        call = self._proxy.functions.batchSwapExactOut(
            _step_args(steps),
            [AsyncWeb3.to_checksum_address(a) for a in assets],
            amount_out,
            _funds_args(funds),
            list(limits),
            deadline,
        )
        return await signer.submit(call, "batchSwapExactOut")

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
        signer = _require_signer(relay)
        call = self._proxy.functions.batchSwapExactIn(
            _step_args(steps),
            [AsyncWeb3.to_checksum_address(a) for a in assets],
            amount_in,
            min_amount_out,
            _funds_args(funds),
            list(limits),
            deadline,
        )
        return await signer.submit(call, "batchSwapExactIn")


# ============================================================
# FACTORY
# ============================================================

@dataclass
class Web3Deployment:
    """All web3 bindings sharing one connection."""

    connection: Web3Connection
    relay: Web3RelaySigner
    reserve: Web3Reserve
    managed_token: Web3Token
    reference_token: Web3Token
    pool: Web3ProxyPool
    vault: Web3Vault


def create_web3_deployment(
    config: EngineConfig,
    rpc_url: str,
    private_key: str,
    session: Optional[aiohttp.ClientSession] = None,
) -> Web3Deployment:
    """
    Bind every collaborator from configuration.

    The connection is not opened; use it as an async
    context manager or call connect().
    """
    contracts = config.contracts
    connection = Web3Connection(rpc_url, session=session)
    return Web3Deployment(
        connection=connection,
        relay=Web3RelaySigner.from_key(connection, private_key, contracts.chain_id),
        reserve=Web3Reserve(connection, contracts.reserve_address),
        managed_token=Web3Token(
            connection, contracts.managed_token_address, contracts.managed_token_symbol
        ),
        reference_token=Web3Token(
            connection, contracts.reference_token_address, contracts.reference_token_symbol
        ),
        pool=Web3ProxyPool(connection, contracts.proxy_pool_address, contracts.pool_address),
        vault=Web3Vault(contracts.vault_address),
    )
