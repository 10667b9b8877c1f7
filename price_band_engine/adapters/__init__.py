"""
Price Band Engine - Adapters Package.

============================================================
PURPOSE
============================================================
Remote collaborator implementations.

AVAILABLE ADAPTERS:
- Web3*: AsyncWeb3 contract bindings
- Mock*: In-memory chain for tests and dry runs

============================================================
"""

# Base interfaces
from .base import (
    RelayIdentity,
    Counterparty,
    ReserveReader,
    TokenReader,
    TokenWriter,
    Token,
    PoolReader,
    PoolWriter,
    Pool,
)

# Mock chain
from .mock import (
    MockRevertError,
    MockConfig,
    MockRelay,
    MockChain,
    MockReserve,
    MockToken,
    MockVault,
    MockPool,
    MockDeployment,
    create_mock_deployment,
)

# Web3
from .web3_adapter import (
    Web3Connection,
    Web3RelaySigner,
    Web3Reserve,
    Web3Token,
    Web3Vault,
    Web3ProxyPool,
    Web3Deployment,
    create_web3_deployment,
)


__all__ = [
    # Base
    "RelayIdentity",
    "Counterparty",
    "ReserveReader",
    "TokenReader",
    "TokenWriter",
    "Token",
    "PoolReader",
    "PoolWriter",
    "Pool",
    # Mock
    "MockRevertError",
    "MockConfig",
    "MockRelay",
    "MockChain",
    "MockReserve",
    "MockToken",
    "MockVault",
    "MockPool",
    "MockDeployment",
    "create_mock_deployment",
    # Web3
    "Web3Connection",
    "Web3RelaySigner",
    "Web3Reserve",
    "Web3Token",
    "Web3Vault",
    "Web3ProxyPool",
    "Web3Deployment",
    "create_web3_deployment",
]
