"""
Price Band Engine - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the Price Band Engine.

CRITICAL CONSTRAINTS:
- No blind retries within a pass
- Provisional trading constants are configuration,
  never literals inside the engine
- Configuration is passed explicitly to every component

============================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from .fixed_point import BPS_SCALE, DEFAULT_DECIMALS
from .types import BreachRule


# ============================================================
# BREACH CONFIGURATION
# ============================================================

@dataclass
class BreachConfig:
    """
    Breach detection configuration.

    One rule per engine instance. A pass never mixes rules.
    """

    rule: BreachRule = BreachRule.DIRECT
    """Predicate used to classify the market price."""


# ============================================================
# SIZING CONFIGURATION
# ============================================================

@dataclass
class SizingConfig:
    """
    Corrective trade sizing configuration.
    """

    rounding_buffer_units: int = 1
    """Smallest units added to every trade so truncation never under-shoots."""


# ============================================================
# SWAP CONFIGURATION
# ============================================================

@dataclass
class SwapConfig:
    """
    Swap instruction configuration.

    The limits guard against the vault pulling more than
    expected even when the allowance permits more.
    """

    deadline_horizon_seconds: int = 60 * 60
    """Seconds from submission after which the vault must reject."""

    asset_limits: Tuple[int, int] = (10 ** 24, 10 ** 24)
    """Per-asset vault limits, one per entry of the assets array."""

    min_amount_out: int = 100_000_000
    """Minimum reference asset received when selling (exact-in swaps)."""


# ============================================================
# CONTRACTS CONFIGURATION
# ============================================================

@dataclass
class ContractsConfig:
    """
    On-chain collaborators.

    Addresses are resolved outside the engine and only
    carried here.
    """

    reserve_address: str = ""
    """Reserve contract (reserveStatus)."""

    managed_token_address: str = ""
    """Managed token (kCUR-like) ERC20."""

    reference_token_address: str = ""
    """Stable reference asset (cUSD-like) ERC20."""

    proxy_pool_address: str = ""
    """Proxy pool (ceilingMultiplier, batch swaps)."""

    pool_address: str = ""
    """Weighted pool (getPoolId)."""

    vault_address: str = ""
    """Vault that pulls funds during the swap."""

    managed_token_symbol: str = "kCUR"
    reference_token_symbol: str = "cUSD"

    # Credentials (loaded from env)
    rpc_url_env: str = "PRICE_BAND_RPC_URL"
    """Environment variable for the JSON-RPC endpoint."""

    relay_key_env: str = "PRICE_BAND_RELAY_KEY"
    """Environment variable for the relay signing key."""

    chain_id: Optional[int] = None
    """Chain ID; read from the node when unset."""

    def missing(self) -> List[str]:
        """Names of address fields that are still empty."""
        names = [
            "reserve_address",
            "managed_token_address",
            "reference_token_address",
            "proxy_pool_address",
            "pool_address",
            "vault_address",
        ]
        return [name for name in names if not getattr(self, name)]


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class EngineConfig:
    """
    Master configuration for the Price Band Engine.
    """

    # Sub-configs
    breach: BreachConfig = field(default_factory=BreachConfig)
    """Breach detection configuration."""

    sizing: SizingConfig = field(default_factory=SizingConfig)
    """Trade sizing configuration."""

    swap: SwapConfig = field(default_factory=SwapConfig)
    """Swap instruction configuration."""

    contracts: ContractsConfig = field(default_factory=ContractsConfig)
    """Contract addresses and credentials."""

    # Global settings
    service_name: str = "FloorCeiling Service"
    """Name carried by every log line."""

    bps_scale: int = BPS_SCALE
    """Basis points in 1.0."""

    fixed_point_decimals: int = DEFAULT_DECIMALS
    """Decimals of both tokens."""

    dry_run: bool = False
    """Whether to run against the in-memory chain."""

    def validate(self) -> List[str]:
        """
        Check configuration consistency.

        Returns:
            List of problems, empty if valid
        """
        errors = []

        if self.sizing.rounding_buffer_units < 1:
            errors.append("sizing.rounding_buffer_units must be at least 1")

        if self.swap.deadline_horizon_seconds <= 0:
            errors.append("swap.deadline_horizon_seconds must be positive")

        if len(self.swap.asset_limits) != 2:
            errors.append("swap.asset_limits must have exactly two entries")
        elif any(limit <= 0 for limit in self.swap.asset_limits):
            errors.append("swap.asset_limits must be positive")

        if self.swap.min_amount_out < 0:
            errors.append("swap.min_amount_out must not be negative")

        if self.bps_scale != BPS_SCALE:
            errors.append(f"bps_scale must be {BPS_SCALE}")

        if self.fixed_point_decimals != DEFAULT_DECIMALS:
            errors.append(f"fixed_point_decimals must be {DEFAULT_DECIMALS}")

        if not self.dry_run:
            for name in self.contracts.missing():
                errors.append(f"contracts.{name} is not set")

        return errors

    @classmethod
    def for_testing(cls) -> "EngineConfig":
        """Get configuration for testing."""
        return cls(
            dry_run=True,
            contracts=ContractsConfig(
                reserve_address="0x00000000000000000000000000000000000000a1",
                managed_token_address="0x00000000000000000000000000000000000000a2",
                reference_token_address="0x00000000000000000000000000000000000000a3",
                proxy_pool_address="0x00000000000000000000000000000000000000a4",
                pool_address="0x00000000000000000000000000000000000000a5",
                vault_address="0x00000000000000000000000000000000000000a6",
            ),
        )

    @classmethod
    def for_production(cls, contracts: ContractsConfig) -> "EngineConfig":
        """Get configuration for production."""
        return cls(
            contracts=contracts,
            dry_run=False,
            breach=BreachConfig(rule=BreachRule.DIRECT),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Build configuration from a nested dictionary."""
        config = cls()

        if "service_name" in data:
            config.service_name = str(data["service_name"])
        if "dry_run" in data:
            config.dry_run = bool(data["dry_run"])

        if "breach" in data:
            br = data["breach"] or {}
            config.breach = BreachConfig(
                rule=BreachRule(str(br.get("rule", BreachRule.DIRECT.value)).upper()),
            )

        if "sizing" in data:
            sz = data["sizing"] or {}
            config.sizing = SizingConfig(
                rounding_buffer_units=int(sz.get("rounding_buffer_units", 1)),
            )

        if "swap" in data:
            sw = data["swap"] or {}
            defaults = SwapConfig()
            limits = sw.get("asset_limits", defaults.asset_limits)
            config.swap = SwapConfig(
                deadline_horizon_seconds=int(
                    sw.get("deadline_horizon_seconds", defaults.deadline_horizon_seconds)
                ),
                asset_limits=tuple(int(limit) for limit in limits),
                min_amount_out=int(sw.get("min_amount_out", defaults.min_amount_out)),
            )

        if "contracts" in data:
            ct = data["contracts"] or {}
            defaults = ContractsConfig()
            config.contracts = ContractsConfig(
                reserve_address=ct.get("reserve_address", ""),
                managed_token_address=ct.get("managed_token_address", ""),
                reference_token_address=ct.get("reference_token_address", ""),
                proxy_pool_address=ct.get("proxy_pool_address", ""),
                pool_address=ct.get("pool_address", ""),
                vault_address=ct.get("vault_address", ""),
                managed_token_symbol=ct.get("managed_token_symbol", defaults.managed_token_symbol),
                reference_token_symbol=ct.get("reference_token_symbol", defaults.reference_token_symbol),
                rpc_url_env=ct.get("rpc_url_env", defaults.rpc_url_env),
                relay_key_env=ct.get("relay_key_env", defaults.relay_key_env),
                chain_id=ct.get("chain_id"),
            )

        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EngineConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Config file {path} is not valid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")

        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load contract addresses and settings from environment variables."""
        env = os.environ
        config = cls()
        config.contracts = ContractsConfig(
            reserve_address=env.get("PRICE_BAND_RESERVE", ""),
            managed_token_address=env.get("PRICE_BAND_MANAGED_TOKEN", ""),
            reference_token_address=env.get("PRICE_BAND_REFERENCE_TOKEN", ""),
            proxy_pool_address=env.get("PRICE_BAND_PROXY_POOL", ""),
            pool_address=env.get("PRICE_BAND_POOL", ""),
            vault_address=env.get("PRICE_BAND_VAULT", ""),
        )
        if env.get("PRICE_BAND_BREACH_RULE"):
            config.breach = BreachConfig(
                rule=BreachRule(env["PRICE_BAND_BREACH_RULE"].upper()),
            )
        if env.get("PRICE_BAND_MIN_AMOUNT_OUT"):
            config.swap.min_amount_out = int(env["PRICE_BAND_MIN_AMOUNT_OUT"])
        if env.get("PRICE_BAND_DEADLINE_SECONDS"):
            config.swap.deadline_horizon_seconds = int(env["PRICE_BAND_DEADLINE_SECONDS"])
        return config
