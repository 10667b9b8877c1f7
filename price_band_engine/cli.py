"""
Price Band Engine - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line entry point running a single control loop pass.

- Provides argparse-based CLI
- Loads configuration from YAML or environment
- Runs against the chain or the in-memory mock
- Cadence belongs to the external scheduler

============================================================
USAGE
============================================================
price-band-engine --price 0.42
price-band-engine --price 0.42 --config engine.yaml --env-file .env
price-band-engine --price 0.4 --dry-run --mock-reserve 1000000 --mock-supply 2000000

============================================================
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from . import __version__
from .adapters.mock import MockConfig, create_mock_deployment
from .adapters.web3_adapter import create_web3_deployment
from .config import EngineConfig
from .driver import create_driver
from .fixed_point import format_fixed, to_fixed
from .types import PassResult


logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="price-band-engine",
        description="Reserve-backed price band controller (single pass)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0  pass finished (no action, bought or sold)
  1  pass failed
  2  invalid arguments or configuration

Examples:
  %(prog)s --price 0.42                          # Run one pass on chain
  %(prog)s --price 0.4 --dry-run                 # Run against the mock chain
  %(prog)s --price 0.9 --dry-run --mock-multiplier-bps 15000
        """
    )

    parser.add_argument(
        "--price",
        type=str,
        required=True,
        metavar="DECIMAL",
        help="Current managed token price in the reference asset",
    )

    # --------------------------------------------------------
    # Configuration Options
    # --------------------------------------------------------
    config_group = parser.add_argument_group("Configuration Options")

    config_group.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="YAML configuration file (default: environment)",
    )

    config_group.add_argument(
        "--env-file",
        type=str,
        metavar="PATH",
        help="dotenv file loaded before reading the environment",
    )

    # --------------------------------------------------------
    # Dry Run Options
    # --------------------------------------------------------
    dry_run_group = parser.add_argument_group("Dry Run Options")

    dry_run_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the pass against the in-memory mock chain",
    )

    dry_run_group.add_argument(
        "--mock-reserve",
        type=str,
        default="1000000",
        metavar="DECIMAL",
        help="Mock reserve valuation (default: 1000000)",
    )

    dry_run_group.add_argument(
        "--mock-supply",
        type=str,
        default="2000000",
        metavar="DECIMAL",
        help="Mock managed token supply (default: 2000000)",
    )

    dry_run_group.add_argument(
        "--mock-multiplier-bps",
        type=int,
        default=15000,
        metavar="BPS",
        help="Mock ceiling multiplier in basis points (default: 15000)",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Args:
        args: Parsed arguments

    Returns:
        List of validation errors
    """
    errors = []

    try:
        if to_fixed(args.price) <= 0:
            errors.append("--price must be positive")
    except ValueError as e:
        errors.append(f"Invalid --price: {e}")

    if args.dry_run:
        for flag, value in (
            ("--mock-reserve", args.mock_reserve),
            ("--mock-supply", args.mock_supply),
        ):
            try:
                if to_fixed(value) < 0:
                    errors.append(f"{flag} must not be negative")
            except ValueError as e:
                errors.append(f"Invalid {flag}: {e}")
        if args.mock_multiplier_bps < 0:
            errors.append("--mock-multiplier-bps must not be negative")

    if args.config and not os.path.isfile(args.config):
        errors.append(f"Config file not found: {args.config}")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> EngineConfig:
    """
    Build engine configuration from CLI arguments.

    Args:
        args: Parsed arguments

    Returns:
        EngineConfig instance
    """
    if args.config:
        config = EngineConfig.from_yaml(args.config)
    else:
        config = EngineConfig.from_env()

    if args.dry_run:
        config.dry_run = True
    return config


def build_mock_config(args: argparse.Namespace) -> MockConfig:
    """Seed the mock chain from the dry run options."""
    return MockConfig(
        reserve_value=to_fixed(args.mock_reserve),
        managed_supply=to_fixed(args.mock_supply),
        ceiling_multiplier_bps=args.mock_multiplier_bps,
        pool_price=to_fixed(args.price),
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
    )


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def run_dry(config: EngineConfig, args: argparse.Namespace) -> PassResult:
    """Run one pass against a freshly seeded mock chain."""
    contracts = config.contracts
    deployment = create_mock_deployment(
        build_mock_config(args),
        managed_symbol=contracts.managed_token_symbol,
        reference_symbol=contracts.reference_token_symbol,
    )
    driver = create_driver(config, deployment)
    return await driver.run_control_loop_pass(to_fixed(args.price), deployment.relay)


async def run_live(config: EngineConfig, args: argparse.Namespace) -> PassResult:
    """Run one pass against the configured chain."""
    contracts = config.contracts
    deployment = create_web3_deployment(
        config,
        rpc_url=os.environ[contracts.rpc_url_env],
        private_key=os.environ[contracts.relay_key_env],
    )
    async with deployment.connection:
        driver = create_driver(config, deployment)
        return await driver.run_control_loop_pass(to_fixed(args.price), deployment.relay)


async def async_main(args: argparse.Namespace, config: EngineConfig) -> int:
    """
    Async main entry point.

    Args:
        args: Parsed arguments
        config: Validated engine configuration

    Returns:
        Exit code
    """
    try:
        if config.dry_run:
            result = await run_dry(config, args)
        else:
            result = await run_live(config, args)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return EXIT_FAILED

    logger.info(f"Pass result: {result.to_dict()}")
    if result.success:
        print(f"{result.result_code.value} at price {format_fixed(result.current_price)}")
        return EXIT_OK

    print(f"FAILED [{result.error_code}]: {result.error_message}", file=sys.stderr)
    return EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    if args.env_file:
        load_dotenv(args.env_file)
    else:
        load_dotenv()

    configure_logging(args.log_level)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return EXIT_USAGE

    try:
        config = build_config(args)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    problems = config.validate()
    if not config.dry_run:
        contracts = config.contracts
        for env_name in (contracts.rpc_url_env, contracts.relay_key_env):
            if not os.environ.get(env_name):
                problems.append(f"environment variable {env_name} is not set")
    if problems:
        for problem in problems:
            print(f"Error: {problem}", file=sys.stderr)
        return EXIT_USAGE

    return asyncio.run(async_main(args, config))


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
