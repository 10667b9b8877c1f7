"""
CLI Tests.
"""

import argparse

from price_band_engine.cli import (
    EXIT_FAILED,
    EXIT_OK,
    EXIT_USAGE,
    build_config,
    build_mock_config,
    create_parser,
    main,
    validate_args,
)
from price_band_engine.fixed_point import ONE, to_fixed


def _args(*argv: str) -> argparse.Namespace:
    return create_parser().parse_args(list(argv))


class TestArguments:
    """Parsing and validation."""

    def test_price_required(self):
        """--price is mandatory."""
        assert main([]) == EXIT_USAGE

    def test_defaults(self):
        """Mock seeds default to the reference scenario."""
        args = _args("--price", "0.4")
        assert args.mock_reserve == "1000000"
        assert args.mock_supply == "2000000"
        assert args.mock_multiplier_bps == 15000
        assert args.log_level == "INFO"
        assert not args.dry_run

    def test_invalid_price(self):
        """Prices must be positive decimals."""
        assert validate_args(_args("--price", "abc"))
        assert validate_args(_args("--price", "0")) == ["--price must be positive"]
        assert validate_args(_args("--price", "0.4")) == []

    def test_invalid_mock_values(self):
        """Mock seeds are only checked for dry runs."""
        errors = validate_args(_args("--price", "1", "--dry-run", "--mock-supply", "-5"))
        assert errors == ["--mock-supply must not be negative"]
        assert validate_args(_args("--price", "1", "--mock-supply", "-5")) == []

    def test_out_of_range_price_is_usage_error(self, capsys):
        """A price past the decimal range exits 2 instead of raising."""
        assert main(["--price", "1e1000000", "--dry-run"]) == EXIT_USAGE
        assert "Invalid --price" in capsys.readouterr().err

    def test_malformed_yaml_is_usage_error(self, tmp_path, capsys):
        """An unparsable config file exits 2 instead of raising."""
        path = tmp_path / "broken.yaml"
        path.write_text("breach: [DIRECT\n")
        assert main(["--price", "0.4", "--config", str(path), "--dry-run"]) == EXIT_USAGE
        assert "not valid YAML" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path):
        """Config paths must exist."""
        errors = validate_args(_args("--price", "1", "--config", str(tmp_path / "nope.yaml")))
        assert errors and "not found" in errors[0]

    def test_build_mock_config(self):
        """The dry-run price also settles mock swaps."""
        mock = build_mock_config(_args("--price", "0.4", "--dry-run", "--mock-reserve", "10"))
        assert mock.reserve_value == 10 * ONE
        assert mock.managed_supply == 2_000_000 * ONE
        assert mock.pool_price == to_fixed("0.4")

    def test_build_config_from_yaml(self, tmp_path):
        """YAML wins over the environment."""
        path = tmp_path / "engine.yaml"
        path.write_text("service_name: Yaml Service\n")
        config = build_config(_args("--price", "1", "--config", str(path), "--dry-run"))
        assert config.service_name == "Yaml Service"
        assert config.dry_run


class TestDryRun:
    """Single passes against the mock chain."""

    def test_buy(self, capsys):
        """Below the floor exits 0 and reports the purchase."""
        assert main(["--price", "0.4", "--dry-run"]) == EXIT_OK
        assert "BOUGHT" in capsys.readouterr().out

    def test_sell(self, capsys):
        """Above the ceiling exits 0 and reports the sale."""
        assert main(["--price", "0.9", "--dry-run"]) == EXIT_OK
        assert "SOLD" in capsys.readouterr().out

    def test_no_action(self, capsys):
        """Inside the band exits 0."""
        assert main(["--price", "0.6", "--dry-run"]) == EXIT_OK
        assert "NO_ACTION" in capsys.readouterr().out

    def test_zero_supply_fails(self, capsys):
        """A failed pass exits 1."""
        code = main(["--price", "0.4", "--dry-run", "--mock-supply", "0"])
        assert code == EXIT_FAILED
        assert "INP_ZERO_SUPPLY" in capsys.readouterr().err

    def test_live_without_addresses(self, monkeypatch, capsys):
        """Live runs need addresses and credentials."""
        for name in ("PRICE_BAND_RESERVE", "PRICE_BAND_RPC_URL", "PRICE_BAND_RELAY_KEY"):
            monkeypatch.delenv(name, raising=False)

        assert main(["--price", "0.4"]) == EXIT_USAGE
        err = capsys.readouterr().err
        assert "contracts.reserve_address is not set" in err
        assert "PRICE_BAND_RPC_URL" in err
