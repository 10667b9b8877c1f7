"""
Shared fixtures for Price Band Engine tests.
"""

import pytest

from price_band_engine.adapters.mock import MockConfig, create_mock_deployment
from price_band_engine.config import EngineConfig
from price_band_engine.driver import ControlLoopDriver, create_driver


FIXED_NOW = 1_700_000_000.0


def fixed_clock() -> float:
    return FIXED_NOW


@pytest.fixture
def clock():
    return fixed_clock


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig.for_testing()


@pytest.fixture
def mock_config() -> MockConfig:
    return MockConfig()


@pytest.fixture
def deployment(mock_config):
    return create_mock_deployment(mock_config, clock=fixed_clock)


@pytest.fixture
def driver(engine_config, deployment) -> ControlLoopDriver:
    return create_driver(engine_config, deployment, clock=fixed_clock)
