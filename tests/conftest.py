from typing import Any, Generator

import pytest

from prompt_client.configuration import Config, ConfigFactory, ConfigStore, MockConfigProvider, reset_config_provider
from prompt_client.models import EndpointConfig
from prompt_client.records.memory import InMemoryRecordStore
from tests.config_fixtures import CONFIG_FILE, ENV_FILE

# pylint: disable=unused-argument, redefined-outer-name


@pytest.fixture(autouse=True)
def setup_reset_config() -> Generator[None, Any, None]:
    """Reset Config Store and provider before each test"""
    ConfigStore.reset_instance()
    reset_config_provider()
    yield
    ConfigStore.reset_instance()
    reset_config_provider()


@pytest.fixture
def test_config() -> Config:
    """Provide test configuration"""
    factory: ConfigFactory = ConfigFactory()
    return factory.load(source=CONFIG_FILE, context="default", env_filename=ENV_FILE)


@pytest.fixture
def test_provider(test_config: Config) -> MockConfigProvider:
    """Provide MockConfigProvider with test configuration"""
    return MockConfigProvider(test_config)


@pytest.fixture
def endpoint() -> EndpointConfig:
    return EndpointConfig(base_url="https://test.example.com/services/data/v60.0/einstein/", token="secret-token", timeout=5)


@pytest.fixture
def case_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(
        {
            "500A": {"Id": "500A", "Subject": "Pump leaking", "Status": "New", "Type": None, "Reason": None},
            "500B": {"Id": "500B", "Subject": "Fuse blown", "Status": "Escalated"},
        },
        record_type="Case",
    )


