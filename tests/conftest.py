import pytest

from klogs.core.models.config import Config
from tests.helpers import FakeConnection, ListSink


@pytest.fixture(autouse=True)
def klogs_config():
    config = Config(quiet=True)
    Config.set_config(config)
    yield config


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()
