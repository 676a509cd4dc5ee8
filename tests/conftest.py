"""
Pytest configuration and shared fixtures.
"""

import pytest

from config import InventoryConfig, TimingConfig, TradeConfig
from inventory.item_mover import ItemMover
from inventory.slot_index import SlotIndex
from storage.settings_store import SettingsStore
from tests.fixtures.fake_client import FakeGameClient
from trading.agent_signal import AgentSignal
from trading.collector import Collector
from trading.trade_session import TradeRunner


@pytest.fixture
def timing():
    """Short waits so timeouts resolve quickly."""
    return TimingConfig(wait_time=0.05, poll_interval=0.001, nav_poll_interval=0.001)


@pytest.fixture
def client():
    return FakeGameClient(me="CharOne")


@pytest.fixture
def slot_index(client):
    return SlotIndex(client, InventoryConfig())


@pytest.fixture
def mover(client, timing):
    return ItemMover(client, timing)


@pytest.fixture
def signal(client):
    return AgentSignal(client)


@pytest.fixture
def trade_runner(client, slot_index, mover, signal, timing):
    return TradeRunner(client, slot_index, mover, signal, TradeConfig(), timing)


@pytest.fixture
def settings(tmp_path):
    return SettingsStore(str(tmp_path / "collect.ini"))


@pytest.fixture
def collector(client, signal, slot_index, mover, settings, timing):
    return Collector(client, signal, slot_index, mover, settings, timing)
