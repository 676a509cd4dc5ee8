"""
Item Collector — Configuration
All tunable parameters in one place.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TimingConfig:
    wait_time: float = 0.75             # Seconds to wait for windows/cursor
    poll_interval: float = 0.1          # Poll step for unbounded waits
    nav_poll_interval: float = 0.1      # Poll step while navigating


@dataclass
class InventoryConfig:
    pack_slots: int = 10                # Top-level inventory bag slots
    bank_slots: int = 24                # Top-level bank slots
    pack_slot_offset: int = 22          # Raw ItemSlot - offset = packN
    bank_slot_offset: int = -1          # Raw ItemSlot - offset = bankN


@dataclass
class TradeConfig:
    batch_size: int = 8                 # Items per trade window
    proximity: float = 15.0             # Navigate when farther than this
    nav_stop_distance: int = 20         # /nav target distance=N


@dataclass
class BridgeConfig:
    url: str = "ws://127.0.0.1:7788"
    request_timeout: float = 5.0        # Seconds per bridge call
    reconnect_delay: int = 3


@dataclass
class NotificationConfig:
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    enabled: bool = True


@dataclass
class StorageConfig:
    settings_path: str = "./config/collect.ini"


@dataclass
class CollectorConfig:
    timing: TimingConfig = field(default_factory=TimingConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    trade: TradeConfig = field(default_factory=TradeConfig)
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = "data/collect.log"

    @classmethod
    def from_env(cls) -> "CollectorConfig":
        """Load config with environment variable overrides."""
        config = cls()
        config.bridge.url = os.getenv("COLLECT_BRIDGE_URL", config.bridge.url)
        config.storage.settings_path = os.getenv(
            "COLLECT_SETTINGS_PATH", config.storage.settings_path
        )
        config.notifications.telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN", "")
        config.notifications.telegram_chat_id = os.getenv("TELEGRAM_CHAT_ID", "")
        config.log_level = os.getenv("LOG_LEVEL", "INFO")
        config.trade.batch_size = int(os.getenv("COLLECT_BATCH_SIZE", str(config.trade.batch_size)))
        config.timing.wait_time = float(os.getenv("COLLECT_WAIT_TIME", str(config.timing.wait_time)))
        return config
