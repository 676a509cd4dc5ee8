"""
Settings Store — INI-backed want lists.

One section per character, one key per wanted item:

    [CharOne]
    Diamond Coin=true
    Blue Diamond=true

The file is re-read before every operation so edits apply without a restart.
"""

from __future__ import annotations
import configparser
import os
from typing import Dict, List
from bridge.models import ConfigMissingError
import logging

logger = logging.getLogger(__name__)

EXAMPLE_CONFIG: Dict[str, Dict[str, str]] = {
    "General": {
        "FastMode": "true",
    },
    "CharacterOne": {
        "Bone Chips": "true",
        "Rubicite Ore": "true",
        "Rhenium Ore": "true",
    },
    "CharacterTwo": {
        "Fire Mephit Blood": "true",
        "Air Mephit Blood": "true",
    },
}

TRUTHY = {"1", "true", "yes", "on"}


class SettingsStore:
    """Loads, queries, and saves per-character want lists."""

    def __init__(self, path: str):
        self.path = path
        self._parser = self._new_parser()
        self._unreadable = False

    @staticmethod
    def _new_parser() -> configparser.ConfigParser:
        parser = configparser.ConfigParser(interpolation=None, delimiters=("=",), strict=False)
        parser.optionxform = str  # Item names are case-sensitive
        return parser

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def bootstrap(self):
        """Load the file, writing the example config first if it does not exist."""
        if self.exists():
            logger.info(f"[SETTINGS] Config file exists: {self.path}")
            self.load()
            return

        logger.info(f"[SETTINGS] Config file does NOT exist: {self.path}")
        logger.info(f"[SETTINGS] Writing example config to {self.path}")
        self._parser = self._new_parser()
        self._parser.read_dict(EXAMPLE_CONFIG)
        self.save()

    def load(self):
        """Re-read the settings file from disk."""
        parser = self._new_parser()
        self._unreadable = False
        try:
            parser.read(self.path, encoding="utf-8")
        except configparser.Error as e:
            logger.error(f"[SETTINGS] Could not parse {self.path}: {e}")
            parser = self._new_parser()
            self._unreadable = True
        self._parser = parser

    def save(self):
        if self._unreadable:
            logger.error(f"[SETTINGS] Not saving over unreadable {self.path}; fix it by hand")
            return
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            self._parser.write(f, space_around_delimiters=False)
        logger.debug(f"[SETTINGS] Saved {self.path}")

    def sections(self) -> List[str]:
        return self._parser.sections()

    def want_list(self, agent: str) -> List[str]:
        """Item names agent wants, in file order. Raises ConfigMissingError."""
        if not self._parser.has_section(agent):
            raise ConfigMissingError(agent)
        return list(self._parser[agent].keys())

    def is_wanted(self, agent: str, item: str) -> bool:
        if not self._parser.has_option(agent, item):
            return False
        return self._parser.get(agent, item).strip().lower() in TRUTHY

    def add_item(self, agent: str, item: str):
        """Mark item as wanted by agent and save."""
        if not self._parser.has_section(agent):
            self._parser.add_section(agent)
        self._parser.set(agent, item, "true")
        self.save()
        logger.info(f'[SETTINGS] Added "{item}" to {agent} settings')

    def sort(self):
        """Rewrite sections and items alphabetically and save."""
        ordered = self._new_parser()
        for section in sorted(self._parser.sections()):
            ordered.add_section(section)
            for key in sorted(self._parser[section].keys()):
                ordered.set(section, key, self._parser.get(section, key))
        self._parser = ordered
        self.save()
        logger.info("[SETTINGS] Settings sorted and saved")
