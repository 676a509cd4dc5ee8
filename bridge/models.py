"""
Data models for the Item Collector.
Slot addresses, item references, snapshots, and trade session state.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterator, List, Optional, Set


class InvalidLocationError(ValueError):
    """Raised when a location is neither pack nor bank."""


class ConfigMissingError(LookupError):
    """Raised when the settings store has no section for an agent."""

    def __init__(self, agent: str):
        super().__init__(f"{agent} does not have any configured items to collect")
        self.agent = agent


class BridgeError(RuntimeError):
    """Raised when a call to the game bridge fails or times out."""


class Location(Enum):
    PACK = "pack"
    BANK = "bank"

    @classmethod
    def parse(cls, value) -> "Location":
        if isinstance(value, Location):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidLocationError(f"Invalid search location: {value}") from None


class MatchMode(Enum):
    EXACT = "exact"
    PARTIAL = "partial"


class Destination(Enum):
    TRADE_TARGET = "TRADE_TARGET"
    BANK = "BANK"
    AUTO_STOW = "AUTO_STOW"


class SessionState(Enum):
    IDLE = "IDLE"
    TARGETING = "TARGETING"
    APPROACHING = "APPROACHING"
    OFFERING = "OFFERING"
    AWAITING_WINDOW_CLOSE = "AWAITING_WINDOW_CLOSE"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class FailureReason(Enum):
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    ABORTED = "ABORTED"


@dataclass(frozen=True)
class SlotAddress:
    """1-based container/sub-slot locator, e.g. pack3 2."""
    location: Location
    container: int
    sub_slot: int

    def __str__(self) -> str:
        return f"{self.location.value}{self.container} {self.sub_slot}"

    @classmethod
    def parse(cls, text: str) -> "SlotAddress":
        """Parse "pack3 2" / "bank4 1" back into an address."""
        try:
            head, sub = text.strip().split()
            for loc in Location:
                if head.startswith(loc.value):
                    return cls(loc, int(head[len(loc.value):]), int(sub))
        except ValueError:
            pass
        raise ValueError(f"Bad slot address: {text!r}")


@dataclass(frozen=True)
class ItemRef:
    """A named item at a specific slot. Stale after any pickup or placement."""
    name: str
    address: SlotAddress

    @property
    def location(self) -> Location:
        return self.address.location

    @property
    def slot(self) -> str:
        return str(self.address)


@dataclass
class InventorySnapshot:
    """Item name -> refs, in scan order. Built fresh per operation."""
    location: Optional[Location]
    items: Dict[str, List[ItemRef]] = field(default_factory=dict)

    def add(self, ref: ItemRef):
        self.items.setdefault(ref.name, []).append(ref)

    def get(self, name: str) -> List[ItemRef]:
        return list(self.items.get(name, []))

    def names(self) -> List[str]:
        return list(self.items.keys())

    def __contains__(self, name: object) -> bool:
        return name in self.items

    def __iter__(self) -> Iterator[ItemRef]:
        for refs in self.items.values():
            yield from refs

    @property
    def total(self) -> int:
        return sum(len(refs) for refs in self.items.values())


@dataclass
class TradeSession:
    """State for one outstanding give operation."""
    target: str
    wanted: List[str]
    requester: Optional[str] = None     # Who gets the "done" signal
    session_id: Optional[str] = None
    state: SessionState = SessionState.IDLE
    failure: Optional[FailureReason] = None
    pending: Deque[str] = field(default_factory=deque)
    consumed: Set[SlotAddress] = field(default_factory=set)
    skipped: List[str] = field(default_factory=list)
    offered: List[ItemRef] = field(default_factory=list)
    batches: int = 0                    # Trade windows filled and confirmed
    confirm_attempts: int = 0

    def __post_init__(self):
        if not self.pending:
            self.pending = deque(self.wanted)
        if self.requester is None:
            self.requester = self.target

    @property
    def is_terminal(self) -> bool:
        return self.state in (SessionState.COMPLETED, SessionState.FAILED)

    @property
    def offered_count(self) -> int:
        return len(self.offered)


@dataclass
class CollectionReport:
    """Outcome of one roster collection run."""
    roster: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    aborted: Optional[str] = None
    trades_confirmed: int = 0

    def summary(self) -> str:
        lines = [f"Collected from {len(self.completed)}/{len(self.roster)} members"]
        for name in self.roster:
            mark = "done" if name in self.completed else "skipped"
            if name == self.aborted:
                mark = "aborted"
            lines.append(f"  {name}: {mark}")
        return "\n".join(lines)
