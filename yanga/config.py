"""
YANGA Configuration

Tracker-wide settings in one place.

Design:
- Plain dataclass, no config files
- Defaults match the mobile app (20 minute cooldown, Paris time)
- Validated on construction so bad values fail at startup
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Tuple
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)


DEFAULT_COOLDOWN = timedelta(minutes=20)
DEFAULT_TICK_INTERVAL = 1.0  # seconds
REFERENCE_ZONE = "Europe/Paris"

DEFAULT_FLAVORS: Tuple[str, ...] = (
    "Coco‑Ananas",
    "Citron",
    "Boost de Baies",
    "Pêche",
    "Fruits de la Passion",
    "Cassis",
)

# Single logical reminder slot
REMINDER_NOTIFICATION_ID = 0

NOTIFICATION_TITLE = "Yanga prête !"
NOTIFICATION_BODY = "Il est temps de boire ta prochaine Yanga ({flavor})"
READY_TEXT = "Prêt pour une Yanga"

CSV_HEADER: Tuple[str, str] = ("Goût", "Horodatage")


@dataclass
class TrackerConfig:
    """
    Settings for one tracker instance.

    Attributes:
        cooldown: Wait after an event before the next reminder
        flavors: Closed set of allowed event labels
        storage_path: JSON key-value file holding history and next time
        export_path: Default CSV export target
        reference_zone: IANA zone used for naive timestamps and display
        tick_interval: Countdown refresh cadence in seconds
        notification_id: Fixed notification slot
    """

    DEFAULT_STORAGE_DIR = Path.home() / ".yanga"
    DEFAULT_STORAGE_FILE = "preferences.json"
    DEFAULT_EXPORT_FILE = "yanga_log.csv"

    cooldown: timedelta = DEFAULT_COOLDOWN
    flavors: Tuple[str, ...] = DEFAULT_FLAVORS
    storage_path: Path = field(default=None)
    export_path: Path = field(default=None)
    reference_zone: str = REFERENCE_ZONE
    tick_interval: float = DEFAULT_TICK_INTERVAL
    notification_id: int = REMINDER_NOTIFICATION_ID
    notification_title: str = NOTIFICATION_TITLE
    notification_body: str = NOTIFICATION_BODY
    ready_text: str = READY_TEXT
    csv_header: Tuple[str, str] = CSV_HEADER

    def __post_init__(self):
        """Fill path defaults and validate"""
        if self.storage_path is None:
            self.storage_path = self.DEFAULT_STORAGE_DIR / self.DEFAULT_STORAGE_FILE
        if self.export_path is None:
            self.export_path = self.DEFAULT_STORAGE_DIR / self.DEFAULT_EXPORT_FILE

        self.storage_path = Path(self.storage_path)
        self.export_path = Path(self.export_path)
        self.flavors = tuple(self.flavors)

        if not isinstance(self.cooldown, timedelta):
            raise TypeError("cooldown must be timedelta")
        if self.cooldown <= timedelta(0):
            raise ValueError("cooldown must be positive")
        if self.tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        if not self.flavors:
            raise ValueError("At least one flavor is required")
        if len(set(self.flavors)) != len(self.flavors):
            raise ValueError("Flavors must be unique")
        if len(self.csv_header) != 2:
            raise ValueError("csv_header must have exactly two columns")

        # Fails fast on an unknown zone name
        ZoneInfo(self.reference_zone)

    @property
    def zone(self) -> ZoneInfo:
        """Reference zone as a tzinfo"""
        return ZoneInfo(self.reference_zone)

    def resolve_flavor(self, choice: str) -> str:
        """
        Resolve user input to a configured flavor.

        Accepts a 1-based index or a case-insensitive name.

        Raises:
            ValueError: If nothing matches
        """
        choice = choice.strip()
        if choice.isdigit():
            index = int(choice) - 1
            if 0 <= index < len(self.flavors):
                return self.flavors[index]
            raise ValueError(f"No flavor at position {choice}")

        for flavor in self.flavors:
            if flavor.casefold() == choice.casefold():
                return flavor

        raise ValueError(f"Unknown flavor: {choice}")
