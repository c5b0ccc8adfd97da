from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Location:
    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN

    @classmethod
    def from_partial(cls, country=None, region=None, city=None) -> "Location":
        """Build a location, replacing empty parts with ``"Unknown"``."""
        return cls(country or UNKNOWN, region or UNKNOWN, city or UNKNOWN)


@dataclass(frozen=True)
class ClickEvent:
    timestamp: datetime
    referrer: str = "direct"
    ip_address: Optional[str] = None
    user_agent: str = UNKNOWN
    location: Location = field(default_factory=Location)


@dataclass
class ShortUrlRecord:
    shortcode: str
    original_url: str
    created_at: datetime
    expires_at: datetime
    clicks: List[ClickEvent] = field(default_factory=list)
    is_active: bool = True

    @property
    def total_clicks(self) -> int:
        return len(self.clicks)
