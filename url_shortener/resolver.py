from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from url_shortener.clock import is_expired
from url_shortener.errors import Expired, NotFound, StoreFailure
from url_shortener.middleware.custom_logger import audit
from url_shortener.records import ClickEvent, Location, UNKNOWN

GeoLookup = Callable[[str], Optional[Location]]


def no_geo_lookup(ip: str) -> Optional[Location]:
    return None


@dataclass(frozen=True)
class ClickContext:
    referrer: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def locate(geo_lookup: GeoLookup, ip: Optional[str]) -> Location:
    """Resolve ``ip`` to a location; any failure degrades to "Unknown" fields."""
    if not ip:
        return Location()
    try:
        found = geo_lookup(ip)
    except Exception as e:
        audit.event("geo_lookup_failed", ip=ip, error=str(e))
        return Location()
    if found is None:
        return Location()
    return Location.from_partial(found.country, found.region, found.city)


class RedirectResolver:
    def __init__(self, store, geo_lookup: GeoLookup = no_geo_lookup):
        self.store = store
        self.geo_lookup = geo_lookup

    def resolve(self, shortcode: str, now: datetime, context: ClickContext) -> str:
        """Return the target URL of ``shortcode`` and record the visit.

        Expired links raise Expired without recording anything. A click that
        cannot be stored fails the whole redirect with StoreFailure.
        """
        record = self.store.find_by_code(shortcode)
        if record is None:
            audit.event("redirect_not_found", shortcode=shortcode)
            raise NotFound()
        if is_expired(now, record.expires_at):
            audit.event("redirect_expired", shortcode=shortcode)
            raise Expired()

        event = ClickEvent(
            timestamp=now,
            referrer=context.referrer or "direct",
            ip_address=context.ip_address,
            user_agent=context.user_agent or UNKNOWN,
            location=locate(self.geo_lookup, context.ip_address),
        )
        try:
            self.store.append_click(shortcode, event)
        except StoreFailure:
            audit.event("click_append_failed", shortcode=shortcode)
            raise
        audit.event("redirect_hit", shortcode=shortcode, referrer=event.referrer, country=event.location.country)
        return record.original_url
