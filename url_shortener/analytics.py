from dataclasses import dataclass
from datetime import datetime
from typing import List

from url_shortener.clock import is_expired
from url_shortener.errors import NotFound, StillActive
from url_shortener.middleware.custom_logger import audit
from url_shortener.records import Location, ShortUrlRecord


@dataclass(frozen=True)
class ClickSummary:
    timestamp: datetime
    referrer: str
    location: Location


@dataclass(frozen=True)
class Stats:
    shortcode: str
    original_url: str
    created_at: datetime
    expires_at: datetime
    total_clicks: int
    is_expired: bool
    clicks: List[ClickSummary]


def summarize(record: ShortUrlRecord, now: datetime) -> Stats:
    return Stats(
        shortcode=record.shortcode,
        original_url=record.original_url,
        created_at=record.created_at,
        expires_at=record.expires_at,
        total_clicks=record.total_clicks,
        is_expired=is_expired(now, record.expires_at),
        clicks=[ClickSummary(c.timestamp, c.referrer, c.location) for c in record.clicks],
    )


class AnalyticsAggregator:
    """Read-side reporting over the record store, plus removal of expired links."""

    def __init__(self, store):
        self.store = store

    def stats(self, shortcode: str, now: datetime) -> Stats:
        record = self.store.find_by_code(shortcode)
        if record is None:
            raise NotFound()
        stats = summarize(record, now)
        audit.event("stats_view", shortcode=shortcode, totalClicks=stats.total_clicks)
        return stats

    def summarize_all(self, now: datetime) -> List[Stats]:
        return [summarize(r, now) for r in self.store.list_all()]

    def remove(self, shortcode: str, now: datetime) -> None:
        try:
            self.store.delete_if_expired(shortcode, now)
        except StillActive:
            audit.event("delete_refused", shortcode=shortcode)
            raise
        except NotFound:
            audit.event("delete_not_found", shortcode=shortcode)
            raise
        audit.event("short_deleted", shortcode=shortcode)
