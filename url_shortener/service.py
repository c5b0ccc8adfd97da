from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from url_shortener.clock import compute_expiry
from url_shortener.codes import CodeGenerator
from url_shortener.config import DEFAULT_VALIDITY_MIN
from url_shortener.errors import DuplicateKey, InvalidUrl, MissingUrl, ShortcodeTaken
from url_shortener.middleware.custom_logger import audit
from url_shortener.records import ShortUrlRecord
from url_shortener.utils import valid_url


@dataclass(frozen=True)
class CreatedShortUrl:
    shortcode: str
    expires_at: datetime


class ShortUrlService:
    def __init__(self, store, generator: Optional[CodeGenerator] = None):
        self.store = store
        self.generator = generator or CodeGenerator(store)

    def create(self, url: str, now: datetime, validity_minutes: Optional[int] = None,
               shortcode: Optional[str] = None) -> CreatedShortUrl:
        """Validate the request and persist a new record.

        A caller-chosen shortcode that loses the create race raises
        ShortcodeTaken. Generated codes are redrawn on a duplicate, within
        the generator's single attempt budget.
        """
        if not url:
            raise MissingUrl()
        if not valid_url(url):
            raise InvalidUrl()
        if validity_minutes is None:
            validity_minutes = DEFAULT_VALIDITY_MIN
        expires_at = compute_expiry(now, validity_minutes)

        if shortcode:
            code = self.generator.generate(shortcode)
            try:
                self._insert(code, url, now, expires_at)
            except DuplicateKey:
                audit.event("shortcode_collision", shortcode=code)
                raise ShortcodeTaken()
            return CreatedShortUrl(code, expires_at)

        # candidates() raises GenerationExhausted once its draws run out
        for code in self.generator.candidates():
            try:
                self._insert(code, url, now, expires_at)
            except DuplicateKey:
                audit.event("shortcode_collision", shortcode=code)
                continue
            return CreatedShortUrl(code, expires_at)

    def _insert(self, code: str, url: str, now: datetime, expires_at: datetime) -> None:
        self.store.create_if_absent(ShortUrlRecord(
            shortcode=code, original_url=url, created_at=now, expires_at=expires_at,
        ))
        audit.event("short_created", shortcode=code, long_url=url, expiry=expires_at.isoformat())
