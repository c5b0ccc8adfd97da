"""Durable shortcode -> record mapping.

Every public method runs in its own transaction, so each one is atomic on its
own. Creation leans on the unique index over ``urls.shortcode``; clicks are
independent rows keyed by the parent id, which keeps concurrent appends from
overwriting each other.
"""
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import DateTime, String, delete, insert, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from url_shortener.clock import is_expired
from url_shortener.errors import DuplicateKey, NotFound, StillActive, StoreFailure
from url_shortener.middleware.custom_logger import audit
from url_shortener.models import URL, Click
from url_shortener.records import ClickEvent, Location, ShortUrlRecord
from url_shortener.utils import as_utc


def _to_record(u: URL) -> ShortUrlRecord:
    return ShortUrlRecord(
        shortcode=u.shortcode,
        original_url=u.original_url,
        created_at=as_utc(u.created_at),
        expires_at=as_utc(u.expires_at),
        is_active=u.is_active,
        clicks=[
            ClickEvent(
                timestamp=as_utc(c.timestamp),
                referrer=c.referrer,
                ip_address=c.ip_address,
                user_agent=c.user_agent,
                location=Location(c.country, c.region, c.city),
            )
            for c in u.clicks
        ],
    )


class RecordStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            with session.begin():
                yield session
        except SQLAlchemyError as exc:
            audit.event("store_failure", error=str(exc))
            raise StoreFailure() from exc
        finally:
            session.close()

    def exists(self, shortcode: str) -> bool:
        with self._transaction() as session:
            found = session.scalar(select(URL.id).where(URL.shortcode == shortcode))
        return found is not None

    def create_if_absent(self, record: ShortUrlRecord) -> None:
        """Insert ``record``; raise DuplicateKey when its shortcode is taken."""
        with self._transaction() as session:
            session.add(URL(
                shortcode=record.shortcode,
                original_url=record.original_url,
                created_at=as_utc(record.created_at),
                expires_at=as_utc(record.expires_at),
                is_active=record.is_active,
            ))
            try:
                session.flush()
            except IntegrityError as exc:
                raise DuplicateKey() from exc

    def find_by_code(self, shortcode: str) -> Optional[ShortUrlRecord]:
        with self._transaction() as session:
            u = session.scalar(
                select(URL).options(selectinload(URL.clicks)).where(URL.shortcode == shortcode)
            )
            return _to_record(u) if u is not None else None

    def append_click(self, shortcode: str, event: ClickEvent) -> None:
        # INSERT ... SELECT resolves the parent and writes the click in one
        # statement, so a record deleted in between yields zero rows.
        source = select(
            URL.id,
            literal(as_utc(event.timestamp), DateTime(timezone=True)),
            literal(event.referrer, String()),
            literal(event.ip_address, String()),
            literal(event.user_agent, String()),
            literal(event.location.country, String()),
            literal(event.location.region, String()),
            literal(event.location.city, String()),
        ).where(URL.shortcode == shortcode)
        stmt = insert(Click.__table__).from_select(
            ["url_id", "timestamp", "referrer", "ip_address", "user_agent", "country", "region", "city"],
            source,
        )
        with self._transaction() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise NotFound()

    def delete_if_expired(self, shortcode: str, now: datetime) -> None:
        """Delete the record only if it is expired as of ``now``.

        Expiry is re-read inside the deleting transaction; the caller's own
        earlier judgement is never trusted.
        """
        with self._transaction() as session:
            row = session.execute(
                select(URL.id, URL.expires_at).where(URL.shortcode == shortcode)
            ).one_or_none()
            if row is None:
                raise NotFound()
            if not is_expired(now, row.expires_at):
                raise StillActive()
            session.execute(delete(Click).where(Click.url_id == row.id))
            result = session.execute(
                delete(URL).where(URL.id == row.id, URL.expires_at < as_utc(now))
            )
            if result.rowcount == 0:
                raise NotFound()

    def list_all(self) -> List[ShortUrlRecord]:
        """All records, newest first."""
        with self._transaction() as session:
            rows = session.scalars(
                select(URL).options(selectinload(URL.clicks)).order_by(URL.created_at.desc(), URL.id.desc())
            ).all()
            return [_to_record(u) for u in rows]
