from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

from starlette.requests import Request


def valid_url(u: str) -> bool:
    if not isinstance(u, str) or any(c.isspace() for c in u):
        return False
    try:
        p = urlparse(u)
        return p.scheme in ("http", "https") and bool(p.hostname)
    except ValueError:
        return False

def as_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc) if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

def iso_z(dt: datetime) -> str:
    return as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    return forwarded or getattr(request.client, "host", None)

def make_short_link(base: str, shortcode: str) -> str:
    if not base.endswith("/"):
        base += "/"
    return base + shortcode
