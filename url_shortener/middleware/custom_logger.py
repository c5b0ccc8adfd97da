from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from typing import Any, Dict
import json, os, threading, time, uuid
from datetime import datetime, timezone

from url_shortener.config import LOG_DIR
from url_shortener.utils import client_ip

class JsonLineWriter:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
    def write(self, record: Dict[str, Any]) -> None:
        record["_ts"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        line = json.dumps(record, separators=(",", ":"), ensure_ascii=False, default=str) + "\n"
        with self._lock:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)

class Audit:
    """Domain and HTTP events, one JSON object per line."""
    def __init__(self, writer: JsonLineWriter):
        self.writer = writer
    def event(self, kind: str, **fields: Any) -> None:
        self.writer.write({"kind": kind, **fields})

audit = Audit(JsonLineWriter(os.path.join(LOG_DIR, "app.log")))

class StructuredAuditMiddleware(BaseHTTPMiddleware):
    header = "X-Request-ID"

    def __init__(self, app: ASGIApp):
        super().__init__(app)
    async def dispatch(self, request, call_next):
        cid = request.headers.get(self.header) or str(uuid.uuid4())
        t0 = time.perf_counter()
        audit.event(
            "http_request",
            cid=cid,
            method=request.method,
            path=request.url.path,
            query=str(request.url.query),
            client=client_ip(request),
            referrer=request.headers.get("referer"),
        )
        try:
            response = await call_next(request)
        except Exception as e:
            latency_ms = round((time.perf_counter() - t0) * 1000, 2)
            audit.event("http_exception", cid=cid, error=repr(e), latency_ms=latency_ms)
            raise
        latency_ms = round((time.perf_counter() - t0) * 1000, 2)
        response.headers[self.header] = cid
        audit.event(
            "http_response",
            cid=cid,
            status=response.status_code,
            location=response.headers.get("location"),
            latency_ms=latency_ms,
        )
        return response
