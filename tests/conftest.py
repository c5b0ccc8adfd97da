import os
import tempfile
from datetime import datetime, timedelta, timezone

_tmp = tempfile.mkdtemp(prefix="url-shortener-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_tmp, "logs"))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_tmp}/default.db")

import pytest
from fastapi.testclient import TestClient

from url_shortener.app import app, get_clock, get_geo_lookup, get_store
from url_shortener.db import Base, make_engine, make_session_factory
from url_shortener.records import Location
from url_shortener.store import RecordStore

START = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=START):
        self.current = now

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path}/test.db")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return RecordStore(make_session_factory(engine))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def geo_lookup():
    table = {"203.0.113.7": Location("US", "CA", "San Francisco")}
    return table.get


@pytest.fixture
def client(store, clock, geo_lookup):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_geo_lookup] = lambda: geo_lookup
    yield TestClient(app, base_url="http://sho.rt")
    app.dependency_overrides.clear()
