import os

import psycopg
import pytest

os.environ.setdefault("POSTGIS_HOST", "localhost")
os.environ.setdefault("POSTGIS_DATABASE", "network")
os.environ.setdefault("POSTGIS_USER", "tester")
os.environ.setdefault("POSTGIS_PASSWORD", "p@ss word")

from map_features.config import MapFeaturesConfig  # noqa: E402
from map_features.projection import CoordinateReprojector  # noqa: E402


def statement_text(query):
    """Searchable text of a str or psycopg.sql statement."""
    return query if isinstance(query, str) else repr(query)


class FakeDatabase:
    """Records every statement run through fake psycopg connections."""

    def __init__(self):
        self.statements = []
        self.batches = []
        self.responses = []
        self.fail_on = None
        self.connections = 0
        self.commits = 0
        self.rollbacks = 0
        self.closed = 0

    def respond(self, marker, rows):
        """Return ``rows`` for statements whose text contains ``marker``."""
        self.responses.append((marker, rows))

    def check(self, query):
        if self.fail_on and self.fail_on in statement_text(query):
            raise psycopg.OperationalError(f"simulated failure on {self.fail_on}")

    def rows_for(self, query):
        text = statement_text(query)
        for marker, rows in self.responses:
            if marker in text:
                return list(rows)
        return []

    def texts(self):
        return [statement_text(q) for q, _ in self.statements]


class FakeCursor:
    def __init__(self, db):
        self.db = db
        self.rowcount = -1
        self._rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.db.statements.append((query, params))
        self.db.check(query)
        self._rows = self.db.rows_for(query)
        self.rowcount = len(self._rows)

    def executemany(self, query, params_seq):
        rows = list(params_seq)
        self.db.batches.append((query, rows))
        self.db.check(query)
        self.rowcount = len(rows)

    def fetchall(self):
        return self._rows

    def fetchone(self):
        return self._rows[0] if self._rows else None


class FakeConnection:
    def __init__(self, db):
        self.db = db

    def cursor(self):
        return FakeCursor(self.db)

    def commit(self):
        self.db.commits += 1

    def rollback(self):
        self.db.rollbacks += 1

    def close(self):
        self.db.closed += 1


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDatabase()

    def connect(conninfo="", **kwargs):
        db.connections += 1
        return FakeConnection(db)

    monkeypatch.setattr(psycopg, "connect", connect)
    return db


@pytest.fixture
def map_config():
    return MapFeaturesConfig(hull_workers=2, regenerate_timeout_seconds=30)


@pytest.fixture(scope="session")
def reprojector():
    return CoordinateReprojector(32718)
