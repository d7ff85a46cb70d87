import io
import json
import zipfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psycopg2
import pytest

from extensions_pipeline.load import db_connection


class FakeCursor:
    def __init__(self, connection: "FakeConnection"):
        self.connection = connection
        self.closed = False

    def execute(self, sql, params=None):
        db = self.connection.database
        if db.fail_when is not None and db.fail_when(sql, params):
            raise psycopg2.IntegrityError("duplicate key value violates unique constraint")
        db.executed.append((sql, params))

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, database: "FakeDatabase", kwargs: dict):
        self.database = database
        self.kwargs = kwargs
        self.autocommit = False
        self.close_calls = 0
        self.cursors: List[FakeCursor] = []

    def cursor(self):
        cur = FakeCursor(self)
        self.cursors.append(cur)
        return cur

    def close(self):
        self.close_calls += 1


class FakeDatabase:
    """Records what the loader executes instead of talking to PostgreSQL."""

    def __init__(self):
        self.connections: List[FakeConnection] = []
        self.executed: list = []
        self.fail_when: Optional[Callable] = None
        self.refuse_connections = False
        self.pools: List["FakePool"] = []

    def connect(self, **kwargs):
        if self.refuse_connections:
            raise psycopg2.OperationalError("could not connect to server: Connection refused")
        conn = FakeConnection(self, kwargs)
        self.connections.append(conn)
        return conn

    def rows(self, table: str) -> list:
        marker = f"INTO extensions.{table} ("
        return [params for sql, params in self.executed if marker in sql]


class FakePool:
    def __init__(self, database: FakeDatabase, **kwargs):
        self.conn = database.connect(**kwargs)
        self.getconn_calls = 0
        self.putconn_calls = 0
        self.closed = False

    def getconn(self):
        self.getconn_calls += 1
        return self.conn

    def putconn(self, conn):
        assert conn is self.conn
        self.putconn_calls += 1

    def closeall(self):
        self.closed = True
        self.conn.close()


@pytest.fixture()
def fake_db(monkeypatch) -> FakeDatabase:
    """Replace psycopg2 connections and pools with recording fakes."""
    db = FakeDatabase()

    def _pool(minconn, maxconn, **kwargs):
        pool = FakePool(db, **kwargs)
        db.pools.append(pool)
        return pool

    monkeypatch.setattr(db_connection.psycopg2, "connect", db.connect)
    monkeypatch.setattr(db_connection, "SimpleConnectionPool", _pool)
    return db


@pytest.fixture()
def db_properties() -> Dict[str, object]:
    return {"host": "db.test", "port": 5432, "dbname": "extensions", "user": "loader"}


@pytest.fixture()
def make_crx() -> Callable[..., Path]:
    """Build a ``.crx`` archive (CRX3-style header + zip payload)."""

    def _make(directory: Path, extension_id: str, members: Dict[str, bytes], header: bool = True) -> Path:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name, data in members.items():
                zf.writestr(name, data)

        payload = buffer.getvalue()
        if header:
            signed = b"\x0a\x05fake!"
            payload = b"Cr24" + (3).to_bytes(4, "little") + len(signed).to_bytes(4, "little") + signed + payload

        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{extension_id}.crx"
        path.write_bytes(payload)
        return path

    return _make


@pytest.fixture()
def write_json() -> Callable[[Path, object], Path]:
    def _write(path: Path, data: object) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf8")
        return path

    return _write


@pytest.fixture()
def descriptor_json() -> Callable[[str], dict]:
    """Raw metadata-file element for an extension id."""

    def _make(extension_id: str) -> dict:
        return {
            "id": extension_id,
            "name": f"Extension {extension_id}",
            "author": "ACME",
            "description": "Does things",
            "category": "Productivity",
            "usersCount": 1200,
            "rating": 4.5,
            "ratingsCount": 87,
            "analyticsId": "UA-1",
            "website": "https://example.com",
            "inApp": False,
        }

    return _make
