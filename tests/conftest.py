import json
import sys
from pathlib import Path

import pytest
from sqlmodel import Session

project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cloudfs.config import Settings  # noqa: E402
from cloudfs.core.auth import ActorContext  # noqa: E402
from cloudfs.core.metrics import MetricsStore  # noqa: E402
from cloudfs.db import init_db, make_engine  # noqa: E402
from cloudfs.main import CloudFS  # noqa: E402


def _prepare_fs(tmp_path, monkeypatch, *, max_size="0", block_public="false", service_classes=None):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("STORE_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("DB_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("MOUNT_POINT", "cloud")
    monkeypatch.setenv("MAX_FILE_SIZE_BYTES", max_size)
    monkeypatch.setenv("BLOCK_PUBLIC", block_public)
    monkeypatch.setenv("SERVICE_CLASSES", json.dumps(service_classes or {}))

    settings = Settings.from_env()
    engine = make_engine(settings)
    init_db(engine)
    session = Session(engine)
    return CloudFS(session, settings, metrics=MetricsStore()), engine


@pytest.fixture
def make_fs(tmp_path, monkeypatch):
    opened = []

    def _make(**kwargs):
        fs, engine = _prepare_fs(tmp_path, monkeypatch, **kwargs)
        opened.append((fs, engine))
        return fs

    yield _make

    for fs, engine in opened:
        fs.session.close()
        engine.dispose()


@pytest.fixture
def fs(make_fs):
    return make_fs()


@pytest.fixture
def alice(fs):
    return fs.channels.create("alice", account_id=1, identity="alice-id")


@pytest.fixture
def alice_actor(alice):
    return ActorContext(channel_id=alice.id, observer="alice-id")


@pytest.fixture
def alice_root(fs, alice, alice_actor):
    return fs.open_directory("/cloud/alice", alice_actor)


@pytest.fixture
def store_files():
    def _files(fs):
        """Every regular file currently in the byte store."""
        return [p for p in fs.byte_store.root.rglob("*") if p.is_file()]

    return _files
