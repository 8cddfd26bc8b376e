from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from cloudfs.config import Settings
from cloudfs.core.auth import ActorContext
from cloudfs.core.metrics import MetricsStore, metrics as default_metrics
from cloudfs.core.permissions import PermissionGate
from cloudfs.db import init_db, make_engine, session_scope
from cloudfs.records import AttachmentRepo, ChannelDirectory
from cloudfs.services.quota import QuotaAccountant
from cloudfs.storage import ByteStore
from cloudfs.dav.directory import CloudDirectory
from cloudfs.dav.resolver import PathResolver

logger = logging.getLogger("cloudfs")


class CloudFS:
    """The namespace components wired around one database session."""

    def __init__(
        self,
        session: Session,
        settings: Settings,
        byte_store: Optional[ByteStore] = None,
        metrics: Optional[MetricsStore] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.logger = logger or logging.getLogger("cloudfs")
        self.byte_store = byte_store or ByteStore(settings.store_dir)
        self.metrics = metrics or default_metrics
        self.records = AttachmentRepo(session)
        self.channels = ChannelDirectory(session)
        self.gate = PermissionGate(session, settings, self.logger.getChild("permissions"))
        self.quota = QuotaAccountant(session, settings, self.byte_store, self.logger.getChild("quota"))
        self.resolver = PathResolver(session, settings, self.logger.getChild("resolver"))

    def open_directory(self, ext_path: str, actor: ActorContext) -> CloudDirectory:
        return CloudDirectory(self.resolver.resolve(ext_path, actor), actor, self)

    def root(self, actor: ActorContext) -> CloudDirectory:
        return self.open_directory("/", actor)


def bootstrap(settings: Optional[Settings] = None) -> tuple[Settings, Engine]:
    """Create the store directory and database for ``settings``."""
    settings = settings or Settings.from_env()
    engine = make_engine(settings)
    init_db(engine)
    ByteStore(settings.store_dir)
    logger.info("event=bootstrap store_dir=%s db_url=%s", settings.store_dir, settings.db_url)
    return settings, engine


@contextmanager
def open_cloudfs(settings: Optional[Settings] = None) -> Iterator[CloudFS]:
    settings, engine = bootstrap(settings)
    try:
        with session_scope(engine) as session:
            yield CloudFS(session, settings)
    finally:
        engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    bootstrap()
