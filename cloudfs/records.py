from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from cloudfs.core.exceptions import Conflict
from cloudfs.models import (
    PERMS_PUBLIC,
    PERMS_SELF,
    Attachment,
    Channel,
    StorageGrant,
)

logger = logging.getLogger("cloudfs.records")


class ChannelDirectory:
    """Lookup of namespace owners. Removed channels are invisible to every lookup."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def by_address(self, address: str) -> Optional[Channel]:
        stmt = select(Channel).where(Channel.address == address, Channel.removed == False)  # noqa: E712
        return self.session.exec(stmt).first()

    def live(self, channel_id: Optional[int]) -> Optional[Channel]:
        if not channel_id:
            return None
        stmt = select(Channel).where(Channel.id == channel_id, Channel.removed == False)  # noqa: E712
        return self.session.exec(stmt).first()

    def list_live(self) -> list[Channel]:
        stmt = select(Channel).where(Channel.removed == False).order_by(Channel.address)  # noqa: E712
        return list(self.session.exec(stmt).all())

    def has_grant(self, channel_id: int, observer: str, capability: str) -> bool:
        stmt = select(StorageGrant).where(
            StorageGrant.channel_id == channel_id,
            StorageGrant.observer == observer,
            StorageGrant.capability == capability,
        )
        return self.session.exec(stmt).first() is not None

    def create(
        self,
        address: str,
        account_id: int,
        *,
        identity: str = "",
        name: str = "",
        service_class: str = "",
        view_storage: str = PERMS_PUBLIC,
        write_storage: str = PERMS_SELF,
    ) -> Channel:
        channel = Channel(
            address=address,
            name=name or address,
            identity=identity or address,
            account_id=account_id,
            service_class=service_class,
            view_storage=view_storage,
            write_storage=write_storage,
        )
        self.session.add(channel)
        self.session.commit()
        self.session.refresh(channel)
        logger.info("event=channel_created channel_id=%s address=%s", channel.id, address)
        return channel

    def grant(self, channel_id: int, observer: str, capability: str) -> None:
        if self.has_grant(channel_id, observer, capability):
            return
        self.session.add(StorageGrant(channel_id=channel_id, observer=observer, capability=capability))
        self.session.commit()

    def remove(self, channel_id: int) -> None:
        channel = self.session.get(Channel, channel_id)
        if channel is None:
            return
        channel.removed = True
        self.session.add(channel)
        self.session.commit()


class AttachmentRepo:
    """Attachment records, files and directories alike, scoped by owner."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, owner_id: int, hash: str) -> Optional[Attachment]:
        stmt = select(Attachment).where(Attachment.hash == hash, Attachment.owner_id == owner_id)
        return self.session.exec(stmt).first()

    def find_child(
        self, owner_id: int, folder: str, filename: str, *, dirs_only: bool = False
    ) -> Optional[Attachment]:
        stmt = select(Attachment).where(
            Attachment.owner_id == owner_id,
            Attachment.folder == folder,
            Attachment.filename == filename,
        )
        if dirs_only:
            stmt = stmt.where(Attachment.is_dir == True)  # noqa: E712
        return self.session.exec(stmt).first()

    def children(self, owner_id: int, folder: str) -> list[Attachment]:
        stmt = (
            select(Attachment)
            .where(Attachment.owner_id == owner_id, Attachment.folder == folder)
            .order_by(Attachment.is_dir.desc(), Attachment.filename)
        )
        return list(self.session.exec(stmt).all())

    def latest_child_edit(self, owner_id: int, folder: str) -> Optional[datetime]:
        stmt = select(func.max(Attachment.edited_at)).where(
            Attachment.owner_id == owner_id, Attachment.folder == folder
        )
        return self.session.exec(stmt).one()

    def insert(self, record: Attachment) -> Attachment:
        """Insert a record, raising Conflict when a sibling already holds the name."""
        if self.find_child(record.owner_id, record.folder, record.filename) is not None:
            raise Conflict(f"An item named {record.filename} already exists.")
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(
                "event=insert_conflict owner_id=%s folder=%s filename=%s error=%s",
                record.owner_id, record.folder, record.filename, str(e.orig),
            )
            raise Conflict(f"An item named {record.filename} already exists.") from e
        self.session.refresh(record)
        return record

    def set_size(self, owner_id: int, hash: str, size: int, edited: datetime) -> None:
        record = self.get(owner_id, hash)
        if record is None:
            return
        record.size_bytes = size
        record.edited_at = edited
        self.session.add(record)
        self.session.commit()

    def touch(self, owner_id: int, hashes: Iterable[str], edited: datetime) -> None:
        """Bump ``edited_at`` on the given records, typically a folder and its ancestors."""
        hashes = [h for h in hashes if h]
        if not hashes:
            return
        stmt = select(Attachment).where(Attachment.owner_id == owner_id, Attachment.hash.in_(hashes))
        for record in self.session.exec(stmt).all():
            record.edited_at = edited
            self.session.add(record)
        self.session.commit()

    def rename(self, owner_id: int, hash: str, filename: str) -> None:
        record = self.get(owner_id, hash)
        if record is None:
            return
        existing = self.find_child(owner_id, record.folder, filename)
        if existing is not None and existing.hash != hash:
            raise Conflict(f"An item named {filename} already exists.")
        record.filename = filename
        self.session.add(record)
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise Conflict(f"An item named {filename} already exists.") from e

    def save(self, record: Attachment) -> None:
        self.session.add(record)
        self.session.commit()

    def delete(self, owner_id: int, hash: str) -> list[str]:
        """Delete a record and, for directories, everything below it.

        Returns the ``os_path`` of every deleted record so callers can remove the bytes.
        """
        record = self.get(owner_id, hash)
        if record is None:
            return []
        doomed = [record]
        pending = [record.hash] if record.is_dir else []
        while pending:
            folder = pending.pop()
            for child in self.children(owner_id, folder):
                doomed.append(child)
                if child.is_dir:
                    pending.append(child.hash)
        paths = [item.os_path for item in doomed]
        for item in doomed:
            self.session.delete(item)
        self.session.commit()
        return paths
