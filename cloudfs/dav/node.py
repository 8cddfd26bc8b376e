from __future__ import annotations

import calendar
import mimetypes
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from cloudfs.core.auth import ActorContext
from cloudfs.core.exceptions import CreateFailed, Forbidden
from cloudfs.dav.resolver import ResolvedContext
from cloudfs.models import Channel
from cloudfs.storage import physical_path

if TYPE_CHECKING:
    from cloudfs.main import CloudFS

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def unix_time(value: Optional[datetime]) -> Optional[int]:
    """Seconds since the epoch; naive values are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return calendar.timegm(value.timetuple())
    return int(value.timestamp())


def guess_content_type(name: str) -> str:
    return mimetypes.guess_type(name)[0] or DEFAULT_CONTENT_TYPE


def validate_name(name: str) -> None:
    if not name or name in {".", ".."} or "/" in name:
        raise CreateFailed(f"Invalid name: {name!r}")


class CloudNode:
    """Shared plumbing for directory and file nodes."""

    def __init__(self, context: ResolvedContext, actor: ActorContext, fs: "CloudFS") -> None:
        self.context = context
        self.actor = actor
        self.fs = fs
        self.logger = fs.logger

    @property
    def owner_id(self) -> Optional[int]:
        return self.context.owner_id

    def require_view(self, operation: str) -> None:
        if not self.fs.gate.can_view(self.actor, self.owner_id):
            self.logger.info("event=forbidden operation=%s path=%s", operation, self.context.ext_path)
            raise Forbidden()

    def require_write(self, operation: str) -> None:
        if not self.owner_id or not self.fs.gate.can_write(self.actor, self.owner_id):
            self.logger.info("event=forbidden operation=%s path=%s", operation, self.context.ext_path)
            raise Forbidden()

    def require_owner(self, operation: str) -> None:
        if not self.fs.gate.is_owner(self.actor, self.owner_id):
            self.logger.info("event=forbidden operation=%s path=%s", operation, self.context.ext_path)
            raise Forbidden()

    def live_channel(self, operation: str) -> Channel:
        channel = self.fs.channels.live(self.owner_id)
        if channel is None:
            self.logger.info("event=no_channel operation=%s owner_id=%s", operation, self.owner_id)
            raise Forbidden()
        return channel

    def physical(self, os_path: str) -> str:
        return physical_path(self.context.owner_nick, os_path)

    def touch_folders(self, hashes: list[str], edited: datetime) -> None:
        self.fs.records.touch(self.owner_id, hashes, edited)

    def discard(self, hash: str, os_path: str) -> None:
        """Delete a record and its bytes; the bytes go even if the record delete fails."""
        try:
            self.fs.records.delete(self.owner_id, hash)
        finally:
            self.fs.byte_store.delete(self.physical(os_path))
