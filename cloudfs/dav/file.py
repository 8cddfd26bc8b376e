from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from cloudfs.core.auth import ActorContext
from cloudfs.core.exceptions import Forbidden, NotFound, PhysicalWriteFailure, QuotaExceeded, TooLarge
from cloudfs.dav.node import CloudNode, unix_time, validate_name
from cloudfs.dav.resolver import ResolvedContext
from cloudfs.models import Attachment, utcnow
from cloudfs.storage import Payload

if TYPE_CHECKING:
    from cloudfs.main import CloudFS


class CloudFile(CloudNode):
    """A file record inside a channel folder.

    ``context`` is the context of the containing folder. The record is read
    again on every call so the node never works from stale metadata.
    """

    def __init__(
        self,
        context: ResolvedContext,
        record: Attachment,
        actor: ActorContext,
        fs: "CloudFS",
    ) -> None:
        super().__init__(context, actor, fs)
        self.hash = record.hash

    def __repr__(self) -> str:
        return f"<CloudFile {self.hash}>"

    @staticmethod
    def etag_for(hash: str, revision: int) -> str:
        return f'"{hash}-{revision}"'

    def _record(self) -> Attachment:
        record = self.fs.records.get(self.owner_id, self.hash)
        if record is None:
            raise NotFound(f"The file with hash: {self.hash} could not be found.")
        return record

    def get_name(self) -> str:
        return self._record().filename

    def set_name(self, name: str) -> None:
        if not name:
            raise Forbidden()
        self.require_owner("set_name")
        validate_name(name)
        self.fs.records.rename(self.owner_id, self.hash, name)
        self.fs.metrics.record_rename()
        self.logger.info("event=rename hash=%s name=%s", self.hash, name)

    def get(self) -> bytes:
        self.require_view("get")
        record = self._record()
        try:
            return self.fs.byte_store.read(self.physical(record.os_path))
        except FileNotFoundError:
            self.logger.error("event=missing_bytes hash=%s os_path=%s", self.hash, record.os_path)
            raise NotFound(f"The content of {record.filename} could not be found.")

    def put(self, data: Payload) -> str:
        """Replace the file's content and return the new ETag.

        Size and quota are checked against the incoming payload before any byte
        is written, so a rejected update leaves the old content in place.
        """
        self.require_write("put")
        channel = self.live_channel("put")
        record = self._record()

        if data is None:
            payload = b""
        elif hasattr(data, "read"):
            payload = data.read()
        else:
            payload = data
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        size = len(payload)

        max_size = self.fs.settings.max_file_size
        if max_size and size > max_size:
            self.logger.warning(
                "event=put_rejected reason=max_size hash=%s size_bytes=%s limit_bytes=%s",
                self.hash, size, max_size,
            )
            raise TooLarge(f"File too large. Maximum allowed size is {max_size} bytes.")
        if self.fs.quota.would_exceed(channel, size - record.size_bytes):
            self.logger.warning("event=put_rejected reason=quota hash=%s size_bytes=%s", self.hash, size)
            raise QuotaExceeded(f"Storage limit exceeded for {channel.address}.")

        written = self.fs.byte_store.write(self.physical(record.os_path), payload)
        if written is None:
            raise PhysicalWriteFailure(f"Could not store {record.filename}.")

        edited = utcnow()
        record.size_bytes = written
        record.revision += 1
        record.edited_at = edited
        self.fs.records.save(record)
        self.touch_folders(self.context.ancestor_hashes, edited)
        self.logger.info("event=put_success hash=%s size_bytes=%s", self.hash, written)
        return self.etag_for(self.hash, record.revision)

    def delete(self) -> None:
        self.require_write("delete")
        record = self._record()
        self.discard(self.hash, record.os_path)
        self.touch_folders(self.context.ancestor_hashes, utcnow())
        self.fs.metrics.record_deletions(1)
        self.logger.info("event=delete_file hash=%s", self.hash)

    def get_size(self) -> int:
        return self._record().size_bytes

    def get_content_type(self) -> str:
        return self._record().content_type

    def get_etag(self) -> str:
        record = self._record()
        return self.etag_for(record.hash, record.revision)

    def get_last_modified(self) -> Optional[int]:
        return unix_time(self._record().edited_at)
