from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from cloudfs.core.auth import ActorContext
from cloudfs.core.exceptions import (
    CreateFailed,
    Forbidden,
    NotFound,
    PhysicalWriteFailure,
    QuotaExceeded,
    TooLarge,
)
from cloudfs.dav.file import CloudFile
from cloudfs.dav.node import CloudNode, guess_content_type, unix_time, validate_name
from cloudfs.dav.resolver import ResolvedContext
from cloudfs.models import Attachment, utcnow
from cloudfs.storage import Payload, generate_hash

if TYPE_CHECKING:
    from cloudfs.main import CloudFS


class CloudDirectory(CloudNode):
    """A collection in the cloud namespace.

    Three kinds of directory share this class: the server root ``/`` whose only
    child is the mount point, the mount root which lists the channels, and the
    folders inside a channel (including the channel's own root).
    """

    def __init__(self, context: ResolvedContext, actor: ActorContext, fs: "CloudFS") -> None:
        super().__init__(context, actor, fs)
        self.logger.debug(
            "event=directory ext_path=%s red_path=%s os_path=%s",
            context.ext_path, context.red_path, context.os_path,
        )

    def __repr__(self) -> str:
        return f"<CloudDirectory {self.context.ext_path}>"

    @property
    def is_mount_root(self) -> bool:
        return not self.context.is_server_root and not self.owner_id

    def get_name(self) -> str:
        return self.context.name

    def get_children(self) -> list[Union["CloudDirectory", CloudFile]]:
        self.require_view("get_children")

        if self.context.is_server_root:
            return [self._mount_directory()]
        if self.is_mount_root:
            return [
                self._channel_directory(channel.id, channel.address)
                for channel in self.fs.channels.list_live()
                if self.fs.gate.can_view(self.actor, channel.id)
            ]
        records = self.fs.records.children(self.owner_id, self.context.folder_hash)
        return [self._node_for(record) for record in records]

    def get_child(self, name: str) -> Union["CloudDirectory", CloudFile]:
        self.require_view("get_child")
        node = self._lookup(name)
        if node is None:
            raise NotFound(f"The file with name: {name} could not be found.")
        return node

    def child_exists(self, name: str) -> bool:
        self.require_view("child_exists")
        return self._lookup(name) is not None

    def set_name(self, name: str) -> None:
        self.logger.debug("event=set_name old=%s new=%s", self.get_name(), name)
        self.require_resolved("set_name")
        if not name or not self.owner_id or not self.context.folder_hash:
            self.logger.info("event=forbidden operation=set_name path=%s", self.context.ext_path)
            raise Forbidden()
        self.require_owner("set_name")
        validate_name(name)

        self.fs.records.rename(self.owner_id, self.context.folder_hash, name)
        self.context = self.context.renamed(name)
        self.fs.metrics.record_rename()
        self.logger.info("event=rename hash=%s path=%s", self.context.folder_hash, self.context.ext_path)

    def create_file(self, name: str, data: Payload = None) -> str:
        """Create a file and return its ETag.

        The record is inserted first to reserve the name, then the bytes are
        written. Any failure after the insert removes both the record and the
        bytes before the error is raised.
        """
        self.logger.debug("event=create_file name=%s path=%s", name, self.context.ext_path)
        self.require_write("create_file")
        validate_name(name)
        channel = self.live_channel("create_file")

        hash = generate_hash(self.fs.settings.attach_hash_length)
        os_path = f"{self.context.os_path}/{hash}" if self.context.os_path else hash
        now = utcnow()
        record = Attachment(
            account_id=channel.account_id,
            owner_id=channel.id,
            hash=hash,
            creator=self.actor.observer,
            filename=name,
            folder=self.context.folder_hash,
            is_dir=False,
            content_type=guess_content_type(name),
            size_bytes=0,
            revision=0,
            os_path=os_path,
            created_at=now,
            edited_at=now,
            allow_cid=channel.allow_cid,
            allow_gid=channel.allow_gid,
            deny_cid=channel.deny_cid,
            deny_gid=channel.deny_gid,
        )
        self.fs.records.insert(record)

        try:
            size = self.fs.byte_store.write(self.physical(os_path), data)
            if size is None:
                self.logger.error("event=create_file_failed reason=write_failure name=%s hash=%s", name, hash)
                raise PhysicalWriteFailure(f"Could not store {name}.")

            edited = utcnow()
            self.fs.records.set_size(channel.id, hash, size, edited)

            max_size = self.fs.settings.max_file_size
            if max_size and size > max_size:
                self.logger.warning(
                    "event=create_file_rejected reason=max_size name=%s size_bytes=%s limit_bytes=%s",
                    name, size, max_size,
                )
                raise TooLarge(f"File too large. Maximum allowed size is {max_size} bytes.")

            if self.fs.quota.exceeds(channel):
                raise QuotaExceeded(f"Storage limit exceeded for {channel.address}.")

            self.touch_folders(self.context.ancestor_hashes, edited)
        except SQLAlchemyError:
            self.fs.session.rollback()
            self._rollback(hash, os_path)
            raise
        except Exception:
            self._rollback(hash, os_path)
            raise

        self.fs.metrics.record_file(size)
        self.logger.info(
            "event=create_file_success name=%s hash=%s size_bytes=%s path=%s",
            name, hash, size, self.context.ext_path,
        )
        return CloudFile.etag_for(hash, 0)

    def create_directory(self, name: str) -> None:
        self.logger.debug("event=create_directory name=%s path=%s", name, self.context.ext_path)
        self.require_write("create_directory")
        channel = self.live_channel("create_directory")

        try:
            validate_name(name)
            hash = generate_hash(self.fs.settings.attach_hash_length)
            now = utcnow()
            self.fs.records.insert(
                Attachment(
                    account_id=channel.account_id,
                    owner_id=channel.id,
                    hash=hash,
                    creator=self.actor.observer,
                    filename=name,
                    folder=self.context.folder_hash,
                    is_dir=True,
                    os_path=f"{self.context.os_path}/{hash}" if self.context.os_path else hash,
                    created_at=now,
                    edited_at=now,
                    allow_cid=channel.allow_cid,
                    allow_gid=channel.allow_gid,
                    deny_cid=channel.deny_cid,
                    deny_gid=channel.deny_gid,
                )
            )
        except CreateFailed as e:
            self.logger.info("event=create_directory_failed name=%s reason=%s", name, e.kind)
            raise
        except SQLAlchemyError as e:
            self.fs.session.rollback()
            self.logger.error("event=create_directory_failed name=%s error=%s", name, str(e))
            raise CreateFailed(f"Could not create {name}.") from e

        self.touch_folders(self.context.ancestor_hashes, now)
        self.fs.metrics.record_directory()
        self.logger.info("event=create_directory_success name=%s hash=%s path=%s", name, hash, self.context.ext_path)

    def delete(self) -> None:
        self.require_write("delete")
        self.require_resolved("delete")
        if not self.context.folder_hash:
            self.logger.info("event=forbidden operation=delete path=%s reason=channel_root", self.context.ext_path)
            raise Forbidden()

        removed = self.fs.records.delete(self.owner_id, self.context.folder_hash)
        self.fs.byte_store.delete(self.physical(self.context.os_path))
        self.touch_folders(self.context.ancestor_hashes[:-1], utcnow())
        self.fs.metrics.record_deletions(len(removed))
        self.logger.info("event=delete_directory path=%s records=%s", self.context.ext_path, len(removed))

    def get_last_modified(self) -> Optional[int]:
        """Latest edit among the children, else the folder's own edit time.

        Returns None when neither exists, never a zero timestamp.
        """
        if not self.owner_id:
            return None
        latest = self.fs.records.latest_child_edit(self.owner_id, self.context.folder_hash)
        if latest is None and self.context.folder_hash:
            record = self.fs.records.get(self.owner_id, self.context.folder_hash)
            latest = record.edited_at if record is not None else None
        return unix_time(latest)

    def get_quota_info(self) -> tuple[int, int]:
        if not self.owner_id:
            return self.fs.quota.quota_info(None)
        channel = self.fs.channels.live(self.owner_id)
        if channel is None:
            self.logger.info("event=no_channel operation=get_quota_info owner_id=%s", self.owner_id)
            raise NotFound(f"The channel {self.context.owner_nick} could not be found.")
        return self.fs.quota.quota_info(channel)

    def require_resolved(self, operation: str) -> None:
        if not self.context.resolved:
            self.logger.info("event=unresolved operation=%s path=%s", operation, self.context.ext_path)
            raise NotFound(f"The directory {self.context.ext_path} could not be found.")

    def _rollback(self, hash: str, os_path: str) -> None:
        self.discard(hash, os_path)
        self.fs.metrics.record_rollback()
        self.logger.warning("event=rollback hash=%s path=%s", hash, self.context.ext_path)

    def _lookup(self, name: str) -> Optional[Union["CloudDirectory", CloudFile]]:
        if self.context.is_server_root:
            return self._mount_directory() if name == self.fs.settings.mount_point else None
        if self.is_mount_root:
            channel = self.fs.channels.by_address(name)
            return self._channel_directory(channel.id, channel.address) if channel else None
        record = self.fs.records.find_child(self.owner_id, self.context.folder_hash, name)
        return self._node_for(record) if record is not None else None

    def _node_for(self, record: Attachment) -> Union["CloudDirectory", CloudFile]:
        if record.is_dir:
            return CloudDirectory(self.context.child(record), self.actor, self.fs)
        return CloudFile(self.context, record, self.actor, self.fs)

    def _mount_directory(self) -> "CloudDirectory":
        mount = "/" + self.fs.settings.mount_point
        return CloudDirectory(ResolvedContext(ext_path=mount), self.actor, self.fs)

    def _channel_directory(self, channel_id: int, address: str) -> "CloudDirectory":
        mount = "/" + self.fs.settings.mount_point
        context = ResolvedContext(
            ext_path=posixpath.join(mount, address),
            red_path="/" + address,
            owner_id=channel_id,
            owner_nick=address,
        )
        return CloudDirectory(context, self.actor, self.fs)
