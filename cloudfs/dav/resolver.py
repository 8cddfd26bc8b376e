from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, replace
from typing import Optional

from sqlmodel import Session

from cloudfs.config import Settings
from cloudfs.core.auth import ActorContext
from cloudfs.core.exceptions import NotFound
from cloudfs.models import ROOT_FOLDER, Attachment
from cloudfs.records import AttachmentRepo, ChannelDirectory


@dataclass(frozen=True)
class ResolvedContext:
    """Where a directory node lives, computed once by the resolver.

    ``red_path`` is the logical path inside the mount point, ``os_path`` the
    hash chain below the owner's root and ``folder_hash`` the last hash of
    that chain (empty at the owner's root). ``resolved`` is False when trailing
    segments named no directory and the context stopped at an ancestor.
    """

    ext_path: str
    red_path: str = "/"
    owner_id: Optional[int] = None
    owner_nick: Optional[str] = None
    folder_hash: str = ROOT_FOLDER
    os_path: str = ""
    is_server_root: bool = False
    resolved: bool = True

    @property
    def name(self) -> str:
        return posixpath.basename(self.ext_path.rstrip("/"))

    @property
    def ancestor_hashes(self) -> list[str]:
        """Hashes of this folder and every folder above it, root first."""
        return self.os_path.split("/") if self.os_path else []

    def child(self, record: Attachment) -> "ResolvedContext":
        return replace(
            self,
            ext_path=posixpath.join(self.ext_path, record.filename),
            red_path=posixpath.join(self.red_path, record.filename),
            folder_hash=record.hash,
            os_path=f"{self.os_path}/{record.hash}" if self.os_path else record.hash,
        )

    def renamed(self, name: str) -> "ResolvedContext":
        parent_red = posixpath.dirname(self.red_path.rstrip("/"))
        parent_ext = posixpath.dirname(self.ext_path.rstrip("/"))
        return replace(
            self,
            ext_path=posixpath.join(parent_ext, name),
            red_path=posixpath.join(parent_red, name),
        )


class PathResolver:
    def __init__(
        self,
        session: Session,
        settings: Settings,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.channels = ChannelDirectory(session)
        self.records = AttachmentRepo(session)
        self.settings = settings
        self.logger = logger or logging.getLogger("cloudfs.resolver")

    @property
    def mount(self) -> str:
        return "/" + self.settings.mount_point

    def strip_mount(self, ext_path: str) -> Optional[str]:
        """Return the path inside the mount point, or None when outside it."""
        if ext_path == self.mount:
            return "/"
        if ext_path.startswith(self.mount + "/"):
            return ext_path[len(self.mount):] or "/"
        return None

    def resolve(self, ext_path: str, actor: ActorContext) -> ResolvedContext:
        """Resolve a full path to its owner, folder hash and hash chain.

        Sets ``actor.owner_id`` and ``actor.owner_nick`` when the path names a
        channel. Raises NotFound when the channel does not exist or was removed.
        Trailing segments that are not directories are ignored, leaving the
        deepest directory found as the terminal folder.
        """
        ext_path = "/" + ext_path.strip("/") if ext_path.strip("/") else "/"
        self.logger.debug("event=resolve path=%s", ext_path)
        actor.log()

        red_path = self.strip_mount(ext_path)
        if red_path is None:
            return ResolvedContext(ext_path=ext_path, is_server_root=True)
        if red_path == "/":
            return ResolvedContext(ext_path=ext_path)

        segments = red_path.strip("/").split("/")
        nick = segments[0]
        channel = self.channels.by_address(nick)
        if channel is None:
            raise NotFound(f"The file with name: {nick} could not be found.")

        actor.owner_id = channel.id
        actor.owner_nick = nick

        path = "/" + nick
        folder = ROOT_FOLDER
        os_path = ""
        resolved = True
        for segment in segments[1:]:
            record = self.records.find_child(channel.id, folder, segment, dirs_only=True)
            if record is None:
                resolved = False
                break
            folder = record.hash
            os_path = f"{os_path}/{folder}" if os_path else folder
            path = f"{path}/{record.filename}"

        self.logger.debug("event=resolved path=%s folder=%s os_path=%s", path, folder, os_path)
        return ResolvedContext(
            ext_path=ext_path,
            red_path=red_path.rstrip("/"),
            owner_id=channel.id,
            owner_nick=nick,
            folder_hash=folder,
            os_path=os_path,
            resolved=resolved,
        )
