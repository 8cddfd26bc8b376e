from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session

from cloudfs.config import Settings
from cloudfs.core.auth import ActorContext
from cloudfs.models import (
    PERMS_AUTHED,
    PERMS_PUBLIC,
    PERMS_SELF,
    PERMS_SPECIFIC,
    VIEW_STORAGE,
    WRITE_STORAGE,
    Channel,
)
from cloudfs.records import ChannelDirectory


class PermissionGate:
    """Decides whether an actor may view or write a channel's storage.

    Nothing is cached: every call reads the channel and its grants again.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.channels = ChannelDirectory(session)
        self.settings = settings
        self.logger = logger or logging.getLogger("cloudfs.permissions")

    def is_blocked(self, actor: ActorContext) -> bool:
        return self.settings.block_public and actor.anonymous

    def is_owner(self, actor: ActorContext, owner_id: Optional[int]) -> bool:
        channel = self.channels.live(owner_id)
        if channel is None:
            return False
        return self._is_self(channel, actor)

    def perm_is_allowed(self, channel: Channel, actor: ActorContext, capability: str) -> bool:
        if self._is_self(channel, actor):
            return True
        level = getattr(channel, capability)
        if level == PERMS_PUBLIC:
            return True
        if level == PERMS_AUTHED:
            return bool(actor.observer)
        if level == PERMS_SPECIFIC:
            return bool(actor.observer) and self.channels.has_grant(channel.id, actor.observer, capability)
        if level != PERMS_SELF:
            self.logger.warning(
                "event=unknown_permission_level channel=%s capability=%s level=%s",
                channel.address, capability, level,
            )
        return False

    def can_view(self, actor: ActorContext, owner_id: Optional[int]) -> bool:
        return self._check(actor, owner_id, VIEW_STORAGE)

    def can_write(self, actor: ActorContext, owner_id: Optional[int]) -> bool:
        # The unowned roots hold no records, so there is nothing to write
        if not owner_id:
            return False
        return self._check(actor, owner_id, WRITE_STORAGE)

    def _check(self, actor: ActorContext, owner_id: Optional[int], capability: str) -> bool:
        if self.is_blocked(actor):
            self.logger.info("event=permission_denied reason=block_public capability=%s", capability)
            return False
        if not owner_id:
            return True
        channel = self.channels.live(owner_id)
        if channel is None or not self.perm_is_allowed(channel, actor, capability):
            self.logger.info(
                "event=permission_denied owner_id=%s observer=%s capability=%s",
                owner_id, actor.observer, capability,
            )
            return False
        return True

    @staticmethod
    def _is_self(channel: Channel, actor: ActorContext) -> bool:
        if actor.channel_id and actor.channel_id == channel.id:
            return True
        return bool(actor.observer) and actor.observer == channel.identity
