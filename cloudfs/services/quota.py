from __future__ import annotations

import logging
from typing import Optional

from sqlmodel import Session

from cloudfs.config import Settings
from cloudfs.models import Channel
from cloudfs.services.stats import fetch_storage_totals
from cloudfs.storage import ByteStore

UPLOAD_LIMIT_KEY = "attach_upload_limit"


class QuotaAccountant:
    """Account-wide storage usage against service class ceilings.

    Usage is summed over every record of the owner's account, so channels
    sharing an account share one quota. Without a service class ceiling the
    limit is the capacity of the filesystem holding the byte store.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        byte_store: ByteStore,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.byte_store = byte_store
        self.logger = logger or logging.getLogger("cloudfs.quota")

    def usage(self, account_id: int) -> int:
        return fetch_storage_totals(self.session, account_id)["total_bytes"]

    def limit(self, channel: Channel) -> Optional[int]:
        value = self.settings.service_class_fetch(channel.service_class, UPLOAD_LIMIT_KEY)
        if value is None or value is False:
            return None
        return int(value)

    def effective_limit(self, channel: Channel) -> int:
        limit = self.limit(channel)
        return limit if limit else self.byte_store.total_space()

    def exceeds(self, channel: Channel) -> bool:
        """True when the account is over its service class ceiling."""
        limit = self.limit(channel)
        if limit is None:
            return False
        total = self.usage(channel.account_id)
        if total > limit:
            self.logger.warning(
                "event=quota_exceeded channel=%s account_id=%s usage_bytes=%s limit_bytes=%s",
                channel.address,
                channel.account_id,
                total,
                limit,
            )
            return True
        return False

    def would_exceed(self, channel: Channel, additional_bytes: int) -> bool:
        limit = self.limit(channel)
        if limit is None:
            return False
        return self.usage(channel.account_id) + additional_bytes > limit

    def quota_info(self, channel: Optional[Channel]) -> tuple[int, int]:
        """Return ``(used, free)`` in bytes; free space is not clamped at zero."""
        if channel is None:
            limit = self.byte_store.total_space()
            free = self.byte_store.free_space()
        else:
            limit = self.effective_limit(channel)
            free = limit - self.usage(channel.account_id)
        return limit - free, free
