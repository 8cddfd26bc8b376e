from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("cloudfs.auth")


@dataclass
class ActorContext:
    """Who is acting, and whose namespace they are in.

    ``channel_id`` is set when the actor authenticated as a local channel,
    ``observer`` is the identity string of the actor (empty when anonymous).
    ``owner_id`` and ``owner_nick`` are filled in by path resolution.
    """

    channel_id: Optional[int] = None
    observer: str = ""
    owner_id: Optional[int] = None
    owner_nick: Optional[str] = None

    @property
    def anonymous(self) -> bool:
        return not self.channel_id and not self.observer

    def log(self) -> None:
        logger.debug(
            "event=actor channel_id=%s observer=%s owner_id=%s owner_nick=%s",
            self.channel_id,
            self.observer,
            self.owner_id,
            self.owner_nick,
        )
