from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Index
from sqlmodel import SQLModel, Field

# Storage permission levels, from most to least open
PERMS_PUBLIC = "public"
PERMS_AUTHED = "authenticated"
PERMS_SPECIFIC = "specific"
PERMS_SELF = "self"

VIEW_STORAGE = "view_storage"
WRITE_STORAGE = "write_storage"

ROOT_FOLDER = ""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Channel(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    address: str = Field(index=True)  # handle used as the first path segment
    name: str = ""
    identity: str = Field(index=True, unique=True)
    account_id: int = Field(index=True)
    service_class: str = ""
    removed: bool = Field(default=False)
    view_storage: str = Field(default=PERMS_PUBLIC)
    write_storage: str = Field(default=PERMS_SELF)
    allow_cid: str = ""
    allow_gid: str = ""
    deny_cid: str = ""
    deny_gid: str = ""


class StorageGrant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    channel_id: int = Field(index=True)
    observer: str = Field(index=True)
    capability: str


class Attachment(SQLModel, table=True):
    __table_args__ = (
        Index("uq_attachment_sibling", "owner_id", "folder", "filename", unique=True),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    hash: str = Field(index=True, unique=True)
    account_id: int = Field(index=True)
    owner_id: int = Field(index=True)
    creator: str = ""
    filename: str
    folder: str = Field(default=ROOT_FOLDER, index=True)
    is_dir: bool = Field(default=False)
    content_type: str = ""
    size_bytes: int = 0
    revision: int = 0
    os_path: str = ""  # hash chain below the owner's root, own hash included
    created_at: datetime = Field(default_factory=utcnow)
    edited_at: datetime = Field(default_factory=utcnow)
    allow_cid: str = ""
    allow_gid: str = ""
    deny_cid: str = ""
    deny_gid: str = ""
