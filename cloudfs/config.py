from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_STORE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "store"))
DEFAULT_DB_URL = "sqlite:///./cloudfs.db"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"true", "1", "yes"}


def _parse_service_classes(raw: str) -> dict[str, dict[str, Any]]:
    if not raw:
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("SERVICE_CLASSES must be a JSON object")
    return {str(name): dict(values or {}) for name, values in parsed.items()}


@dataclass(frozen=True)
class Settings:
    store_dir: str = DEFAULT_STORE_DIR
    db_url: str = DEFAULT_DB_URL
    mount_point: str = "cloud"
    block_public: bool = False
    max_file_size: int = 0  # 0 disables the ceiling
    attach_hash_length: int = 32
    service_classes: dict[str, dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store_dir=os.getenv("STORE_DIR", DEFAULT_STORE_DIR),
            db_url=os.getenv("DB_URL", DEFAULT_DB_URL),
            mount_point=os.getenv("MOUNT_POINT", "cloud").strip("/") or "cloud",
            block_public=_env_flag("BLOCK_PUBLIC"),
            max_file_size=int(os.getenv("MAX_FILE_SIZE_BYTES", "0")),
            attach_hash_length=max(8, min(64, int(os.getenv("ATTACH_HASH_LENGTH", "32")))),
            service_classes=_parse_service_classes(os.getenv("SERVICE_CLASSES", "")),
        )

    @property
    def db_connect_args(self) -> dict[str, Any]:
        return {"check_same_thread": False} if self.db_url.startswith("sqlite") else {}

    def service_class_fetch(self, service_class: str, key: str) -> Optional[Any]:
        """Look up a service class setting, None when the class does not define it."""
        if not service_class:
            return None
        return self.service_classes.get(service_class, {}).get(key)
