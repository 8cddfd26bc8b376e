from __future__ import annotations

import logging
import os
import secrets
import shutil
import string
from pathlib import Path
from typing import BinaryIO, Optional, Union

logger = logging.getLogger("cloudfs.storage")

_HASH_ALPHABET = string.ascii_lowercase + string.digits
_CHUNK_SIZE = 64 * 1024

Payload = Union[bytes, bytearray, str, BinaryIO, None]


def generate_hash(length: int = 32) -> str:
    return "".join(secrets.choice(_HASH_ALPHABET) for _ in range(length))


def physical_path(owner_nick: str, os_path: str) -> str:
    """Byte store location of a record: the owner's root segment, then its hash chain."""
    return f"{owner_nick}/{os_path}" if os_path else owner_nick


def _copy_payload(data: Payload, f: BinaryIO) -> int:
    if data is None:
        return 0
    if isinstance(data, str):
        data = data.encode("utf-8")
    if isinstance(data, (bytes, bytearray)):
        f.write(data)
        return len(data)
    written = 0
    while True:
        chunk = data.read(_CHUNK_SIZE)
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        f.write(chunk)
        written += len(chunk)
    return written


class ByteStore:
    """Bytes on the local filesystem, addressed by slash-separated hash paths."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()
        os.makedirs(self.root, exist_ok=True)

    def _resolve(self, relpath: str) -> Path:
        path = (self.root / relpath).resolve()
        # Raises ValueError for paths escaping the store
        path.relative_to(self.root)
        return path

    def write(self, relpath: str, data: Payload) -> Optional[int]:
        """Write ``data`` and return the number of bytes written, or None on failure.

        Bytes go to a temporary sibling first and replace the target only once
        fully written, so a failed write leaves any previous content intact.
        """
        tmp = None
        try:
            path = self._resolve(relpath)
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.part")
            with open(tmp, "wb") as f:
                written = _copy_payload(data, f)
            os.replace(tmp, path)
            return written
        except (OSError, ValueError) as e:
            logger.error("event=write_failure path=%s error=%s", relpath, str(e))
            if tmp is not None:
                tmp.unlink(missing_ok=True)
            return None

    def read(self, relpath: str) -> bytes:
        return self._resolve(relpath).read_bytes()

    def exists(self, relpath: str) -> bool:
        try:
            return self._resolve(relpath).exists()
        except ValueError:
            return False

    def delete(self, relpath: str) -> None:
        try:
            path = self._resolve(relpath)
        except (ValueError, RuntimeError):
            logger.warning("event=delete_rejected path=%s", relpath)
            return
        if path == self.root:
            logger.warning("event=delete_rejected path=%s reason=store_root", relpath)
            return
        if path.is_dir():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)

    def total_space(self) -> int:
        return shutil.disk_usage(self.root).total

    def free_space(self) -> int:
        return shutil.disk_usage(self.root).free
