from __future__ import annotations

import threading
from typing import Dict


class MetricsStore:
    """Thread-safe in-memory metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {
            "files_created": 0,
            "bytes_written": 0,
            "directories_created": 0,
            "renames": 0,
            "deleted": 0,
            "rollbacks": 0,
        }

    def record_file(self, size_bytes: int) -> None:
        with self._lock:
            self._counters["files_created"] += 1
            self._counters["bytes_written"] += size_bytes

    def record_directory(self) -> None:
        with self._lock:
            self._counters["directories_created"] += 1

    def record_rename(self) -> None:
        with self._lock:
            self._counters["renames"] += 1

    def record_rollback(self) -> None:
        with self._lock:
            self._counters["rollbacks"] += 1

    def record_deletions(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._counters["deleted"] += count

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)


metrics = MetricsStore()
