"""File operations: atomic write, export locking, BOM-tolerant reads."""

from __future__ import annotations

import os
import shutil
import tempfile
import time
from datetime import datetime, timezone
from io import TextIOWrapper
from pathlib import Path

import portalocker


def atomic_write(target: str | Path, data: bytes) -> None:
    """Write data to target atomically via temp file + rename."""
    target = Path(target)
    fd, tmp_path = tempfile.mkstemp(
        dir=target.parent, suffix=target.suffix, prefix=".tb_tmp_"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        shutil.move(tmp_path, target)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class ExportLock:
    """Exclusive sidecar lock held while an export file is written.

    The ``<file>.tb.lock`` sidecar stays on disk after release; a stale
    (unlocked) sidecar is simply re-acquired by the next writer.
    """

    def __init__(self, path: str | Path, *, timeout: float = 0) -> None:
        self.path = Path(path).resolve()
        self.timeout = timeout
        self._lock_path = self.path.parent / (self.path.name + ".tb.lock")
        self._lock_file: TextIOWrapper | None = None

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def __enter__(self) -> "ExportLock":
        self._lock_file = open(self._lock_path, "a+")  # noqa: SIM115
        try:
            if self.timeout <= 0:
                portalocker.lock(self._lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
            else:
                deadline = time.monotonic() + self.timeout
                interval = min(0.1, max(0.01, self.timeout / 20))
                while True:
                    try:
                        portalocker.lock(self._lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
                        break
                    except portalocker.LockException:
                        if time.monotonic() >= deadline:
                            raise
                        time.sleep(interval)
        except portalocker.LockException:
            if self._lock_file is not None:
                self._lock_file.close()
                self._lock_file = None
            raise

        self._lock_file.seek(0)
        self._lock_file.truncate()
        self._lock_file.write(f"pid={os.getpid()}\n")
        self._lock_file.write(f"time={datetime.now(timezone.utc).isoformat()}\n")
        self._lock_file.flush()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if self._lock_file is not None:
            try:
                portalocker.unlock(self._lock_file)
            finally:
                self._lock_file.close()
                self._lock_file = None


def read_text_safe(path: str | Path, *, keep_newlines: bool = False) -> str:
    """Read a text file with UTF-8 BOM tolerance.

    Uses ``utf-8-sig`` encoding which silently strips a leading BOM when
    present, while reading plain UTF-8 correctly. With ``keep_newlines``
    line endings are returned untranslated.
    """
    with open(path, encoding="utf-8-sig", newline="" if keep_newlines else None) as f:
        return f.read()
