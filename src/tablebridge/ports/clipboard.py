"""Clipboard ports.

``SystemClipboard`` shells out to the platform clipboard tools.
``PromptClipboard`` is the manual fallback: read pasted text from stdin,
print copied text to stderr. ``FallbackClipboard`` chains exactly two ports:
the primary is tried once, then the fallback once, then the operation fails.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path
from typing import IO, Awaitable, Protocol, runtime_checkable

from tablebridge.contracts.common import PortFailure
from tablebridge.contracts.table import ClipboardPayload
from tablebridge.io.fileops import atomic_write, read_text_safe
from tablebridge.observe.events import EventEmitter
from tablebridge.ports.base import maybe_await

# (paste command, copy command), probed in order
CLIPBOARD_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["pbpaste"], ["pbcopy"]),
    (["wl-paste", "--no-newline"], ["wl-copy"]),
    (["xclip", "-selection", "clipboard", "-o"], ["xclip", "-selection", "clipboard"]),
    (["xsel", "--clipboard", "--output"], ["xsel", "--clipboard", "--input"]),
]


@runtime_checkable
class ClipboardPort(Protocol):
    def read(self) -> ClipboardPayload | Awaitable[ClipboardPayload]: ...

    def write(self, payload: ClipboardPayload) -> None | Awaitable[None]: ...


class MemoryClipboard:
    """In-process clipboard."""

    def __init__(self, payload: ClipboardPayload | None = None) -> None:
        self.payload = payload

    def read(self) -> ClipboardPayload:
        if self.payload is None:
            raise PortFailure("clipboard", "No clipboard data available")
        return self.payload.model_copy(deep=True)

    def write(self, payload: ClipboardPayload) -> None:
        self.payload = payload.model_copy(deep=True)


class SystemClipboard:
    """Platform clipboard via pbcopy/wl-copy/xclip/xsel, whichever is installed."""

    def __init__(self, *, timeout: float = 5.0) -> None:
        self.timeout = timeout

    def _commands(self) -> tuple[list[str], list[str]]:
        for paste_cmd, copy_cmd in CLIPBOARD_COMMANDS:
            if shutil.which(paste_cmd[0]) and shutil.which(copy_cmd[0]):
                return paste_cmd, copy_cmd
        raise PortFailure("clipboard", "No system clipboard tool found")

    def is_available(self) -> bool:
        """True when a clipboard tool pair is installed."""
        try:
            self._commands()
        except PortFailure:
            return False
        return True

    def request_access(self) -> bool:
        """Try one read; False when the tool is missing or refuses."""
        try:
            self.read()
        except PortFailure:
            return False
        return True

    def _run(self, cmd: list[str], stdin: str | None = None) -> str:
        try:
            done = subprocess.run(
                cmd, input=stdin, capture_output=True, text=True,
                timeout=self.timeout, check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise PortFailure("clipboard", f"{cmd[0]} failed: {e}") from e
        return done.stdout

    def read(self) -> ClipboardPayload:
        paste_cmd, _ = self._commands()
        return ClipboardPayload(text=self._run(paste_cmd))

    def write(self, payload: ClipboardPayload) -> None:
        _, copy_cmd = self._commands()
        self._run(copy_cmd, stdin=payload.text)


class TextFileClipboard:
    """Treats a text file as the clipboard."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> ClipboardPayload:
        try:
            return ClipboardPayload(text=read_text_safe(self.path, keep_newlines=True))
        except OSError as e:
            raise PortFailure("clipboard", f"Cannot read {self.path}: {e}") from e

    def write(self, payload: ClipboardPayload) -> None:
        try:
            atomic_write(self.path, payload.text.encode("utf-8"))
        except OSError as e:
            raise PortFailure("clipboard", f"Cannot write {self.path}: {e}") from e


class PromptClipboard:
    """Manual entry: paste reads stdin to EOF, copy prints the text for the user."""

    def __init__(self, stdin: IO[str] | None = None, stderr: IO[str] | None = None) -> None:
        self.stdin = stdin
        self.stderr = stderr

    def read(self) -> ClipboardPayload:
        stream = self.stdin or sys.stdin
        if stream.isatty():
            (self.stderr or sys.stderr).write("Paste data, then press Ctrl-D:\n")
        return ClipboardPayload(text=stream.read())

    def write(self, payload: ClipboardPayload) -> None:
        out = self.stderr or sys.stderr
        out.write(payload.text + "\n")
        out.flush()


class FallbackClipboard:
    """Degrade-once chain: primary, then fallback, then PortFailure."""

    def __init__(self, primary: ClipboardPort, fallback: ClipboardPort, *, events: EventEmitter | None = None) -> None:
        self.primary = primary
        self.fallback = fallback
        self.events = events or EventEmitter()

    async def read(self) -> ClipboardPayload:
        try:
            return await maybe_await(self.primary.read())
        except Exception as e:
            self.events.emit("clipboard.fallback", {"op": "read", "reason": str(e)})
        try:
            return await maybe_await(self.fallback.read())
        except Exception as e:
            raise PortFailure("clipboard", f"read failed after fallback: {e}") from e

    async def write(self, payload: ClipboardPayload) -> None:
        try:
            await maybe_await(self.primary.write(payload))
            return
        except Exception as e:
            self.events.emit("clipboard.fallback", {"op": "write", "reason": str(e)})
        try:
            await maybe_await(self.fallback.write(payload))
        except Exception as e:
            raise PortFailure("clipboard", f"write failed after fallback: {e}") from e
