"""
Raw file handles accepted by the attachment pipeline.

Every input surface (picker, drag-and-drop, clipboard paste) produces objects
satisfying :class:`SourceFile`; the pipeline only ever awaits ``read()``.
"""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path
from typing import Protocol, runtime_checkable

from gemdesk.utils.encoding import decode_base64, split_data_url


@runtime_checkable
class SourceFile(Protocol):
    name: str | None
    mime_type: str
    size: int

    async def read(self) -> bytes:
        """Return the full binary content of the file."""
        ...


class LocalFile:
    """A file on disk, typically chosen with the picker or dropped on the terminal."""

    def __init__(self, path: str | Path, mime_type: str | None = None) -> None:
        self.path = Path(path)
        self.name: str | None = self.path.name
        guessed, _ = mimetypes.guess_type(self.path.name)
        self.mime_type: str = mime_type or guessed or "application/octet-stream"
        try:
            self.size: int = self.path.stat().st_size
        except OSError:
            self.size = 0

    async def read(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)

    def __repr__(self) -> str:
        return f"LocalFile({str(self.path)!r}, mime_type={self.mime_type!r})"


class InMemoryFile:
    """Bytes already held in memory, e.g. a pasted clipboard image."""

    def __init__(
        self, data: bytes, mime_type: str, name: str | None = None
    ) -> None:
        self._data = data
        self.name = name
        self.mime_type = mime_type
        self.size = len(data)

    @classmethod
    def from_data_url(cls, data_url: str, name: str | None = None) -> InMemoryFile:
        mime_type, encoded = split_data_url(data_url)
        return cls(decode_base64(encoded), mime_type, name=name)

    async def read(self) -> bytes:
        return self._data

    def __repr__(self) -> str:
        return f"InMemoryFile(name={self.name!r}, mime_type={self.mime_type!r}, size={self.size})"
