"""Read-full / write-full access to the document being edited."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from services.atomic_io import atomic_write_text


class Document(Protocol):
    def read(self) -> str: ...

    def write(self, text: str) -> None: ...


class TextDocument:
    """In-memory document, used by the HTTP surface and tests."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.writes = 0

    def read(self) -> str:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1


class FileDocument:
    """UTF-8 file on disk; writes replace the file in one step."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def read(self) -> str:
        with self.path.open(encoding="utf-8", newline="") as fh:
            return fh.read()

    def write(self, text: str) -> None:
        atomic_write_text(self.path, text)
