"""Newline-delimited JSON file exporter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Any, Mapping

from .base import BaseExporter


class NdjsonExporter(BaseExporter):
    """Append one JSON document per line to ``path``.

    With ``truncate`` (the default) any file left over from a previous run is
    removed first, so every run starts from an empty output.
    """

    def __init__(self, path: Path, truncate: bool = True) -> None:
        super().__init__()
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if truncate and self.path.exists():
            self.path.unlink()
        self._file: IO[str] | None = None

    def open(self) -> IO[str]:
        if self._file is None:
            self._file = self.path.open("a", encoding="utf-8", newline="")
        return self._file

    def _write(self, record: Mapping[str, Any]) -> None:
        stream = self.open()
        stream.write(json.dumps(record, ensure_ascii=False))
        stream.write("\n")

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None


__all__ = ["NdjsonExporter"]
