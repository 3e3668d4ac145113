"""Record sink contract shared by every exporter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping


class BaseExporter(ABC):
    """Append-only sink for finished records.

    ``export`` counts every accepted record in ``written``; subclasses only
    implement ``_write`` and resource handling.
    """

    def __init__(self) -> None:
        self.written = 0

    def export(self, record: Mapping[str, Any]) -> None:
        self._write(record)
        self.written += 1

    @abstractmethod
    def _write(self, record: Mapping[str, Any]) -> None:
        """Serialize one record to the destination."""

    @abstractmethod
    def flush(self) -> None:
        """Push buffered output to the destination."""

    @abstractmethod
    def close(self) -> None:
        """Release the destination; a later export may reopen it."""


__all__ = ["BaseExporter"]
