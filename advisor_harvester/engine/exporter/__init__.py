"""Exporter SPI and implementations."""

from .base import BaseExporter
from .file_exporter import NdjsonExporter

__all__ = ["BaseExporter", "NdjsonExporter"]
