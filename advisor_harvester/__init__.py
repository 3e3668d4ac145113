"""Batch harvester for paginated listing APIs with cached, proxied fetching."""

__version__ = "0.1.0"
