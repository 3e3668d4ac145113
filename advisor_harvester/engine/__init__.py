"""Engine components: cache-aware fetching and record export."""

from .fetcher import Fetcher, RequestDirective, request_fingerprint

__all__ = ["Fetcher", "RequestDirective", "request_fingerprint"]
