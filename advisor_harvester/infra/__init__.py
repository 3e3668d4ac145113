"""Infra layer utilities (response cache, proxy identities, UA pool)."""

from .proxy_pool import (
    Identity,
    IdentityRotator,
    PoolUnavailable,
    StaticCredentialSource,
    WebshareCredentialSource,
)
from .storage import BaseCache, FileCache, MemoryCache
from .ua_pool import BrowserProfile, UserAgentPool

__all__ = [
    "BaseCache",
    "BrowserProfile",
    "FileCache",
    "Identity",
    "IdentityRotator",
    "MemoryCache",
    "PoolUnavailable",
    "StaticCredentialSource",
    "UserAgentPool",
    "WebshareCredentialSource",
]
