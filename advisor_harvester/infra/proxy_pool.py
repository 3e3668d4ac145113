"""Round-robin proxy identity pool backed by a credential service."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable, List, Protocol

import httpx
import structlog

WEBSHARE_LIST_URL = "https://proxy.webshare.io/api/v2/proxy/list/"


class PoolUnavailable(RuntimeError):
    """Raised when the identity pool cannot be filled."""


@dataclass(frozen=True, slots=True)
class Identity:
    """One egress proxy endpoint with its credentials."""

    network_address: str
    port: int
    credential_username: str = ""
    credential_password: str = ""

    @property
    def proxy_url(self) -> str:
        if self.credential_username:
            auth = f"{self.credential_username}:{self.credential_password}@"
        else:
            auth = ""
        return f"http://{auth}{self.network_address}:{self.port}"

    @classmethod
    def parse(cls, value: str) -> "Identity":
        """Build an identity from ``user:pass@host:port`` (credentials optional)."""

        text = value.strip()
        if "://" in text:
            text = text.split("://", 1)[1]
        auth, _, endpoint = text.rpartition("@")
        host, sep, port = endpoint.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Invalid proxy address: {value!r}")
        username, _, password = auth.partition(":")
        return cls(host, int(port), username, password)


class CredentialSource(Protocol):
    """Anything able to list proxy identities."""

    async def fetch_identities(self) -> List[Identity]:
        ...


class StaticCredentialSource:
    """Serve identities from a fixed list of proxy strings."""

    def __init__(self, proxies: Iterable[str]) -> None:
        self._identities = [Identity.parse(p) for p in proxies if p.strip()]

    async def fetch_identities(self) -> List[Identity]:
        return list(self._identities)


class WebshareCredentialSource:
    """Fetch the proxy list from the Webshare API."""

    def __init__(
        self,
        api_key: str,
        *,
        url: str = WEBSHARE_LIST_URL,
        page_size: int = 100,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.page_size = page_size
        self.timeout = timeout
        self._transport = transport

    async def fetch_identities(self) -> List[Identity]:
        params = {"mode": "direct", "page": 1, "page_size": self.page_size}
        headers = {"Authorization": f"Token {self.api_key}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.url, params=params, headers=headers)
            response.raise_for_status()
            payload = response.json()
        return [self._to_identity(item) for item in payload.get("results") or []]

    @staticmethod
    def _to_identity(item: dict[str, Any]) -> Identity:
        return Identity(
            network_address=str(item["proxy_address"]),
            port=int(item["port"]),
            credential_username=str(item.get("username") or ""),
            credential_password=str(item.get("password") or ""),
        )


class IdentityRotator:
    """Circular identity provider filled once from a credential source."""

    def __init__(
        self,
        source: CredentialSource,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.source = source
        self.logger = logger or structlog.get_logger("advisor_harvester.identity")
        self._lock = asyncio.Lock()
        self._index = 0
        self._identities: List[Identity] = []

    @property
    def empty(self) -> bool:
        return not self._identities

    def __len__(self) -> int:
        return len(self._identities)

    async def acquire(self) -> Identity:
        if not self._identities:
            await self._load()
        identity = self._identities[self._index % len(self._identities)]
        self._index += 1
        return identity

    async def _load(self) -> None:
        async with self._lock:
            if self._identities:
                return
            try:
                identities = await self.source.fetch_identities()
            except Exception as exc:
                raise PoolUnavailable(f"Credential service request failed: {exc}") from exc
            if not identities:
                raise PoolUnavailable("Credential service returned no proxies")
            self._identities = list(identities)
            self.logger.info("identity_pool_loaded", size=len(self._identities))


__all__ = [
    "CredentialSource",
    "Identity",
    "IdentityRotator",
    "PoolUnavailable",
    "StaticCredentialSource",
    "WebshareCredentialSource",
]
