"""Cache-aware HTTP fetching through rotating proxy identities."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping

import httpx
import structlog

from ..infra import BaseCache, Identity, IdentityRotator, UserAgentPool

DEFAULT_TIMEOUT = 20.0
SESSION_HEADER = "cookie"

ClientFactory = Callable[[str | None, float], httpx.AsyncClient]


def request_fingerprint(url: str, headers: Mapping[str, str] | None = None) -> str:
    """Stable cache key for ``url`` and the session cookie in ``headers``.

    Every other header is ignored so rotated user agents still hit the cache.
    """

    cookie = ""
    for name, value in (headers or {}).items():
        if name.lower() == SESSION_HEADER:
            cookie = value
            break
    key_input = json.dumps({"url": url, "cookie": cookie}, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(key_input.encode("utf-8")).hexdigest()


def default_client_factory(proxy_url: str | None, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(proxy=proxy_url, timeout=timeout, follow_redirects=True)


@dataclass(slots=True)
class RequestDirective:
    """Everything decided about an outgoing request before it is sent."""

    headers: dict[str, str] = field(default_factory=dict)
    identity: Identity | None = None
    timeout: float = DEFAULT_TIMEOUT

    @property
    def proxy(self) -> str | None:
        return self.identity.proxy_url if self.identity else None


class Fetcher:
    """Perform one cache-first attempt per call; retries belong to the caller."""

    def __init__(
        self,
        cache: BaseCache,
        identities: IdentityRotator | None = None,
        ua_pool: UserAgentPool | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client_factory: ClientFactory | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.cache = cache
        self.identities = identities
        self.ua_pool = ua_pool or UserAgentPool()
        self.timeout = timeout
        self._client_factory = client_factory or default_client_factory
        self._clients: Dict[str | None, httpx.AsyncClient] = {}
        self.logger = logger or structlog.get_logger("advisor_harvester.fetcher")

    async def fetch(
        self,
        url: str,
        extra_headers: Mapping[str, str] | None = None,
        ttl_seconds: float = 0,
    ) -> Any:
        fingerprint = request_fingerprint(url, extra_headers)
        cached = self.cache.get(fingerprint)
        if cached is not None:
            self.logger.debug("fetch_cache_hit", url=url)
            return cached

        directive = await self._prepare(extra_headers)
        client = self._client_for(directive.proxy)
        response = await client.get(url, headers=directive.headers, timeout=directive.timeout)
        response.raise_for_status()
        body = self._decode(response)
        self.cache.set(fingerprint, body, ttl_seconds)
        self.logger.debug(
            "fetch_network",
            url=url,
            status=response.status_code,
            proxy=directive.identity.network_address if directive.identity else None,
        )
        return body

    def invalidate(self, url: str, extra_headers: Mapping[str, str] | None = None) -> bool:
        """Drop the cached body for this request, e.g. after it failed validation."""

        return self.cache.delete(request_fingerprint(url, extra_headers))

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    # ------------------------------------------------------------------
    async def _prepare(self, extra_headers: Mapping[str, str] | None) -> RequestDirective:
        directive = RequestDirective(timeout=self.timeout)
        directive.headers = self.ua_pool.rotated_headers(extra_headers)
        if self.identities is not None:
            directive.identity = await self.identities.acquire()
        return directive

    def _client_for(self, proxy_url: str | None) -> httpx.AsyncClient:
        client = self._clients.get(proxy_url)
        if client is None:
            client = self._client_factory(proxy_url, self.timeout)
            self._clients[proxy_url] = client
        return client

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        # JSON is recognised by content, servers often label it text/html.
        try:
            return response.json()
        except ValueError:
            return response.text


__all__ = [
    "ClientFactory",
    "DEFAULT_TIMEOUT",
    "Fetcher",
    "RequestDirective",
    "default_client_factory",
    "request_fingerprint",
]
