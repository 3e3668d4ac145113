from __future__ import annotations

import asyncio
import random

import httpx
import pytest

from advisor_harvester.infra import (
    Identity,
    IdentityRotator,
    PoolUnavailable,
    StaticCredentialSource,
    UserAgentPool,
    WebshareCredentialSource,
)
from advisor_harvester.infra.ua_pool import CHROMIUM_HEADERS, infer_family


class CountingSource:
    def __init__(self, identities: list[Identity]) -> None:
        self.identities = identities
        self.calls = 0

    async def fetch_identities(self) -> list[Identity]:
        self.calls += 1
        await asyncio.sleep(0)
        return list(self.identities)


def _identities(count: int) -> list[Identity]:
    return [Identity(f"10.0.0.{i}", 8000 + i, f"user{i}", "secret") for i in range(count)]


def test_identity_rotator_round_robin() -> None:
    pool = _identities(3)
    rotator = IdentityRotator(CountingSource(pool))

    async def scenario() -> list[Identity]:
        return [await rotator.acquire() for _ in range(7)]

    acquired = asyncio.run(scenario())
    assert acquired[:3] == pool
    assert len(set(acquired[:3])) == 3
    assert acquired[3] == acquired[0]
    assert acquired[3:6] == pool
    assert acquired[6] == pool[0]


def test_identity_rotator_loads_pool_once_for_concurrent_callers() -> None:
    source = CountingSource(_identities(2))
    rotator = IdentityRotator(source)

    async def scenario() -> list[Identity]:
        return await asyncio.gather(*(rotator.acquire() for _ in range(5)))

    acquired = asyncio.run(scenario())
    assert source.calls == 1
    assert len(acquired) == 5
    assert len(rotator) == 2


def test_identity_rotator_raises_when_source_fails() -> None:
    class BrokenSource:
        async def fetch_identities(self):
            raise httpx.ConnectError("credential service down")

    rotator = IdentityRotator(BrokenSource())
    with pytest.raises(PoolUnavailable) as excinfo:
        asyncio.run(rotator.acquire())
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert rotator.empty


def test_identity_rotator_rejects_empty_pool() -> None:
    rotator = IdentityRotator(StaticCredentialSource([]))
    with pytest.raises(PoolUnavailable):
        asyncio.run(rotator.acquire())


def test_identity_parse_and_proxy_url() -> None:
    identity = Identity.parse("alice:pw@proxy.local:3128")
    assert identity == Identity("proxy.local", 3128, "alice", "pw")
    assert identity.proxy_url == "http://alice:pw@proxy.local:3128"
    assert Identity.parse("http://1.2.3.4:80").proxy_url == "http://1.2.3.4:80"
    with pytest.raises(ValueError):
        Identity.parse("no-port-here")


def test_webshare_source_parses_results() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"proxy_address": "1.1.1.1", "port": 8080, "username": "u", "password": "p"},
                    {"proxy_address": "2.2.2.2", "port": "9090", "username": "v", "password": "q"},
                ]
            },
        )

    source = WebshareCredentialSource("token-123", transport=httpx.MockTransport(handler))
    identities = asyncio.run(source.fetch_identities())
    assert seen["auth"] == "Token token-123"
    assert seen["params"] == {"mode": "direct", "page": "1", "page_size": "100"}
    assert identities == [Identity("1.1.1.1", 8080, "u", "p"), Identity("2.2.2.2", 9090, "v", "q")]


def test_webshare_failure_surfaces_as_pool_unavailable() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"detail": "bad token"}))
    rotator = IdentityRotator(WebshareCredentialSource("nope", transport=transport))
    with pytest.raises(PoolUnavailable):
        asyncio.run(rotator.acquire())


@pytest.mark.parametrize(
    ("user_agent", "family"),
    [
        ("Mozilla/5.0 (Windows NT 10.0) AppleWebKit/537.36 Chrome/124.0 Safari/537.36 Edg/124.0", "edge"),
        ("Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0", "firefox"),
        ("Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/125.0 Safari/537.36", "chrome"),
        ("Mozilla/5.0 (Macintosh) AppleWebKit/605.1.15 Version/17.5 Safari/605.1.15", "safari"),
        ("curl/8.0", "other"),
    ],
)
def test_infer_family(user_agent: str, family: str) -> None:
    assert infer_family(user_agent) == family


def test_rotated_headers_add_chromium_extras(monkeypatch) -> None:
    monkeypatch.setattr(random, "choice", lambda seq: seq[0])
    pool = UserAgentPool(["Mozilla/5.0 AppleWebKit/537.36 Chrome/125.0 Safari/537.36"])
    headers = pool.rotated_headers({"Cookie": "session=1", "Accept": "application/json"})
    assert headers["User-Agent"].endswith("Safari/537.36")
    assert headers["Cookie"] == "session=1"
    assert headers["Accept"] == "application/json"
    for name in CHROMIUM_HEADERS:
        assert name in headers


def test_rotated_headers_skip_chromium_extras_for_firefox(monkeypatch) -> None:
    monkeypatch.setattr(random, "choice", lambda seq: seq[0])
    pool = UserAgentPool(["Mozilla/5.0 (X11; rv:125.0) Gecko/20100101 Firefox/125.0"])
    headers = pool.rotated_headers()
    assert "Sec-Fetch-Mode" not in headers
    assert headers["Accept-Language"] == "en-US,en;q=0.9"


def test_user_agent_pool_defaults_and_file(tmp_path) -> None:
    assert len(UserAgentPool().profiles) == 8
    ua_file = tmp_path / "agents.txt"
    ua_file.write_text("UA-one Firefox/1\n\nUA-two Chrome/2\n", encoding="utf-8")
    pool = UserAgentPool(file_path=ua_file)
    assert [p.family for p in pool.profiles] == ["firefox", "chrome"]
