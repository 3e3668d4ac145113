"""Shared fixtures: fake clock, fake sleeper, config builders and a scripted fetcher."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from advisor_harvester.config import (
    CacheConfig,
    ConfigLocator,
    ConfigRepository,
    EndpointConfig,
    HarvestConfig,
)

LIST_TEMPLATE = "https://api.test/list?page={page}&size={page_size}"
DETAIL_TEMPLATE = "https://api.test/detail?id={agent_id}"


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleeper:
    """Async sleeper that returns immediately and remembers requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedFetcher:
    """Stand-in for ``Fetcher`` answering from a routing function.

    The router returns a payload or raises; every call is recorded.
    """

    def __init__(self, router: Callable[[str], Any]) -> None:
        self.router = router
        self.calls: list[str] = []
        self.invalidated: list[str] = []

    async def fetch(self, url: str, extra_headers=None, ttl_seconds: float = 0) -> Any:
        self.calls.append(url)
        return self.router(url)

    def invalidate(self, url: str, extra_headers=None) -> bool:
        self.invalidated.append(url)
        return False

    def count(self, url: str) -> int:
        return sum(1 for call in self.calls if call == url)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def harvest_config(tmp_path: Path) -> Callable[..., HarvestConfig]:
    def _builder(**overrides: Any) -> HarvestConfig:
        base: dict[str, Any] = {
            "cache": CacheConfig(directory=tmp_path / "cache", ttl_seconds=3600),
            "endpoints": EndpointConfig(
                list_url_template=LIST_TEMPLATE,
                detail_url_template=DETAIL_TEMPLATE,
            ),
            "page_size": 2,
            "max_retries": 3,
            "batch_size": 2,
            "batch_delay_ms": 1000,
            "retry_delay_ms": 200,
            "output_path": tmp_path / "output" / "agents.ndjson",
        }
        base.update(overrides)
        return HarvestConfig(**base)

    return _builder


@pytest.fixture
def listing_payload() -> Callable[[int, Iterable[Any]], dict]:
    def _build(total: int, ids: Iterable[Any]) -> dict:
        return {"data": {"totalAgents": total, "agent": [{"agentId": i} for i in ids]}}

    return _build


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigRepository:
    monkeypatch.setenv("ADVISOR_HARVESTER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    return ConfigRepository(locator, environ={})


@pytest.fixture
def scripted_fetcher() -> Callable[[Callable[[str], Any]], ScriptedFetcher]:
    return ScriptedFetcher
