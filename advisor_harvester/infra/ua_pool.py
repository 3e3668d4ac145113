"""Browser header rotation built on a pool of desktop user agents."""

from __future__ import annotations

import random
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping

CHROMIUM_FAMILIES = frozenset({"chrome", "edge"})


@dataclass(frozen=True, slots=True)
class BrowserProfile:
    user_agent: str
    family: str


DEFAULT_PROFILES: tuple[BrowserProfile, ...] = (
    BrowserProfile(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/125.0.6422.113 Safari/537.36",
        "chrome",
    ),
    BrowserProfile(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5_2) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/125.0.6422.113 Safari/537.36",
        "chrome",
    ),
    BrowserProfile(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:126.0) Gecko/20100101 Firefox/126.0",
        "firefox",
    ),
    BrowserProfile(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13.4; rv:126.0) Gecko/20100101 Firefox/126.0",
        "firefox",
    ),
    BrowserProfile(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_5_2) AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/17.5 Safari/605.1.15",
        "safari",
    ),
    BrowserProfile(
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.6367.119 Safari/537.36 Edg/124.0.2478.97",
        "edge",
    ),
    BrowserProfile(
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/125.0.6422.113 Safari/537.36",
        "chrome",
    ),
    BrowserProfile(
        "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
        "firefox",
    ),
)

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}

CHROMIUM_HEADERS = {
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}


def infer_family(user_agent: str) -> str:
    # Order matters: Edge advertises Chrome, Chrome advertises Safari.
    if "Edg/" in user_agent:
        return "edge"
    if "Firefox/" in user_agent:
        return "firefox"
    if "Chrome/" in user_agent:
        return "chrome"
    if "Safari/" in user_agent:
        return "safari"
    return "other"


class UserAgentPool:
    """Return random browser profiles and the headers matching them."""

    def __init__(self, user_agents: Iterable[str] | None = None, file_path: Path | None = None) -> None:
        self._profiles: List[BrowserProfile] = []
        if user_agents:
            self._profiles.extend(self._profile(ua) for ua in user_agents if ua.strip())
        if file_path and file_path.exists():
            lines = file_path.read_text(encoding="utf-8").splitlines()
            self._profiles.extend(self._profile(line) for line in lines if line.strip())
        if not self._profiles:
            self._profiles = list(DEFAULT_PROFILES)

    @staticmethod
    def _profile(user_agent: str) -> BrowserProfile:
        ua = user_agent.strip()
        return BrowserProfile(ua, infer_family(ua))

    @property
    def profiles(self) -> tuple[BrowserProfile, ...]:
        return tuple(self._profiles)

    def get(self) -> BrowserProfile:
        return random.choice(self._profiles)

    def rotated_headers(self, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        """Build a browser-like header set; ``overrides`` win on conflict."""

        profile = self.get()
        headers = {"User-Agent": profile.user_agent, **BASE_HEADERS}
        if profile.family in CHROMIUM_FAMILIES:
            headers.update(CHROMIUM_HEADERS)
        if overrides:
            headers.update(overrides)
        return headers


__all__ = [
    "BASE_HEADERS",
    "BrowserProfile",
    "CHROMIUM_HEADERS",
    "DEFAULT_PROFILES",
    "UserAgentPool",
    "infer_family",
]
