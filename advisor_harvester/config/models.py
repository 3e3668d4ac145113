"""Pydantic models describing a harvest run."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_LIST_URL = (
    "https://www.travelleaders.com/agent/getAgents?ZIP=&Name=&AgentInterest=&AgentDestination="
    "&AgentState=&AgentMetroRegion=&AgentLanguage=&AgentCity=&AgentSupplier=&AgentId=0"
    "&AgencyId=0&Locality=AR&AgentSort=&CurrentPage={page}&PageSize={page_size}"
)
DEFAULT_DETAIL_URL = (
    "https://www.travelleaders.com/agent/getAgentFullBio?agentId={agent_id}"
    "&preview=false&destination="
)


class CacheConfig(BaseModel):
    """Response cache location and lifetime."""

    backend: Literal["file", "memory"] = "file"
    directory: Path = Field(default=Path(".cache"))
    ttl_seconds: int = 604800

    @field_validator("directory", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)


class ProxyPoolConfig(BaseModel):
    """Where proxy identities come from.

    ``proxies`` takes precedence over the Webshare API when both are set.
    """

    enabled: bool = False
    api_key: str | None = None
    api_url: str = "https://proxy.webshare.io/api/v2/proxy/list/"
    page_size: int = 100
    proxies: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_source(self) -> "ProxyPoolConfig":
        if self.enabled and not (self.proxies or self.api_key):
            raise ValueError("proxy_pool.enabled requires api_key or a proxies list")
        return self


class EndpointConfig(BaseModel):
    """URL templates and payload field names of the remote API."""

    list_url_template: str = DEFAULT_LIST_URL
    detail_url_template: str = DEFAULT_DETAIL_URL
    data_field: str = "data"
    total_field: str = "totalAgents"
    items_field: str = "agent"
    id_field: str = "agentId"

    @model_validator(mode="after")
    def _validate_templates(self) -> "EndpointConfig":
        if "{page}" not in self.list_url_template:
            raise ValueError("list_url_template must contain {page}")
        if "{agent_id}" not in self.detail_url_template:
            raise ValueError("detail_url_template must contain {agent_id}")
        return self

    def list_url(self, page: int, page_size: int) -> str:
        return self.list_url_template.format(page=page, page_size=page_size)

    def detail_url(self, agent_id: Any) -> str:
        return self.detail_url_template.format(agent_id=agent_id)


class HarvestConfig(BaseModel):
    """Tunables for the two-phase harvest."""

    cache: CacheConfig = Field(default_factory=CacheConfig)
    proxy_pool: ProxyPoolConfig = Field(default_factory=ProxyPoolConfig)
    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)
    user_agent_list: list[str] | None = None
    page_size: int = 500
    max_retries: int = 3
    batch_size: int = 5
    batch_delay_ms: int = 1000
    retry_delay_ms: int = 200
    request_timeout: float = 20.0
    output_path: Path = Field(default=Path("output/agents_full.ndjson"))
    error_summary_limit: int = 10

    @field_validator("output_path", mode="before")
    @classmethod
    def _coerce_output(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_limits(self) -> "HarvestConfig":
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.batch_delay_ms < 0 or self.retry_delay_ms < 0:
            raise ValueError("delays must be >= 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        return self

    def resolved_output_path(self, base_dir: Path) -> Path:
        if not self.output_path.is_absolute():
            return (base_dir / self.output_path).resolve()
        return self.output_path

    def resolved_cache_dir(self, base_dir: Path) -> Path:
        if not self.cache.directory.is_absolute():
            return (base_dir / self.cache.directory).resolve()
        return self.cache.directory


__all__ = [
    "CacheConfig",
    "DEFAULT_DETAIL_URL",
    "DEFAULT_LIST_URL",
    "EndpointConfig",
    "HarvestConfig",
    "ProxyPoolConfig",
]
