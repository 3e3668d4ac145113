"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository, apply_env_overrides
from .models import CacheConfig, EndpointConfig, HarvestConfig, ProxyPoolConfig

__all__ = [
    "CacheConfig",
    "ConfigLocator",
    "ConfigRepository",
    "EndpointConfig",
    "HarvestConfig",
    "ProxyPoolConfig",
    "apply_env_overrides",
]
