"""Configuration objects for lanbeacon components."""

from lanbeacon.config.discovery_config import (
    DEFAULT_DISCOVERY_PORT,
    DiscoveryConfig,
)

__all__ = ["DEFAULT_DISCOVERY_PORT", "DiscoveryConfig"]
