import pytest

from lanbeacon.config.discovery_config import (
    DEFAULT_DISCOVERY_PORT,
    DiscoveryConfig,
)


def test_defaults() -> None:
    config = DiscoveryConfig()
    assert config.discovery_port == DEFAULT_DISCOVERY_PORT == 35891
    assert config.probe_interval_seconds == 2.0
    assert config.endpoint_timeout_seconds == 5.0
    assert config.broadcast_addresses is None
    assert config.bind_address == ""
    assert config.reuse_port is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"discovery_port": 0},
        {"discovery_port": 70000},
        {"probe_interval_seconds": 0},
        {"endpoint_timeout_seconds": -1.0},
    ],
)
def test_invalid_values_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValueError):
        DiscoveryConfig(**overrides)


def test_broadcast_addresses_are_normalized_to_tuple() -> None:
    config = DiscoveryConfig(broadcast_addresses=["127.255.255.255"])  # type: ignore[arg-type]
    assert config.broadcast_addresses == ("127.255.255.255",)


def test_single_string_broadcast_address_is_rejected() -> None:
    with pytest.raises(TypeError):
        DiscoveryConfig(broadcast_addresses="127.255.255.255")  # type: ignore[arg-type]


def test_with_overrides_returns_modified_copy() -> None:
    base = DiscoveryConfig()
    fast = base.with_overrides(probe_interval_seconds=0.1)
    assert fast.probe_interval_seconds == 0.1
    assert base.probe_interval_seconds == 2.0
    with pytest.raises(ValueError):
        base.with_overrides(discovery_port=-5)


@pytest.mark.parametrize("port", [1.5, "35891", True])
def test_non_integer_discovery_port_is_rejected(port: object) -> None:
    with pytest.raises(TypeError):
        DiscoveryConfig(discovery_port=port)  # type: ignore[arg-type]
