"""Config registry, client bindings and heartbeat metrics publishing."""

from configservice.coordinator.registry import (
    ConfigRegistry,
    RegistryConfig,
    ConfigNotFoundError,
    InvalidConfigError,
)
from configservice.coordinator.bindings import ClientBindingTable, BindingStatus
from configservice.coordinator.heartbeats import HeartbeatAggregator
from configservice.coordinator.publisher import MetricsPublisher, PublisherConfig
from configservice.coordinator.sinks import MetricsSink, PublishError

__all__ = [
    "ConfigRegistry",
    "RegistryConfig",
    "ConfigNotFoundError",
    "InvalidConfigError",
    "ClientBindingTable",
    "BindingStatus",
    "HeartbeatAggregator",
    "MetricsPublisher",
    "PublisherConfig",
    "MetricsSink",
    "PublishError",
    "ConfigServer",
]


def __getattr__(name: str):
    if name == "ConfigServer":
        from configservice.coordinator.server import ConfigServer
        return ConfigServer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
