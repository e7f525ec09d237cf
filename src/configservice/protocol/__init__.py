"""Value types and REST models for the config service."""

from configservice.protocol.messages import (
    ArtifactCoordinates,
    DownloadItem,
    ServiceConfig,
    MetricRecord,
)

__all__ = [
    "ArtifactCoordinates",
    "DownloadItem",
    "ServiceConfig",
    "MetricRecord",
]
