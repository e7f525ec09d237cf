"""
ConfigService - Runtime configuration distribution for agent fleets

Keeps a registry of versioned service configurations, binds clients to
them, and publishes per-client heartbeat counts to a metrics sink.
"""

__version__ = "0.1.0"

from configservice.protocol.messages import ArtifactCoordinates, DownloadItem, ServiceConfig

__all__ = [
    "__version__",
    "ArtifactCoordinates",
    "DownloadItem",
    "ServiceConfig",
]
