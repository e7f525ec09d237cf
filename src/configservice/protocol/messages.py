"""Value types shared by the registry, resolver and metrics publisher."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import time


DEFAULT_ARTIFACT_EXTENSION = "jar"


@dataclass(frozen=True)
class ArtifactCoordinates:
    """Group/artifact/version triple identifying an artifact in a repository."""
    
    group_id: str
    artifact_id: str
    version: str
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "artifact_id": self.artifact_id,
            "version": self.version,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtifactCoordinates":
        """Create from dictionary."""
        return cls(
            group_id=data["group_id"],
            artifact_id=data["artifact_id"],
            version=data["version"],
        )


@dataclass(frozen=True)
class DownloadItem:
    """A resolved artifact location plus optional checksum and filename override."""
    
    url: str
    coordinates: ArtifactCoordinates
    checksum: Optional[str] = None
    filename_override: Optional[str] = None
    
    def filename(self) -> str:
        """Local filename, derived from the coordinates unless overridden."""
        if self.filename_override:
            return self.filename_override
        return (
            f"{self.coordinates.artifact_id}-{self.coordinates.version}"
            f".{DEFAULT_ARTIFACT_EXTENSION}"
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "url": self.url,
            "checksum": self.checksum,
            "filename": self.filename_override,
            "metadata": self.coordinates.to_dict(),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DownloadItem":
        """Create from dictionary."""
        return cls(
            url=data["url"],
            coordinates=ArtifactCoordinates.from_dict(data["metadata"]),
            checksum=data.get("checksum"),
            filename_override=data.get("filename"),
        )


@dataclass
class ServiceConfig:
    """
    A named bundle of download items and a start command assigned to clients.
    
    ``id`` stays ``None`` until the registry persists the config for the
    first time; after that it never changes.
    """
    
    name: str
    download_items: List[DownloadItem] = field(default_factory=list)
    start_service_script: str = ""
    id: Optional[str] = None
    last_changed: Optional[float] = None
    
    def add_download_item(self, item: DownloadItem):
        """Append a download item."""
        self.download_items.append(item)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "last_changed": self.last_changed,
            "download_items": [item.to_dict() for item in self.download_items],
            "start_service_script": self.start_service_script,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceConfig":
        """Create from dictionary."""
        return cls(
            id=data.get("id"),
            name=data["name"],
            last_changed=data.get("last_changed"),
            download_items=[
                DownloadItem.from_dict(item)
                for item in data.get("download_items", [])
            ],
            start_service_script=data.get("start_service_script", ""),
        )


@dataclass(frozen=True)
class MetricRecord:
    """One metric datum forwarded to the metrics sink."""
    
    metric_name: str
    value: float
    dimensions: Dict[str, str] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    unit: str = "Count"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "metric_name": self.metric_name,
            "dimensions": [
                {"name": name, "value": value}
                for name, value in self.dimensions.items()
            ],
            "timestamp": self.timestamp,
            "unit": self.unit,
            "value": self.value,
        }
