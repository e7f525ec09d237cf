"""Pydantic models for the config service REST API."""

from pydantic import BaseModel, Field
from typing import Optional, List

from configservice.protocol.messages import (
    ArtifactCoordinates,
    DownloadItem,
    ServiceConfig,
)


# =============================================================================
# Service configuration
# =============================================================================

class CoordinatesModel(BaseModel):
    """Artifact coordinates as sent over the wire."""
    group_id: str
    artifact_id: str
    version: str


class DownloadItemModel(BaseModel):
    """Download item as sent over the wire."""
    url: str
    checksum: Optional[str] = None
    filename: Optional[str] = None
    metadata: CoordinatesModel

    def to_item(self) -> DownloadItem:
        return DownloadItem(
            url=self.url,
            coordinates=ArtifactCoordinates(**self.metadata.model_dump()),
            checksum=self.checksum,
            filename_override=self.filename,
        )


class ServiceConfigModel(BaseModel):
    """Request/response body for /serviceconfig."""
    id: Optional[str] = None
    name: str = Field(min_length=1)
    last_changed: Optional[float] = None
    download_items: List[DownloadItemModel] = Field(default_factory=list)
    start_service_script: str = ""

    def to_config(self) -> ServiceConfig:
        return ServiceConfig(
            id=self.id,
            name=self.name,
            last_changed=self.last_changed,
            download_items=[item.to_item() for item in self.download_items],
            start_service_script=self.start_service_script,
        )


# =============================================================================
# Client binding and heartbeat
# =============================================================================

class BindByIdRequest(BaseModel):
    """Request body for binding a client to an existing config id."""
    config_id: str


class HeartbeatResponse(BaseModel):
    """Response from POST /clients/{client_id}/heartbeat."""
    status: str = "ok"
    client_id: str
    config: Optional[ServiceConfigModel] = None


class ErrorResponse(BaseModel):
    """Error body returned by every handler."""
    error: str
