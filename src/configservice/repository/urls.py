"""Download URL construction from Maven-style repository coordinates."""

import logging
from typing import Optional

from configservice.protocol.messages import (
    ArtifactCoordinates,
    DownloadItem,
    DEFAULT_ARTIFACT_EXTENSION,
)

logger = logging.getLogger(__name__)


class RepositoryUrlBuilder:
    """
    Builds canonical artifact URLs for one repository channel.
    
    Layout: {base}/{channel}/{group as path}/{artifact}/{version}/{artifact}-{version}.jar
    
    No network access is performed, so a built URL may point at an
    artifact that does not exist.
    """
    
    def __init__(self, base_url: str, channel: str):
        """
        Initialize RepositoryUrlBuilder.
        
        Args:
            base_url: Repository root, e.g. "http://mvnrepo.example.org"
            channel: Repository partition, e.g. "releases" or "snapshots"
        """
        if not base_url:
            raise ValueError("Repository base URL must not be empty")
        if not channel:
            raise ValueError("Repository channel must not be empty")
        
        self.base_url = base_url.rstrip('/')
        self.channel = channel.strip('/')
    
    def build(self, coordinates: ArtifactCoordinates) -> str:
        """Build the download URL for the given coordinates."""
        group_path = coordinates.group_id.replace('.', '/')
        artifact = coordinates.artifact_id
        version = coordinates.version
        
        return (
            f"{self.base_url}/{self.channel}/{group_path}/{artifact}/{version}/"
            f"{artifact}-{version}.{DEFAULT_ARTIFACT_EXTENSION}"
        )


def resolve_download_url(base_url: str, channel: str, coordinates: ArtifactCoordinates) -> str:
    """Resolve the download URL for coordinates in a repository channel."""
    return RepositoryUrlBuilder(base_url, channel).build(coordinates)


def download_item_for(
    base_url: str,
    channel: str,
    coordinates: ArtifactCoordinates,
    checksum: Optional[str] = None,
    filename: Optional[str] = None,
) -> DownloadItem:
    """Build a DownloadItem whose URL is resolved from the coordinates."""
    url = resolve_download_url(base_url, channel, coordinates)
    logger.debug(f"Resolved {coordinates.group_id}:{coordinates.artifact_id}:{coordinates.version} to {url}")
    
    return DownloadItem(
        url=url,
        coordinates=coordinates,
        checksum=checksum,
        filename_override=filename,
    )
