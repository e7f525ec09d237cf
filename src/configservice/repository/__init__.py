"""Artifact repository helpers."""

from configservice.repository.urls import (
    RepositoryUrlBuilder,
    resolve_download_url,
    download_item_for,
)

__all__ = [
    "RepositoryUrlBuilder",
    "resolve_download_url",
    "download_item_for",
]
