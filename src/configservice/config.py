"""Service settings loaded from YAML."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from configservice.coordinator.publisher import PublisherConfig
from configservice.coordinator.registry import RegistryConfig

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """HTTP server settings."""
    
    host: str = "0.0.0.0"
    port: int = 8086
    load_demo_data: bool = False
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        return cls(
            host=data.get("host", "0.0.0.0"),
            port=data.get("port", 8086),
            load_demo_data=data.get("load_demo_data", False),
        )


@dataclass
class RepositoryConfig:
    """Artifact repository used when building download URLs."""
    
    base_url: str = "http://mvnrepo.cantara.no"
    channel: str = "snapshots"
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryConfig":
        return cls(
            base_url=data.get("base_url", "http://mvnrepo.cantara.no"),
            channel=data.get("channel", "snapshots"),
        )


@dataclass
class ServiceSettings:
    """All settings for one config service process."""
    
    server: ServerConfig = field(default_factory=ServerConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    metrics: PublisherConfig = field(default_factory=PublisherConfig)
    repository: RepositoryConfig = field(default_factory=RepositoryConfig)
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ServiceSettings":
        """Create settings from a parsed config document."""
        data = data or {}
        registry_data = data.get("registry") or {}
        
        return cls(
            server=ServerConfig.from_dict(data.get("server") or {}),
            registry=RegistryConfig(
                strict_updates=registry_data.get("strict_updates", False),
            ),
            metrics=PublisherConfig.from_dict(data.get("metrics") or {}),
            repository=RepositoryConfig.from_dict(data.get("repository") or {}),
        )
    
    @classmethod
    def load(cls, config_path: Optional[str]) -> "ServiceSettings":
        """Load settings from a YAML file. A missing file gives the defaults."""
        if config_path and Path(config_path).exists():
            with open(config_path) as f:
                data = yaml.safe_load(f)
            logger.info(f"Loaded settings from {config_path}")
            return cls.from_dict(data)
        
        if config_path:
            logger.warning(f"Config file {config_path} not found, using defaults")
        return cls()
