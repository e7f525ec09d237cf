"""Configuration registry for tracking service configs."""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional

from configservice.protocol.messages import ServiceConfig

logger = logging.getLogger(__name__)


class ConfigNotFoundError(KeyError):
    """Raised when an operation requires a config id the registry does not know."""

    def __init__(self, config_id: str):
        super().__init__(config_id)
        self.config_id = config_id

    def __str__(self) -> str:
        return f"Service config {self.config_id} not found"


class InvalidConfigError(ValueError):
    """Raised when a config is not acceptable for the requested operation."""


@dataclass
class RegistryConfig:
    """Configuration for the config registry."""
    
    # False: update on an unknown id stores it (upsert). True: it fails.
    strict_updates: bool = False


def _copy(config: ServiceConfig, **changes) -> ServiceConfig:
    return replace(config, download_items=list(config.download_items), **changes)


class ConfigRegistry:
    """
    In-memory registry of service configs keyed by assigned id.
    
    Responsibilities:
    - Assign ids on create
    - Overwrite configs on update (no field merging)
    - Fetch and delete by id
    
    Stored configs are copies, so callers mutating an object they passed in
    or got back never changes registry state. Contents are lost on restart.
    """
    
    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize ConfigRegistry.
        
        Args:
            config: Registry configuration
            clock: Time source used for last_changed stamps
        """
        self.config = config or RegistryConfig()
        self._clock = clock
        
        self._configs: Dict[str, ServiceConfig] = {}
        self._lock = asyncio.Lock()
        
        logger.info(
            f"ConfigRegistry initialized, "
            f"update policy: {'strict' if self.config.strict_updates else 'upsert'}"
        )
    
    @property
    def config_count(self) -> int:
        """Number of stored configs."""
        return len(self._configs)
    
    async def create(self, config: ServiceConfig) -> ServiceConfig:
        """
        Persist a new config under a freshly assigned id.
        
        Args:
            config: Config without an id
            
        Returns:
            The stored config with id and last_changed populated
            
        Raises:
            InvalidConfigError: If the config already carries an id
        """
        if config.id is not None:
            raise InvalidConfigError(
                f"Service config already has id {config.id}, use update instead"
            )
        
        async with self._lock:
            config_id = str(uuid.uuid4())
            while config_id in self._configs:
                config_id = str(uuid.uuid4())
            
            stored = _copy(config, id=config_id, last_changed=self._clock())
            self._configs[config_id] = stored
        
        logger.info(f"Service config created: {config_id} ({stored.name})")
        return _copy(stored)
    
    async def update(self, config: ServiceConfig) -> ServiceConfig:
        """
        Replace the stored config with the same id.
        
        Args:
            config: Config carrying a previously assigned id
            
        Returns:
            The stored config with last_changed refreshed
            
        Raises:
            InvalidConfigError: If the config has no id
            ConfigNotFoundError: If the id is unknown and strict updates are on
        """
        if config.id is None:
            raise InvalidConfigError("Cannot update a service config without an id")
        
        async with self._lock:
            if config.id not in self._configs:
                if self.config.strict_updates:
                    logger.warning(f"Rejected update of unknown service config {config.id}")
                    raise ConfigNotFoundError(config.id)
                logger.warning(f"Update of unknown service config {config.id}, storing it")
            
            stored = _copy(config, last_changed=self._clock())
            self._configs[config.id] = stored
        
        logger.info(f"Service config updated: {config.id} ({stored.name})")
        return _copy(stored)
    
    async def fetch(self, config_id: str) -> Optional[ServiceConfig]:
        """Get a config by id, or None if unknown."""
        async with self._lock:
            stored = self._configs.get(config_id)
        return _copy(stored) if stored is not None else None
    
    async def delete(self, config_id: str) -> bool:
        """
        Delete a config.
        
        Client bindings that reference it are left in place and become stale.
        
        Returns:
            True if the config existed and was removed
        """
        async with self._lock:
            if config_id not in self._configs:
                logger.warning(f"Cannot delete unknown service config {config_id}")
                return False
            del self._configs[config_id]
        
        logger.info(f"Service config deleted: {config_id}")
        return True
    
    async def contains(self, config_id: str) -> bool:
        """Check whether a config id is currently stored."""
        async with self._lock:
            return config_id in self._configs
