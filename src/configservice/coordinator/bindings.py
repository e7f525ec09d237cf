"""Client to service config binding table."""

import asyncio
import logging
from enum import Enum
from typing import Dict, Optional, Union

from configservice.coordinator.registry import ConfigRegistry, ConfigNotFoundError
from configservice.protocol.messages import ServiceConfig

logger = logging.getLogger(__name__)


class BindingStatus(str, Enum):
    """Binding state of a client."""
    UNBOUND = "unbound"
    BOUND = "bound"
    STALE = "stale"  # bound id no longer in the registry


class ClientBindingTable:
    """
    Maps client ids to the id of the config assigned to them.
    
    Bindings hold config ids only. Deleting a config from the registry does
    not remove bindings to it; resolve() reports such a client as having
    no config, and status() reports it as STALE.
    """
    
    def __init__(self, registry: ConfigRegistry):
        """
        Initialize ClientBindingTable.
        
        Args:
            registry: Registry the bound ids refer to
        """
        self.registry = registry
        
        self._bindings: Dict[str, str] = {}
        self._lock = asyncio.Lock()
    
    @property
    def client_count(self) -> int:
        """Number of bound clients."""
        return len(self._bindings)
    
    async def bind(self, client_id: str, config: Union[ServiceConfig, str]) -> ServiceConfig:
        """
        Assign a config to a client, replacing any earlier binding.
        
        A config without an id is created in the registry first, a config
        with an id is written through update. A plain string is taken as the
        id of a config that must already exist.
        
        Args:
            client_id: Client identifier
            config: Config object or existing config id
            
        Returns:
            The config the client is now bound to
            
        Raises:
            ConfigNotFoundError: If a config id is given that is not stored
        """
        async with self._lock:
            if isinstance(config, str):
                stored = await self.registry.fetch(config)
                if stored is None:
                    logger.warning(f"Cannot bind client {client_id} to unknown service config {config}")
                    raise ConfigNotFoundError(config)
            elif config.id is None:
                stored = await self.registry.create(config)
            else:
                stored = await self.registry.update(config)
            
            previous = self._bindings.get(client_id)
            self._bindings[client_id] = stored.id
        
        if previous is not None and previous != stored.id:
            logger.info(f"Client {client_id} rebound from {previous} to {stored.id}")
        else:
            logger.info(f"Client {client_id} bound to service config {stored.id}")
        return stored
    
    async def resolve(self, client_id: str) -> Optional[ServiceConfig]:
        """
        Get the config bound to a client.
        
        Returns None both when the client was never bound and when the bound
        config has been deleted.
        """
        async with self._lock:
            config_id = self._bindings.get(client_id)
        
        if config_id is None:
            return None
        
        config = await self.registry.fetch(config_id)
        if config is None:
            logger.debug(f"Client {client_id} has stale binding to {config_id}")
        return config
    
    async def status(self, client_id: str) -> BindingStatus:
        """Tell never-bound clients apart from clients with a stale binding."""
        async with self._lock:
            config_id = self._bindings.get(client_id)
        
        if config_id is None:
            return BindingStatus.UNBOUND
        if await self.registry.contains(config_id):
            return BindingStatus.BOUND
        return BindingStatus.STALE
    
    def get_config_id(self, client_id: str) -> Optional[str]:
        """Get the raw bound config id, which may be stale."""
        return self._bindings.get(client_id)
