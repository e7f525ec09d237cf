"""HTTP transport for the config registry, client bindings and heartbeats."""

import logging
import time
from typing import Any, Dict, Optional

from aiohttp import web
from pydantic import ValidationError

from configservice.config import ServiceSettings
from configservice.coordinator.bindings import ClientBindingTable
from configservice.coordinator.publisher import MetricsPublisher
from configservice.coordinator.registry import (
    ConfigRegistry,
    ConfigNotFoundError,
    InvalidConfigError,
)
from configservice.coordinator.sinks import MetricsSink
from configservice.protocol.messages import ArtifactCoordinates, ServiceConfig
from configservice.protocol.models import (
    BindByIdRequest,
    ErrorResponse,
    HeartbeatResponse,
    ServiceConfigModel,
)
from configservice.repository.urls import download_item_for

logger = logging.getLogger(__name__)

DEMO_CLIENT_ID = "clientid1"


def _error(message: str, status: int) -> web.Response:
    return web.json_response(ErrorResponse(error=message).model_dump(), status=status)


def _config_body(config: ServiceConfig) -> Dict[str, Any]:
    return ServiceConfigModel.model_validate(config.to_dict()).model_dump()


class ConfigServer:
    """
    Config service HTTP server.
    
    Responsibilities:
    - Expose registry create/update/fetch/delete
    - Bind clients to configs and answer "which config do I run"
    - Accept client heartbeats and feed the metrics publisher
    
    Routes:
    - POST/PUT /serviceconfig, GET/DELETE /serviceconfig/{config_id}
    - GET /serviceconfig/query?clientid=...
    - PUT /clients/{client_id}/config
    - POST /clients/{client_id}/heartbeat
    - GET /health
    """
    
    def __init__(
        self,
        settings: Optional[ServiceSettings] = None,
        sink: Optional[MetricsSink] = None,
    ):
        """
        Initialize ConfigServer.
        
        Args:
            settings: Service settings (defaults if not given)
            sink: Metrics sink override, mainly for tests
        """
        self.settings = settings or ServiceSettings()
        self.host = self.settings.server.host
        self.port = self.settings.server.port
        
        self.registry = ConfigRegistry(self.settings.registry)
        self.bindings = ClientBindingTable(self.registry)
        self.publisher = MetricsPublisher(self.settings.metrics, sink=sink)
        
        self.app = web.Application()
        self._setup_routes()
        
        self._running = False
        self._runner: Optional[web.AppRunner] = None
        self._start_time = time.time()
        
        logger.info(f"Config server initialized: {self.host}:{self.port}")
    
    def _setup_routes(self):
        """Setup HTTP routes. The query route must precede /serviceconfig/{config_id}."""
        self.app.router.add_post("/serviceconfig", self._handle_create)
        self.app.router.add_put("/serviceconfig", self._handle_update)
        self.app.router.add_get("/serviceconfig/query", self._handle_query)
        self.app.router.add_get("/serviceconfig/{config_id}", self._handle_fetch)
        self.app.router.add_delete("/serviceconfig/{config_id}", self._handle_delete)
        
        self.app.router.add_put("/clients/{client_id}/config", self._handle_bind)
        self.app.router.add_post("/clients/{client_id}/heartbeat", self._handle_heartbeat)
        
        self.app.router.add_get("/health", self._handle_health)
    
    async def start(self):
        """Start the server and the metrics publisher."""
        logger.info(f"Starting config server on {self.host}:{self.port}")
        
        self._running = True
        self._start_time = time.time()
        
        if self.settings.server.load_demo_data:
            await self.load_demo_data()
        
        await self.publisher.start()
        
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        
        logger.info(f"Config server started on http://{self.host}:{self.port}")
    
    async def stop(self):
        """Stop the server."""
        logger.info("Stopping config server")
        
        self._running = False
        
        await self.publisher.stop()
        
        if self._runner:
            await self._runner.cleanup()
        
        logger.info("Config server stopped")
    
    async def load_demo_data(self) -> ServiceConfig:
        """Seed one config from the configured repository channel, bound to the demo client."""
        coordinates = ArtifactCoordinates("net.whydah.identity", "UserAdminService", "2.1-SNAPSHOT")
        repository = self.settings.repository
        item = download_item_for(repository.base_url, repository.channel, coordinates)
        
        config = ServiceConfig(name="Service1-1.23")
        config.add_download_item(item)
        config.start_service_script = f"java -DIAM_MODE=DEV -jar {item.filename()}"
        
        stored = await self.bindings.bind(DEMO_CLIENT_ID, config)
        logger.info(f"Demo config {stored.id} bound to {DEMO_CLIENT_ID}")
        return stored
    
    # === HTTP Handlers ===
    
    async def _read_config(self, request: web.Request) -> ServiceConfig:
        data = await request.json()
        return ServiceConfigModel.model_validate(data).to_config()
    
    async def _handle_create(self, request: web.Request) -> web.Response:
        """Handle config creation (POST /serviceconfig)."""
        try:
            config = await self._read_config(request)
            created = await self.registry.create(config)
            return web.json_response(_config_body(created))
        except (ValidationError, InvalidConfigError, ValueError) as e:
            return _error(str(e), 400)
        except Exception as e:
            logger.error(f"Create error: {e}")
            return _error(str(e), 500)
    
    async def _handle_update(self, request: web.Request) -> web.Response:
        """Handle config update (PUT /serviceconfig)."""
        try:
            config = await self._read_config(request)
            updated = await self.registry.update(config)
            return web.json_response(_config_body(updated))
        except ConfigNotFoundError as e:
            return _error(str(e), 404)
        except (ValidationError, InvalidConfigError, ValueError) as e:
            return _error(str(e), 400)
        except Exception as e:
            logger.error(f"Update error: {e}")
            return _error(str(e), 500)
    
    async def _handle_fetch(self, request: web.Request) -> web.Response:
        """Handle config fetch (GET /serviceconfig/{config_id})."""
        config_id = request.match_info["config_id"]
        config = await self.registry.fetch(config_id)
        if config is None:
            return _error(f"Service config {config_id} not found", 404)
        return web.json_response(_config_body(config))
    
    async def _handle_delete(self, request: web.Request) -> web.Response:
        """Handle config deletion (DELETE /serviceconfig/{config_id})."""
        config_id = request.match_info["config_id"]
        if not await self.registry.delete(config_id):
            return _error(f"Service config {config_id} not found", 404)
        return web.json_response({"status": "ok"})
    
    async def _handle_query(self, request: web.Request) -> web.Response:
        """Handle client config lookup (GET /serviceconfig/query?clientid=...)."""
        client_id = request.query.get("clientid")
        if not client_id:
            return _error("Missing clientid query parameter", 400)
        
        config = await self.bindings.resolve(client_id)
        if config is None:
            return _error(f"No service config for client {client_id}", 404)
        return web.json_response(_config_body(config))
    
    async def _handle_bind(self, request: web.Request) -> web.Response:
        """
        Handle client binding (PUT /clients/{client_id}/config).
        
        Body is either a full service config or {"config_id": ...}.
        """
        client_id = request.match_info["client_id"]
        try:
            data = await request.json()
            if isinstance(data, dict) and "config_id" in data:
                target = BindByIdRequest.model_validate(data).config_id
            else:
                target = ServiceConfigModel.model_validate(data).to_config()
            
            bound = await self.bindings.bind(client_id, target)
            return web.json_response(_config_body(bound))
        except ConfigNotFoundError as e:
            return _error(str(e), 404)
        except (ValidationError, ValueError) as e:
            return _error(str(e), 400)
        except Exception as e:
            logger.error(f"Bind error: {e}")
            return _error(str(e), 500)
    
    async def _handle_heartbeat(self, request: web.Request) -> web.Response:
        """
        Handle client heartbeat (POST /clients/{client_id}/heartbeat).
        
        Returns the config currently bound to the client, if any.
        """
        client_id = request.match_info["client_id"]
        self.publisher.record_heartbeat(client_id)
        
        config = await self.bindings.resolve(client_id)
        response = HeartbeatResponse(
            client_id=client_id,
            config=ServiceConfigModel.model_validate(config.to_dict()) if config else None,
        )
        return web.json_response(response.model_dump())
    
    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle health check (GET /health)."""
        return web.json_response({
            "status": "running" if self._running else "stopped",
            "uptime_seconds": time.time() - self._start_time,
            "configs": self.registry.config_count,
            "clients": self.bindings.client_count,
            "metrics": self.publisher.get_stats(),
        })
