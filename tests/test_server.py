"""Integration tests for the config service HTTP API."""

import pytest
from aiohttp import web
from aiohttp import test_utils

from configservice.config import ServiceSettings
from configservice.coordinator.bindings import BindingStatus
from configservice.coordinator.publisher import PublisherConfig
from configservice.coordinator.server import ConfigServer, DEMO_CLIENT_ID
from configservice.coordinator.sinks import HttpMetricsSink, PublishError
from configservice.protocol.messages import ArtifactCoordinates, MetricRecord, ServiceConfig
from configservice.repository.urls import download_item_for


def config_body(name: str = "widget_1.0") -> dict:
    coordinates = ArtifactCoordinates("net.example", "widget", "1.0")
    item = download_item_for("http://repo.test", "releases", coordinates)
    config = ServiceConfig(name=name, start_service_script=f"java -jar {item.filename()}")
    config.add_download_item(item)
    return config.to_dict()


def make_server(**metrics) -> ConfigServer:
    settings = ServiceSettings.from_dict({"metrics": metrics})
    return ConfigServer(settings)


class TestServiceConfigApi:
    """Tests for /serviceconfig routes."""
    
    @pytest.mark.asyncio
    async def test_create(self):
        """Test creating a config returns it with an id."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.post("/serviceconfig", json=config_body())
            
            assert response.status == 200
            data = await response.json()
            assert data["id"]
            assert data["download_items"][0]["url"] == (
                "http://repo.test/releases/net/example/widget/1.0/widget-1.0.jar"
            )
    
    @pytest.mark.asyncio
    async def test_create_with_id_rejected(self):
        """Test POST of a config that already has an id."""
        server = make_server()
        body = config_body()
        body["id"] = "abc"
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.post("/serviceconfig", json=body)
            
            assert response.status == 400
            assert "error" in await response.json()
    
    @pytest.mark.asyncio
    async def test_create_invalid_body(self):
        """Test POST of a body missing required fields."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.post("/serviceconfig", json={"download_items": []})
            
            assert response.status == 400
    
    @pytest.mark.asyncio
    async def test_get_update_delete(self):
        """Test fetch, update and delete round trip."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            created = await (await client.post("/serviceconfig", json=config_body())).json()
            
            response = await client.get(f"/serviceconfig/{created['id']}")
            assert response.status == 200
            assert (await response.json())["id"] == created["id"]
            
            created["name"] = "something new"
            response = await client.put("/serviceconfig", json=created)
            assert response.status == 200
            assert (await response.json())["name"] == "something new"
            
            response = await client.delete(f"/serviceconfig/{created['id']}")
            assert response.status == 200
            response = await client.delete(f"/serviceconfig/{created['id']}")
            assert response.status == 404
            response = await client.get(f"/serviceconfig/{created['id']}")
            assert response.status == 404
    
    @pytest.mark.asyncio
    async def test_strict_update_unknown(self):
        """Test PUT of an unknown id under strict updates."""
        settings = ServiceSettings.from_dict({"registry": {"strict_updates": True}})
        server = ConfigServer(settings)
        body = config_body()
        body["id"] = "unknown"
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.put("/serviceconfig", json=body)
            
            assert response.status == 404


class TestClientApi:
    """Tests for binding, query and heartbeat routes."""
    
    @pytest.mark.asyncio
    async def test_bind_and_query(self):
        """Test binding a new config and querying it by client id."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.put("/clients/client-1/config", json=config_body())
            assert response.status == 200
            bound = await response.json()
            
            response = await client.get("/serviceconfig/query", params={"clientid": "client-1"})
            assert response.status == 200
            assert (await response.json())["id"] == bound["id"]
    
    @pytest.mark.asyncio
    async def test_bind_by_id(self):
        """Test binding to an existing config id."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            created = await (await client.post("/serviceconfig", json=config_body())).json()
            
            response = await client.put("/clients/client-2/config", json={"config_id": created["id"]})
            assert response.status == 200
            
            response = await client.put("/clients/client-3/config", json={"config_id": "missing"})
            assert response.status == 404
    
    @pytest.mark.asyncio
    async def test_query_unknown_and_stale(self):
        """Test query for unbound and stale clients both give 404."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/serviceconfig/query", params={"clientid": "nobody"})
            assert response.status == 404
            
            bound = await (await client.put("/clients/client-1/config", json=config_body())).json()
            await client.delete(f"/serviceconfig/{bound['id']}")
            
            response = await client.get("/serviceconfig/query", params={"clientid": "client-1"})
            assert response.status == 404
            assert await server.bindings.status("client-1") == BindingStatus.STALE
    
    @pytest.mark.asyncio
    async def test_query_missing_param(self):
        """Test query without clientid."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.get("/serviceconfig/query")
            assert response.status == 400
    
    @pytest.mark.asyncio
    async def test_heartbeat_counts_and_returns_config(self):
        """Test heartbeats are counted and answered with the bound config."""
        server = make_server(enabled=True)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            await client.put("/clients/client-1/config", json=config_body())
            
            for _ in range(5):
                response = await client.post("/clients/client-1/heartbeat")
                assert response.status == 200
            for _ in range(2):
                await client.post("/clients/client-2/heartbeat")
            
            data = await (await client.post("/clients/client-2/heartbeat")).json()
            assert data["config"] is None
            data = await (await client.post("/clients/client-1/heartbeat")).json()
            assert data["config"]["name"] == "widget_1.0"
        
        assert server.publisher.heartbeats.drain() == {"client-1": 6, "client-2": 3}
    
    @pytest.mark.asyncio
    async def test_heartbeat_disabled_metrics(self):
        """Test heartbeats are not counted when publishing is off."""
        server = make_server(enabled=False)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            response = await client.post("/clients/client-1/heartbeat")
            assert response.status == 200
        
        assert server.publisher.heartbeats.drain() == {}
    
    @pytest.mark.asyncio
    async def test_health(self):
        """Test health endpoint reports counts."""
        server = make_server()
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as client:
            await client.put("/clients/client-1/config", json=config_body())
            
            data = await (await client.get("/health")).json()
            
            assert data["configs"] == 1
            assert data["clients"] == 1
            assert data["metrics"]["state"] == "dormant"


class TestDemoData:
    """Tests for demo data seeding."""
    
    @pytest.mark.asyncio
    async def test_demo_config_bound(self):
        """Test the demo client gets the snapshot config."""
        server = make_server()
        
        await server.load_demo_data()
        config = await server.bindings.resolve(DEMO_CLIENT_ID)
        
        assert config.name == "Service1-1.23"
        assert config.download_items[0].url.endswith(
            "/snapshots/net/whydah/identity/UserAdminService/2.1-SNAPSHOT/"
            "UserAdminService-2.1-SNAPSHOT.jar"
        )
        assert config.start_service_script == "java -DIAM_MODE=DEV -jar UserAdminService-2.1-SNAPSHOT.jar"
    
    @pytest.mark.asyncio
    async def test_demo_config_uses_configured_repository(self):
        """Test the repository base and channel from settings reach the demo URL."""
        settings = ServiceSettings.from_dict({
            "repository": {"base_url": "http://repo.test", "channel": "releases"},
        })
        server = ConfigServer(settings)
        
        stored = await server.load_demo_data()
        
        assert stored.download_items[0].url == (
            "http://repo.test/releases/net/whydah/identity/UserAdminService/2.1-SNAPSHOT/"
            "UserAdminService-2.1-SNAPSHOT.jar"
        )


class TestHttpMetricsSink:
    """Tests for HttpMetricsSink against a local ingestion endpoint."""
    
    @staticmethod
    def make_ingest_app(received: list, status: int = 200) -> web.Application:
        async def ingest(request: web.Request) -> web.Response:
            received.append(await request.json())
            return web.json_response({"ok": status == 200}, status=status)
        
        app = web.Application()
        app.router.add_post("/ingest", ingest)
        return app
    
    @pytest.mark.asyncio
    async def test_posts_batch(self):
        """Test a batch is posted as JSON with namespace."""
        received = []
        async with test_utils.TestServer(self.make_ingest_app(received)) as ingest_server:
            sink = HttpMetricsSink(str(ingest_server.make_url("/ingest")))
            record = MetricRecord("Heartbeats", 3.0, {"Client": "client-1"}, timestamp=10.0)
            
            await sink.publish_batch("TestNS", [record])
            await sink.close()
        
        assert received[0]["namespace"] == "TestNS"
        assert received[0]["metric_data"][0]["dimensions"] == [{"name": "Client", "value": "client-1"}]
        assert received[0]["metric_data"][0]["value"] == 3.0
    
    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        """Test a non-2xx response raises PublishError."""
        received = []
        async with test_utils.TestServer(self.make_ingest_app(received, status=503)) as ingest_server:
            sink = HttpMetricsSink(str(ingest_server.make_url("/ingest")))
            
            with pytest.raises(PublishError):
                await sink.publish_batch("TestNS", [MetricRecord("Heartbeats", 1.0)])
            await sink.close()
    
    @pytest.mark.asyncio
    async def test_end_to_end_publish(self):
        """Test heartbeats flow through the publisher to the HTTP endpoint."""
        received = []
        async with test_utils.TestServer(self.make_ingest_app(received)) as ingest_server:
            config = PublisherConfig(
                enabled=True,
                namespace="Fleet",
                sink_url=str(ingest_server.make_url("/ingest")),
            )
            server = ConfigServer(ServiceSettings(metrics=config))
            
            for _ in range(5):
                server.publisher.record_heartbeat("client-1")
            server.publisher.record_heartbeat("client-2")
            server.publisher.record_heartbeat("client-2")
            
            assert await server.publisher.flush() == 1
            await server.publisher.stop()
        
        values = {d["dimensions"][0]["value"]: d["value"] for d in received[0]["metric_data"]}
        assert values == {"client-1": 5.0, "client-2": 2.0}
