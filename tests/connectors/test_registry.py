import pytest

from feedbridge import create_connector
from feedbridge.connectors import (
    BaseConnector,
    BMEcatConnector,
    CSVConnector,
    ExcelConnector,
    MCPConnector,
    RESTConnector,
    available_connectors,
    connector_from_config,
    register_connector,
)
from feedbridge.connectors.base import _CONNECTOR_REGISTRY
from feedbridge.core.schema import ConnectorConfig, Schema, SyncResult
from feedbridge.errors import NotConnectedError, UnsupportedConnectorTypeError


class TestFactory:
    @pytest.mark.parametrize("type_tag, cls", [
        ("csv", CSVConnector),
        ("excel", ExcelConnector),
        ("bmecat", BMEcatConnector),
        ("rest", RESTConnector),
        ("mcp", MCPConnector),
    ])
    def test_create_connector(self, type_tag, cls):
        connector = create_connector(type_tag, "src-1", "Source One")
        assert isinstance(connector, cls)
        assert connector.id == "src-1"
        assert connector.name == "Source One"
        assert connector.connected is False
        assert connector.connector_type == type_tag

    def test_type_tag_is_case_insensitive(self):
        assert isinstance(create_connector("CSV", "c", "C"), CSVConnector)

    def test_unknown_type(self):
        with pytest.raises(UnsupportedConnectorTypeError, match="Unknown connector type: unknown") as exc:
            create_connector("unknown", "x", "X")
        assert "csv" in str(exc.value)
        assert isinstance(exc.value, ValueError)

    def test_connector_from_config(self):
        cfg = ConnectorConfig(id="feed", name="Supplier Feed", type="bmecat", config={"filePath": "x.xml"})
        connector = connector_from_config(cfg)
        assert isinstance(connector, BMEcatConnector)
        assert connector.id == "feed"

    def test_available_connectors_metadata(self):
        infos = {info.type: info for info in available_connectors()}
        assert {"csv", "excel", "bmecat", "rest", "mcp"} <= set(infos)
        assert infos["csv"].cls is CSVConnector
        assert infos["mcp"].label == "MCP Server"
        assert all(info.description for info in infos.values())


class _StaticConnector(BaseConnector):
    def connect(self, config):
        self.config = dict(config)
        self.connected = True

    def disconnect(self):
        self.connected = False

    def test_connection(self):
        return True

    def get_schema(self):
        self.ensure_connected()
        return Schema()

    def preview(self, limit=10):
        self.ensure_connected()
        return []

    def sync(self, mapping):
        self.ensure_connected()
        return self._run_sync([], mapping)


class TestRegistration:
    def test_register_custom_connector(self):
        try:
            register_connector("static", _StaticConnector, label="Static", description="Test only")
            connector = create_connector("static", "s", "Static")
            assert isinstance(connector, _StaticConnector)
            assert connector.connector_type == "static"
        finally:
            _CONNECTOR_REGISTRY.pop("static", None)

    def test_context_manager_disconnects(self):
        with _StaticConnector("s", "Static") as connector:
            connector.connect({})
            assert connector.connected
        assert connector.connected is False

    def test_not_connected_message_names_connector(self):
        connector = _StaticConnector("s", "My Static Source")
        with pytest.raises(NotConnectedError, match="Connector My Static Source is not connected"):
            connector.preview()

    def test_empty_sync(self):
        connector = _StaticConnector("s", "Static")
        connector.connect({})
        result = connector.sync([])
        assert isinstance(result, SyncResult)
        assert result.success is True
        assert result.records_processed == 0


class TestNotConnected:
    @pytest.mark.parametrize("type_tag", ["csv", "excel", "bmecat", "rest", "mcp"])
    def test_data_access_before_connect(self, type_tag):
        connector = create_connector(type_tag, "x", "Unconnected")
        for call in (connector.get_schema, connector.preview, lambda: connector.sync([])):
            with pytest.raises(NotConnectedError):
                call()

    @pytest.mark.parametrize("type_tag", ["csv", "excel", "bmecat", "rest", "mcp"])
    def test_test_connection_before_connect(self, type_tag):
        assert create_connector(type_tag, "x", "X").test_connection() is False

    @pytest.mark.parametrize("type_tag", ["csv", "excel", "bmecat", "rest", "mcp"])
    def test_disconnect_is_idempotent(self, type_tag):
        connector = create_connector(type_tag, "x", "X")
        connector.disconnect()
        connector.disconnect()
        assert connector.connected is False
