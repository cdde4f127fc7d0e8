"""Tests for the REST facade."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from appgate.framework.context import GatewayContext
from appgate.framework.tools import OUTPUT_TEMPLATE_META_KEY, WIDGET_MIME_TYPE, ToolDefinition
from appgate.server.rest_api import create_app

from .conftest import ECHO_WIDGET_HTML, ECHO_WIDGET_URI


@pytest.fixture
def client(echo_context: GatewayContext) -> TestClient:
    return TestClient(create_app(echo_context))


class TestHealth:
    """Test the health endpoint."""

    def test_health(self, client: TestClient) -> None:
        """Test a context with tools is healthy."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert [c["name"] for c in data["components"]] == ["registry", "resolver", "store"]


class TestTools:
    """Test tool listing and invocation."""

    def test_list_tools(self, client: TestClient) -> None:
        """Test GET /tools returns the MCP tool definitions."""
        data = client.get("/tools").json()

        assert data["total"] == 1
        assert data["tools"][0]["name"] == "echo"
        assert data["tools"][0]["_meta"][OUTPUT_TEMPLATE_META_KEY] == ECHO_WIDGET_URI

    def test_invoke_success(self, client: TestClient) -> None:
        """Test a valid invocation returns the result envelope."""
        response = client.post(
            "/tools/echo/invoke", json={"arguments": {"text": "hi"}, "session_id": "s1"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "content": [{"type": "text", "text": "hi"}],
            "structuredContent": {"echo": "hi"},
            "_meta": {OUTPUT_TEMPLATE_META_KEY: ECHO_WIDGET_URI},
            "isError": False,
        }

    def test_invoke_invalid_arguments(self, client: TestClient) -> None:
        """Test invalid arguments answer 400 with an error envelope."""
        response = client.post("/tools/echo/invoke", json={"arguments": {}})

        assert response.status_code == 400
        data = response.json()
        assert data["isError"] is True
        assert data["structuredContent"]["code"] == "VALIDATION_ERROR"

    def test_invoke_unknown_tool(self, client: TestClient) -> None:
        """Test an unknown tool answers 404 with an error envelope."""
        response = client.post("/tools/missing/invoke", json={})

        assert response.status_code == 404
        assert response.json()["structuredContent"]["code"] == "UNKNOWN_TOOL"

    def test_unserializable_result_is_error_envelope(
        self, echo_context: GatewayContext, client: TestClient
    ) -> None:
        """Test a result that cannot be JSON-encoded answers 500 with an error envelope."""
        echo_context.registry.register(
            ToolDefinition(
                name="clock",
                handler=lambda arguments, ctx: {"now": datetime(2026, 1, 1, tzinfo=timezone.utc)},
            )
        )

        response = client.post("/tools/clock/invoke", json={})

        assert response.status_code == 500
        data = response.json()
        assert data["isError"] is True
        assert data["structuredContent"]["code"] == "HANDLER_ERROR"

    def test_malformed_body(self, client: TestClient) -> None:
        """Test unexpected body fields are a request validation error."""
        response = client.post("/tools/echo/invoke", json={"args": {"text": "hi"}})

        assert response.status_code == 400
        assert response.json()["error"] == "Validation Error"

    def test_stats(self, client: TestClient) -> None:
        """Test per-tool statistics are exposed after invocations."""
        client.post("/tools/echo/invoke", json={"arguments": {"text": "hi"}})

        stats = client.get("/tools/stats").json()

        assert stats["echo"]["successes"] == 1


class TestResources:
    """Test resource listing and reads."""

    def test_list_resources(self, client: TestClient) -> None:
        """Test declared resources are listed."""
        data = client.get("/resources").json()

        assert data["total"] == 1
        assert data["resources"][0]["uri"] == ECHO_WIDGET_URI

    def test_read_resource(self, client: TestClient) -> None:
        """Test a declared resource returns its markup."""
        response = client.get("/resources/read", params={"uri": ECHO_WIDGET_URI})

        assert response.status_code == 200
        contents = response.json()["contents"][0]
        assert contents["mimeType"] == WIDGET_MIME_TYPE
        assert contents["text"] == ECHO_WIDGET_HTML

    def test_read_missing_resource(self, client: TestClient) -> None:
        """Test an undeclared resource answers 404 with the gateway error body."""
        response = client.get("/resources/read", params={"uri": "ui://widget/none.html"})

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "RESOURCE_NOT_FOUND"
        assert data["severity"] == "user_error"
        assert data["details"]["resource_id"] == "ui://widget/none.html"


class TestSessions:
    """Test session state endpoints."""

    def test_state_lifecycle(self, client: TestClient) -> None:
        """Test put, get, evict and the evicted answer."""
        put = client.put("/sessions/s1/state", json={"state": {"selected": 1}})
        assert put.status_code == 200
        assert put.json()["status"] == "active"

        got = client.get("/sessions/s1/state").json()
        assert got["state"] == {"selected": 1}

        deleted = client.delete("/sessions/s1")
        assert deleted.json()["status"] == "evicted"

        gone = client.get("/sessions/s1/state")
        assert gone.status_code == 410
        assert gone.json()["error"] == "SESSION_EVICTED"

        assert client.put("/sessions/s1/state", json={"state": {}}).status_code == 410

    def test_unset_session(self, client: TestClient) -> None:
        """Test a new session reads as empty state."""
        data = client.get("/sessions/fresh/state").json()

        assert data["state"] == {}
        assert data["status"] == "active"

    def test_widget_state_from_invocation_meta(self, client: TestClient) -> None:
        """Test widget state sent with an invocation lands in the store."""
        client.post(
            "/tools/echo/invoke",
            json={
                "arguments": {"text": "hi"},
                "session_id": "s2",
                "_meta": {"openai/widgetState": {"tab": "b"}},
            },
        )

        assert client.get("/sessions/s2/state").json()["state"] == {"tab": "b"}
