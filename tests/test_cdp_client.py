"""
Tests for the CDP client against an in-memory WebSocket.

Run with: pytest tests/test_cdp_client.py -v
"""
import asyncio
import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from form_agent.cdp.client import CDPClient, new_page_ws_url, read_devtools_port
from form_agent.core.errors import CDPConnectionError, CDPProtocolError, CDPTimeoutError


class FakeWebSocket:
    """
    Minimal stand-in for a websockets connection.

    ``responder`` is called with every sent command and returns the messages
    the browser would answer with.
    """

    def __init__(self, responder=None):
        self.responder = responder or (lambda command: [{"id": command["id"], "result": {}}])
        self.sent = []
        self.incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, raw):
        command = json.loads(raw)
        self.sent.append(command)
        for message in self.responder(command):
            self.push(message)

    def push(self, message):
        self.incoming.put_nowait(None if message is None else json.dumps(message))

    async def close(self):
        self.push(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        raw = await self.incoming.get()
        if raw is None:
            raise StopAsyncIteration
        return raw


async def connected_client(ws, **kwargs) -> CDPClient:
    client = CDPClient("ws://127.0.0.1:9222/devtools/page/ABC", **kwargs)
    with patch("form_agent.cdp.client.connect", AsyncMock(return_value=ws)) as connect:
        await client.connect()
    connect.assert_awaited_once_with(client.ws_url, max_size=None)
    return client


# =============================================================================
# Commands
# =============================================================================

class TestSend:
    """Tests for CDPClient.send."""

    @pytest.mark.asyncio
    async def test_send_without_connection_raises(self):
        client = CDPClient("ws://nowhere")

        with pytest.raises(CDPConnectionError, match="not established"):
            await client.send("Page.enable")

    @pytest.mark.asyncio
    async def test_send_returns_result(self):
        ws = FakeWebSocket(lambda c: [{"id": c["id"], "result": {"frameId": "F1"}}])
        client = await connected_client(ws)

        result = await client.send("Page.navigate", {"url": "https://example.com"})

        assert result == {"frameId": "F1"}
        assert ws.sent == [{"id": 1, "method": "Page.navigate", "params": {"url": "https://example.com"}}]
        await client.close()

    @pytest.mark.asyncio
    async def test_message_ids_increase(self):
        ws = FakeWebSocket()
        client = await connected_client(ws)

        await client.send("Page.enable")
        await client.send("DOM.enable")

        assert [c["id"] for c in ws.sent] == [1, 2]
        assert ws.sent[0]["params"] == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_error_response_raises_protocol_error(self):
        ws = FakeWebSocket(lambda c: [{"id": c["id"], "error": {"code": -32000, "message": "No node found"}}])
        client = await connected_client(ws)

        with pytest.raises(CDPProtocolError) as exc_info:
            await client.send("DOM.focus", {"objectId": "1"})

        assert exc_info.value.code == -32000
        assert "No node found" in str(exc_info.value)
        await client.close()

    @pytest.mark.asyncio
    async def test_unanswered_command_times_out(self):
        ws = FakeWebSocket(lambda c: [])
        client = await connected_client(ws)

        with pytest.raises(CDPTimeoutError) as exc_info:
            await client.send("Page.enable", timeout=0.05)

        assert exc_info.value.timeout == 0.05
        assert client.pending_message == {}
        await client.close()

    @pytest.mark.asyncio
    async def test_closed_connection_fails_pending_command(self):
        ws = FakeWebSocket(lambda c: [None])
        client = await connected_client(ws)

        with pytest.raises(CDPConnectionError, match="closed"):
            await client.send("Page.enable")

        await client.close()

    @pytest.mark.asyncio
    async def test_close_resets_connection(self):
        client = await connected_client(FakeWebSocket())

        await client.close()

        assert not client.is_connected
        assert client._listen_task is None


# =============================================================================
# Events
# =============================================================================

class TestEvents:
    """Tests for event waiting."""

    @pytest.mark.asyncio
    async def test_event_after_command_resolves_waiter(self):
        ws = FakeWebSocket(lambda c: [
            {"id": c["id"], "result": {}},
            {"method": "Page.domContentEventFired", "params": {"timestamp": 1.5}},
        ])
        client = await connected_client(ws)

        waiter = client.expect_event("Page.domContentEventFired")
        await client.send("Page.navigate", {"url": "https://example.com"})
        params = await client.wait_for_event(waiter, "Page.domContentEventFired", 1.0)

        assert params == {"timestamp": 1.5}
        await client.close()

    @pytest.mark.asyncio
    async def test_unrelated_events_are_ignored(self):
        ws = FakeWebSocket(lambda c: [
            {"method": "Page.frameNavigated", "params": {}},
            {"id": c["id"], "result": {}},
        ])
        client = await connected_client(ws)

        waiter = client.expect_event("Page.domContentEventFired")
        await client.send("Page.navigate")

        assert not waiter.done()
        await client.close()

    @pytest.mark.asyncio
    async def test_wait_for_event_timeout_removes_waiter(self):
        client = await connected_client(FakeWebSocket())

        waiter = client.expect_event("Page.domContentEventFired")
        with pytest.raises(CDPTimeoutError):
            await client.wait_for_event(waiter, "Page.domContentEventFired", 0.05)

        assert client._event_waiters["Page.domContentEventFired"] == []
        await client.close()


# =============================================================================
# Discovery helpers
# =============================================================================

class TestDiscovery:
    """Tests for DevTools port and target discovery."""

    def test_read_devtools_port(self, tmp_path):
        (tmp_path / "DevToolsActivePort").write_text("40123\n/devtools/browser/abc\n")

        assert read_devtools_port(str(tmp_path)) == 40123

    def test_read_devtools_port_missing_file(self, tmp_path):
        assert read_devtools_port(str(tmp_path)) is None

    def test_read_devtools_port_partial_file(self, tmp_path):
        (tmp_path / "DevToolsActivePort").write_text("")

        assert read_devtools_port(str(tmp_path)) is None

    @pytest.mark.asyncio
    async def test_new_page_ws_url(self):
        response = MagicMock()
        response.json.return_value = {"id": "T1", "webSocketDebuggerUrl": "ws://127.0.0.1:1/devtools/page/T1"}
        http = MagicMock()
        http.put = AsyncMock(return_value=response)

        with patch("httpx.AsyncClient") as client_cls:
            client_cls.return_value.__aenter__.return_value = http
            ws_url = await new_page_ws_url("127.0.0.1", 1)

        assert ws_url == "ws://127.0.0.1:1/devtools/page/T1"
        http.put.assert_awaited_once_with("http://127.0.0.1:1/json/new?about:blank")

    @pytest.mark.asyncio
    async def test_new_page_ws_url_connection_refused(self):
        http = MagicMock()
        http.put = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch("httpx.AsyncClient") as client_cls:
            client_cls.return_value.__aenter__.return_value = http
            with pytest.raises(CDPConnectionError, match="Failed to open a page target"):
                await new_page_ws_url("127.0.0.1", 1)
