"""
CDP Client - Chrome DevTools Protocol WebSocket client for a single page target.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import websockets
from websockets.asyncio.client import connect

from form_agent.core.errors import (
    FormAgentError,
    CDPConnectionError,
    CDPTimeoutError,
    CDPProtocolError,
)

logger = logging.getLogger("form_agent")


def setup_logging(level: int = logging.INFO, debug: bool = False):
    """Configure logging for the form agent."""
    if debug:
        level = logging.DEBUG

    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)


def read_devtools_port(user_data_dir: str) -> Optional[int]:
    """
    Read the DevTools port Chrome chose for a profile.

    Chrome launched with ``--remote-debugging-port=0`` writes the port it
    picked as the first line of ``DevToolsActivePort`` in the profile dir.
    """
    path = Path(user_data_dir) / "DevToolsActivePort"
    if not path.exists():
        return None
    lines = path.read_text().splitlines()
    if not lines or not lines[0].strip().isdigit():
        return None
    return int(lines[0].strip())


async def new_page_ws_url(host: str = "localhost", port: int = 9222, url: str = "about:blank") -> str:
    """Open a new page target and return its WebSocket URL."""
    try:
        async with httpx.AsyncClient() as client:
            # Chrome rejects GET on /json/new
            response = await client.put(f"http://{host}:{port}/json/new?{url}")
            response.raise_for_status()
            target = response.json()
    except httpx.HTTPError as e:
        raise CDPConnectionError(
            f"Failed to open a page target at {host}:{port}: {e}",
            method="new_page_ws_url"
        ) from e
    logger.debug(f"Opened page target {target.get('id')}")
    return target["webSocketDebuggerUrl"]


class CDPClient:
    """
    Chrome DevTools Protocol WebSocket client.

    Connects straight to a page target's websocket, so commands carry no
    flattened session id. Responses are matched to requests by message id;
    everything else is treated as an event and handed to any waiters.
    """

    def __init__(self, ws_url: str, *, command_timeout: float = 30.0, debug: bool = False):
        self.ws_url = ws_url
        self.command_timeout = command_timeout
        self.debug = debug
        self.message_id = 0
        self.pending_message: Dict[int, asyncio.Future] = {}
        self._event_waiters: Dict[str, List[asyncio.Future]] = {}
        self._listen_task: Optional[asyncio.Task] = None
        self.ws = None

    def _now(self) -> float:
        return asyncio.get_running_loop().time()

    @property
    def is_connected(self) -> bool:
        return self.ws is not None

    async def connect(self):
        """Connect to the page target via WebSocket."""
        logger.info(f"Connecting to Chrome via WebSocket: {self.ws_url}")

        try:
            # Full-page screenshots easily exceed the default frame limit
            self.ws = await connect(self.ws_url, max_size=None)
        except Exception as e:
            logger.error(f"Failed to establish WebSocket connection: {e}")
            raise CDPConnectionError(
                f"Failed to connect to Chrome WebSocket: {e}",
                method="connect"
            ) from e

        self._listen_task = asyncio.create_task(self.listen())
        logger.debug("WebSocket connection established")

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None,
                   *, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Send a CDP command and wait for its response."""
        if not self.ws:
            raise CDPConnectionError(
                "WebSocket connection not established",
                method=method,
            )

        self.message_id += 1
        msg_id = self.message_id
        future = asyncio.get_running_loop().create_future()
        self.pending_message[msg_id] = future

        timeout = self.command_timeout if timeout is None else timeout
        start_time = self._now()

        if self.debug:
            logger.debug(f"CDP command: {method} id={msg_id} params={params}")

        try:
            await self.ws.send(json.dumps({"id": msg_id, "method": method, "params": params or {}}))
            result = await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError as e:
            self.pending_message.pop(msg_id, None)
            duration = self._now() - start_time
            logger.error(f"CDP command timeout: {method} after {duration:.3f}s")
            raise CDPTimeoutError(
                f"CDP command {method} timed out after {duration:.3f}s",
                timeout=timeout,
                method=method,
            ) from e
        except FormAgentError:
            raise
        except Exception as e:
            self.pending_message.pop(msg_id, None)
            logger.error(f"CDP command error: {method} - {e}")
            raise CDPConnectionError(
                f"CDP command {method} failed: {e}",
                method=method,
            ) from e

        if self.debug:
            logger.debug(f"CDP response: {method} (duration={self._now() - start_time:.3f}s)")
        return result

    def expect_event(self, method: str) -> asyncio.Future:
        """
        Register interest in the next occurrence of an event.

        Call this before sending the command that triggers the event, then
        pass the returned future to ``wait_for_event``.
        """
        future = asyncio.get_running_loop().create_future()
        self._event_waiters.setdefault(method, []).append(future)
        return future

    async def wait_for_event(self, future: asyncio.Future, method: str, timeout: float) -> Dict[str, Any]:
        """Wait for an event registered with ``expect_event``."""
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError as e:
            waiters = self._event_waiters.get(method, [])
            if future in waiters:
                waiters.remove(future)
            raise CDPTimeoutError(
                f"Timed out after {timeout} seconds waiting for {method}",
                timeout=timeout,
                method=method,
            ) from e

    def _handle_event(self, data: dict):
        """Resolve any futures waiting on this event."""
        method = data.get("method", "")
        if self.debug:
            logger.debug(f"CDP event: {method}")

        for future in self._event_waiters.pop(method, []):
            if not future.done():
                future.set_result(data.get("params", {}))

    def _fail_pending(self, error: Exception):
        for future in self.pending_message.values():
            if not future.done():
                future.set_exception(error)
        self.pending_message.clear()
        for waiters in self._event_waiters.values():
            for future in waiters:
                if not future.done():
                    future.set_exception(error)
        self._event_waiters.clear()

    async def listen(self):
        """Listen for CDP responses and events."""
        try:
            async for raw in self.ws:
                data = json.loads(raw)

                if "id" in data:
                    future = self.pending_message.pop(data["id"], None)
                    if future is None or future.done():
                        continue
                    if "error" in data:
                        error_data = data["error"]
                        error_message = error_data.get("message", "Unknown CDP error")
                        logger.debug(f"CDP protocol error: {error_message}")
                        future.set_exception(CDPProtocolError(
                            f"CDP Error: {error_message}",
                            code=error_data.get("code"),
                            cdp_error=error_data,
                        ))
                    else:
                        future.set_result(data.get("result", {}))
                elif "method" in data:
                    self._handle_event(data)
        except websockets.exceptions.ConnectionClosed:
            logger.debug("WebSocket connection closed")
        except Exception as e:
            logger.error(f"Error in listen loop: {e}", exc_info=True)
        finally:
            self._fail_pending(CDPConnectionError(
                "WebSocket connection closed",
                method="listen"
            ))

    async def close(self) -> None:
        """
        Close the WebSocket connection gracefully.
        """
        if self.ws:
            try:
                await self.ws.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")
            finally:
                self.ws = None
        if self._listen_task:
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
            self._listen_task = None
