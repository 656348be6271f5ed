"""
Page - Page-level automation primitives on top of the CDP client.

A Page owns one CDP connection to one page target. ElementHandle wraps a
remote object id and stays valid until the page navigates away or the
element is removed from the DOM.
"""
from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from form_agent.cdp.client import CDPClient
from form_agent.core.errors import (
    CDPConnectionError,
    CDPProtocolError,
    CDPTimeoutError,
    ElementNotFoundError,
    FormAgentError,
)

logger = logging.getLogger("form_agent")


def _raise_on_exception(result: Dict[str, Any], method: str) -> None:
    details = result.get("exceptionDetails")
    if details:
        description = details.get("exception", {}).get("description") or details.get("text", "")
        raise CDPProtocolError(f"JavaScript error: {description}", cdp_error=details, method=method)


class ElementHandle:
    """Reference to a live DOM element."""

    def __init__(self, page: Page, object_id: str):
        self.page = page
        self.object_id = object_id

    def __repr__(self) -> str:
        return f"ElementHandle(object_id={self.object_id!r})"

    async def _call(self, function_declaration: str, *args: Any, return_by_value: bool = True) -> Dict[str, Any]:
        result = await self.page.client.send(
            "Runtime.callFunctionOn",
            {
                "objectId": self.object_id,
                "functionDeclaration": function_declaration,
                "arguments": [{"value": arg} for arg in args],
                "returnByValue": return_by_value,
                "awaitPromise": True,
            },
        )
        _raise_on_exception(result, "Runtime.callFunctionOn")
        return result.get("result", {})

    async def evaluate(self, function_declaration: str, *args: Any) -> Any:
        """Run ``function_declaration`` with ``this`` bound to the element."""
        result = await self._call(function_declaration, *args)
        return result.get("value")

    async def query_selector(self, selector: str) -> Optional[ElementHandle]:
        """First descendant matching ``selector``, or None."""
        result = await self._call(
            "function(selector) { return this.querySelector(selector); }",
            selector,
            return_by_value=False,
        )
        object_id = result.get("objectId")
        if result.get("subtype") == "null" or not object_id:
            return None
        return ElementHandle(self.page, object_id)

    async def query_selector_all(self, selector: str) -> List[ElementHandle]:
        """All descendants matching ``selector`` in document order."""
        result = await self._call(
            "function(selector) { return Array.from(this.querySelectorAll(selector)); }",
            selector,
            return_by_value=False,
        )
        array_id = result.get("objectId")
        if not array_id:
            return []

        properties = await self.page.client.send(
            "Runtime.getProperties",
            {"objectId": array_id, "ownProperties": True},
        )
        indexed = []
        for prop in properties.get("result", []):
            name = prop.get("name", "")
            object_id = prop.get("value", {}).get("objectId")
            if name.isdigit() and object_id:
                indexed.append((int(name), object_id))

        await self.page.client.send("Runtime.releaseObject", {"objectId": array_id})
        return [ElementHandle(self.page, object_id) for _, object_id in sorted(indexed)]

    async def is_connected(self) -> bool:
        """False once the element was removed or its document navigated away."""
        try:
            return bool(await self.evaluate("function() { return this.isConnected; }"))
        except CDPProtocolError:
            return False

    async def scroll_into_view(self) -> None:
        await self.page.client.send("DOM.scrollIntoViewIfNeeded", {"objectId": self.object_id})

    async def bounding_box(self) -> Dict[str, float]:
        """Viewport-relative box of the element."""
        return await self.evaluate(
            """
            function() {
                const rect = this.getBoundingClientRect();
                return {x: rect.left, y: rect.top, width: rect.width, height: rect.height};
            }
            """
        )

    async def click(self) -> None:
        """Scroll the element into view and click its centre."""
        await self.scroll_into_view()
        box = await self.bounding_box()
        if not box or box["width"] == 0 or box["height"] == 0:
            raise ElementNotFoundError("Element is not visible", method="ElementHandle.click")
        await self.page.mouse_click(box["x"] + box["width"] / 2, box["y"] + box["height"] / 2)

    async def focus(self) -> bool:
        """Focus the element. Returns False when it did not take focus."""
        try:
            await self.page.client.send("DOM.focus", {"objectId": self.object_id})
        except FormAgentError as e:
            logger.debug(f"Failed to focus element {self.object_id}: {e}")
            return False
        try:
            return bool(await self.evaluate("function() { return document.activeElement === this; }"))
        except CDPProtocolError:
            return False

    async def type(self, text: str) -> None:
        """
        Focus the element and insert ``text`` after its current content.

        Elements that take no text input (radio, checkbox, submit) accept
        focus and ignore the inserted text. Elements that refuse focus
        (hidden, disabled) are left untouched.
        """
        focused = await self.focus()
        if not text:
            return
        if not focused:
            logger.debug(f"Skipping text for unfocusable element {self.object_id}")
            return
        await self.page.client.send("Input.insertText", {"text": text})

    async def release(self) -> None:
        """Free the remote object. The handle must not be used afterwards."""
        try:
            await self.page.client.send("Runtime.releaseObject", {"objectId": self.object_id})
        except FormAgentError as e:
            logger.debug(f"Failed to release element {self.object_id}: {e}")


class Page:
    """
    A single browser tab driven over CDP.

    Usage:
        page = Page(client)
        await page.setup()
        await page.goto("https://example.com", timeout=5.0)
        form = await page.query_selector("form")
    """

    def __init__(self, client: CDPClient):
        self.client = client

    async def setup(self) -> None:
        """Enable the CDP domains the page primitives rely on."""
        for domain in ("Page", "Runtime", "DOM"):
            await self.client.send(f"{domain}.enable")

    # =========================================================================
    # Emulation
    # =========================================================================

    async def set_viewport(self, width: int, height: int) -> None:
        await self.client.send(
            "Emulation.setDeviceMetricsOverride",
            {"width": width, "height": height, "deviceScaleFactor": 1, "mobile": False},
        )

    async def set_user_agent(self, user_agent: str) -> None:
        await self.client.send("Emulation.setUserAgentOverride", {"userAgent": user_agent})

    # =========================================================================
    # Navigation and waiting
    # =========================================================================

    async def goto(self, url: str, *, timeout: float = 5.0) -> None:
        """
        Navigate to ``url`` and wait for DOMContentLoaded.

        Raises:
            CDPTimeoutError: DOMContentLoaded did not fire within ``timeout``.
            CDPConnectionError: Chrome reported a navigation failure.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        dom_ready = self.client.expect_event("Page.domContentEventFired")
        result = await self.client.send("Page.navigate", {"url": url}, timeout=timeout)
        error_text = result.get("errorText")
        if error_text:
            raise CDPConnectionError(f"Navigation to {url} failed: {error_text}", method="Page.navigate")

        remaining = max(deadline - loop.time(), 0.0)
        try:
            await self.client.wait_for_event(dom_ready, "Page.domContentEventFired", remaining)
        except CDPTimeoutError as e:
            raise CDPTimeoutError(
                f"Navigation to {url} timed out after {timeout} seconds",
                timeout=timeout,
                method="Page.goto",
            ) from e
        logger.debug(f"DOMContentLoaded fired for {url}")

    async def evaluate(self, expression: str) -> Any:
        """Evaluate a JavaScript expression and return its JSON value."""
        result = await self.client.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )
        _raise_on_exception(result, "Runtime.evaluate")
        return result.get("result", {}).get("value")

    async def wait_for_function(self, expression: str, *, timeout: float, polling: float = 0.1) -> None:
        """
        Poll until ``expression`` evaluates truthy.

        Raises:
            CDPTimeoutError: The condition stayed falsy for ``timeout`` seconds.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if await self.evaluate(expression):
                return
            if loop.time() >= deadline:
                raise CDPTimeoutError(
                    f"Condition not met after {timeout} seconds: {expression}",
                    timeout=timeout,
                    method="Page.wait_for_function",
                )
            await asyncio.sleep(polling)

    async def wait_for_selector(self, selector: str, *, timeout: float) -> ElementHandle:
        """Wait until ``selector`` matches and return the first match."""
        await self.wait_for_function(
            f"document.querySelector({json.dumps(selector)}) !== null",
            timeout=timeout,
        )
        element = await self.query_selector(selector)
        if element is None:
            raise ElementNotFoundError(f"{selector} disappeared while waiting", selector=selector)
        return element

    async def query_selector(self, selector: str) -> Optional[ElementHandle]:
        """First element in the document matching ``selector``, or None."""
        result = await self.client.send(
            "Runtime.evaluate",
            {"expression": f"document.querySelector({json.dumps(selector)})"},
        )
        _raise_on_exception(result, "Runtime.evaluate")
        remote = result.get("result", {})
        if remote.get("subtype") == "null" or not remote.get("objectId"):
            return None
        return ElementHandle(self, remote["objectId"])

    # =========================================================================
    # Input
    # =========================================================================

    async def mouse_click(self, x: float, y: float) -> None:
        """Dispatch a left click at viewport coordinates."""
        await self.client.send(
            "Input.dispatchMouseEvent",
            {"type": "mouseMoved", "x": x, "y": y, "modifiers": 0},
        )
        for event_type in ("mousePressed", "mouseReleased"):
            await self.client.send(
                "Input.dispatchMouseEvent",
                {
                    "type": event_type,
                    "x": x,
                    "y": y,
                    "button": "left",
                    "clickCount": 1,
                    "modifiers": 0,
                },
            )

    # =========================================================================
    # Screenshot
    # =========================================================================

    async def screenshot(
        self,
        path: str,
        *,
        format: str = "jpeg",
        quality: int = 60,
        full_page: bool = True,
    ) -> str:
        """
        Capture the page to ``path``.

        Args:
            path: Destination file. Parent directories must exist.
            format: "jpeg" or "png".
            quality: JPEG quality (0-100). Ignored for PNG.
            full_page: If True, capture the whole scrollable page.

        Returns:
            The path written.
        """
        params: Dict[str, Any] = {"format": format}
        if format == "jpeg":
            params["quality"] = quality

        if full_page:
            metrics = await self.client.send("Page.getLayoutMetrics")
            size = metrics.get("cssContentSize") or metrics.get("contentSize") or {}
            params["captureBeyondViewport"] = True
            params["clip"] = {
                "x": 0,
                "y": 0,
                "width": size.get("width", 0),
                "height": size.get("height", 0),
                "scale": 1,
            }

        result = await self.client.send("Page.captureScreenshot", params)
        Path(path).write_bytes(base64.b64decode(result.get("data", "")))
        return path

    async def close(self) -> None:
        await self.client.close()
