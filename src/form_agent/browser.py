"""
Browser - Chrome process lifecycle for form automation.

Each Browser launches its own Chrome process with a throwaway profile and
lets Chrome pick a free DevTools port, so any number of browsers can run
side by side.
"""
from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional

from form_agent.cdp.client import CDPClient, new_page_ws_url, read_devtools_port
from form_agent.core.errors import CDPConnectionError
from form_agent.page import Page

logger = logging.getLogger("form_agent")


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/90.0.4430.212 Safari/537.36"
)


@dataclass
class BrowserConfig:
    """Configuration options for browser sessions."""

    headless: bool = False
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: str = DEFAULT_USER_AGENT
    host: str = "127.0.0.1"
    navigation_timeout: float = 5.0
    # Upper bound on waiting for document.readyState == "complete" after DOMContentLoaded
    settle_timeout: float = 2.0
    selector_timeout: float = 30.0
    command_timeout: float = 30.0
    launch_timeout: float = 10.0
    screenshot_quality: int = 60
    screenshot_format: str = "jpeg"
    screenshots_dir: str = "screenshots"
    chrome_path: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)
    debug: bool = False


def find_chrome_executable() -> Optional[str]:
    """Locate a Chrome or Chromium binary on this machine."""
    chrome_names = [
        "google-chrome",
        "google-chrome-stable",
        "chromium",
        "chromium-browser",
        "chrome",
    ]
    for name in chrome_names:
        path = shutil.which(name)
        if path:
            return path

    fallback_paths = [
        "/usr/bin/google-chrome",
        "/usr/bin/chromium-browser",
        "/usr/bin/chromium",
        "/snap/bin/chromium",
        "/opt/google/chrome/chrome",
        # macOS paths
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
    ]
    for path in fallback_paths:
        if os.path.exists(path):
            return path
    return None


class Browser:
    """
    One Chrome process and the pages opened in it.

    Usage:
        async with Browser(config) as browser:
            page = await browser.new_page()
            await page.goto("https://example.com")
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self.port: Optional[int] = None
        self._process: Optional[subprocess.Popen] = None
        self._user_data_dir: Optional[str] = None
        self._pages: List[Page] = []

    async def __aenter__(self) -> Browser:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    @property
    def pages(self) -> List[Page]:
        return list(self._pages)

    async def start(self) -> None:
        """
        Launch Chrome and wait until its DevTools endpoint is up.

        Raises:
            CDPConnectionError: Chrome is missing, exited early, or never
                published its DevTools port.
        """
        chrome_executable = self.config.chrome_path or find_chrome_executable()
        if not chrome_executable:
            raise CDPConnectionError(
                "Chrome/Chromium not found. Please install Chrome or Chromium.",
                method="Browser.start"
            )

        self._user_data_dir = tempfile.mkdtemp(prefix="form-agent-chrome-")
        chrome_args = [
            chrome_executable,
            "--remote-debugging-port=0",
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-extensions",
            "--disable-background-timer-throttling",
            "--disable-renderer-backgrounding",
            "--disable-backgrounding-occluded-windows",
            f"--user-data-dir={self._user_data_dir}",
            f"--window-size={self.config.viewport_width},{self.config.viewport_height}",
            *self.config.extra_args,
        ]
        if self.config.headless:
            chrome_args.extend([
                "--headless=new",
                "--disable-gpu",
            ])
        chrome_args.append("about:blank")

        try:
            self._process = subprocess.Popen(
                chrome_args,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            await self.close()
            raise CDPConnectionError(
                f"Failed to launch Chrome at {chrome_executable}: {e}",
                method="Browser.start"
            ) from e
        logger.info(f"Launched Chrome (PID: {self._process.pid})")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.launch_timeout
        while True:
            if self._process.poll() is not None:
                exit_code = self._process.returncode
                await self.close()
                raise CDPConnectionError(
                    f"Chrome process exited unexpectedly with code {exit_code}",
                    method="Browser.start"
                )
            port = read_devtools_port(self._user_data_dir)
            if port:
                self.port = port
                break
            if loop.time() >= deadline:
                await self.close()
                raise CDPConnectionError(
                    f"Chrome failed to start after {self.config.launch_timeout} seconds",
                    method="Browser.start"
                )
            await asyncio.sleep(0.1)

        logger.debug(f"Chrome DevTools listening on {self.config.host}:{self.port}")

    async def new_page(self) -> Page:
        """Open a new tab and connect to it."""
        if not self.is_running or self.port is None:
            raise CDPConnectionError(
                "Browser not running. Call start() or use async context manager.",
                method="Browser.new_page"
            )

        ws_url = await new_page_ws_url(self.config.host, self.port)
        client = CDPClient(
            ws_url,
            command_timeout=self.config.command_timeout,
            debug=self.config.debug,
        )
        await client.connect()
        page = Page(client)
        try:
            await page.setup()
        except Exception:
            await client.close()
            raise
        self._pages.append(page)
        return page

    async def _cleanup_process(self) -> None:
        """Terminate Chrome without blocking the event loop."""
        if not self._process:
            return
        if self._process.poll() is None:
            logger.info("Terminating Chrome process...")
            self._process.terminate()
            try:
                await asyncio.wait_for(asyncio.to_thread(self._process.wait), timeout=5.0)
            except asyncio.TimeoutError:
                self._process.kill()
                await asyncio.to_thread(self._process.wait)
        self._process = None

    async def close(self) -> None:
        """Close every page, stop Chrome and delete the temporary profile."""
        for page in self._pages:
            await page.close()
        self._pages.clear()

        await self._cleanup_process()

        if self._user_data_dir:
            shutil.rmtree(self._user_data_dir, ignore_errors=True)
            self._user_data_dir = None
        self.port = None
        logger.info("Browser closed")
