"""
Sessions - Registry of open browser sessions plus the session-level operations.

A session binds an identifier to one Browser and one Page. The store is an
ordinary object passed to every operation; nothing here is process-global.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

from form_agent.browser import Browser, BrowserConfig
from form_agent.core.errors import CDPProtocolError, CDPTimeoutError, SessionNotFoundError
from form_agent.page import ElementHandle, Page

logger = logging.getLogger("form_agent")


@dataclass
class Session:
    """A registry entry owning one browser process and one page."""

    session_id: str
    browser: Browser
    page: Page
    # Element handles from the most recent form inspection, keyed by descriptor ref
    input_refs: Dict[str, ElementHandle] = field(default_factory=dict)


@dataclass
class OpenedPage:
    """Result of opening a webpage: the new session id and its raw handles."""

    session_id: str
    browser: Browser
    page: Page


def _random_session_id() -> str:
    return uuid.uuid4().hex


class SessionStore:
    """
    In-memory mapping from session id to Session.

    Single event loop only; there is no locking. Entries never expire, so a
    session that is never closed keeps its Chrome process alive.
    """

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self._sessions: Dict[str, Session] = {}
        self._id_factory = id_factory or _random_session_id

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

    def new_session_id(self) -> str:
        return self._id_factory()

    def create(self, session_id: str, browser: Browser, page: Page) -> Session:
        """Register a session, replacing any entry with the same id."""
        session = Session(session_id=session_id, browser=browser, page=page)
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        """
        Look up a session or fail.

        Raises:
            SessionNotFoundError: No session is registered under ``session_id``.
        """
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(
                f"No active browser session found for ID: {session_id}",
                session_id=session_id,
            )
        return session

    def remove(self, session_id: str) -> Optional[Session]:
        return self._sessions.pop(session_id, None)

    async def close_all(self) -> List[str]:
        """
        Close every registered session and return the ids that closed cleanly.

        Every entry is removed; a browser that fails to close is logged and
        skipped.
        """
        closed = []
        for session_id in list(self._sessions):
            session = self._sessions.pop(session_id)
            try:
                await session.browser.close()
            except Exception as e:
                logger.warning(f"Failed to close session {session_id}: {e}")
                continue
            closed.append(session_id)
        return closed


# =============================================================================
# Page Navigator
# =============================================================================

async def _wait_for_settle(page: Page, config: BrowserConfig) -> None:
    # A redirect right after DOMContentLoaded destroys the execution context
    # the readiness check runs in; the page is still usable.
    try:
        await page.wait_for_function(
            'document.readyState === "complete"',
            timeout=config.settle_timeout,
        )
    except CDPTimeoutError:
        logger.debug(f"Page did not settle within {config.settle_timeout}s")
    except CDPProtocolError as e:
        logger.debug(f"Readiness check interrupted: {e}")


async def open_webpage(
    store: SessionStore,
    url: str,
    config: Optional[BrowserConfig] = None,
    *,
    browser_factory: Optional[Callable[[BrowserConfig], Browser]] = None,
) -> OpenedPage:
    """
    Launch a fresh browser, open ``url`` in a new page and register a session.

    The page gets a fixed desktop viewport and user agent. Navigation waits
    for DOMContentLoaded only, then gives late content up to
    ``settle_timeout`` seconds to reach readyState "complete".

    Raises:
        CDPTimeoutError: DOMContentLoaded did not fire within
            ``navigation_timeout``.
        CDPConnectionError: Chrome could not be launched or reached.

    Any failure after launch closes the browser before raising, and no
    session is registered.
    """
    config = config or BrowserConfig()
    browser = (browser_factory or Browser)(config)
    await browser.start()

    try:
        page = await browser.new_page()
        await page.set_user_agent(config.user_agent)
        await page.set_viewport(config.viewport_width, config.viewport_height)
        await page.goto(url, timeout=config.navigation_timeout)
        await _wait_for_settle(page, config)
    except Exception:
        await browser.close()
        raise

    session_id = store.new_session_id()
    store.create(session_id, browser, page)
    logger.info(f"Opened {url} in session {session_id}")
    return OpenedPage(session_id=session_id, browser=browser, page=page)


async def close_browser_session(store: SessionStore, session_id: str) -> None:
    """
    Remove a session and shut down its browser.

    Raises:
        SessionNotFoundError: The id is unknown or was already closed.
    """
    session = store.require(session_id)
    store.remove(session_id)
    await session.browser.close()
    logger.info(f"Closed session {session_id}")


# =============================================================================
# Screenshot Capturer
# =============================================================================

async def generate_screenshot(
    store: SessionStore,
    session_id: str,
    config: Optional[BrowserConfig] = None,
) -> str:
    """
    Capture a full-page image to ``<screenshots_dir>/<epoch-millis>.<format>``.

    Returns:
        Absolute path of the saved image.
    """
    config = config or BrowserConfig()
    session = store.require(session_id)

    directory = Path(config.screenshots_dir).resolve()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{get_current_time()}.{config.screenshot_format}"

    await session.page.screenshot(
        str(path),
        format=config.screenshot_format,
        quality=config.screenshot_quality,
        full_page=True,
    )
    logger.info(f"Saved screenshot {path}")
    return str(path)


def get_current_time() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)
