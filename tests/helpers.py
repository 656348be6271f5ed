"""
Test doubles for browsers, pages and DOM elements.
"""
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock


def make_input(**attributes: str) -> MagicMock:
    """An input element whose attributes read back as ``attributes``."""
    element = MagicMock(name=f"input[{attributes.get('type', '')}]")
    values = {"name": "", "type": "", "id": "", "placeholder": "", "value": ""}
    values.update(attributes)
    element.evaluate = AsyncMock(return_value=values)
    element.type = AsyncMock()
    element.is_connected = AsyncMock(return_value=True)
    element.release = AsyncMock()
    return element


def make_form(inputs: List[MagicMock], *, submit: bool = True,
              center: Optional[Dict[str, float]] = None) -> MagicMock:
    """A form element containing ``inputs`` and optionally a submit button."""
    form = MagicMock(name="form")
    form.query_selector_all = AsyncMock(return_value=list(inputs))
    form.submit_button = None
    if submit:
        form.submit_button = MagicMock(name="submit")
        form.submit_button.click = AsyncMock()
    form.query_selector = AsyncMock(return_value=form.submit_button)
    form.scroll_into_view = AsyncMock()
    form.evaluate = AsyncMock(return_value=center or {"x": 640.0, "y": 300.0})
    return form


def make_page(form: Optional[MagicMock] = None) -> MagicMock:
    """A page whose first ``form`` is ``form`` (None for a page without forms)."""
    page = MagicMock(name="page")
    page.set_user_agent = AsyncMock()
    page.set_viewport = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_function = AsyncMock()
    page.query_selector = AsyncMock(return_value=form)
    page.wait_for_selector = AsyncMock(return_value=form)
    page.mouse_click = AsyncMock()
    page.screenshot = AsyncMock(side_effect=lambda path, **kwargs: path)
    return page


def make_browser(page: Optional[MagicMock] = None) -> MagicMock:
    """A browser that hands out ``page`` from new_page()."""
    browser = MagicMock(name="browser")
    browser.start = AsyncMock()
    browser.close = AsyncMock()
    browser.new_page = AsyncMock(return_value=page if page is not None else make_page())
    return browser


def register(store, session_id: str, page: MagicMock) -> MagicMock:
    """Register ``page`` under ``session_id`` and return its browser."""
    browser = make_browser(page)
    store.create(session_id, browser, page)
    return browser


def signup_form() -> MagicMock:
    """Form with one email input and one submit input."""
    return make_form([
        make_input(name="email", type="email", id="email", placeholder="Email"),
        make_input(type="submit", value=""),
    ])
