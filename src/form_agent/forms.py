"""
Forms - Find, fill and submit the first form on a session's page.

Typical flow for one session:

    inputs = await find_form_and_inputs(store, session_id)
    inputs = prepare_dummy_data_for_form(inputs)
    await fill_form(store, session_id, inputs)
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from form_agent.browser import BrowserConfig
from form_agent.core.errors import ElementNotFoundError, FormMismatchError
from form_agent.core.models import FillResult, FormPosition, InputDescriptor
from form_agent.page import ElementHandle, Page
from form_agent.sessions import Session, SessionStore

logger = logging.getLogger("form_agent")


FORM_SELECTOR = "form"
INPUT_SELECTOR = "input"
SUBMIT_SELECTOR = 'button, input[type="submit"]'

DUMMY_VALUES: Dict[str, str] = {
    "text": "test",
    "email": "test@example.com",
    "password": "test123",
    "number": "123456",
    "tel": "1234567890",
    "select-one": "test",
    "radio": "test",
    "checkbox": "test",
    "submit": "test",
}

_READ_INPUT_JS = """
function() {
    return {
        name: this.getAttribute("name") || "",
        type: this.getAttribute("type") || "",
        id: this.getAttribute("id") || "",
        placeholder: this.getAttribute("placeholder") || "",
        value: this.value || "",
    };
}
"""

_FORM_CENTER_JS = """
function() {
    const rect = this.getBoundingClientRect();
    return {x: rect.left + rect.width / 2, y: rect.top + rect.height / 2};
}
"""


async def _locate_form_inputs(page: Page) -> Tuple[ElementHandle, List[ElementHandle]]:
    form = await page.query_selector(FORM_SELECTOR)
    if form is None:
        raise ElementNotFoundError("No form found on the page", selector=FORM_SELECTOR)

    inputs = await form.query_selector_all(INPUT_SELECTOR)
    if not inputs:
        raise ElementNotFoundError("No input found on the form", selector=INPUT_SELECTOR)
    return form, inputs


# =============================================================================
# Form Inspector
# =============================================================================

async def find_form_and_inputs(store: SessionStore, session_id: str) -> List[InputDescriptor]:
    """
    Describe every input of the first form on the page, in document order.

    Each descriptor's ``ref`` is remembered on the session so that a later
    ``fill_form`` can type into the exact element it was read from. Handles
    recorded by an earlier inspection are released.

    Raises:
        SessionNotFoundError: Unknown session id.
        ElementNotFoundError: The page has no form, or the form has no inputs.
    """
    session = store.require(session_id)
    _, inputs = await _locate_form_inputs(session.page)

    descriptors = []
    refs = {}
    for position, element in enumerate(inputs):
        attributes = await element.evaluate(_READ_INPUT_JS) or {}
        ref = str(position)
        refs[ref] = element
        descriptors.append(dataclasses.replace(InputDescriptor.from_dict(attributes), ref=ref))

    kept = list(refs.values())
    for element in session.input_refs.values():
        if all(element is not other for other in kept):
            await element.release()
    session.input_refs = refs
    logger.debug(f"Found {len(descriptors)} inputs in session {session_id}")
    return descriptors


# =============================================================================
# Dummy Data Generator
# =============================================================================

def prepare_dummy_data_for_form(input_details: Iterable[Any]) -> List[InputDescriptor]:
    """
    Return copies of the descriptors with placeholder values by input type.

    Types missing from ``DUMMY_VALUES`` keep their current value. The input
    is left untouched, and applying the function twice gives the same result
    as applying it once.
    """
    prepared = []
    for item in input_details:
        descriptor = InputDescriptor.coerce(item)
        value = DUMMY_VALUES.get(descriptor.type, descriptor.value)
        prepared.append(dataclasses.replace(descriptor, value=value))
    return prepared


# =============================================================================
# Form Filler
# =============================================================================

async def _resolve_ref(session: Session, descriptor: InputDescriptor) -> Optional[ElementHandle]:
    element = session.input_refs.get(descriptor.ref) if descriptor.ref else None
    if element is not None and await element.is_connected():
        return element
    return None


async def fill_form(
    store: SessionStore,
    session_id: str,
    input_details: Iterable[Any],
    config: Optional[BrowserConfig] = None,
) -> FillResult:
    """
    Type each descriptor's value into the form and click its submit button.

    Descriptors must match the live inputs one to one, in order. A
    descriptor whose ``ref`` still points at a connected element is typed
    into that element; otherwise the element at the same position is used.
    Values typed before a later failure stay typed.

    Raises:
        SessionNotFoundError: Unknown session id.
        CDPTimeoutError: No form appeared within ``selector_timeout``.
        ElementNotFoundError: No form, no inputs, or no submit button.
        FormMismatchError: The descriptor count differs from the input count.
    """
    config = config or BrowserConfig()
    session = store.require(session_id)
    descriptors = [InputDescriptor.coerce(item) for item in input_details]
    page = session.page

    await page.wait_for_selector(FORM_SELECTOR, timeout=config.selector_timeout)
    form, inputs = await _locate_form_inputs(page)

    if len(descriptors) != len(inputs):
        raise FormMismatchError(
            f"Form has {len(inputs)} inputs but {len(descriptors)} values were supplied",
            expected=len(inputs),
            received=len(descriptors),
            session_id=session_id,
        )

    for position, (descriptor, element) in enumerate(zip(descriptors, inputs)):
        target = await _resolve_ref(session, descriptor) or element
        logger.debug(f"Typing into input {position} ({descriptor.type or 'untyped'})")
        await target.type(descriptor.value)

    submit = await form.query_selector(SUBMIT_SELECTOR)
    if submit is None:
        raise ElementNotFoundError("No submit button found in the form", selector=SUBMIT_SELECTOR)
    await submit.click()

    logger.info(f"Submitted form in session {session_id}")
    return FillResult(filled=len(descriptors))


# =============================================================================
# Form Scroller
# =============================================================================

async def scroll_to_form(store: SessionStore, session_id: str) -> FormPosition:
    """
    Bring the first form into view and click its centre.

    Returns:
        The viewport position that was clicked.
    """
    session = store.require(session_id)
    form = await session.page.query_selector(FORM_SELECTOR)
    if form is None:
        raise ElementNotFoundError("No form found on the page", selector=FORM_SELECTOR)

    await form.scroll_into_view()
    center = await form.evaluate(_FORM_CENTER_JS)
    position = FormPosition(x=center["x"], y=center["y"])
    await session.page.mouse_click(position.x, position.y)
    return position
