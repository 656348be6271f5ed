#!/usr/bin/env python3
"""
Form Filling Example

Opens a signup page, fills its first form with dummy data, submits it and
saves a screenshot, without an LLM in the loop.

Usage:
    python examples/form_filling.py [url]
"""
import asyncio
import sys

from form_agent import (
    BrowserConfig,
    SessionStore,
    close_browser_session,
    fill_form,
    find_form_and_inputs,
    generate_screenshot,
    open_webpage,
    prepare_dummy_data_for_form,
)
from form_agent.cdp import setup_logging

DEFAULT_URL = "https://ui.chaicode.com/auth-sada/signup"


async def main(url: str):
    setup_logging()
    store = SessionStore()
    config = BrowserConfig(headless=True)

    opened = await open_webpage(store, url, config)
    print(f"Session: {opened.session_id}")
    try:
        inputs = await find_form_and_inputs(store, opened.session_id)
        print("\nInputs found:")
        for descriptor in inputs:
            print(f"  [{descriptor.ref}] {descriptor.type or '?'} name={descriptor.name!r}")

        result = await fill_form(store, opened.session_id, prepare_dummy_data_for_form(inputs), config)
        print(f"\n{result.message} ({result.filled} inputs)")

        path = await generate_screenshot(store, opened.session_id, config)
        print(f"Screenshot: {path}")
    finally:
        await close_browser_session(store, opened.session_id)


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_URL))
