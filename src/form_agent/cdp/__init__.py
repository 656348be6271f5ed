"""
CDP Module - Chrome DevTools Protocol client.
"""
from form_agent.cdp.client import (
    CDPClient,
    new_page_ws_url,
    read_devtools_port,
    setup_logging,
)

__all__ = [
    "CDPClient",
    "new_page_ws_url",
    "read_devtools_port",
    "setup_logging",
]
