"""
LLM Tool Definitions - JSON schemas and executor for LLM tool calling.

This module provides:
1. Tool schemas compatible with OpenAI and Anthropic formats
2. A tool executor that maps tool calls to session and form operations
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Dict, List, Literal, Optional

from form_agent.browser import BrowserConfig
from form_agent.forms import (
    fill_form,
    find_form_and_inputs,
    prepare_dummy_data_for_form,
    scroll_to_form,
)
from form_agent.sessions import (
    SessionStore,
    close_browser_session,
    generate_screenshot,
    get_current_time,
    open_webpage,
)

logger = logging.getLogger("form_agent")


# =============================================================================
# Tool Schemas
# =============================================================================

_SESSION_ID_SCHEMA = {
    "type": "object",
    "properties": {
        "sessionId": {
            "type": "string",
            "description": "The session id returned by openWebpageTool"
        }
    },
    "required": ["sessionId"]
}

_INPUT_DETAILS_SCHEMA = {
    "type": "array",
    "description": "Input descriptors in the order returned by findFormAndInputsTool",
    "items": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "type": {"type": "string"},
            "id": {"type": "string"},
            "placeholder": {"type": "string"},
            "value": {"type": "string"},
            "ref": {
                "type": "string",
                "description": "Element reference from findFormAndInputsTool. Pass it back unchanged."
            },
        },
        "required": ["name", "type", "id", "placeholder", "value"]
    }
}

TOOL_DEFINITIONS = {
    "openWebpageTool": {
        "name": "openWebpageTool",
        "description": "This tool can open any webpage in the browser and returns the session id of the browser",
        "parameters": {
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "The URL to open (must include http:// or https://)"
                }
            },
            "required": ["url"]
        }
    },
    "closeBrowserTool": {
        "name": "closeBrowserTool",
        "description": "This tool can close the browser session",
        "parameters": _SESSION_ID_SCHEMA,
    },
    "getCurrentTimeTool": {
        "name": "getCurrentTimeTool",
        "description": "This tool can return the current time",
        "parameters": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },
    "scrollToFormTool": {
        "name": "scrollToFormTool",
        "description": "This tool can scroll the page to the form by session id",
        "parameters": _SESSION_ID_SCHEMA,
    },
    "findFormAndInputsTool": {
        "name": "findFormAndInputsTool",
        "description": "This tool can find the form and inputs by session id",
        "parameters": _SESSION_ID_SCHEMA,
    },
    "prepareDummyDataForFormTool": {
        "name": "prepareDummyDataForFormTool",
        "description": "This tool can prepare dummy data for the form and returns the inputs with values filled in",
        "parameters": {
            "type": "object",
            "properties": {
                "inputDetails": _INPUT_DETAILS_SCHEMA
            },
            "required": ["inputDetails"]
        }
    },
    "fillFormTool": {
        "name": "fillFormTool",
        "description": "This tool can fill the form by session id",
        "parameters": {
            "type": "object",
            "properties": {
                "sessionId": {
                    "type": "string",
                    "description": "The session id returned by openWebpageTool"
                },
                "inputDetails": _INPUT_DETAILS_SCHEMA
            },
            "required": ["sessionId", "inputDetails"]
        }
    },
    "generateScreenshotTool": {
        "name": "generateScreenshotTool",
        "description": "This tool can take the screenshot of the given browser session and return the image path",
        "parameters": _SESSION_ID_SCHEMA,
    },
}


def get_tool_schemas(
    format: Literal["openai", "anthropic"] = "openai",
    include_tools: Optional[List[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Get tool schemas in the specified format.

    Args:
        format: "openai" for OpenAI/GPT format, "anthropic" for Claude format.
        include_tools: List of tool names to include. If None, includes all tools.

    Returns:
        List of tool schema dictionaries.
    """
    tools_to_include = include_tools or list(TOOL_DEFINITIONS.keys())

    schemas = []
    for name in tools_to_include:
        if name not in TOOL_DEFINITIONS:
            continue

        tool = TOOL_DEFINITIONS[name]

        if format == "openai":
            schemas.append({
                "type": "function",
                "function": {
                    "name": tool["name"],
                    "description": tool["description"],
                    "parameters": tool["parameters"],
                }
            })
        elif format == "anthropic":
            schemas.append({
                "name": tool["name"],
                "description": tool["description"],
                "input_schema": tool["parameters"],
            })

    return schemas


# =============================================================================
# Tool Executor
# =============================================================================

@dataclass
class ToolContext:
    """State shared by every tool call: the session store and browser settings."""

    sessions: SessionStore = field(default_factory=SessionStore)
    browser_config: BrowserConfig = field(default_factory=BrowserConfig)


@dataclass
class ToolExecutionResult:
    """Outcome of one tool call: either a JSON-able output or an error."""

    success: bool
    tool_name: str
    output: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    def to_message(self) -> str:
        """Format for LLM consumption."""
        if not self.success:
            return f"✗ {self.tool_name} failed: {self.error}"
        if self.output is None:
            return f"✓ {self.tool_name} executed"
        return json.dumps(self.output)


ToolHandler = Callable[[ToolContext, Dict[str, Any]], Coroutine[Any, Any, Any]]


class MissingParameterError(ValueError):
    """Raised when a tool call omits a required argument."""


def _require(args: Dict[str, Any], *names: str) -> List[Any]:
    missing = [name for name in names if args.get(name) is None]
    if missing:
        label = "parameter" if len(missing) == 1 else "parameters"
        raise MissingParameterError(f"Missing required {label}: {', '.join(missing)}")
    return [args[name] for name in names]


async def _handle_open_webpage(context: ToolContext, args: Dict[str, Any]) -> str:
    (url,) = _require(args, "url")
    logger.info(f"Inside openWebpageTool with url: {url}")
    opened = await open_webpage(context.sessions, url, context.browser_config)
    return opened.session_id


async def _handle_close_browser(context: ToolContext, args: Dict[str, Any]) -> None:
    (session_id,) = _require(args, "sessionId")
    logger.info(f"Inside closeBrowserTool with sessionId: {session_id}")
    await close_browser_session(context.sessions, session_id)


async def _handle_get_current_time(context: ToolContext, args: Dict[str, Any]) -> int:
    return get_current_time()


async def _handle_scroll_to_form(context: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    (session_id,) = _require(args, "sessionId")
    logger.info(f"Inside scrollToFormTool with sessionId: {session_id}")
    position = await scroll_to_form(context.sessions, session_id)
    return {"formPosition": position.to_dict()}


async def _handle_find_form_and_inputs(context: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    (session_id,) = _require(args, "sessionId")
    logger.info(f"Inside findFormAndInputsTool with sessionId: {session_id}")
    descriptors = await find_form_and_inputs(context.sessions, session_id)
    return {"inputDetails": [d.to_dict() for d in descriptors]}


async def _handle_prepare_dummy_data(context: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    (input_details,) = _require(args, "inputDetails")
    logger.info(f"Inside prepareDummyDataForFormTool with inputDetails: {input_details}")
    prepared = prepare_dummy_data_for_form(input_details)
    return {"inputDetails": [d.to_dict() for d in prepared]}


async def _handle_fill_form(context: ToolContext, args: Dict[str, Any]) -> Dict[str, Any]:
    session_id, input_details = _require(args, "sessionId", "inputDetails")
    logger.info(f"Inside fillFormTool with sessionId: {session_id}")
    result = await fill_form(context.sessions, session_id, input_details, context.browser_config)
    return result.to_dict()


async def _handle_generate_screenshot(context: ToolContext, args: Dict[str, Any]) -> str:
    (session_id,) = _require(args, "sessionId")
    logger.info(f"Inside generateScreenshotTool with sessionId: {session_id}")
    return await generate_screenshot(context.sessions, session_id, context.browser_config)


TOOL_HANDLERS: Dict[str, ToolHandler] = {
    "openWebpageTool": _handle_open_webpage,
    "closeBrowserTool": _handle_close_browser,
    "getCurrentTimeTool": _handle_get_current_time,
    "scrollToFormTool": _handle_scroll_to_form,
    "findFormAndInputsTool": _handle_find_form_and_inputs,
    "prepareDummyDataForFormTool": _handle_prepare_dummy_data,
    "fillFormTool": _handle_fill_form,
    "generateScreenshotTool": _handle_generate_screenshot,
}


async def execute_tool(
    context: ToolContext,
    tool_name: str,
    tool_args: Dict[str, Any],
) -> ToolExecutionResult:
    """
    Execute a tool call.

    Errors raised by the operation become a failed result carrying the
    error text, so the caller can hand it back to the model as the tool's
    outcome.

    Args:
        context: Session store and browser settings shared across calls.
        tool_name: Name of the tool to execute.
        tool_args: Arguments for the tool.

    Returns:
        ToolExecutionResult with the outcome.
    """
    handler = TOOL_HANDLERS.get(tool_name)
    if handler is None:
        return ToolExecutionResult(False, tool_name, error=f"Unknown tool: {tool_name}")
    try:
        output = await handler(context, tool_args or {})
    except Exception as e:
        logger.warning(f"{tool_name} failed: {e}")
        return ToolExecutionResult(False, tool_name, error=str(e), error_type=type(e).__name__)
    return ToolExecutionResult(True, tool_name, output=output)


# =============================================================================
# System Prompt
# =============================================================================

SYSTEM_PROMPT = """You are a helpful assistant.
Who can help user to automate the tasks on the websites.

You have access to the following tools:
{tool_names}

Every tool except getCurrentTimeTool and prepareDummyDataForFormTool needs the
session id returned by openWebpageTool.

If the user asking to fill the form then use findFormAndInputsTool to find the form on the page.
Use the following tools, in this order, to find the form and fill it:
findFormAndInputsTool
prepareDummyDataForFormTool
fillFormTool

Pass inputDetails to the next tool exactly as the previous tool returned them,
keeping every item and its order.
"""


def get_system_prompt() -> str:
    """Get the system prompt for the website automation agent."""
    return SYSTEM_PROMPT.format(tool_names=", ".join(sorted(TOOL_DEFINITIONS)))
