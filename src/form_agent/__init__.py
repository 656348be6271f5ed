"""
Form Agent - LLM-driven website form automation over the Chrome DevTools Protocol.

Each tool call works against a session: one Chrome process and one page,
registered in a SessionStore under a unique id.

Usage:
    from form_agent import SessionStore, open_webpage, find_form_and_inputs
    from form_agent import prepare_dummy_data_for_form, fill_form

    store = SessionStore()
    opened = await open_webpage(store, "https://example.com/signup")
    inputs = await find_form_and_inputs(store, opened.session_id)
    await fill_form(store, opened.session_id, prepare_dummy_data_for_form(inputs))
    await close_browser_session(store, opened.session_id)

For LLM integration:
    from form_agent import Agent, OpenAIBackend

    agent = Agent(OpenAIBackend())
    history = await agent.run("Open https://example.com/signup and fill the form")

Low-level tool execution:
    tools = get_tool_schemas(format="openai")
    result = await execute_tool(ToolContext(), "openWebpageTool", {"url": "https://example.com"})
"""
from form_agent.browser import Browser, BrowserConfig
from form_agent.page import ElementHandle, Page
from form_agent.sessions import (
    OpenedPage,
    Session,
    SessionStore,
    close_browser_session,
    generate_screenshot,
    get_current_time,
    open_webpage,
)
from form_agent.forms import (
    DUMMY_VALUES,
    fill_form,
    find_form_and_inputs,
    prepare_dummy_data_for_form,
    scroll_to_form,
)
from form_agent.agent import Agent, AgentConfig, LLMBackend, ScriptedLLMBackend
from form_agent.core.models import (
    AgentHistory,
    AgentStep,
    FillResult,
    FormPosition,
    InputDescriptor,
    LLMResponse,
    ToolCall,
)
from form_agent.core.errors import (
    FormAgentError,
    SessionNotFoundError,
    ElementNotFoundError,
    FormMismatchError,
    CDPConnectionError,
    CDPTimeoutError,
    CDPProtocolError,
)
from form_agent.llm.tools import (
    TOOL_DEFINITIONS,
    ToolContext,
    ToolExecutionResult,
    execute_tool,
    get_system_prompt,
    get_tool_schemas,
)
from form_agent.llm.backends import (
    OpenAIBackend,
    AnthropicBackend,
    create_backend,
)

__version__ = "0.1.0"

__all__ = [
    # Browser
    "Browser",
    "BrowserConfig",
    "Page",
    "ElementHandle",
    # Sessions
    "OpenedPage",
    "Session",
    "SessionStore",
    "open_webpage",
    "close_browser_session",
    "generate_screenshot",
    "get_current_time",
    # Forms
    "DUMMY_VALUES",
    "find_form_and_inputs",
    "prepare_dummy_data_for_form",
    "fill_form",
    "scroll_to_form",
    # Agent
    "Agent",
    "AgentConfig",
    "LLMBackend",
    "LLMResponse",
    "ToolCall",
    "ScriptedLLMBackend",
    # LLM Backends
    "OpenAIBackend",
    "AnthropicBackend",
    "create_backend",
    # Models
    "AgentHistory",
    "AgentStep",
    "FillResult",
    "FormPosition",
    "InputDescriptor",
    # Errors
    "FormAgentError",
    "SessionNotFoundError",
    "ElementNotFoundError",
    "FormMismatchError",
    "CDPConnectionError",
    "CDPTimeoutError",
    "CDPProtocolError",
    # LLM Integration
    "TOOL_DEFINITIONS",
    "ToolContext",
    "ToolExecutionResult",
    "execute_tool",
    "get_tool_schemas",
    "get_system_prompt",
    # Version
    "__version__",
]
