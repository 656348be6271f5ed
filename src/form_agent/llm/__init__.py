"""
LLM Module - Tool schemas, executor, and LLM backends.
"""
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

__all__ = [
    "TOOL_DEFINITIONS",
    "ToolContext",
    "ToolExecutionResult",
    "execute_tool",
    "get_system_prompt",
    "get_tool_schemas",
    "OpenAIBackend",
    "AnthropicBackend",
    "create_backend",
]
