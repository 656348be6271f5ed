"""
Core module - Data models and errors.
"""
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

__all__ = [
    "AgentHistory",
    "AgentStep",
    "FillResult",
    "FormPosition",
    "InputDescriptor",
    "FormAgentError",
    "SessionNotFoundError",
    "ElementNotFoundError",
    "FormMismatchError",
    "CDPConnectionError",
    "CDPTimeoutError",
    "CDPProtocolError",
    "LLMResponse",
    "ToolCall",
]
