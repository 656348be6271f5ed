"""
Form Agent Error Taxonomy - Custom exception classes for form automation.

Every operation raises one of these to its caller. Nothing here is retried;
the tool executor is the only place that turns them into tool outcomes.
"""
from typing import Optional


class FormAgentError(Exception):
    """Base exception for all form agent errors."""
    
    def __init__(self, message: str, session_id: Optional[str] = None,
                 method: Optional[str] = None, **context):
        super().__init__(message)
        self.message = message
        self.session_id = session_id
        self.method = method
        self.context = context
    
    def __str__(self):
        parts = [self.message]
        if self.session_id:
            parts.append(f"session_id={self.session_id}")
        if self.method:
            parts.append(f"method={self.method}")
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"context=({context_str})")
        return " | ".join(parts)


class SessionNotFoundError(FormAgentError):
    """Raised when an operation is given an unknown session identifier."""
    pass


class ElementNotFoundError(FormAgentError):
    """Raised when a required form, input or button is absent from the page."""
    
    def __init__(self, message: str, selector: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.selector = selector


class FormMismatchError(FormAgentError):
    """Raised when the supplied descriptors do not line up with the live inputs."""
    
    def __init__(self, message: str, expected: int = 0, received: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.expected = expected
        self.received = received


class CDPConnectionError(FormAgentError):
    """Raised when Chrome cannot be launched or the websocket is lost."""
    pass


class CDPTimeoutError(FormAgentError):
    """Raised when navigation, a wait or a CDP command exceeds its bound."""
    
    def __init__(self, message: str, timeout: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout = timeout


class CDPProtocolError(FormAgentError):
    """Raised when CDP returns an error response."""
    
    def __init__(self, message: str, code: Optional[int] = None,
                 cdp_error: Optional[dict] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.code = code
        self.cdp_error = cdp_error
