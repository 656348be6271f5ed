"""
Form Agent Models - Data classes for form inputs, tool outcomes, agent history and model turns.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional


DESCRIPTOR_FIELDS = ("name", "type", "id", "placeholder", "value")


@dataclass
class InputDescriptor:
    """
    Attribute record describing one form input.

    Produced by the form inspector from live DOM attributes and consumed by
    the dummy data generator and the form filler. ``ref`` points back at the
    element the descriptor was read from; it stays valid until the session
    closes or the page is inspected again.
    """

    name: str = ""
    type: str = ""
    id: str = ""
    placeholder: str = ""
    value: str = ""
    ref: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InputDescriptor:
        """Build a descriptor from a tool-call payload, ignoring unknown keys."""
        values = {key: str(data.get(key) or "") for key in DESCRIPTOR_FIELDS}
        return cls(ref=str(data.get("ref") or ""), **values)

    @classmethod
    def coerce(cls, item: Any) -> InputDescriptor:
        if isinstance(item, InputDescriptor):
            return item
        return cls.from_dict(item)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class FormPosition:
    """Centre of the form's bounding box in viewport coordinates."""

    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass
class FillResult:
    """Acknowledgment returned once every value is typed and submit clicked."""

    message: str = "Form filled successfully"
    filled: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


@dataclass
class AgentStep:
    """
    Record of a single tool call made by the agent.
    """

    step_number: int
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    output: Any = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class AgentHistory:
    """
    Complete history of agent execution.
    """

    task: str
    steps: List[AgentStep] = field(default_factory=list)
    final_result: Optional[str] = None
    is_complete: bool = False
    total_duration_ms: float = 0.0

    def add_step(self, step: AgentStep) -> None:
        """Add a step to the history."""
        self.steps.append(step)

    def tool_names(self) -> List[str]:
        """Get list of all tools called, in order."""
        return [step.tool_name for step in self.steps]

    def session_ids(self) -> List[str]:
        """Session ids returned by openWebpageTool during the run."""
        return [
            step.output
            for step in self.steps
            if step.tool_name == "openWebpageTool" and step.success and isinstance(step.output, str)
        ]

    def errors(self) -> List[str]:
        """Get list of all error messages."""
        return [step.error for step in self.steps if step.error]

    def success_rate(self) -> float:
        """Calculate the success rate of tool calls."""
        if not self.steps:
            return 1.0
        successes = sum(1 for s in self.steps if s.success)
        return successes / len(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ToolCall:
    """One tool invocation requested by the model, arguments already decoded."""

    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LLMResponse:
    """
    A single model turn, normalised across providers.

    Either ``content`` holds the final answer or ``tool_calls`` lists the
    tools to run before asking again.
    """

    content: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: str = "stop"

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
