"""
Agent - LLM-driven loop that automates website tasks through the form tools.

The model picks a tool, the agent runs it against the shared session store
and feeds the outcome back, until the model answers in plain text.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from form_agent.browser import BrowserConfig
from form_agent.core.models import AgentHistory, AgentStep, LLMResponse, ToolCall
from form_agent.llm.tools import (
    ToolContext,
    execute_tool,
    get_system_prompt,
    get_tool_schemas,
)
from form_agent.sessions import SessionStore

logger = logging.getLogger("form_agent")


# =============================================================================
# LLM Backend Protocol
# =============================================================================

@runtime_checkable
class LLMBackend(Protocol):
    """Protocol for LLM backends that can generate tool calls."""

    async def generate(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> LLMResponse:
        """
        Generate a response given messages and available tools.

        Args:
            messages: Conversation history in OpenAI format.
            tools: Available tools in OpenAI format.

        Returns:
            LLMResponse with either a message or tool calls.
        """
        ...


# =============================================================================
# Agent Configuration
# =============================================================================

@dataclass
class AgentConfig:
    """Configuration for the Agent."""

    name: str = "Website Automation Agent"
    max_steps: int = 25
    # Sessions the model leaves open keep Chrome running after run() returns
    close_sessions_on_finish: bool = False
    verbose: bool = False
    browser_config: BrowserConfig = field(default_factory=BrowserConfig)


# =============================================================================
# Agent Class
# =============================================================================

class Agent:
    """
    Website automation agent powered by an LLM.

    Usage:
        backend = OpenAIBackend(api_key="...")
        agent = Agent(backend)

        history = await agent.run("Open https://example.com/signup and fill the form")
    """

    def __init__(
        self,
        llm: LLMBackend,
        config: Optional[AgentConfig] = None,
        sessions: Optional[SessionStore] = None,
    ):
        """
        Initialize the agent.

        Args:
            llm: LLM backend for choosing tools.
            config: Agent configuration.
            sessions: Session store shared with the caller. A private one is
                created if not provided.
        """
        self.llm = llm
        self.config = config or AgentConfig()
        self.sessions = sessions if sessions is not None else SessionStore()
        self.context = ToolContext(sessions=self.sessions, browser_config=self.config.browser_config)

    async def run(self, task: str) -> AgentHistory:
        """
        Run the agent to complete a task.

        Args:
            task: Natural language description of the task to complete.

        Returns:
            AgentHistory containing all tool calls and the final answer.
        """
        history = AgentHistory(task=task)
        start_time = time.time()
        tools = get_tool_schemas(format="openai")
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": get_system_prompt()},
            {"role": "user", "content": task},
        ]

        try:
            for step_num in range(1, self.config.max_steps + 1):
                if self.config.verbose:
                    logger.info(f"Step {step_num}: Getting LLM response...")

                response = await self.llm.generate(messages, tools)

                if not response.has_tool_calls:
                    history.final_result = response.content
                    history.is_complete = True
                    return history

                messages.append(self._assistant_message(response))
                for tool_call in response.tool_calls:
                    messages.append(await self._run_tool_call(step_num, tool_call, history))

            history.final_result = f"Max steps ({self.config.max_steps}) reached without task completion"
            return history

        finally:
            history.total_duration_ms = (time.time() - start_time) * 1000
            if self.config.close_sessions_on_finish:
                closed = await self.sessions.close_all()
                if closed:
                    logger.info(f"Closed {len(closed)} session(s) left open by the agent")

    async def _run_tool_call(
        self,
        step_num: int,
        tool_call: ToolCall,
        history: AgentHistory,
    ) -> Dict[str, Any]:
        step_start = time.time()
        result = await execute_tool(self.context, tool_call.name, tool_call.arguments)

        history.add_step(AgentStep(
            step_number=step_num,
            tool_name=tool_call.name,
            arguments=tool_call.arguments,
            output=result.output,
            error=result.error,
            duration_ms=(time.time() - step_start) * 1000,
        ))

        if self.config.verbose:
            logger.info(f"  {tool_call.name}: {result.to_message()}")

        return {
            "role": "tool",
            "tool_call_id": tool_call.id,
            "content": result.to_message(),
        }

    @staticmethod
    def _assistant_message(response: LLMResponse) -> Dict[str, Any]:
        return {
            "role": "assistant",
            "content": response.content,
            "tool_calls": [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments),
                    },
                }
                for tc in response.tool_calls
            ],
        }


# =============================================================================
# Scripted LLM Backend
# =============================================================================

class ScriptedLLMBackend:
    """
    An LLM backend that replays a fixed list of responses.

    Useful for exercising the agent loop without LLM costs. Once the script
    runs out it answers with ``final_message`` and no tool calls.
    """

    def __init__(self, responses: List[LLMResponse], final_message: str = "Done"):
        self.responses = list(responses)
        self.final_message = final_message
        self.calls: List[List[Dict[str, Any]]] = []

    async def generate(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> LLMResponse:
        self.calls.append(list(messages))
        if self.responses:
            return self.responses.pop(0)
        return LLMResponse(content=self.final_message)
