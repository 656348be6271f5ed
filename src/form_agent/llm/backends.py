"""
LLM Backends - OpenAI and Anthropic implementations of the LLMBackend protocol.

Usage:
    from form_agent import OpenAIBackend, AnthropicBackend

    backend = OpenAIBackend(api_key="sk-...")
    # or
    backend = AnthropicBackend(api_key="sk-ant-...")

    agent = Agent(backend)
    history = await agent.run("Open https://example.com/signup and fill the form")
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from form_agent.core.models import LLMResponse, ToolCall

logger = logging.getLogger("form_agent")


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning(f"Discarding malformed tool arguments: {raw!r}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


# =============================================================================
# OpenAI Backend
# =============================================================================

class OpenAIBackend:
    """
    OpenAI GPT backend for the form agent.

    Usage:
        backend = OpenAIBackend(api_key="sk-...", model="gpt-4.1-nano")
        agent = Agent(backend)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4.1-nano",
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ):
        """
        Initialize the OpenAI backend.

        Args:
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            model: Model to use (gpt-4.1-nano, gpt-4o-mini, gpt-4o, etc.)
            temperature: Sampling temperature (0.0 = deterministic).
            max_tokens: Maximum tokens in response.
        """
        from openai import AsyncOpenAI

        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY env var or pass api_key."
            )

        self.client = AsyncOpenAI(api_key=self.api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> LLMResponse:
        """Generate a response using OpenAI's chat completions API."""
        kwargs: Dict[str, Any] = {}
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                **kwargs,
            )
        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

        choice = response.choices[0]
        message = choice.message
        tool_calls = [
            ToolCall(
                id=tc.id,
                name=tc.function.name,
                arguments=_parse_arguments(tc.function.arguments),
            )
            for tc in (message.tool_calls or [])
        ]

        return LLMResponse(
            content=message.content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason or "stop",
        )

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# =============================================================================
# Anthropic Backend
# =============================================================================

class AnthropicBackend:
    """
    Anthropic Claude backend for the form agent.

    Accepts the same OpenAI-style messages and tools as OpenAIBackend and
    converts them to the Messages API format.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        temperature: float = 0.0,
        max_tokens: int = 4096,
    ):
        from anthropic import AsyncAnthropic

        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY env var or pass api_key."
            )

        self.client = AsyncAnthropic(api_key=self.api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @staticmethod
    def _append_or_merge(
        messages: List[Dict[str, Any]],
        role: str,
        blocks: List[Dict[str, Any]],
    ) -> None:
        """Append blocks, merging into the previous message when roles repeat."""
        if not blocks:
            return
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"].extend(blocks)
        else:
            messages.append({"role": role, "content": list(blocks)})

    def _convert_messages_to_anthropic(
        self,
        messages: List[Dict[str, Any]],
    ) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Convert OpenAI-style messages to Anthropic format.

        System messages are joined into the system prompt, tool results are
        sent as user ``tool_result`` blocks and consecutive same-role
        messages are merged so roles alternate.

        Returns:
            Tuple of (system_prompt, messages)
        """
        system_parts: List[str] = []
        converted: List[Dict[str, Any]] = []

        for msg in messages:
            role = msg.get("role")
            content = msg.get("content")

            if role == "system":
                if content:
                    system_parts.append(content)
            elif role == "user":
                self._append_or_merge(converted, "user", [{"type": "text", "text": content or ""}])
            elif role == "assistant":
                blocks = []
                if content:
                    blocks.append({"type": "text", "text": content})
                for tc in msg.get("tool_calls") or []:
                    blocks.append({
                        "type": "tool_use",
                        "id": tc["id"],
                        "name": tc["function"]["name"],
                        "input": _parse_arguments(tc["function"]["arguments"]),
                    })
                self._append_or_merge(converted, "assistant", blocks)
            elif role == "tool":
                self._append_or_merge(converted, "user", [{
                    "type": "tool_result",
                    "tool_use_id": msg.get("tool_call_id"),
                    "content": content or "",
                }])

        # Anthropic requires the conversation to open with a user turn
        if converted and converted[0]["role"] != "user":
            converted.insert(0, {
                "role": "user",
                "content": [{"type": "text", "text": "Please proceed with the task."}],
            })

        return "\n\n".join(system_parts), converted

    @staticmethod
    def _convert_tools_to_anthropic(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Convert OpenAI-style tools to Anthropic format."""
        return [
            {
                "name": tool["function"]["name"],
                "description": tool["function"].get("description", ""),
                "input_schema": tool["function"].get("parameters", {"type": "object", "properties": {}}),
            }
            for tool in tools
            if tool.get("type") == "function"
        ]

    async def generate(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Dict[str, Any]],
    ) -> LLMResponse:
        """Generate a response using Anthropic's Messages API."""
        system_prompt, anthropic_messages = self._convert_messages_to_anthropic(messages)
        kwargs: Dict[str, Any] = {}
        if system_prompt:
            kwargs["system"] = system_prompt
        anthropic_tools = self._convert_tools_to_anthropic(tools)
        if anthropic_tools:
            kwargs["tools"] = anthropic_tools

        try:
            response = await self.client.messages.create(
                model=self.model,
                messages=anthropic_messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                **kwargs,
            )
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise

        content_text = ""
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                content_text += block.text
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(
                    id=block.id,
                    name=block.name,
                    arguments=dict(block.input) if block.input else {},
                ))

        return LLMResponse(
            content=content_text or None,
            tool_calls=tool_calls,
            finish_reason=response.stop_reason or "stop",
        )

    async def close(self) -> None:
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# =============================================================================
# Factory
# =============================================================================

def create_backend(provider: str, **kwargs: Any):
    """
    Create a backend by provider name.

    Args:
        provider: "openai" or "anthropic".
        **kwargs: Passed to the backend constructor.
    """
    backends = {
        "openai": OpenAIBackend,
        "anthropic": AnthropicBackend,
    }
    backend_cls = backends.get(provider.lower())
    if backend_cls is None:
        raise ValueError(f"Unknown provider: {provider}. Choose from: {', '.join(backends)}")
    return backend_cls(**kwargs)
