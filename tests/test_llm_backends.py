"""
Tests for LLM backends (OpenAI, Anthropic).

Most tests are mocked to avoid API calls, but there are also
integration tests that require actual API keys.

Run with: pytest tests/test_llm_backends.py -v

For integration tests, set environment variables:
- OPENAI_API_KEY
- ANTHROPIC_API_KEY
"""
import os
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from form_agent.core.models import LLMResponse, ToolCall
from form_agent.llm.backends import AnthropicBackend, OpenAIBackend, create_backend
from form_agent.llm.tools import get_tool_schemas


# =============================================================================
# Test Backend Initialization
# =============================================================================

class TestBackendInitialization:
    """Tests for backend initialization."""

    def test_openai_backend_requires_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="API key required"):
                OpenAIBackend()

    def test_anthropic_backend_requires_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="API key required"):
                AnthropicBackend()

    def test_openai_backend_reads_env_key(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env"}, clear=True):
            with patch("openai.AsyncOpenAI") as client_cls:
                backend = OpenAIBackend()

        assert backend.api_key == "sk-env"
        assert backend.model == "gpt-4.1-nano"
        client_cls.assert_called_once_with(api_key="sk-env")

    def test_create_backend_factory(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_backend("invalid_provider", api_key="test")

    def test_create_backend_passes_kwargs(self):
        with patch("openai.AsyncOpenAI"):
            backend = create_backend("OpenAI", api_key="test", model="gpt-4o-mini")

        assert isinstance(backend, OpenAIBackend)
        assert backend.model == "gpt-4o-mini"


# =============================================================================
# Test Message Conversion
# =============================================================================

class TestMessageConversion:
    """Tests for message format conversion."""

    @pytest.fixture
    def backend(self):
        with patch("anthropic.AsyncAnthropic"):
            return AnthropicBackend(api_key="test-key")

    def test_anthropic_message_conversion(self, backend):
        messages = [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi there!"},
            {"role": "user", "content": "How are you?"},
        ]

        system, converted = backend._convert_messages_to_anthropic(messages)

        assert system == "You are a helpful assistant."
        assert [m["role"] for m in converted] == ["user", "assistant", "user"]
        assert converted[0]["content"] == [{"type": "text", "text": "Hello"}]

    def test_anthropic_tool_call_message_conversion(self, backend):
        messages = [
            {"role": "system", "content": "System prompt"},
            {"role": "user", "content": "Open the signup page"},
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": "call_123",
                    "type": "function",
                    "function": {
                        "name": "openWebpageTool",
                        "arguments": '{"url": "https://example.com"}'
                    }
                }]
            },
            {
                "role": "tool",
                "tool_call_id": "call_123",
                "content": '"abc123"'
            }
        ]

        system, converted = backend._convert_messages_to_anthropic(messages)

        assert system == "System prompt"
        assert len(converted) == 3

        tool_use = converted[1]["content"][0]
        assert converted[1]["role"] == "assistant"
        assert tool_use["type"] == "tool_use"
        assert tool_use["input"] == {"url": "https://example.com"}

        tool_result = converted[2]["content"][0]
        assert converted[2]["role"] == "user"
        assert tool_result == {"type": "tool_result", "tool_use_id": "call_123", "content": '"abc123"'}

    def test_consecutive_tool_results_are_merged(self, backend):
        messages = [
            {"role": "user", "content": "go"},
            {"role": "assistant", "content": None, "tool_calls": [
                {"id": "a", "type": "function", "function": {"name": "getCurrentTimeTool", "arguments": "{}"}},
                {"id": "b", "type": "function", "function": {"name": "getCurrentTimeTool", "arguments": "{}"}},
            ]},
            {"role": "tool", "tool_call_id": "a", "content": "1"},
            {"role": "tool", "tool_call_id": "b", "content": "2"},
        ]

        _, converted = backend._convert_messages_to_anthropic(messages)

        assert [m["role"] for m in converted] == ["user", "assistant", "user"]
        assert [block["tool_use_id"] for block in converted[2]["content"]] == ["a", "b"]

    def test_conversation_opens_with_user_turn(self, backend):
        _, converted = backend._convert_messages_to_anthropic([
            {"role": "assistant", "content": "Hello"},
        ])

        assert converted[0]["role"] == "user"
        assert converted[1]["role"] == "assistant"

    def test_anthropic_tool_schema_conversion(self, backend):
        anthropic_tools = backend._convert_tools_to_anthropic(get_tool_schemas(format="openai"))

        assert anthropic_tools == get_tool_schemas(format="anthropic")


# =============================================================================
# Test Response Parsing
# =============================================================================

class TestResponseParsing:
    """Tests for LLM response parsing."""

    @pytest.mark.asyncio
    async def test_openai_tool_call_response(self):
        with patch("openai.AsyncOpenAI"):
            backend = OpenAIBackend(api_key="test")

        tool_call = SimpleNamespace(
            id="call_1",
            function=SimpleNamespace(name="openWebpageTool", arguments='{"url": "https://example.com"}'),
        )
        message = SimpleNamespace(content=None, tool_calls=[tool_call])
        backend.client = MagicMock()
        backend.client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=message, finish_reason="tool_calls")]
        ))

        tools = get_tool_schemas(format="openai")
        response = await backend.generate([{"role": "user", "content": "open"}], tools)

        assert response.has_tool_calls
        assert response.tool_calls[0] == ToolCall(
            id="call_1", name="openWebpageTool", arguments={"url": "https://example.com"}
        )
        assert response.finish_reason == "tool_calls"
        kwargs = backend.client.chat.completions.create.call_args.kwargs
        assert kwargs["tools"] == tools
        assert kwargs["tool_choice"] == "auto"

    @pytest.mark.asyncio
    async def test_openai_malformed_arguments_become_empty(self):
        with patch("openai.AsyncOpenAI"):
            backend = OpenAIBackend(api_key="test")

        tool_call = SimpleNamespace(id="c", function=SimpleNamespace(name="x", arguments="{not json"))
        backend.client = MagicMock()
        backend.client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None, tool_calls=[tool_call]),
                                     finish_reason=None)]
        ))

        response = await backend.generate([], [])

        assert response.tool_calls[0].arguments == {}
        assert response.finish_reason == "stop"
        assert "tools" not in backend.client.chat.completions.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_anthropic_response(self):
        with patch("anthropic.AsyncAnthropic"):
            backend = AnthropicBackend(api_key="test")

        backend.client = MagicMock()
        backend.client.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Opening the page"),
                SimpleNamespace(type="tool_use", id="tu_1", name="openWebpageTool",
                                input={"url": "https://example.com"}),
            ],
            stop_reason="tool_use",
        ))

        response = await backend.generate(
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "open"}],
            get_tool_schemas(format="openai"),
        )

        assert response.content == "Opening the page"
        assert response.tool_calls == [
            ToolCall(id="tu_1", name="openWebpageTool", arguments={"url": "https://example.com"})
        ]
        assert backend.client.messages.create.call_args.kwargs["system"] == "sys"

    def test_llm_response_with_content(self):
        response = LLMResponse(content="All done")

        assert not response.has_tool_calls
        assert response.finish_reason == "stop"


# =============================================================================
# Integration Tests (Require API Keys)
# =============================================================================

@pytest.mark.skipif(
    not os.environ.get("OPENAI_API_KEY"),
    reason="OPENAI_API_KEY not set"
)
class TestOpenAIIntegration:
    """Integration tests for OpenAI backend."""

    @pytest.mark.asyncio
    async def test_openai_with_tools(self):
        backend = OpenAIBackend(model="gpt-4o-mini")
        tools = get_tool_schemas(format="openai", include_tools=["getCurrentTimeTool"])

        messages = [
            {"role": "system", "content": "Use the getCurrentTimeTool tool to answer."},
            {"role": "user", "content": "What time is it?"}
        ]

        async with backend:
            response = await backend.generate(messages, tools)

        assert response.has_tool_calls
        assert response.tool_calls[0].name == "getCurrentTimeTool"


@pytest.mark.skipif(
    not os.environ.get("ANTHROPIC_API_KEY"),
    reason="ANTHROPIC_API_KEY not set"
)
class TestAnthropicIntegration:
    """Integration tests for Anthropic backend."""

    @pytest.mark.asyncio
    async def test_anthropic_simple_message(self):
        backend = AnthropicBackend()

        async with backend:
            response = await backend.generate(
                [{"role": "user", "content": "Say 'hello' and nothing else."}], tools=[]
            )

        assert response.content is not None
        assert "hello" in response.content.lower()
