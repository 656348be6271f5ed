#!/usr/bin/env python3
"""
Agent with OpenAI Backend

Demonstrates using the Agent class with a real OpenAI backend.

Prerequisites:
- Chrome or Chromium installed
- Set OPENAI_API_KEY environment variable

Usage:
    export OPENAI_API_KEY="sk-..."
    python examples/agent_with_openai.py
"""
import asyncio
import os
import sys

from form_agent import Agent, AgentConfig, BrowserConfig, OpenAIBackend


async def main():
    if not os.environ.get("OPENAI_API_KEY"):
        print("Error: OPENAI_API_KEY environment variable not set")
        print("Usage: export OPENAI_API_KEY='sk-...'")
        sys.exit(1)

    print("=== Form Agent with OpenAI ===\n")

    config = AgentConfig(
        max_steps=15,
        verbose=True,
        close_sessions_on_finish=True,
        browser_config=BrowserConfig(headless=False),
    )

    async with OpenAIBackend(model="gpt-4.1-nano", temperature=0.0) as backend:
        agent = Agent(backend, config=config)

        task = "Open https://ui.chaicode.com/auth-sada/signup, fill the form and take a screenshot"
        print(f"Task: {task}\n")

        history = await agent.run(task)

    print("\n=== Results ===")
    print(f"Completed: {history.is_complete}")
    print(f"Final result: {history.final_result}")
    print(f"Tools called: {', '.join(history.tool_names())}")
    print(f"Duration: {history.total_duration_ms:.0f}ms")
    print(f"Success rate: {history.success_rate():.0%}")

    if history.errors():
        print("\nErrors encountered:")
        for error in history.errors():
            print(f"  - {error}")


if __name__ == "__main__":
    asyncio.run(main())
