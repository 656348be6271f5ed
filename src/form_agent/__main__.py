#!/usr/bin/env python3
"""
Run the website automation agent from the command line.

Usage:
    export OPENAI_API_KEY="sk-..."
    python -m form_agent "Open https://ui.chaicode.com/auth-sada/signup and fill the form ."
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from form_agent.agent import Agent, AgentConfig
from form_agent.browser import BrowserConfig
from form_agent.cdp.client import setup_logging
from form_agent.core.models import AgentHistory
from form_agent.llm.backends import create_backend
from form_agent.utils.output import print_json

DEFAULT_TASK = "Open https://ui.chaicode.com/auth-sada/signup and fill the form ."


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Automate a website form with an LLM agent.")
    parser.add_argument(
        "task",
        nargs="?",
        default=DEFAULT_TASK,
        help="Natural language task for the agent.",
    )
    parser.add_argument(
        "--provider",
        choices=["openai", "anthropic"],
        default="openai",
        help="LLM provider (default: openai).",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model name; defaults to the provider backend's default.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=25,
        help="Maximum number of LLM turns (default: 25).",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run Chrome without a visible window (default: visible window).",
    )
    parser.add_argument(
        "--close-sessions",
        action="store_true",
        help="Close browsers the agent left open when it finishes.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log CDP traffic.",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> AgentHistory:
    backend_kwargs = {"model": args.model} if args.model else {}
    backend = create_backend(args.provider, **backend_kwargs)

    config = AgentConfig(
        max_steps=args.max_steps,
        close_sessions_on_finish=args.close_sessions,
        verbose=True,
        browser_config=BrowserConfig(headless=args.headless, debug=args.debug),
    )
    async with backend:
        return await Agent(backend, config=config).run(args.task)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(logging.INFO, debug=args.debug)

    history = asyncio.run(run(args))

    print_json(history)
    print(history.final_result)
    return 0 if history.is_complete else 1


if __name__ == "__main__":
    sys.exit(main())
