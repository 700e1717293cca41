#!/usr/bin/env python
"""Ask the digital twin a question from the command line.

Usage:
    python -m scripts.ask "What are your technical skills?"
    python -m scripts.ask --interactive

Runs the same pipeline the MCP tools use and prints the answer with its
sources. Exits non-zero when a question fails.
"""

import argparse
import asyncio
import json
import sys

from digital_twin.config import get_settings
from digital_twin.logging_config import get_logger, setup_logging
from digital_twin.rag.models import ConversationTurn, QueryResult
from digital_twin.rag.pipeline import RAGPipeline, build_pipeline
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)


def print_result(result: QueryResult, as_json: bool = False) -> None:
    """Print one query result."""
    if as_json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    if not result.success:
        print(f"Error: {result.error}")
        return

    print(result.answer)
    if result.context:
        print("\nSources:")
        for i, source in enumerate(result.context, start=1):
            print(f"  {i}. {source.title} ({source.score * 100:.1f}%)")
    if result.degraded:
        print("\n(answered from retrieved records; generation was unavailable)")
    print(f"\nResponse time: {result.duration_ms}ms")


async def chat_loop(pipeline: RAGPipeline) -> None:
    """Read questions from stdin until EOF or 'exit', keeping history."""
    history: list[ConversationTurn] = []
    loop = asyncio.get_running_loop()

    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        question = line.strip()
        if not line or question.lower() in ("exit", "quit"):
            break
        if not question:
            continue

        result = await pipeline.query(question, history=history)
        print_result(result)
        print()
        if result.success:
            history.append(ConversationTurn(role="user", content=question))
            history.append(ConversationTurn(role="assistant", content=result.answer))


async def ask(question: str | None, interactive: bool, as_json: bool) -> bool:
    """Answer one question, or run an interactive session.

    Returns:
        True unless a one-shot question failed.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level, json_output=False, stream=sys.stderr)

    services = ServiceContainer(settings)
    pipeline = build_pipeline(services)

    try:
        if interactive:
            await chat_loop(pipeline)
            return True

        result = await pipeline.query(question or "")
        print_result(result, as_json=as_json)
        return result.success
    finally:
        await services.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Ask the digital twin a question",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("question", nargs="?", default=None, help="Question to ask")
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Read questions from stdin and keep conversation history",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw result as JSON",
    )

    args = parser.parse_args()
    if args.question is None and not args.interactive:
        parser.error("a question is required unless --interactive is given")

    ok = asyncio.run(ask(args.question, args.interactive, args.json))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
