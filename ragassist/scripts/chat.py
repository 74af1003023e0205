"""
RAG Assistant - Command-Line Chat
==================================
CLI entry point that orchestrates:
    1. Load and validate settings (fail-fast on missing keys).
    2. Build the assistant (ingest + index both documents, wire
       retrievers, model and memory).
    3. Either answer one question, print raw retrieval results, or run
       an interactive chat loop.

Flags:
    --question TEXT     Ask one question, print the answer, and exit.
    --system-role TEXT  System role pinned at the start of the chat.
    --retrieve-only     With --question: print per-retriever results
                        instead of calling the chat model.

Interactive commands:
    /role TEXT   Reset the conversation with a new system role.
    /quit        Exit.

Usage:
    python -m ragassist.scripts.chat
    python -m ragassist.scripts.chat --question "What is RAG?"
    python -m ragassist.scripts.chat --question "What is RAG?" --retrieve-only
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

# ── Ensure project root is importable when run directly ────────────────
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

if TYPE_CHECKING:
    from ragassist.config.settings import Settings
    from ragassist.src.core.assistant import Assistant


# ── CLI Argument Parsing ───────────────────────────────────────────────

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    from ragassist.config.prompt_templates import DEFAULT_SYSTEM_ROLE

    parser = argparse.ArgumentParser(prog="ragassist-chat", description="Chat with the RAG assistant (two indexed documents + web search).")
    parser.add_argument("--question", "-q", default=None, help="Ask a single question and exit.")
    parser.add_argument("--system-role", default=DEFAULT_SYSTEM_ROLE, help="System role pinned at the start of the conversation.")
    parser.add_argument("--retrieve-only", action="store_true", default=False, help="Print retrieval results for --question without calling the model.")
    return parser.parse_args(argv)


# ── Main Orchestration ─────────────────────────────────────────────────

def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.retrieve_only and not args.question:
        print("--retrieve-only requires --question.")
        return 2

    # ── 0. Load settings + .env (timed) ────────────────────────────────
    from ragassist.config.settings import load_settings
    from ragassist.src.core.exceptions import ConfigurationError

    t_settings = time.perf_counter()
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print("\n[FATAL] Configuration error, check your environment / .env file:\n")
        print(f"  {exc}")
        print()
        return 1
    settings_ms = (time.perf_counter() - t_settings) * 1000

    from ragassist.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Settings loaded in %.1fms", settings_ms)

    _print_header(settings)

    # ── 1. Build the assistant (timed) ─────────────────────────────────
    from ragassist.src.core.assistant import Assistant
    from ragassist.src.core.exceptions import AssistantError

    t_init = time.perf_counter()
    try:
        assistant = Assistant.create(settings)
    except AssistantError as exc:
        print(f"\n[FATAL] Initialisation failed: {exc}\n")
        return 1
    init_ms = (time.perf_counter() - t_init) * 1000
    logger.info("Assistant initialised in %.1fms", init_ms)

    # ── 2. Dispatch ────────────────────────────────────────────────────
    with assistant:
        assistant.set_system_role(args.system_role)
        if args.retrieve_only:
            _print_retrieval(assistant, args.question)
        elif args.question:
            print(assistant.ask(args.question))
        else:
            _repl(assistant)
    return 0


def _repl(assistant: Assistant) -> None:
    print("Type a question, '/role <text>' to reset with a new role, or '/quit'.\n")
    while True:
        try:
            line = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return

        if not line:
            continue
        if line in ("/quit", "/exit"):
            return
        if line.startswith("/role "):
            assistant.set_system_role(line[len("/role "):].strip())
            print("(conversation reset)\n")
            continue

        print(f"assistant> {assistant.ask(line)}\n")


# ── Pretty-print helpers ──────────────────────────────────────────────

def _mask(secret: str) -> str:
    return f"****{secret[-4:]}" if len(secret) > 4 else "****"


def _print_header(settings: Settings) -> None:
    print()
    print("=" * 60)
    print("  RAG ASSISTANT")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")
    print(f"  Chat model   : {settings.LLM_MODEL} (t={settings.LLM_TEMPERATURE})")
    print(f"  Embedding    : {settings.EMBEDDING_MODEL}")
    for path in settings.DOCUMENT_PATHS:
        print(f"  Document     : {path}")
    print(f"  Chunk size   : {settings.CHUNK_SIZE} chars (overlap {settings.CHUNK_OVERLAP})")
    print(f"  Memory       : {settings.MEMORY_MAX_MESSAGES} messages")
    print(f"  Gemini key   : {_mask(settings.GEMINI_KEY.get_secret_value())}")
    print(f"  Tavily key   : {_mask(settings.TAVILY_KEY.get_secret_value())}")
    print("=" * 60)
    print()


def _print_retrieval(assistant: Assistant, query: str) -> None:
    outcomes = assistant.augmentor.retrieve(query)

    print(f"Query: {query}")
    print("=" * 60)
    for outcome in outcomes:
        print(f"\n[{outcome.retriever}]")
        if not outcome.ok:
            print(f"  UNAVAILABLE: {outcome.error}")
            continue
        if not outcome.snippets:
            print("  (no results above the score threshold)")
        for i, snippet in enumerate(outcome.snippets, 1):
            score = f"{snippet.score:.4f}" if snippet.score is not None else "N/A"
            print(f"  --- Result {i} --- score={score} source={snippet.source}")
            print(f"    {snippet.text}")
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(main())
