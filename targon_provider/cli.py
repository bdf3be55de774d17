"""CLI entry point for targon-provider.

Streams one prompt through the Targon adapter to check connectivity and
inspect responses from a terminal.

Entry point:
    targon-chat "Hello, can you help me with a simple test?"
    targon-chat "Summarize this" --model deepseek-ai/DeepSeek-R1 --concise --summary
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    from targon_provider.config import DEFAULT_SYSTEM_PROMPT

    parser = argparse.ArgumentParser(
        prog="targon-chat",
        description="Stream a chat completion from Targon.",
    )
    parser.add_argument("prompt", help="User message to send")
    parser.add_argument(
        "--system", default=DEFAULT_SYSTEM_PROMPT, help="System prompt"
    )
    parser.add_argument(
        "--model", default=None, help="Model id (default: TARGON_MODEL_ID or provider default)"
    )
    parser.add_argument(
        "--concise", action="store_true", help="Ask the model for terse output"
    )
    parser.add_argument(
        "--retries", type=int, default=None,
        help="Attempts for rate-limit/connection retries (default: TARGON_RETRY_ATTEMPTS)",
    )
    parser.add_argument(
        "--summary", action="store_true", dest="show_summary",
        help="Print token usage and timing to stderr",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    return parser


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


def _print_summary(summary_text: str) -> None:
    """Print the decoded summary fragment to stderr."""
    try:
        summary = json.loads(summary_text)
    except json.JSONDecodeError:
        print(f"Unreadable summary: {summary_text}", file=sys.stderr)
        return
    print(
        f"model={summary.get('model')} "
        f"tokens_in={summary.get('tokensIn')} "
        f"tokens_out={summary.get('tokensOut')} "
        f"tokens_total={summary.get('tokensTotal')} "
        f"time_ms={summary.get('timeTotal')}",
        file=sys.stderr,
    )


async def _cmd_chat(
    prompt: str,
    system_prompt: str,
    model_id: Optional[str] = None,
    concise: bool = False,
    retries: Optional[int] = None,
    show_summary: bool = False,
) -> int:
    """Stream one prompt to stdout. Returns exit code."""
    from targon_provider.adapters import TargonAdapter, TargonError
    from targon_provider.retry import stream_with_retry

    adapter = TargonAdapter(model_id=model_id, concise_prompts=concise)
    messages = [{"role": "user", "content": prompt}]

    # The summary is always the last fragment, so print one fragment behind.
    pending: Optional[str] = None
    try:
        async for fragment in stream_with_retry(
            lambda: adapter.create_message(system_prompt, messages),
            attempts=retries,
        ):
            if pending is not None:
                sys.stdout.write(pending)
                sys.stdout.flush()
            pending = fragment.text
    except TargonError as e:
        # Summaries only exist on success, so anything pending is content.
        if pending is not None:
            sys.stdout.write(pending)
        sys.stdout.write("\n")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    sys.stdout.write("\n")
    if show_summary and pending is not None:
        _print_summary(pending)
    return 0


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    from dotenv import load_dotenv
    load_dotenv()

    code = asyncio.run(_cmd_chat(
        prompt=args.prompt,
        system_prompt=args.system,
        model_id=args.model,
        concise=args.concise,
        retries=args.retries,
        show_summary=args.show_summary,
    ))
    sys.exit(code)


if __name__ == "__main__":
    main()
