#!/usr/bin/env python3
"""Daily news digest: generate, publish and read a small AI-written digest.

Commands:
    generate    Run the producer once (generate, validate, publish or fall back)
    show        Load the published digest through the cache and render it
    status      Show configuration and consumer cache state

Examples:
    python main.py generate               # One producer run (for a scheduler)
    python main.py show                   # Print the digest in the terminal
    python main.py show --html popup.html # Write the popup HTML fragment
    python main.py status

Exit codes:
    generate: 0 when a fresh or fallback digest was published, 1 when
              generation failed and no previous digest existed
    show:     0 when a digest (fresh or cached) was shown, 1 when nothing
              could be loaded (the error state is still rendered)

Environment:
    GEMINI_API_KEY: Required for generate with Google models
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from config import Config
from observability.logging import setup_logging
from observability.tracing import setup_tracing


def cmd_generate(args: argparse.Namespace, config: Config) -> int:
    """Run the producer once.

    Returns:
        Exit code (0 for a published digest, 1 for a fatal run)
    """
    from errors import FatalRunError
    from producer import run_once

    if args.stories:
        config.story_count = args.stories
    if args.output:
        config.news_file = Path(args.output)

    if error := config.validate_generator():
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    setup_tracing(config.enable_logfire, token=config.logfire_token)

    outcome = asyncio.run(run_once(config))
    try:
        outcome.check()
    except FatalRunError as e:
        print(f"Digest generation failed with nothing to fall back to: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_show(args: argparse.Namespace, config: Config) -> int:
    """Load the digest through the cache and render it.

    Returns:
        Exit code (0 if a digest was rendered)
    """
    from consumer import DigestConsumer
    from errors import UnavailableError
    from render import render_error_html, render_html, render_text

    if args.url:
        config.news_url = args.url

    consumer = DigestConsumer.from_config(config)
    try:
        payload = asyncio.run(consumer.load_digest())
    except UnavailableError:
        if args.html:
            _write_output(Path(args.html), render_error_html())
        print("Unable to load news. Check your connection and run the command again.", file=sys.stderr)
        return 1

    now = datetime.now(timezone.utc)
    if args.html:
        _write_output(Path(args.html), render_html(payload, now))
    else:
        print(render_text(payload, now), end="")
    return 0


def _write_output(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logging.getLogger(__name__).info("Rendered output written | file=%s", path)


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and cache state."""
    from cache import FileCache

    entry = FileCache(config.cache_path).get()
    now = datetime.now(timezone.utc)

    status = {
        "config": {
            "generator_model": config.generator_model,
            "story_count": config.story_count,
            "strict_validation": config.strict_validation,
            "news_file": str(config.news_file),
            "news_url": config.news_url,
            "cache_ttl_hours": config.cache_ttl_hours,
            "enable_logfire": config.enable_logfire,
        },
        "cache": {
            "path": str(config.cache_path),
            "present": entry is not None,
            "fetched_at": entry.fetched_at.isoformat() if entry else None,
            "age_hours": round(entry.age(now).total_seconds() / 3600, 2) if entry else None,
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Daily news digest producer and reader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate command
    generate_parser = subparsers.add_parser("generate", help="Generate and publish the digest")
    generate_parser.add_argument(
        "--stories",
        type=int,
        help="Number of stories to request (default: config STORY_COUNT)",
    )
    generate_parser.add_argument(
        "--output",
        help="Artifact path to publish to (default: config NEWS_FILE)",
    )

    # show command
    show_parser = subparsers.add_parser("show", help="Load and render the published digest")
    show_parser.add_argument(
        "--url",
        help="Digest URL (default: config NEWS_URL)",
    )
    show_parser.add_argument(
        "--html",
        help="Write the rendered HTML fragment to this path instead of printing text",
    )

    # status command
    subparsers.add_parser("status", help="Show configuration and cache state")

    args = parser.parse_args()

    try:
        config = Config.load()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if error := config.validate():
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    setup_logging(config, verbose=args.verbose)

    commands = {
        "generate": cmd_generate,
        "show": cmd_show,
        "status": cmd_status,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
