#!/usr/bin/env python3
"""Main entry point for the content ideas service.

This module provides the CLI interface for analyzing page content and
inspecting stored sessions.

Usage:
    python -m src.main analyze --text-file page.txt
    python -m src.main analyze --request-file request.json --channels instagram,x
    python -m src.main session <session-id>
    python -m src.main sessions
    python -m src.main -v analyze --text-file page.txt   # verbose logging
"""

import argparse
import sys

from src.agent.runner import run_analyze, run_session, run_sessions


def _parse_channel_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="content-ideas",
        description="Content Ideas - AI-generated social media ideas for webpage content",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file with configuration",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Generate content ideas for page content")
    source = analyze.add_mutually_exclusive_group(required=True)
    source.add_argument("--text-file", help="Plain-text file with the page content")
    source.add_argument(
        "--request-file",
        help="JSON file with one analysis request or an array of requests",
    )
    analyze.add_argument(
        "--channels",
        type=_parse_channel_list,
        default=None,
        help="Comma-separated channels (e.g. instagram,linkedin,x)",
    )
    analyze.add_argument("--output", help="Also write the response JSON to this file")
    analyze.add_argument("--run-log-dir", help="Directory for a JSON run log")

    session = subparsers.add_parser("session", help="Show one stored session")
    session.add_argument("session_id", help="Session identifier")

    subparsers.add_parser("sessions", help="List stored sessions")

    return parser.parse_args(args)


def main(args: list[str] | None = None) -> int:
    """Main entry point for the content ideas CLI.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parsed = parse_args(args)

    if parsed.command == "analyze":
        return run_analyze(
            text_file=parsed.text_file,
            request_file=parsed.request_file,
            channels=parsed.channels,
            output=parsed.output,
            run_log_dir=parsed.run_log_dir,
            env_path=parsed.env_file,
            verbose=parsed.verbose,
        )
    if parsed.command == "session":
        return run_session(parsed.session_id, env_path=parsed.env_file, verbose=parsed.verbose)
    return run_sessions(env_path=parsed.env_file, verbose=parsed.verbose)


if __name__ == "__main__":
    sys.exit(main())
