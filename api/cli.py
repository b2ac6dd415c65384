#!/usr/bin/env python3
"""CLI for changelog API operator tasks.

Usage:
    python -m cli <command>

Commands:
    fetch          Build the changelog from GitHub (no cache) and print it as JSON
    sign <file>    Print the X-Hub-Signature-256 value for a webhook or refresh body
"""

import argparse
import asyncio
import json
import sys

from core import get_logger
from core.config import get_settings
from core.github_client import GitHubClientError, close_github_client
from core.logger import configure_logging
from services.changelog_service import build_changelog
from services.webhooks_service import compute_signature

logger = get_logger(__name__)


async def _fetch() -> list[dict]:
    settings = get_settings()
    try:
        commits = await build_changelog(
            settings.changelog_repo, settings.changelog_significance_threshold
        )
    finally:
        await close_github_client()
    return [commit.model_dump(mode="json") for commit in commits]


def cmd_fetch() -> int:
    """Build the changelog once and print it."""
    try:
        commits = asyncio.run(_fetch())
    except GitHubClientError as e:
        logger.error("cli.fetch_failed", error=str(e), error_type=type(e).__name__)
        return 1

    print(json.dumps(commits, indent=2))
    return 0


def cmd_sign(path: str) -> int:
    """Print the signature GitHub would send for the body in ``path`` ('-' = stdin)."""
    secret = get_settings().changelog_webhook_secret
    if not secret:
        logger.error("cli.sign_failed", error="CHANGELOG_WEBHOOK_SECRET is not set")
        return 1

    if path == "-":
        body = sys.stdin.buffer.read()
    else:
        with open(path, "rb") as f:
            body = f.read()

    print(compute_signature(body, secret))
    return 0


def main(argv: list[str] | None = None) -> int:
    configure_logging()

    parser = argparse.ArgumentParser(
        description="Changelog API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "fetch",
        help="Build the changelog from GitHub (no cache) and print it as JSON",
    )
    sign_parser = subparsers.add_parser(
        "sign",
        help="Print the X-Hub-Signature-256 value for a webhook or refresh body",
    )
    sign_parser.add_argument("path", help="File holding the raw body, or '-' for stdin")

    args = parser.parse_args(argv)

    if args.command == "fetch":
        return cmd_fetch()
    elif args.command == "sign":
        return cmd_sign(args.path)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
