from __future__ import annotations

import argparse
from collections.abc import Sequence

from mcp_git.app.server import run
from mcp_git.app.settings import Settings
from libs.common.logging import configure_logging, verbosity_to_level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-git",
        description="A Model Context Protocol server providing Git repository interaction and automation tools.",
    )
    parser.add_argument("-r", "--repository", default=None, help="Git repository path")
    parser.add_argument("-v", "--verbose", action="count", default=None, help="Verbose output")
    parser.add_argument("-u", "--user-name", dest="user_name", default=None, help="Git user name for commits")
    parser.add_argument("-e", "--user-email", dest="user_email", default=None, help="Git user email for commits")
    return parser


def load_settings(argv: Sequence[str] | None = None) -> Settings:
    """환경 변수로 읽은 설정 위에 명령행 플래그를 덮어써요. 빈 값은 무시해요."""
    args = build_parser().parse_args(argv)
    settings = Settings()

    updates: dict[str, object] = {}
    if args.repository is not None:
        updates["repository"] = args.repository.strip()
    if args.verbose is not None:
        updates["verbose"] = args.verbose
    if args.user_name:
        updates["user_name"] = args.user_name
    if args.user_email:
        updates["user_email"] = args.user_email
    if not updates:
        return settings
    return settings.model_copy(update=updates)


def main(argv: Sequence[str] | None = None) -> int:
    settings = load_settings(argv)
    configure_logging(verbosity_to_level(settings.verbose))
    return run(settings)
