# access_review_deploy/config.py
from __future__ import annotations

import argparse
from typing import List, Optional, Sequence

from access_review_deploy.errors import UsageError
from access_review_deploy.models.deployment import (
    DEFAULT_REGION,
    DEFAULT_SCHEDULE,
    DEFAULT_STACK_NAME,
    DeploymentConfig,
)


VALUE_FLAGS = ("--stack-name", "--region", "--schedule", "--email", "--profile")


def bind_flag_values(tokens: Sequence[str]) -> List[str]:
    """
    Glue each recognized flag to the token right after it (`--email=-x`),
    so a value that starts with "-" is still taken as that flag's value.
    """
    bound: List[str] = []
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token in VALUE_FLAGS and i + 1 < len(tokens):
            bound.append(f"{token}={tokens[i + 1]}")
            i += 2
        else:
            bound.append(token)
            i += 1
    return bound


class _RaisingParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of printing usage and exiting 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message, step="resolve configuration")


def add_stack_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags shared by the deploy and run-report commands."""
    parser.add_argument(
        "--stack-name",
        default=DEFAULT_STACK_NAME,
        help=f"CloudFormation stack name (default: {DEFAULT_STACK_NAME})",
    )
    parser.add_argument(
        "--region",
        default=DEFAULT_REGION,
        help=f"AWS region (default: {DEFAULT_REGION})",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="AWS profile name (default: ambient credentials)",
    )


def build_parser(prog: str = "access-review-deploy") -> argparse.ArgumentParser:
    parser = _RaisingParser(
        prog=prog,
        description="Deploy or update the AWS access review stack and its Lambda code.",
        allow_abbrev=False,
    )
    add_stack_arguments(parser)
    parser.add_argument(
        "--schedule",
        default=DEFAULT_SCHEDULE,
        help=f"EventBridge schedule expression (default: {DEFAULT_SCHEDULE})",
    )
    parser.add_argument(
        "--email",
        default="",
        help="Recipient address for the report (required)",
    )
    return parser


def resolve_config(argv: Optional[Sequence[str]] = None) -> DeploymentConfig:
    """
    Turn invocation tokens into a DeploymentConfig.

    Raises UsageError for any unrecognized token, a flag missing its value,
    or when no recipient email was given. Nothing else is touched.
    """
    tokens: List[str] = list(argv) if argv is not None else []
    parser = build_parser()
    args = parser.parse_args(bind_flag_values(tokens))

    if not args.email:
        raise UsageError(
            "missing required option: recipient email (set it with --email)",
            step="resolve configuration",
        )

    return DeploymentConfig(
        stack_name=args.stack_name,
        region=args.region,
        schedule=args.schedule,
        recipient_email=args.email,
        profile=args.profile or None,
    )


def build_run_report_parser() -> argparse.ArgumentParser:
    parser = _RaisingParser(
        prog="access-review-run",
        description="Run the access review report now instead of waiting for the schedule.",
        allow_abbrev=False,
    )
    add_stack_arguments(parser)
    return parser
