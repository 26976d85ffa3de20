#!/usr/bin/env python3
"""Main CLI entry point for loglens."""

import argparse
import sys
from typing import Any, Dict, List, Optional

from loglens.cli.arg_mapping import SETTINGS_ARG_MAPPINGS
from loglens.cli.commands import (
    cmd_analyze,
    cmd_config_show,
    cmd_context,
    cmd_detect,
    cmd_optimize,
    cmd_parse,
    cmd_version,
    get_version,
)

FORMAT_CHOICES = [
    "json",
    "ndjson",
    "syslog",
    "atlassian",
    "nginx",
    "apache",
    "java-stacktrace",
    "plain",
]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="loglens",
        description="loglens - log format detection and LLM context assembly",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  loglens detect atlassian-jira.log
  loglens parse app.log --issues-only
  loglens optimize catalina.out --budget 5000
  loglens context session.yaml --message "Why does the indexer fail?"
  loglens analyze atlassian-jira.log --app-name Jira --env-file .env
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands",
        metavar="COMMAND",
    )

    detect_parser = subparsers.add_parser(
        "detect",
        help="Detect the format of a log file",
        description="Classify a log file by sampling its leading lines",
    )
    detect_parser.add_argument("file", help="Log file to inspect")
    detect_parser.add_argument(
        "--sample-lines",
        type=int,
        default=50,
        help="Leading non-blank lines to sample (default: 50)",
    )
    detect_parser.add_argument("--json", action="store_true", help="Print JSON")

    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse a log file into entries",
        description="Parse a log file and print its entries and statistics",
    )
    parse_parser.add_argument("file", help="Log file to parse")
    parse_parser.add_argument(
        "--format",
        "-f",
        choices=FORMAT_CHOICES,
        metavar="FORMAT",
        help="Skip detection and parse as FORMAT",
    )
    parse_parser.add_argument(
        "--max-entries", type=int, metavar="N", help="Stop after N entries"
    )
    parse_parser.add_argument(
        "--issues-only", action="store_true", help="Only print fatal/error/warn entries"
    )
    parse_parser.add_argument(
        "--no-raw", action="store_true", help="Omit raw source text from entries"
    )
    parse_parser.add_argument("--json", action="store_true", help="Print JSON")

    optimize_parser = subparsers.add_parser(
        "optimize",
        help="Fit a log file into a token budget",
        description="Print the budget-optimized rendering of a log file",
    )
    optimize_parser.add_argument("file", help="Log file to optimize")
    optimize_parser.add_argument(
        "--budget", type=int, metavar="TOKENS", help="Token budget (default: MAX_FILE_TOKENS)"
    )
    _add_settings_arguments(optimize_parser)

    context_parser = subparsers.add_parser(
        "context",
        help="Assemble the model prompt for a session export",
        description="Build the windowed prompt for a YAML/JSON session export without calling the model",
    )
    context_parser.add_argument("session_file", help="Session export (YAML or JSON)")
    context_parser.add_argument("--message", "-m", help="Next user message")
    context_parser.add_argument(
        "--attach", nargs="+", metavar="FILE", help="Files attached to the message"
    )
    context_parser.add_argument("--json", action="store_true", help="Print JSON")
    _add_settings_arguments(context_parser)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Run the initial AI analysis on log files",
        description="Start a session with the given files and print the model's analysis",
    )
    analyze_parser.add_argument("files", nargs="+", metavar="FILE", help="Log files")
    analyze_parser.add_argument("--os", help="Operating system of the logged host")
    analyze_parser.add_argument("--app-name", help="Application name")
    analyze_parser.add_argument("--app-version", help="Application version")
    analyze_parser.add_argument("--environment", help="Environment (e.g. production)")
    analyze_parser.add_argument("--notes", help="Anything else the model should know")
    _add_settings_arguments(analyze_parser)

    # 'config' subcommand with 'show' subsubcommand
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="View the effective configuration",
    )
    config_subparsers = config_parser.add_subparsers(
        dest="config_command",
        title="config commands",
        metavar="SUBCOMMAND",
    )
    config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current configuration",
        description="Display the effective configuration",
    )
    config_show_parser.add_argument(
        "--env-file",
        "-e",
        metavar="FILE",
        help="Load environment from a .env file",
    )

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the loglens version",
    )

    return parser


def _add_settings_arguments(parser: argparse.ArgumentParser) -> None:
    """Add --env-file, settings overrides and --verbose."""
    parser.add_argument(
        "--env-file",
        "-e",
        metavar="FILE",
        help="Load environment from a .env file (lowest priority, CLI args override)",
    )

    for mapping in SETTINGS_ARG_MAPPINGS:
        kwargs: Dict[str, Any] = {
            "help": mapping.help_text or f"Set {mapping.env_var}",
            "dest": mapping.dest,
            "default": None,
        }
        if mapping.choices:
            kwargs["choices"] = mapping.choices
            kwargs["metavar"] = mapping.dest.upper()
        if mapping.arg_type is int:
            kwargs["type"] = int
        parser.add_argument(mapping.cli_arg, **kwargs)

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output (sets LOG_LEVEL=DEBUG)",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    handlers = {
        "detect": cmd_detect,
        "parse": cmd_parse,
        "optimize": cmd_optimize,
        "context": cmd_context,
        "analyze": cmd_analyze,
        "version": cmd_version,
    }

    if args.command == "config":
        if args.config_command == "show":
            return cmd_config_show(args)
        parser.parse_args(["config", "--help"])
        return 0

    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
