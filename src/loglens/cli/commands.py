"""CLI command implementations."""

import asyncio
import json
import sys
from argparse import Namespace
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from loglens.cli.arg_mapping import CONFIG_DISPLAY_GROUPS, SENSITIVE_ENV_VARS
from loglens.cli.env_loader import (
    apply_cli_args_to_env,
    get_effective_config,
    load_env_file,
    mask_sensitive_value,
)


def get_version() -> str:
    """Get the package version."""
    try:
        from importlib.metadata import version

        return version("loglens")
    except Exception:
        from loglens import __version__

        return __version__


def _read_log_file(path: str) -> str:
    from loglens.parsing.normalize import decode_content

    return decode_content(Path(path).read_bytes())


def _load_environment(args: Namespace):
    """Load the env file and CLI overrides, then settings and logging.

    Returns the settings, or None after printing the error.
    """
    env_file = getattr(args, "env_file", None)
    if env_file:
        try:
            load_env_file(env_file)
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return None

    apply_cli_args_to_env(vars(args))

    from pydantic import ValidationError

    from loglens.config.settings import load_settings
    from loglens.utils.logger import setup_logging

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        return None

    setup_logging(settings.log_level, json_logs=settings.json_logs)
    return settings


def _entry_to_dict(entry) -> Dict[str, Any]:
    data = asdict(entry)
    data["level"] = entry.level.value
    return data


def cmd_version(args: Namespace) -> int:
    """Handle the 'version' command."""
    print(f"loglens version {get_version()}")
    return 0


def cmd_config_show(args: Namespace) -> int:
    """Handle the 'config show' command."""
    if args.env_file:
        try:
            load_env_file(args.env_file)
            print(f"Loaded environment from: {args.env_file}\n")
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    config = get_effective_config()

    print("Current Configuration:")
    print("=" * 50)

    for group, variables in CONFIG_DISPLAY_GROUPS.items():
        print(f"\n[{group}]")
        for var in variables:
            value = config.get(var)
            if var in SENSITIVE_ENV_VARS:
                print(f"  {var}: {mask_sensitive_value(value)}")
            else:
                print(f"  {var}: {value or '(not set)'}")

    print("\nNote: Sensitive values (API keys) are masked with ****.")
    return 0


def cmd_detect(args: Namespace) -> int:
    """Handle the 'detect' command."""
    from loglens.parsing import detect_format
    from loglens.parsing.normalize import normalize_content

    try:
        content = normalize_content(_read_log_file(args.file))
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = detect_format(content, args.sample_lines)
    if args.json:
        print(
            json.dumps(
                {
                    "format": result.format.value,
                    "confidence": result.confidence,
                    "sample_size": result.sample_size,
                }
            )
        )
    else:
        print(f"Format: {result.format.value}")
        print(f"Confidence: {result.confidence:.2f}")
        print(f"Sample size: {result.sample_size}")
    return 0


def cmd_parse(args: Namespace) -> int:
    """Handle the 'parse' command."""
    from loglens.parsing import (
        LogFormat,
        build_log_summary,
        format_entry_for_prompt,
        parse_log,
    )

    try:
        log_format = LogFormat.from_name(args.format) if args.format else None
        result = parse_log(
            _read_log_file(args.file),
            log_format=log_format,
            max_entries=args.max_entries,
            include_raw=not args.no_raw,
        )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    entries = result.issues if args.issues_only else result.entries

    if args.json:
        stats = result.stats
        print(
            json.dumps(
                {
                    "format": result.format.format.value,
                    "confidence": result.format.confidence,
                    "total_lines": result.total_lines,
                    "stats": {
                        "total_entries": stats.total_entries,
                        "level_counts": {
                            level.value: count for level, count in stats.level_counts.items()
                        },
                        "time_range": asdict(stats.time_range),
                        "stack_trace_count": stats.stack_trace_count,
                    },
                    "entries": [_entry_to_dict(entry) for entry in entries],
                },
                indent=2,
                ensure_ascii=False,
            )
        )
        return 0

    print(build_log_summary(result))
    print("=" * 50)
    for entry in entries:
        print(f"{entry.line_number}: {format_entry_for_prompt(entry)}")
    return 0


def cmd_optimize(args: Namespace) -> int:
    """Handle the 'optimize' command."""
    settings = _load_environment(args)
    if settings is None:
        return 1

    from loglens.context import optimize_log_content

    try:
        raw = _read_log_file(args.file)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    budget = args.budget if args.budget is not None else settings.max_file_tokens
    result = optimize_log_content(raw, budget, settings.detection_sample_lines)

    print(result.summary, file=sys.stderr)
    print(f"Truncated: {result.truncated}", file=sys.stderr)
    print(result.content)
    return 0


def _attachments(paths: Optional[List[str]]):
    from loglens.context import Attachment

    return [
        Attachment(filename=Path(path).name, content=_read_log_file(path))
        for path in paths or []
    ]


async def _run_context(args: Namespace, settings) -> int:
    from loglens.context import (
        ChatPipeline,
        ContextWindowConfig,
        load_session_export,
        plan_summarization,
    )
    from loglens.utils.token_utils import TokenCounter

    config = ContextWindowConfig.from_settings(settings)
    store, session_id = await load_session_export(args.session_file)

    plan = plan_summarization(
        await store.list_messages(session_id),
        await store.get_latest_summary(session_id),
        config,
    )

    pipeline = ChatPipeline(store, config=config)
    prepared = await pipeline.prepare_turn(
        session_id, args.message or "", _attachments(args.attach)
    )
    window = prepared.window

    if args.json:
        print(
            json.dumps(
                {
                    "system_prompt": prepared.system_prompt,
                    "messages": [
                        {"role": m.role, "content": m.content} for m in prepared.messages
                    ],
                    "conversation_budget": window.conversation_budget,
                    "original_tokens": window.original_tokens,
                    "final_tokens": window.final_tokens,
                    "windowed": window.windowed,
                    "summary_applied": window.summary_applied,
                    "summarization_due": plan is not None,
                },
                indent=2,
                ensure_ascii=False,
            )
        )
        return 0

    print("[System prompt]")
    print(prepared.system_prompt)
    print("=" * 50)
    for message in prepared.messages:
        print(f"[{message.role}] ({TokenCounter.estimate(message.content)} tokens)")
        print(message.content)
        print("-" * 50)
    print(
        f"System prompt tokens: {TokenCounter.estimate(prepared.system_prompt)}\n"
        f"Conversation budget: {window.conversation_budget}\n"
        f"History tokens: {window.original_tokens} -> {window.final_tokens}\n"
        f"Windowed: {window.windowed} (omitted {window.omitted_messages} messages, "
        f"summary applied: {window.summary_applied})\n"
        f"Summarization due: {plan is not None}"
    )
    return 0


def cmd_context(args: Namespace) -> int:
    """Handle the 'context' command: assemble a prompt without calling the model."""
    settings = _load_environment(args)
    if settings is None:
        return 1

    if not args.message and not args.attach:
        print("Error: --message or --attach is required", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_run_context(args, settings))
    except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def _run_analyze(args: Namespace, settings) -> int:
    from loglens.ai_providers import create_provider, get_provider_config
    from loglens.context import (
        ChatPipeline,
        ContextWindowConfig,
        InMemorySessionStore,
        SystemInfo,
    )

    provider_config = get_provider_config(settings)
    provider = create_provider(provider_config["ai_provider"], provider_config)
    await provider.initialize()

    try:
        store = InMemorySessionStore()
        pipeline = ChatPipeline(
            store, provider=provider, config=ContextWindowConfig.from_settings(settings)
        )
        session = await pipeline.start_session(
            _attachments(args.files),
            SystemInfo(
                os=args.os or "",
                app_name=args.app_name or "",
                app_version=args.app_version or "",
                environment=args.environment or "",
                notes=args.notes or "",
            ),
        )
        messages = await store.list_messages(session.id)
        print(messages[0].content)
        print(f"\nIssues found in logs: {session.issue_count}", file=sys.stderr)
    finally:
        await provider.shutdown()
    return 0


def cmd_analyze(args: Namespace) -> int:
    """Handle the 'analyze' command: run the initial analysis on log files.

    A failed model call is not an error here: the session keeps the stored
    fallback analysis and the command still exits 0.
    """
    settings = _load_environment(args)
    if settings is None:
        return 1

    try:
        return asyncio.run(_run_analyze(args, settings))
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
