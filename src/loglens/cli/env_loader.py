"""Environment sources for CLI commands: .env files and command-line overrides."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import dotenv_values, load_dotenv

from loglens.cli.arg_mapping import CONFIG_DISPLAY_GROUPS, SETTINGS_ARG_MAPPINGS


def load_env_file(env_file: str) -> List[str]:
    """Load ``env_file`` without overriding variables already set.

    Returns the names the file defines. Raises FileNotFoundError if it is missing.
    """
    env_path = Path(env_file)
    if not env_path.is_file():
        raise FileNotFoundError(f"Environment file not found: {env_file}")

    load_dotenv(env_path, override=False)
    return [name for name, value in dotenv_values(env_path).items() if value is not None]


def apply_cli_args_to_env(args: Dict[str, Any]) -> Dict[str, str]:
    """Export explicitly given CLI overrides so CoreSettings picks them up.

    ``--verbose`` wins over ``--log-level``.
    """
    overrides = {
        mapping.env_var: str(args[mapping.dest])
        for mapping in SETTINGS_ARG_MAPPINGS
        if args.get(mapping.dest) is not None
    }
    if args.get("verbose"):
        overrides["LOG_LEVEL"] = "DEBUG"

    os.environ.update(overrides)
    return overrides


def get_effective_config() -> Dict[str, Optional[str]]:
    """Current environment values of every variable 'config show' displays."""
    return {
        var: os.environ.get(var)
        for variables in CONFIG_DISPLAY_GROUPS.values()
        for var in variables
    }


def mask_sensitive_value(value: Optional[str], visible_chars: int = 4) -> str:
    """Hide all but the last ``visible_chars`` characters; short values are fully hidden."""
    if value is None:
        return "(not set)"
    hidden = len(value) - visible_chars if len(value) > visible_chars else len(value)
    return "*" * hidden + value[hidden:]
