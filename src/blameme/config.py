"""
User configuration for blameme and the wizard that writes it.
"""

import json
import os
from typing import Any, Dict

from platformdirs import user_config_dir
from rich.console import Console
from rich.prompt import Confirm, Prompt

from blameme.porcelain import MODES, get_mode

DEFAULTS: Dict[str, Any] = {
    "mode": "mail",
    "stop_on_blank_line": False,
    "reuse_commit_headers": False,
}


def config_path() -> str:
    return f"{user_config_dir()}/blameme/config.json"


def get_config() -> Dict[str, Any]:
    try:
        with open(config_path(), encoding="utf-8") as config:
            loaded = json.load(config)
    except (OSError, ValueError):
        return {}
    return loaded if isinstance(loaded, dict) else {}


def parse_options(config: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
    """
    Turn a config dict into parse_blame keyword arguments.

    Overrides that are not None win over the config values.
    """
    options = {**DEFAULTS, **config}
    options.update({key: value for key, value in overrides.items() if value is not None})
    return {
        "mode": get_mode(options["mode"]),
        "stop_on_blank_line": bool(options["stop_on_blank_line"]),
        "reuse_commit_headers": bool(options["reuse_commit_headers"]),
    }


def wizard():
    CONSOLE = Console(highlight=False)
    CONSOLE.print("Welcome to the blameme configuration wizard!")
    mode = Prompt.ask(
        "Identify authors by email (author-mail) or by name (author)?",
        choices=sorted(MODES),
        default=DEFAULTS["mode"],
        console=CONSOLE,
    )
    stop_on_blank_line = Confirm.ask(
        "Stop reading blame output at the first blank line?",
        default=DEFAULTS["stop_on_blank_line"],
        console=CONSOLE,
    )
    reuse_commit_headers = Confirm.ask(
        "Reuse commit headers for abbreviated --porcelain output?",
        default=DEFAULTS["reuse_commit_headers"],
        console=CONSOLE,
    )

    os.makedirs(f"{user_config_dir()}/blameme", exist_ok=True)
    with open(config_path(), "w", encoding="utf-8") as config:
        json.dump(
            {
                "mode": mode,
                "stop_on_blank_line": stop_on_blank_line,
                "reuse_commit_headers": reuse_commit_headers,
            },
            config,
        )
    CONSOLE.print("you can run this wizard again by calling blameme-config")
