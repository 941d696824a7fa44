"""
Client configuration.

Settings are layered, later sources winning:
1. Built-in defaults (ClientConfig)
2. .claude/settings.json, key "tldr_client"
3. .tldr/config.json, key "client"
4. Environment: TLDR_CLIENT_TIMEOUT, TLDR_CLIENT_NO_AUTOSTART

The project root itself comes from the caller, falling back to
CLAUDE_PROJECT_DIR / TLDR_PROJECT and finally the working directory.
"""

import json
import logging
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

PROJECT_ENV_VARS = ("CLAUDE_PROJECT_DIR", "TLDR_PROJECT")


@dataclass(frozen=True)
class ClientConfig:
    """Timeouts and launch settings for talking to the daemon."""

    timeout: float = 3.0  # overall request deadline, seconds
    reachability_timeout: float = 0.2
    launch_wait: float = 2.0  # how long to poll after a start attempt
    startup_timeout: float = 10.0  # bound on each `daemon start` invocation
    runner: str = "uv"
    runner_dir: str = "opc"
    auto_start: bool = True


def resolve_project(project: str | Path | None = None) -> Path:
    """Resolve the project root for this call.

    Args:
        project: Explicit project path; wins over the environment

    Returns:
        Absolute project path
    """
    if project is None:
        for var in PROJECT_ENV_VARS:
            value = os.environ.get(var)
            if value:
                project = value
                break
        else:
            project = Path.cwd()
    return Path(project).resolve()


def _read_section(path: Path, key: str) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to load {path}: {e}")
        return {}
    section = data.get(key) if isinstance(data, dict) else None
    return section if isinstance(section, dict) else {}


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    timeout = os.environ.get("TLDR_CLIENT_TIMEOUT")
    if timeout:
        try:
            overrides["timeout"] = float(timeout)
        except ValueError:
            logger.warning(f"Ignoring non-numeric TLDR_CLIENT_TIMEOUT={timeout!r}")
    if os.environ.get("TLDR_CLIENT_NO_AUTOSTART", "").lower() in ("1", "true", "yes"):
        overrides["auto_start"] = False
    return overrides


def _validated(section: dict[str, Any], source: str) -> dict[str, Any]:
    """Keep the known keys whose values fit the ClientConfig field types.

    Numbers are stored as floats and must be finite and positive. Anything
    else is dropped with a warning so the default stays in effect.
    """
    kinds = {f.name: type(f.default) for f in fields(ClientConfig)}
    accepted: dict[str, Any] = {}
    for key, value in section.items():
        kind = kinds.get(key)
        if kind is None:
            continue
        if kind is float:
            ok = (
                isinstance(value, (int, float))
                and not isinstance(value, bool)
                and math.isfinite(value)
                and value > 0
            )
            if ok:
                value = float(value)
        else:
            ok = isinstance(value, kind)
        if not ok:
            logger.warning(f"Ignoring invalid {key}={value!r} in {source}")
            continue
        accepted[key] = value
    return accepted


def load_client_config(project: str | Path, base: Optional[ClientConfig] = None) -> ClientConfig:
    """Load client settings for a project.

    Unknown keys and mistyped values are ignored and unreadable files are
    skipped, so a broken config never prevents a query.
    """
    project = Path(project)
    config = base or ClientConfig()

    settings = project / ".claude" / "settings.json"
    tldr_config = project / ".tldr" / "config.json"
    updates: dict[str, Any] = {}
    updates.update(_validated(_read_section(settings, "tldr_client"), str(settings)))
    updates.update(_validated(_read_section(tldr_config, "client"), str(tldr_config)))
    updates.update(_validated(_env_overrides(), "environment"))

    if updates:
        config = replace(config, **updates)
    return config
