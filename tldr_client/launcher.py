"""
Best-effort daemon auto-start.

Start attempts are fire-and-forget: their exit codes only decide whether
the fallback invocation runs. Whether the daemon actually came up is
decided by polling reachability for a bounded window.
"""

import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

from .addressing import ConnectionInfo, resolve_connection
from .config import ClientConfig
from .reachability import is_reachable

logger = logging.getLogger(__name__)

POLL_INITIAL_DELAY = 0.05
POLL_MAX_DELAY = 0.4


def _get_subprocess_detach_kwargs():
    """Get platform-specific kwargs for detaching subprocess."""
    if os.name == "nt":  # Windows
        create_new_pg = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        return {"creationflags": create_new_pg}
    else:  # Unix (Mac/Linux)
        return {"start_new_session": True}


def _run_start_command(args: list[str], cwd: Optional[Path], timeout: float) -> int:
    """Run one `daemon start` invocation and return its exit code."""
    logger.debug(f"Running {' '.join(args)} (cwd={cwd or os.getcwd()})")
    completed = subprocess.run(
        args,
        cwd=str(cwd) if cwd else None,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        timeout=timeout,
        **_get_subprocess_detach_kwargs(),
    )
    return completed.returncode


def start_daemon_process(project: Path, config: ClientConfig) -> None:
    """Issue the start command(s) for the project's daemon.

    Preferred: `<runner> run tldr daemon start` from <project>/<runner_dir>.
    Fallback: `tldr daemon start` from the current directory, used when the
    preferred form exits non-zero or cannot be executed at all.
    """
    preferred = [config.runner, "run", "tldr", "daemon", "start", "--project", str(project)]
    fallback = ["tldr", "daemon", "start", "--project", str(project)]

    try:
        code = _run_start_command(preferred, project / config.runner_dir, config.startup_timeout)
    except (FileNotFoundError, NotADirectoryError) as e:
        logger.debug(f"Preferred daemon start unavailable: {e}")
        code = None

    if code == 0:
        return

    logger.debug(f"Preferred daemon start exited with {code}, trying fallback")
    _run_start_command(fallback, None, config.startup_timeout)


def wait_until_reachable(
    info: ConnectionInfo,
    deadline: float,
    probe_timeout: float,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll reachability with exponential backoff until ``deadline``.

    Args:
        info: Address to probe
        deadline: time.monotonic() value after which polling stops
        probe_timeout: Timeout for each individual probe
        sleep: Injected for tests
    """
    delay = POLL_INITIAL_DELAY
    while True:
        if is_reachable(info, timeout=probe_timeout):
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        sleep(min(delay, remaining))
        delay = min(delay * 2, POLL_MAX_DELAY)


def ensure_running(project: str | Path, config: Optional[ClientConfig] = None) -> bool:
    """Make sure a daemon is serving ``project``, starting one if needed.

    Args:
        project: Absolute project root
        config: Client settings (timeouts, runner, auto_start)

    Returns:
        True if the daemon is reachable when this returns
    """
    config = config or ClientConfig()
    project = Path(project)
    info = resolve_connection(project)

    if is_reachable(info, timeout=config.reachability_timeout):
        return True
    if not config.auto_start:
        logger.debug("Daemon not reachable and auto-start is disabled")
        return False

    logger.info(f"Starting TLDR daemon for {project}")
    try:
        start_daemon_process(project, config)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Daemon start failed: {e}")

    deadline = time.monotonic() + config.launch_wait
    return wait_until_reachable(info, deadline, config.reachability_timeout)
