"""
Blocking subprocess execution for management commands.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .errors import SubprocessFailure

logger = logging.getLogger(__name__)

# Signature shared by run_command and test doubles.
Executor = Callable[[Sequence[str], Mapping[str, str], str], str]

TAIL_LINES = 40


def run_command(
    command: Sequence[str],
    environment: Optional[Mapping[str, str]] = None,
    cwd: Optional[str] = None,
    on_line: Optional[Callable[[str], None]] = None,
) -> str:
    """
    Run a command to completion, streaming its output to the log.

    Args:
        command: Program and arguments
        environment: Variables merged over the current process environment
        cwd: Working directory
        on_line: Optional callback for each output line

    Returns:
        str: Combined stdout/stderr

    Raises:
        SubprocessFailure: If the command exits non-zero or cannot be started
    """
    env: Dict[str, str] = dict(os.environ)
    env.update({k: str(v) for k, v in (environment or {}).items()})

    logger.info(f"Running {' '.join(command)} in {cwd or os.getcwd()}")
    try:
        process = subprocess.Popen(
            list(command),
            cwd=cwd,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        )
    except OSError as e:
        raise SubprocessFailure(command, 127, [str(e)]) from e

    output_lines: List[str] = []
    for line in process.stdout:
        line = line.rstrip()
        output_lines.append(line)
        logger.debug(line)
        if on_line and line.strip():
            on_line(line)
    process.stdout.close()
    process.wait()

    if process.returncode != 0:
        raise SubprocessFailure(command, process.returncode, output_lines[-TAIL_LINES:])
    return "\n".join(output_lines)
