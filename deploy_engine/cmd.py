"""Utilities for invoking the external command-line tools the engine drives."""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

log = logging.getLogger(__name__)


class CmdError(Exception):
    """Raised when an external command cannot be started or exits non-zero."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        message: Optional[str] = None,
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        if message is None:
            detail = stderr.strip() or stdout.strip() or "no output"
            message = f"`{' '.join(self.command)}` exited with {returncode}: {detail}"
        super().__init__(message)


def does_binary_exist(binary: str) -> bool:
    """Return True when ``binary`` can be resolved on the current PATH."""
    return shutil.which(binary) is not None


def run_command(
    command: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> str:
    """Run ``command`` and return its stripped stdout.

    Raises ``CmdError`` if the executable is missing, the call times out or the
    process exits with a non-zero status.
    """
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)

    log.debug("Running %s", " ".join(command))
    try:
        process = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CmdError(command, message=f"{command[0]} binary not found") from exc
    except subprocess.TimeoutExpired as exc:
        raise CmdError(command, message=f"`{' '.join(command)}` timed out after {timeout}s") from exc

    if process.returncode != 0:
        raise CmdError(
            command,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
        )
    return (process.stdout or "").strip()
