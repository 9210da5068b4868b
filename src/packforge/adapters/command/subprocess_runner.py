from __future__ import annotations

import logging
from pathlib import Path
import shutil
import subprocess

from packforge.adapters.errors import CommandNotFound, CommandTimeout
from packforge.ports.command_runner import CommandResult

logger = logging.getLogger(__name__)


class SubprocessCommandRunner:
    def __init__(self, default_timeout: float | None = None) -> None:
        self.default_timeout = default_timeout

    def run(
        self, args: list[str], cwd: Path | None = None, timeout: float | None = None
    ) -> CommandResult:
        executable = shutil.which(args[0])
        if executable is None:
            raise CommandNotFound(
                f"{args[0]} not found on PATH", details={"command": args[0]}
            )
        limit = timeout if timeout is not None else self.default_timeout
        logger.debug("Running %s (timeout=%s)", " ".join(args), limit)
        try:
            completed = subprocess.run(
                [executable, *args[1:]],
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=limit,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandTimeout(
                f"{args[0]} timed out after {limit}s",
                details={"command": " ".join(args)},
                cause=e,
            )
        return CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
