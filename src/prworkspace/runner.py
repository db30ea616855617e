"""External process execution for git commands.

Defines the CommandRunner interface the provisioner uses to invoke git,
and SubprocessRunner, the blocking implementation backed by
``subprocess.run``. Tests substitute their own runner so command sequences
can be exercised without a git binary.
"""

import os
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence


@dataclass
class CommandResult:
    """Result of one external command.

    Attributes:
        args: The argv that was executed.
        output: Combined stdout and stderr, decoded as text.
        exit_code: Process exit code (-1 when the process never started).
        error: Error text for a failed command, None on success.
    """

    args: list[str]
    output: str
    exit_code: int
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and self.error is None


class CommandRunner(ABC):
    """Runs an external command to completion."""

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        cwd: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """Execute a command and capture its combined output.

        Implementations report failures through the returned result and do
        not raise for a non-zero exit or a missing executable.

        Args:
            args: Program and arguments.
            cwd: Working directory for the process.
            env: Variables added on top of the inherited environment.

        Returns:
            CommandResult describing the outcome.
        """


class SubprocessRunner(CommandRunner):
    """Blocking CommandRunner built on ``subprocess.run``.

    The child environment is a copy of ``os.environ`` with ``env`` layered
    on top; the parent's environment is never modified.
    """

    def run(
        self,
        args: Sequence[str],
        cwd: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        argv = list(args)
        child_env = dict(os.environ)
        if env:
            child_env.update(env)

        try:
            process = subprocess.run(
                argv,
                cwd=str(cwd),
                env=child_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            return CommandResult(args=argv, output="", exit_code=-1, error=str(exc))

        if process.returncode != 0:
            return CommandResult(
                args=argv,
                output=process.stdout or "",
                exit_code=process.returncode,
                error=f"exit status {process.returncode}",
            )
        return CommandResult(args=argv, output=process.stdout or "", exit_code=0)
