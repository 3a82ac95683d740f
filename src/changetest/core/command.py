"""
Command runner - executes external tools and captures their output.

Every git and Maven invocation goes through CommandRunner so results
share one shape (CommandResult) and one logging policy.
"""

import subprocess
from pathlib import Path
from typing import Optional, Sequence

from changetest.domain.exceptions import CommandLaunchError
from changetest.domain.models import CommandResult
from changetest.reporter.system_reporter import SystemReporter


class CommandRunner:
    """
    Runs external commands synchronously.

    No timeout is imposed; the wrapped tools own their timeout behavior.
    """

    def __init__(
        self,
        cwd: Path,
        reporter: Optional[SystemReporter] = None,
        verbose: bool = False,
    ):
        """
        Initialize command runner.

        Args:
            cwd: Working directory for every command
            reporter: Optional reporter for logging
            verbose: Echo command lines and captured output to the log
        """
        self.cwd = cwd
        self.verbose = verbose
        self.reporter = reporter or SystemReporter(
            name="command_runner", level=20, verbose=1
        )

    def run(self, executable: str, *args: str) -> CommandResult:
        """
        Run a command without failing on non-zero exit.

        Args:
            executable: Program to run
            *args: Command line arguments

        Returns:
            CommandResult with exit code and captured streams

        Raises:
            CommandLaunchError: If the executable cannot be started
        """
        command = [executable, *args]

        if self.verbose:
            self.reporter.debug(
                f"Running command {' '.join(command)} in {self.cwd}",
                context="CommandRunner",
                verbose_level=0,
            )

        try:
            completed = subprocess.run(
                command,
                cwd=str(self.cwd),
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise CommandLaunchError(
                f"Could not start '{executable}': {e}", command=command
            ) from e

        result = CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if self.verbose:
            self._echo(command, result)

        return result

    def _echo(self, command: Sequence[str], result: CommandResult) -> None:
        """Log captured output of a finished command."""
        for line in result.stdout.splitlines():
            self.reporter.debug(line, context=command[0], verbose_level=0)

        if result.stderr.strip():
            self.reporter.warning(
                result.stderr.strip(), context=command[0], verbose_level=0
            )
