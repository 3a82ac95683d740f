"""
Diff provider - queries git for branch and change information.

Uses git diff to list files changed against a target branch and to
check that the working tree is clean before selection starts.
"""

from typing import Optional, Tuple

from changetest.core.command import CommandRunner
from changetest.domain.exceptions import VcsCommandError
from changetest.domain.models import CommandResult
from changetest.reporter.system_reporter import SystemReporter


class GitDiffProvider:
    """
    Wraps the git executable.

    Exit code 0 means success or "no differences"; a non-zero exit is
    either "differences found" or a real error, told apart by output on
    stderr.
    """

    def __init__(
        self,
        runner: CommandRunner,
        git_executable: str = "git",
        reporter: Optional[SystemReporter] = None,
    ):
        """
        Initialize diff provider.

        Args:
            runner: Command runner bound to the repository root
            git_executable: Path to git (default: git on PATH)
            reporter: Optional reporter for logging
        """
        self.runner = runner
        self.git_executable = git_executable or "git"
        self.reporter = reporter or runner.reporter

    def _git(self, *args: str) -> CommandResult:
        return self.runner.run(self.git_executable, *args)

    def _fail(self, args: Tuple[str, ...], result: CommandResult) -> VcsCommandError:
        command = [self.git_executable, *args]
        text = result.error_text or f"exit code {result.exit_code}"
        return VcsCommandError(
            f"git {' '.join(args)} failed: {text}", command=command, result=result
        )

    def current_branch(self) -> str:
        """
        Get the name of the checked out branch.

        Returns:
            Branch name (e.g. feature/login)

        Raises:
            VcsCommandError: If git fails
        """
        args = ("rev-parse", "--quiet", "--abbrev-ref", "HEAD")
        result = self._git(*args)

        if not result.success:
            raise self._fail(args, result)

        return result.stdout.replace("\n", "").strip()

    def has_uncommitted_changes(self) -> bool:
        """
        Check for unstaged or staged but uncommitted changes.

        Returns:
            True if the working tree or index differs from HEAD

        Raises:
            VcsCommandError: If a check fails with an error message
        """
        # Unstaged changes: exit 1 if there are differences
        args: Tuple[str, ...] = (
            "diff",
            "--no-ext-diff",
            "--ignore-submodules",
            "--quiet",
            "--exit-code",
        )
        result = self._git(*args)

        if result.success:
            # Staged changes
            args = (
                "diff-index",
                "--cached",
                "--quiet",
                "--ignore-submodules",
                "HEAD",
                "--",
            )
            result = self._git(*args)

        if result.success:
            return False

        if result.stderr.strip():
            raise self._fail(args, result)

        return True

    def changed_paths(self, target_branch: str) -> Tuple[str, ...]:
        """
        List files that differ between the working tree and a branch.

        Args:
            target_branch: Branch to diff against

        Returns:
            Repository-relative paths in git's order (empty if none)

        Raises:
            VcsCommandError: If git fails
        """
        args = ("diff", "--name-only", target_branch)
        result = self._git(*args)

        if not result.success:
            raise self._fail(args, result)

        paths = tuple(
            line.strip() for line in result.stdout.splitlines() if line.strip()
        )

        self.reporter.debug(
            f"{len(paths)} changed file(s) against {target_branch}",
            context="GitDiffProvider",
        )

        return paths
