"""
Domain exceptions for changetest.
"""

from typing import Optional, Sequence

from changetest.domain.models import CommandResult


class ChangeTestError(Exception):
    """Base exception for all changetest errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class CommandError(ChangeTestError):
    """Base for failures of an external command."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        result: Optional[CommandResult] = None,
    ):
        self.command = list(command)
        self.result = result
        super().__init__(
            message,
            details={
                "command": " ".join(self.command),
                "exit_code": result.exit_code if result else None,
            },
        )


class CommandLaunchError(CommandError):
    """External executable could not be started."""


class VcsCommandError(CommandError):
    """Version-control tool exited with a real error."""


class BuildFailure(CommandError):
    """Compile step failed."""


class TestRunFailure(CommandError):
    """Test step reported failures. Reported, never fatal."""

    __test__ = False


class ConfigurationError(ChangeTestError):
    """Missing or invalid remote connection parameters."""


class NoReviewFoundError(ChangeTestError):
    """No open merge request has the current branch as source."""

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"Unable to find a merge request for this branch ({branch})",
            details={"branch": branch},
        )


class ReviewLookupError(ChangeTestError):
    """Review service could not be queried."""


class UnitNotFoundError(ChangeTestError):
    """Unit id is absent from the catalog (stale build)."""

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(
            f"Unit '{unit_id}' not found in compiled output "
            f"(is the build up to date?)",
            details={"unit_id": unit_id},
        )


class InvariantViolationError(ChangeTestError):
    """Catalog construction produced an inconsistent index."""


class ClassFileFormatError(ChangeTestError):
    """Compiled artifact is not a valid class file."""


class CatalogReadError(ChangeTestError):
    """Compiled output could not be read (unreadable file, corrupt archive)."""
