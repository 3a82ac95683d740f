"""
Domain layer for changetest.
"""

from changetest.domain.exceptions import (
    BuildFailure,
    CatalogReadError,
    ChangeTestError,
    ClassFileFormatError,
    CommandError,
    CommandLaunchError,
    ConfigurationError,
    InvariantViolationError,
    NoReviewFoundError,
    ReviewLookupError,
    TestRunFailure,
    UnitNotFoundError,
    VcsCommandError,
)
from changetest.domain.models import (
    CommandResult,
    ExecutionSet,
    RunOutcome,
    Stage,
    Unit,
    is_test_source,
    unit_id_for_path,
)

__all__ = [
    "BuildFailure",
    "CatalogReadError",
    "ChangeTestError",
    "ClassFileFormatError",
    "CommandError",
    "CommandLaunchError",
    "ConfigurationError",
    "InvariantViolationError",
    "NoReviewFoundError",
    "ReviewLookupError",
    "TestRunFailure",
    "UnitNotFoundError",
    "VcsCommandError",
    "CommandResult",
    "ExecutionSet",
    "RunOutcome",
    "Stage",
    "Unit",
    "is_test_source",
    "unit_id_for_path",
]
