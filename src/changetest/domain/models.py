"""
Domain models for change-driven test selection.

Value objects shared by every stage of a run:
- CommandResult: outcome of one external process
- Unit: a compiled test class known to the catalog
- ExecutionSet: ordered, duplicate-free units selected to run
- Stage / RunOutcome: orchestrator state and final report
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

PACKAGE_SEPARATOR = "."
PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class CommandResult:
    """
    Immutable result of an external command.

    Attributes:
        exit_code: Process exit status
        stdout: Captured standard output
        stderr: Captured standard error
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        """Check if the command exited with status 0."""
        return self.exit_code == 0

    @property
    def error_text(self) -> str:
        """
        Best available error text.

        Not all tools print errors to stderr, so fall back to stdout
        when stderr is blank.
        """
        if not self.stderr.strip() and self.stdout.strip():
            return self.stdout.strip()
        return self.stderr.strip()


@dataclass(frozen=True)
class Unit:
    """
    A compiled test class.

    Attributes:
        unit_id: Fully qualified binary name (e.g. basic.project.FooTest)
        abstract: True for abstract classes and interfaces
        parent_id: Direct super class, when it is also a catalog unit
        interface_ids: Directly implemented (or, for interfaces, extended)
                       interfaces that are also catalog units
        source: Artifact the unit was read from
    """

    unit_id: str
    abstract: bool = False
    parent_id: Optional[str] = None
    interface_ids: Tuple[str, ...] = ()
    source: str = field(default="", compare=False)

    @property
    def concrete(self) -> bool:
        return not self.abstract

    @property
    def supertype_ids(self) -> Tuple[str, ...]:
        """Every catalog supertype this unit directly inherits from."""
        if self.parent_id is None:
            return self.interface_ids
        return (self.parent_id, *self.interface_ids)

    @property
    def simple_name(self) -> str:
        return self.unit_id.rsplit(PACKAGE_SEPARATOR, 1)[-1]

    @property
    def test_name(self) -> str:
        """Name handed to the test tool."""
        return self.unit_id


class ExecutionSet:
    """
    Insertion-ordered, duplicate-free collection of units.

    Identity is the unit id, so a unit reached from several changed
    files is only kept once, at its first position.
    """

    def __init__(self) -> None:
        self._units: Dict[str, Unit] = {}

    def add(self, unit: Unit) -> bool:
        """
        Add unit if not already present.

        Returns:
            True if the unit was inserted, False if it was already there
        """
        if unit.unit_id in self._units:
            return False
        self._units[unit.unit_id] = unit
        return True

    def unit_ids(self) -> List[str]:
        return list(self._units)

    def test_names(self) -> List[str]:
        return [unit.test_name for unit in self._units.values()]

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Unit):
            return item.unit_id in self._units
        return item in self._units

    def __iter__(self) -> Iterator[Unit]:
        return iter(list(self._units.values()))

    def __len__(self) -> int:
        return len(self._units)

    def __bool__(self) -> bool:
        return bool(self._units)

    def __repr__(self) -> str:
        return f"ExecutionSet({self.unit_ids()!r})"


def is_test_source(path: str, test_source_root: str, extension: str) -> bool:
    """Check if a repository-relative path is a test source file."""
    return path.startswith(test_source_root) and path.endswith(extension)


def unit_id_for_path(
    path: str, test_source_root: str, extension: str
) -> Optional[str]:
    """
    Derive a unit id from a changed test source path.

    Strips the test source root and the extension, then turns path
    separators into package separators:

        src/test/java/basic/project/FooTest.java -> basic.project.FooTest

    Args:
        path: Repository-relative path
        test_source_root: Root prefix of test sources (e.g. src/test/java/)
        extension: Test source extension (e.g. .java)

    Returns:
        Unit id, or None if path is not a test source file
    """
    if not is_test_source(path, test_source_root, extension):
        return None

    relative = path[len(test_source_root) : len(path) - len(extension)]
    relative = relative.strip(PATH_SEPARATOR)
    if not relative:
        return None

    return relative.replace(PATH_SEPARATOR, PACKAGE_SEPARATOR)


class Stage(str, Enum):
    """Orchestrator states."""

    INIT = "init"
    CHECK_CLEAN = "check_clean"
    DIFFING = "diffing"
    COMPILING = "compiling"
    RESOLVING = "resolving"
    TESTING = "testing"
    DONE = "done"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (Stage.DONE, Stage.ABORTED)


@dataclass
class RunOutcome:
    """
    Final report of one orchestrator run.

    Attributes:
        stage: Terminal stage (DONE or ABORTED)
        stages: Every stage visited, in order
        target_branch: Resolved merge target
        changed_paths: Paths reported by the diff
        execution_set: Units selected to run
        build_result: Result of the compile step
        test_result: Result of the test step
        error: Fatal error that aborted the run
        test_failure: Report of a red test run
        reason: Informational short-circuit message
    """

    stage: Stage = Stage.INIT
    stages: List[Stage] = field(default_factory=lambda: [Stage.INIT])
    target_branch: Optional[str] = None
    changed_paths: Tuple[str, ...] = ()
    execution_set: ExecutionSet = field(default_factory=ExecutionSet)
    build_result: Optional[CommandResult] = None
    test_result: Optional[CommandResult] = None
    error: Optional[Exception] = None
    test_failure: Optional[Exception] = None
    reason: Optional[str] = None

    def enter(self, stage: Stage) -> None:
        """Record a transition."""
        self.stage = stage
        self.stages.append(stage)

    @property
    def aborted(self) -> bool:
        return self.stage == Stage.ABORTED

    @property
    def success(self) -> bool:
        """True when the selection process itself completed."""
        return self.stage == Stage.DONE
