"""
Build runner - compiles the project and runs an explicit unit list.

Wraps Maven: "install" with tests skipped to refresh compiled output,
then "test" restricted to the selected units.
"""

from typing import List, Optional, Sequence

from changetest.core.command import CommandRunner
from changetest.domain.models import CommandResult
from changetest.reporter.system_reporter import SystemReporter

UNIT_SEPARATOR = ","


class MavenBuildRunner:
    """
    Invokes Maven for compilation and test execution.

    Results are returned as-is; deciding what a failure means is the
    orchestrator's job.
    """

    def __init__(
        self,
        runner: CommandRunner,
        maven_executable: str = "mvn",
        extra_args: Optional[Sequence[str]] = None,
        reporter: Optional[SystemReporter] = None,
    ):
        """
        Initialize build runner.

        Args:
            runner: Command runner bound to the project root
            maven_executable: Path to Maven (default: mvn on PATH)
            extra_args: Arguments prepended to every invocation
            reporter: Optional reporter for logging
        """
        self.runner = runner
        self.maven_executable = maven_executable or "mvn"
        self.extra_args: List[str] = list(extra_args or [])
        self.reporter = reporter or runner.reporter

    def compile_args(self) -> List[str]:
        return [*self.extra_args, "install", "-DskipTests=true"]

    def test_args(self, test_names: Sequence[str]) -> List[str]:
        return [
            *self.extra_args,
            "test",
            "-DskipTests=false",
            f"-Dtest={UNIT_SEPARATOR.join(test_names)}",
        ]

    def compile(self) -> CommandResult:
        """
        Build the project without running tests.

        Returns:
            CommandResult of the build
        """
        self.reporter.debug("Compiling project", context="MavenBuildRunner")
        return self.runner.run(self.maven_executable, *self.compile_args())

    def test(self, test_names: Sequence[str]) -> CommandResult:
        """
        Run exactly the given units.

        Args:
            test_names: Fully qualified unit names (non-empty)

        Returns:
            CommandResult of the test run

        Raises:
            ValueError: If test_names is empty
        """
        if not test_names:
            raise ValueError("test() requires at least one unit")

        self.reporter.debug(
            f"Testing {len(test_names)} unit(s)", context="MavenBuildRunner"
        )
        return self.runner.run(self.maven_executable, *self.test_args(test_names))
