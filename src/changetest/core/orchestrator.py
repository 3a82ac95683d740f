"""
changetest orchestrator - main coordinator for change-driven testing.

Coordinates:
- Clean tree check (git)
- Target branch lookup (GitLab merge request)
- Change detection (git diff)
- Compilation (Maven install, tests skipped)
- Selection (unit catalog + change resolver)
- Test execution (Maven test with explicit units)

State machine:
    INIT -> CHECK_CLEAN -> DIFFING -> COMPILING -> RESOLVING -> TESTING -> DONE
with ABORTED reachable from every non-terminal state.
"""

import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from rich.console import Console

from changetest.config.settings import Settings
from changetest.core.build_runner import MavenBuildRunner
from changetest.core.change_resolver import ChangeResolver
from changetest.core.command import CommandRunner
from changetest.core.diff_provider import GitDiffProvider
from changetest.core.reporter import ChangeTestReporter
from changetest.core.target_resolver import GitLabTargetResolver
from changetest.core.unit_catalog import UnitCatalog
from changetest.domain.exceptions import BuildFailure, ChangeTestError, TestRunFailure
from changetest.domain.models import RunOutcome, Stage
from changetest.reporter.emojis import ChangeTestEmoji
from changetest.reporter.system_reporter import SystemReporter

CatalogLoader = Callable[[Sequence[Path]], UnitCatalog]


class Orchestrator:
    """
    Runs one selection pass from a clean tree to a test invocation.

    Collaborators are built from settings unless injected. Each run is
    independent: no state survives between run() calls.
    """

    def __init__(
        self,
        project_root: Optional[Path] = None,
        settings: Optional[Settings] = None,
        target_branch: Optional[str] = None,
        dry_run: bool = False,
        reporter: Optional[SystemReporter] = None,
        console: Optional[Console] = None,
        diff_provider: Optional[GitDiffProvider] = None,
        target_resolver: Optional[GitLabTargetResolver] = None,
        build_runner: Optional[MavenBuildRunner] = None,
        change_resolver: Optional[ChangeResolver] = None,
        catalog_loader: Optional[CatalogLoader] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            project_root: Repository / Maven project root (default: cwd)
            settings: Configuration (default: Settings())
            target_branch: Diff against this branch instead of asking GitLab
            dry_run: Stop after selection without running tests
            reporter: Reporter for logging
            console: Rich console for panels
            diff_provider: Git adapter override
            target_resolver: GitLab adapter override
            build_runner: Maven adapter override
            change_resolver: Resolver override
            catalog_loader: Catalog factory override
        """
        self.project_root = project_root or Path.cwd()
        self.settings = settings or Settings()
        self.target_branch = target_branch
        self.dry_run = dry_run

        self.reporter = reporter or SystemReporter(
            name="changetest",
            log_dir=self.settings.log_dir,
            level=10 if self.settings.verbose else 20,
            verbose=2 if self.settings.verbose else 1,
        )
        self.console = console or Console()
        self.display_reporter = ChangeTestReporter()

        command_runner = CommandRunner(
            self.project_root, self.reporter, verbose=self.settings.verbose
        )

        self.diff_provider = diff_provider or GitDiffProvider(
            command_runner, self.settings.git_executable, self.reporter
        )
        self.build_runner = build_runner or MavenBuildRunner(
            command_runner,
            self.settings.maven_executable,
            self.settings.maven_args,
            self.reporter,
        )
        self.change_resolver = change_resolver or ChangeResolver(
            self.settings.test_source_root,
            self.settings.test_source_extension,
            self.reporter,
        )
        self._target_resolver = target_resolver
        self._catalog_loader = catalog_loader

    @property
    def target_resolver(self) -> GitLabTargetResolver:
        """Get or create the GitLab resolver (only needed without --target)."""
        if self._target_resolver is None:
            self._target_resolver = GitLabTargetResolver(
                self.settings.gitlab_server,
                self.settings.gitlab_token,
                self.settings.gitlab_project_id,
                timeout=self.settings.gitlab_timeout,
            )
        return self._target_resolver

    def compiled_roots(self) -> List[Path]:
        """Compiled output locations resolved against the project root."""
        roots = []
        for root in self.settings.compiled_roots:
            path = Path(root)
            roots.append(path if path.is_absolute() else self.project_root / path)
        return roots

    def load_catalog(self) -> UnitCatalog:
        """Build a fresh catalog from compiled output."""
        roots = self.compiled_roots()
        if self._catalog_loader is not None:
            return self._catalog_loader(roots)
        return UnitCatalog.load(roots, self.reporter)

    def run(self) -> RunOutcome:
        """
        Run change-driven test selection.

        Returns:
            RunOutcome ending in DONE or ABORTED
        """
        start_time = time.time()
        outcome = RunOutcome()

        self.reporter.info("=" * 67, context="changetest")
        self.reporter.info(
            f"{ChangeTestEmoji.TEST_RUN} changetest starting", context="changetest"
        )
        self.reporter.info("=" * 67, context="changetest")

        try:
            self._run_stages(outcome)
        except ChangeTestError as e:
            self._abort(outcome, e)
        finally:
            if self._target_resolver is not None:
                self._target_resolver.close()

        self.console.print(
            self.display_reporter.create_final_summary(
                outcome, time.time() - start_time
            )
        )

        return outcome

    def _run_stages(self, outcome: RunOutcome) -> None:
        """Advance the state machine until a terminal stage."""
        # CHECK_CLEAN
        outcome.enter(Stage.CHECK_CLEAN)
        self.reporter.info(
            f"{ChangeTestEmoji.GIT} Checking for uncommitted changes",
            context="changetest",
        )
        if self.diff_provider.has_uncommitted_changes():
            outcome.reason = (
                "You have some uncommitted files. Commit or discard local "
                "changes in order to proceed."
            )
            self.reporter.warning(
                f"{ChangeTestEmoji.DIRTY} {outcome.reason}", context="changetest"
            )
            outcome.enter(Stage.ABORTED)
            return

        # DIFFING
        outcome.enter(Stage.DIFFING)
        target = self._resolve_target()
        outcome.target_branch = target

        changed_paths = self.diff_provider.changed_paths(target)
        outcome.changed_paths = changed_paths

        if not changed_paths:
            outcome.reason = "No changes detected"
            self.reporter.info(
                f"{ChangeTestEmoji.INFO} {outcome.reason} against {target}",
                context="changetest",
            )
            outcome.enter(Stage.DONE)
            return

        self.reporter.info(
            f"{ChangeTestEmoji.CHANGED} Detected changes in "
            f"{len(changed_paths)} file(s)",
            context="changetest",
        )
        self.console.print(
            self.display_reporter.create_changes_panel(
                target, changed_paths, self.settings.test_source_root
            )
        )

        # COMPILING
        outcome.enter(Stage.COMPILING)
        self.reporter.info(
            f"{ChangeTestEmoji.BUILD} Compiling project", context="changetest"
        )
        build_result = self.build_runner.compile()
        outcome.build_result = build_result

        if not build_result.success:
            raise BuildFailure(
                "Error compiling project"
                + (f":\n{build_result.error_text}" if build_result.error_text else ""),
                command=[
                    self.build_runner.maven_executable,
                    *self.build_runner.compile_args(),
                ],
                result=build_result,
            )

        # RESOLVING
        outcome.enter(Stage.RESOLVING)
        self.reporter.info(
            f"{ChangeTestEmoji.DISCOVER} Resolving affected test units",
            context="changetest",
        )
        catalog = self.load_catalog()
        execution_set = self.change_resolver.resolve(changed_paths, catalog)
        outcome.execution_set = execution_set

        self.console.print(self.display_reporter.create_selection_panel(execution_set))

        if not execution_set:
            outcome.reason = "No test units affected by these changes"
            self.reporter.info(
                f"{ChangeTestEmoji.INFO} {outcome.reason}", context="changetest"
            )
            outcome.enter(Stage.DONE)
            return

        if self.dry_run:
            outcome.reason = "Dry run - tests not executed"
            self.reporter.info(
                f"{ChangeTestEmoji.DRY_RUN} {outcome.reason}", context="changetest"
            )
            outcome.enter(Stage.DONE)
            return

        # TESTING
        outcome.enter(Stage.TESTING)
        test_names = execution_set.test_names()
        self.reporter.info(
            f"{ChangeTestEmoji.TEST_RUN} Running {len(test_names)} test unit(s)",
            context="changetest",
        )
        test_result = self.build_runner.test(test_names)
        outcome.test_result = test_result

        if test_result.success:
            self.reporter.info(
                f"{ChangeTestEmoji.TEST_PASS} Selected tests passed",
                context="changetest",
            )
        else:
            outcome.test_failure = TestRunFailure(
                "Error testing changes",
                command=[
                    self.build_runner.maven_executable,
                    *self.build_runner.test_args(test_names),
                ],
                result=test_result,
            )
            self.reporter.error(
                f"{ChangeTestEmoji.TEST_FAIL} Error testing changes "
                f"(exit code {test_result.exit_code})",
                context="changetest",
            )

        outcome.enter(Stage.DONE)

    def _resolve_target(self) -> str:
        """Use the explicit target or ask GitLab for the merge target."""
        if self.target_branch:
            self.reporter.info(
                f"{ChangeTestEmoji.TARGET} Using target branch "
                f"'{self.target_branch}'",
                context="changetest",
            )
            return self.target_branch

        branch = self.diff_provider.current_branch()
        self.reporter.info(
            f"{ChangeTestEmoji.REVIEW} Looking for merge request(s) for '{branch}'",
            context="changetest",
        )
        target = self.target_resolver.target_branch_for(branch)
        self.reporter.info(
            f"{ChangeTestEmoji.TARGET} Target branch: {target}", context="changetest"
        )
        return target

    def _abort(self, outcome: RunOutcome, error: ChangeTestError) -> None:
        """Move to ABORTED, recording the failing stage and error."""
        failed_stage = outcome.stage
        outcome.error = error
        outcome.enter(Stage.ABORTED)

        self.reporter.error(
            f"{ChangeTestEmoji.TEST_ERROR} Aborted during {failed_stage.value}: "
            f"{error.message}",
            context="changetest",
        )
