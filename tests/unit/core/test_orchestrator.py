"""
Unit tests for Orchestrator.

Git, GitLab and the compiled output are replaced by in-memory fakes;
Maven goes through a scripted command runner so the exact invocations
can be checked.

Usage:
    pytest tests/unit/core/test_orchestrator.py
"""

from pathlib import Path
from typing import List, Optional, Sequence

import httpx
import pytest

from changetest.config.settings import Settings
from changetest.core.build_runner import MavenBuildRunner
from changetest.core.orchestrator import Orchestrator
from changetest.core.target_resolver import GitLabTargetResolver
from changetest.core.unit_catalog import UnitCatalog
from changetest.domain.exceptions import (
    BuildFailure,
    CatalogReadError,
    ConfigurationError,
    NoReviewFoundError,
    ReviewLookupError,
    TestRunFailure,
    UnitNotFoundError,
)
from changetest.domain.models import CommandResult, Stage, Unit
from tests.helpers.class_files import write_class
from tests.helpers.fake_runner import FakeCommandRunner

COMPILE = ("mvn", "install")
TEST = ("mvn", "test")


class FakeDiffProvider:
    """In-memory git."""

    def __init__(
        self,
        changed: Sequence[str] = (),
        dirty: bool = False,
        branch: str = "feature/work",
    ):
        self.changed = tuple(changed)
        self.dirty = dirty
        self.branch = branch
        self.diff_targets: List[str] = []

    def has_uncommitted_changes(self) -> bool:
        return self.dirty

    def current_branch(self) -> str:
        return self.branch

    def changed_paths(self, target_branch: str):
        self.diff_targets.append(target_branch)
        return self.changed


class FakeTargetResolver:
    """In-memory GitLab."""

    def __init__(self, target: Optional[str] = "develop"):
        self.target = target
        self.asked: List[str] = []
        self.closed = False

    def target_branch_for(self, branch: str) -> str:
        self.asked.append(branch)
        if self.target is None:
            raise NoReviewFoundError(branch)
        return self.target

    def close(self) -> None:
        self.closed = True


def hierarchy() -> UnitCatalog:
    return UnitCatalog(
        [
            Unit("p.BaseTest", abstract=True),
            Unit("p.ChildATest", parent_id="p.BaseTest"),
            Unit("p.ChildBTest", parent_id="p.BaseTest"),
            Unit("p.StandaloneTest"),
        ]
    )


def src(unit_id: str) -> str:
    return "src/test/java/" + unit_id.replace(".", "/") + ".java"


@pytest.fixture
def maven(reporter):
    return FakeCommandRunner(reporter)


@pytest.fixture
def make_orchestrator(tmp_path, maven, reporter, console):
    """Factory wiring an orchestrator to fakes."""

    def _make(
        diff: FakeDiffProvider,
        resolver: Optional[FakeTargetResolver] = None,
        catalog: Optional[UnitCatalog] = None,
        **kwargs,
    ) -> Orchestrator:
        loaded = catalog if catalog is not None else hierarchy()
        kwargs.setdefault("settings", Settings())
        return Orchestrator(
            project_root=tmp_path,
            reporter=reporter,
            console=console,
            diff_provider=diff,
            target_resolver=resolver or FakeTargetResolver(),
            build_runner=MavenBuildRunner(maven, reporter=reporter),
            catalog_loader=lambda roots: loaded,
            **kwargs,
        )

    return _make


class TestOrchestratorRun:
    """Unit tests for the run state machine."""

    # ================================================================
    # Happy path
    # ================================================================

    def test_full_run(self, make_orchestrator, maven, console):
        """Test changes flow through compile, resolve and test."""
        diff = FakeDiffProvider(
            changed=[src("p.BaseTest"), "src/main/java/p/Service.java"]
        )
        resolver = FakeTargetResolver("develop")
        orchestrator = make_orchestrator(diff, resolver)

        outcome = orchestrator.run()

        assert outcome.stage == Stage.DONE
        assert outcome.stages == [
            Stage.INIT,
            Stage.CHECK_CLEAN,
            Stage.DIFFING,
            Stage.COMPILING,
            Stage.RESOLVING,
            Stage.TESTING,
            Stage.DONE,
        ]
        assert resolver.asked == ["feature/work"]
        assert diff.diff_targets == ["develop"]
        assert outcome.target_branch == "develop"
        assert outcome.execution_set.unit_ids() == ["p.ChildATest", "p.ChildBTest"]
        assert maven.calls == [
            ("mvn", "install", "-DskipTests=true"),
            ("mvn", "test", "-DskipTests=false", "-Dtest=p.ChildATest,p.ChildBTest"),
        ]
        assert outcome.test_failure is None
        assert resolver.closed
        assert "FINAL SUMMARY" in console.file.getvalue()

    def test_explicit_target_skips_review_lookup(self, make_orchestrator, maven):
        """Test --target bypasses GitLab."""
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        resolver = FakeTargetResolver()
        orchestrator = make_orchestrator(diff, resolver, target_branch="main")

        outcome = orchestrator.run()

        assert outcome.success
        assert resolver.asked == []
        assert diff.diff_targets == ["main"]

    # ================================================================
    # Short circuits
    # ================================================================

    def test_empty_diff_finishes_without_build(self, make_orchestrator, maven):
        """Test no changes ends in DONE with no build or test."""
        orchestrator = make_orchestrator(FakeDiffProvider(changed=[]))

        outcome = orchestrator.run()

        assert outcome.stage == Stage.DONE
        assert Stage.COMPILING not in outcome.stages
        assert maven.calls == []
        assert outcome.reason == "No changes detected"

    def test_uncommitted_changes_abort_before_diff(self, make_orchestrator, maven):
        """Test a dirty tree aborts before any diff or compile."""
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")], dirty=True)
        resolver = FakeTargetResolver()
        orchestrator = make_orchestrator(diff, resolver)

        outcome = orchestrator.run()

        assert outcome.stages == [Stage.INIT, Stage.CHECK_CLEAN, Stage.ABORTED]
        assert diff.diff_targets == []
        assert resolver.asked == []
        assert maven.calls == []
        assert "uncommitted" in outcome.reason

    def test_no_affected_units(self, make_orchestrator, maven):
        """Test non-test changes compile but run nothing."""
        diff = FakeDiffProvider(changed=["src/main/java/p/Service.java"])
        orchestrator = make_orchestrator(diff)

        outcome = orchestrator.run()

        assert outcome.stage == Stage.DONE
        assert not outcome.execution_set
        assert maven.commands_starting_with(*COMPILE)
        assert maven.commands_starting_with(*TEST) == []

    def test_dry_run_skips_tests(self, make_orchestrator, maven):
        """Test dry run stops after selection."""
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        orchestrator = make_orchestrator(diff, dry_run=True)

        outcome = orchestrator.run()

        assert outcome.stage == Stage.DONE
        assert Stage.TESTING not in outcome.stages
        assert outcome.execution_set.unit_ids() == ["p.StandaloneTest"]
        assert maven.commands_starting_with(*TEST) == []

    # ================================================================
    # Failures
    # ================================================================

    def test_stale_build_aborts_before_tests(self, make_orchestrator, maven):
        """Test a changed unit missing from compiled output aborts."""
        diff = FakeDiffProvider(changed=[src("p.BrandNewTest")])
        orchestrator = make_orchestrator(diff)

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, UnitNotFoundError)
        assert outcome.stages[-2] == Stage.RESOLVING
        assert maven.commands_starting_with(*TEST) == []

    def test_build_failure_aborts(self, make_orchestrator, maven):
        """Test a failed compile aborts with BuildFailure."""
        maven.respond(COMPILE, CommandResult(1, stdout="[ERROR] cannot find symbol"))
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        orchestrator = make_orchestrator(diff)

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, BuildFailure)
        assert "cannot find symbol" in outcome.error.message
        assert outcome.error.command == ["mvn", "install", "-DskipTests=true"]
        assert outcome.stages[-2] == Stage.COMPILING
        assert maven.commands_starting_with(*TEST) == []

    def test_test_failure_still_done(self, make_orchestrator, maven, console):
        """Test red tests are reported without aborting."""
        maven.respond(TEST, CommandResult(1, stdout="Tests run: 1, Failures: 1"))
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        orchestrator = make_orchestrator(diff)

        outcome = orchestrator.run()

        assert outcome.stage == Stage.DONE
        assert outcome.error is None
        assert isinstance(outcome.test_failure, TestRunFailure)
        assert outcome.test_failure.result.exit_code == 1
        assert "TESTS FAILED" in console.file.getvalue()

    def test_missing_review_aborts(self, make_orchestrator, maven):
        """Test no merge request aborts during diffing."""
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        orchestrator = make_orchestrator(diff, FakeTargetResolver(target=None))

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, NoReviewFoundError)
        assert outcome.stages[-2] == Stage.DIFFING
        assert diff.diff_targets == []
        assert maven.calls == []

    def test_missing_gitlab_configuration_aborts(
        self, tmp_path, maven, reporter, console
    ):
        """Test the real resolver rejects empty settings without a request."""
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        orchestrator = Orchestrator(
            project_root=tmp_path,
            settings=Settings(),
            reporter=reporter,
            console=console,
            diff_provider=diff,
            target_resolver=GitLabTargetResolver(None, None, None),
            build_runner=MavenBuildRunner(maven, reporter=reporter),
        )

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, ConfigurationError)
        assert maven.calls == []

    def test_non_json_review_listing_aborts(self, tmp_path, maven, reporter, console):
        """Test an HTML answer from GitLab aborts during diffing."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200, text="<html>Sign in</html>", headers={"content-type": "text/html"}
            )
        )
        diff = FakeDiffProvider(changed=[src("p.StandaloneTest")])
        orchestrator = Orchestrator(
            project_root=tmp_path,
            settings=Settings(),
            reporter=reporter,
            console=console,
            diff_provider=diff,
            target_resolver=GitLabTargetResolver(
                "https://gitlab.example.com",
                "token",
                42,
                client=httpx.Client(transport=transport),
            ),
            build_runner=MavenBuildRunner(maven, reporter=reporter),
        )

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, ReviewLookupError)
        assert outcome.stages[-2] == Stage.DIFFING
        assert diff.diff_targets == []
        assert maven.calls == []

    def test_malformed_project_id_aborts(self, tmp_path, maven, reporter, console):
        """Test a non-numeric project id is rejected when GitLab is asked."""
        settings = Settings(
            gitlab_server="https://gitlab.example.com",
            gitlab_token="token",
            gitlab_project_id="my-group/my-project",
        )
        orchestrator = Orchestrator(
            project_root=tmp_path,
            settings=settings,
            reporter=reporter,
            console=console,
            diff_provider=FakeDiffProvider(changed=[src("p.StandaloneTest")]),
            build_runner=MavenBuildRunner(maven, reporter=reporter),
        )

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, ConfigurationError)
        assert "gitlab_project_id is invalid" in str(outcome.error)
        assert maven.calls == []


class TestOrchestratorCatalog:
    """Unit tests for catalog loading from compiled roots."""

    def test_compiled_roots_resolved_against_project(self, tmp_path, reporter):
        """Test relative roots are joined to the project root."""
        settings = Settings(compiled_roots=["target/test-classes", "/abs/classes"])
        orchestrator = Orchestrator(
            project_root=tmp_path, settings=settings, reporter=reporter
        )

        assert orchestrator.compiled_roots() == [
            tmp_path / "target" / "test-classes",
            Path("/abs/classes"),
        ]

    def test_run_with_class_files(self, tmp_path, maven, reporter, console):
        """Test a run over a catalog read from disk."""
        classes = tmp_path / "target" / "test-classes"
        write_class(classes, "basic.project.AbstractDaoTest", abstract=True)
        write_class(
            classes, "basic.project.UserDaoTest", "basic.project.AbstractDaoTest"
        )

        diff = FakeDiffProvider(changed=[src("basic.project.AbstractDaoTest")])
        orchestrator = Orchestrator(
            project_root=tmp_path,
            settings=Settings(),
            target_branch="main",
            reporter=reporter,
            console=console,
            diff_provider=diff,
            build_runner=MavenBuildRunner(maven, reporter=reporter),
        )

        outcome = orchestrator.run()

        assert outcome.success
        assert outcome.execution_set.unit_ids() == ["basic.project.UserDaoTest"]
        assert maven.calls[-1][-1] == "-Dtest=basic.project.UserDaoTest"

    def test_corrupt_archive_aborts_while_resolving(
        self, tmp_path, maven, reporter, console
    ):
        """Test an unreadable compiled root aborts before any test runs."""
        (tmp_path / "broken.jar").write_bytes(b"not a zip")

        orchestrator = Orchestrator(
            project_root=tmp_path,
            settings=Settings(compiled_roots=["broken.jar"]),
            target_branch="main",
            reporter=reporter,
            console=console,
            diff_provider=FakeDiffProvider(changed=[src("p.StandaloneTest")]),
            build_runner=MavenBuildRunner(maven, reporter=reporter),
        )

        outcome = orchestrator.run()

        assert outcome.aborted
        assert isinstance(outcome.error, CatalogReadError)
        assert outcome.stages[-2] == Stage.RESOLVING
        assert maven.commands_starting_with(*TEST) == []
