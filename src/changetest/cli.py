"""
changetest CLI - Command-line interface for change-driven testing.

Provides commands for:
- Run mode (diff against merge target, compile, run affected tests)
- Dry run (stop after selection)
- Catalog listing (units found in compiled output)

Log output via SystemReporter with ChangeTestEmoji, panels via Rich.
"""

import argparse
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.console import Console

from changetest import __version__
from changetest.config.settings import Settings, load_config
from changetest.core.orchestrator import Orchestrator
from changetest.core.reporter import ChangeTestReporter
from changetest.core.unit_catalog import UnitCatalog
from changetest.domain.exceptions import ChangeTestError
from changetest.reporter.emojis import ChangeTestEmoji
from changetest.reporter.system_reporter import SystemReporter

EXIT_OK = 0
EXIT_ABORTED = 1
EXIT_ERROR = 2


def run_selection(
    project_root: Path,
    settings: Settings,
    target_branch: Optional[str],
    dry_run: bool,
    reporter: SystemReporter,
    console: Console,
) -> int:
    """
    Run change-driven test selection.

    Args:
        project_root: Project root directory
        settings: Loaded configuration
        target_branch: Explicit target branch (None = ask GitLab)
        dry_run: Select without running tests
        reporter: SystemReporter instance
        console: Rich console

    Returns:
        Exit code (0 = done, 1 = aborted)
    """
    orchestrator = Orchestrator(
        project_root=project_root,
        settings=settings,
        target_branch=target_branch,
        dry_run=dry_run,
        reporter=reporter,
        console=console,
    )

    outcome = orchestrator.run()

    return EXIT_ABORTED if outcome.aborted else EXIT_OK


def list_catalog(
    project_root: Path, settings: Settings, reporter: SystemReporter, console: Console
) -> int:
    """
    List units in the current compiled output.

    Does not compile; shows whatever the last build produced.

    Args:
        project_root: Project root directory
        settings: Loaded configuration
        reporter: SystemReporter instance
        console: Rich console

    Returns:
        Exit code (0)
    """
    roots = [
        path if path.is_absolute() else project_root / path
        for path in (Path(root) for root in settings.compiled_roots)
    ]

    catalog = UnitCatalog.load(roots, reporter)

    if not len(catalog):
        reporter.info(
            f"{ChangeTestEmoji.INFO} No compiled units found. "
            f"Build the project first.",
            context="CLI",
        )
        return EXIT_OK

    console.print(ChangeTestReporter().create_catalog_table(catalog.units()))

    abstract = sum(1 for unit in catalog if unit.abstract)
    reporter.info(
        f"{ChangeTestEmoji.SUMMARY} Total: {len(catalog)} unit(s), "
        f"{abstract} abstract",
        context="CLI",
    )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="changetest",
        description="Run only the tests changed on this branch, "
        "plus every test class inheriting from them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  changetest run                    # Diff against the merge request target
  changetest run --target main      # Diff against an explicit branch
  changetest run --dry-run          # Show what would run
  changetest catalog                # List compiled test units
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    # Global options
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "-c", "--config", help="YAML config file (default: changetest.yaml)"
    )
    parser.add_argument(
        "-C",
        "--project-root",
        type=Path,
        default=None,
        help="Project root (default: current directory)",
    )

    subparsers = parser.add_subparsers(
        dest="command", help="Command to run", required=True
    )

    run_parser = subparsers.add_parser("run", help="Select and run affected tests")
    run_parser.add_argument(
        "--target",
        help="Target branch to diff against (default: from GitLab merge request)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compile and select, but do not run tests",
    )
    run_parser.add_argument("--gitlab-server", help="GitLab server URL")
    run_parser.add_argument("--gitlab-token", help="GitLab API token")
    run_parser.add_argument(
        "--gitlab-project-id", type=int, help="GitLab project id"
    )

    _ = subparsers.add_parser("catalog", help="List units in compiled output")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    project_root = (args.project_root or Path.cwd()).resolve()

    overrides = {"verbose": True if args.verbose else None}
    if args.command == "run":
        overrides.update(
            gitlab_server=args.gitlab_server,
            gitlab_token=args.gitlab_token,
            gitlab_project_id=args.gitlab_project_id,
        )

    try:
        settings = load_config(
            config_file=args.config, project_root=project_root, **overrides
        )
    except (FileNotFoundError, ValueError, ValidationError) as e:
        print(
            f"{ChangeTestEmoji.TEST_ERROR} Invalid configuration: {e}",
            file=sys.stderr,
        )
        return EXIT_ERROR

    cli_reporter = SystemReporter(
        name="changetest",
        log_dir=settings.log_dir,
        level=10 if settings.verbose else 20,
        verbose=2 if settings.verbose else 1,
    )
    console = Console()

    try:
        if args.command == "run":
            return run_selection(
                project_root,
                settings,
                args.target,
                args.dry_run,
                cli_reporter,
                console,
            )

        elif args.command == "catalog":
            return list_catalog(project_root, settings, cli_reporter, console)

    except KeyboardInterrupt:
        cli_reporter.warning(
            f"\n{ChangeTestEmoji.STOPPED} Interrupted by user", context="CLI"
        )
        return EXIT_ERROR

    except ChangeTestError as e:
        cli_reporter.error(f"{ChangeTestEmoji.TEST_ERROR} {e.message}", context="CLI")
        return EXIT_ABORTED

    except Exception as e:
        cli_reporter.error(
            f"{ChangeTestEmoji.TEST_ERROR} Fatal error: {e}", context="CLI"
        )
        if settings.verbose:
            cli_reporter.error(traceback.format_exc(), context="CLI")
        return EXIT_ERROR

    finally:
        cli_reporter.close()

    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
