"""
changetest reporter - creates Rich renderable objects for a run.

Responsible for:
- Creating Rich visual components (Panels, Tables, Text)
- Formatting changed files, selected units and outcomes
- NOT responsible for printing/rendering

The orchestrator and CLI handle rendering via Rich Console.
"""

from typing import Iterable, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from changetest.domain.models import ExecutionSet, RunOutcome, Stage, Unit

PANEL_WIDTH = 67
MAX_LISTED_FILES = 20


class ChangeTestReporter:
    """
    Creates Rich renderable objects for selection results.

    Returns Rich objects (Panel, Table, Text) that can be rendered
    by a Rich Console. Does not handle printing itself.
    """

    def create_changes_panel(
        self, target_branch: str, changed_paths: Sequence[str], test_source_root: str
    ) -> Panel:
        """
        Create Rich Panel listing files changed against the target.

        Args:
            target_branch: Branch the diff was computed against
            changed_paths: Changed repository-relative paths
            test_source_root: Prefix that marks test sources

        Returns:
            Rich Panel object
        """
        content = Text()
        content.append("\n")

        test_count = sum(1 for p in changed_paths if p.startswith(test_source_root))
        file_word = "file" if len(changed_paths) == 1 else "files"
        content.append(
            f"  {len(changed_paths)} changed {file_word} "
            f"({test_count} under {test_source_root})\n\n"
        )

        for path in changed_paths[:MAX_LISTED_FILES]:
            style = "bold" if path.startswith(test_source_root) else "dim"
            content.append(f"    {path}\n", style=style)

        hidden = len(changed_paths) - MAX_LISTED_FILES
        if hidden > 0:
            content.append(f"    ... and {hidden} more\n", style="dim")

        return Panel(
            content,
            title=f"[bold] Changes against {target_branch}[/bold]",
            border_style="white",
            padding=(0, 1),
            width=PANEL_WIDTH,
        )

    def create_selection_panel(self, execution_set: ExecutionSet) -> Panel:
        """
        Create Rich Panel with the units selected to run.

        Args:
            execution_set: Selected units in execution order

        Returns:
            Rich Panel object
        """
        content = Text()
        content.append("\n")

        if not execution_set:
            content.append(
                "   No test units affected by these changes\n", style="yellow"
            )
        else:
            for index, unit in enumerate(execution_set, start=1):
                content.append(f"  {index:>3}. ")
                content.append(unit.simple_name, style="bold")
                content.append(f"  {unit.unit_id}\n", style="dim")

            content.append("\n")
            unit_word = "unit" if len(execution_set) == 1 else "units"
            content.append(f"  Total: {len(execution_set)} test {unit_word} selected\n")

        return Panel(
            content,
            title="[bold] Selected Tests[/bold]",
            border_style="blue",
            padding=(0, 1),
            width=PANEL_WIDTH,
        )

    def create_catalog_table(self, units: Iterable[Unit]) -> Table:
        """
        Create Rich Table listing catalog units.

        Args:
            units: Catalog units

        Returns:
            Rich Table object
        """
        table = Table(title="Unit Catalog", show_lines=False, width=PANEL_WIDTH + 30)
        table.add_column("Unit", style="bold", overflow="fold")
        table.add_column("Kind", justify="center")
        table.add_column("Parent", style="dim", overflow="fold")

        for unit in units:
            if unit.abstract:
                kind = Text("abstract", style="yellow")
            else:
                kind = Text("concrete")
            table.add_row(unit.unit_id, kind, unit.parent_id or "-")

        return table

    def create_final_summary(self, outcome: RunOutcome, duration: float) -> Panel:
        """
        Create Rich Panel for the final summary.

        Args:
            outcome: Result of the orchestrator run
            duration: Total run time in seconds

        Returns:
            Rich Panel object
        """
        if outcome.stage == Stage.ABORTED:
            status_text = "ABORTED"
            status_style = "red"
        elif outcome.test_failure is not None:
            status_text = "DONE - TESTS FAILED"
            status_style = "yellow"
        else:
            status_text = "DONE"
            status_style = "green"

        content = Text()
        content.append("\n")
        content.append(f"  Target branch:  {outcome.target_branch or '-'}\n")
        content.append(f"  Changed files:  {len(outcome.changed_paths)}\n")
        content.append(f"  Selected units: {len(outcome.execution_set)}\n")
        content.append(
            "  Stages:         "
            + " → ".join(stage.value for stage in outcome.stages)
            + "\n"
        )
        content.append(f"  Duration:       {duration:.2f}s\n")
        content.append("\n")

        if outcome.reason:
            content.append(f"  {outcome.reason}\n\n", style="yellow")

        if outcome.error is not None:
            content.append("  Error:\n", style="red")
            for line in str(outcome.error).splitlines()[:10]:
                content.append(f"    {line}\n", style="red")
            content.append("\n")

        content.append("  Status: ", style=status_style)
        content.append(status_text, style=f"bold {status_style}")
        content.append("\n")

        return Panel(
            content,
            title="[bold] FINAL SUMMARY[/bold]",
            border_style="white",
            padding=(0, 1),
            width=PANEL_WIDTH,
        )
