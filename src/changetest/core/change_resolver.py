"""
Change resolver - turns changed paths into the units that must run.

For every changed test source file:
1. Skip anything outside the test source root or with another extension
2. Derive the unit id and resolve it in the catalog (stale build aborts)
3. Select the unit itself when it is concrete
4. Select every concrete unit that inherits from it, since the changed
   logic executes through each subclass
"""

from typing import Iterable, Optional

from changetest.core.unit_catalog import UnitCatalog
from changetest.domain.models import ExecutionSet, Unit, unit_id_for_path
from changetest.reporter.emojis import ChangeTestEmoji
from changetest.reporter.system_reporter import SystemReporter


class ChangeResolver:
    """
    Computes the execution set for a diff.

    Stateless between calls: each resolve() builds and returns a fresh
    ExecutionSet, so repeated calls on the same input agree in
    membership and order.
    """

    def __init__(
        self,
        test_source_root: str = "src/test/java/",
        extension: str = ".java",
        reporter: Optional[SystemReporter] = None,
    ):
        """
        Initialize change resolver.

        Args:
            test_source_root: Repository-relative prefix of test sources
            extension: Test source file extension
            reporter: Optional reporter for logging
        """
        self.test_source_root = test_source_root
        self.extension = extension
        self.reporter = reporter or SystemReporter(
            name="change_resolver", level=20, verbose=1
        )

    def resolve(
        self, changed_paths: Iterable[str], catalog: UnitCatalog
    ) -> ExecutionSet:
        """
        Select units affected by changed paths.

        Args:
            changed_paths: Repository-relative changed files
            catalog: Catalog built from the current compiled output

        Returns:
            ExecutionSet in first-insertion order

        Raises:
            UnitNotFoundError: If a changed test source has no compiled unit
            InvariantViolationError: If the catalog is inconsistent
        """
        execution_set = ExecutionSet()

        for path in changed_paths:
            unit_id = unit_id_for_path(path, self.test_source_root, self.extension)

            if unit_id is None:
                self.reporter.debug(
                    f"Ignoring non-test change: {path}", context="ChangeResolver"
                )
                continue

            unit = catalog.load_by_name(unit_id)
            self.reporter.debug(
                f"Loaded unit '{unit.unit_id}' from {path}", context="ChangeResolver"
            )

            if unit.concrete:
                self._select(execution_set, unit)

            for descendant in catalog.specializations_of(unit_id):
                if descendant.concrete:
                    self._select(execution_set, descendant, via=unit)

        return execution_set

    def _select(
        self, execution_set: ExecutionSet, unit: Unit, via: Optional[Unit] = None
    ) -> None:
        """Add unit to the set, logging why it was selected."""
        if not execution_set.add(unit):
            return

        if via is None:
            self.reporter.debug(
                f"{ChangeTestEmoji.UNIT} Marking '{unit.unit_id}' to be tested",
                context="ChangeResolver",
            )
        else:
            self.reporter.debug(
                f"{ChangeTestEmoji.INHERITED} Marking '{unit.unit_id}' to be tested "
                f"as a child of '{via.unit_id}'",
                context="ChangeResolver",
            )
