"""
Unit catalog - index of compiled test units.

Built from compiled output after every compilation (never cached).
Each class file contributes one Unit with explicit supertype pointers
taken from its declared super class and interfaces, so inheritance
queries walk those edges instead of loading classes.
"""

import zipfile
import zlib
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from changetest.core.class_file import ClassInfo, parse_class_file
from changetest.domain.exceptions import (
    CatalogReadError,
    InvariantViolationError,
    UnitNotFoundError,
)
from changetest.domain.models import Unit
from changetest.reporter.system_reporter import SystemReporter

CLASS_SUFFIX = ".class"
ARCHIVE_SUFFIXES = (".jar", ".zip")

# Metadata classes that never define a unit
SKIPPED_CLASS_FILES = ("module-info.class", "package-info.class")


class UnitCatalog:
    """
    In-memory index of all units found under the compiled roots.

    No reverse index is kept: specialization queries scan every unit
    and walk its supertype edges.
    """

    def __init__(self, units: Iterable[Unit] = ()):
        """
        Initialize catalog.

        Args:
            units: Units in discovery order; the same id may appear more
                   than once, which lookups report as an invariant
                   violation
        """
        self._order: List[Unit] = []
        self._entries: Dict[str, List[Unit]] = {}

        for unit in units:
            self._order.append(unit)
            self._entries.setdefault(unit.unit_id, []).append(unit)

    @classmethod
    def load(
        cls,
        roots: Sequence[Union[str, Path]],
        reporter: Optional[SystemReporter] = None,
    ) -> "UnitCatalog":
        """
        Build a catalog from compiled output.

        Args:
            roots: Class directories (walked recursively) or jar/zip
                   archives; missing roots are skipped
            reporter: Optional reporter for logging

        Returns:
            UnitCatalog over every class found

        Raises:
            ClassFileFormatError: If a class file is malformed
            CatalogReadError: If an archive or class file cannot be read
        """
        reporter = reporter or SystemReporter(name="unit_catalog", level=20, verbose=1)

        classes: List[Tuple[ClassInfo, str]] = []

        for root in roots:
            root_path = Path(root)

            if root_path.is_dir():
                found = list(_walk_directory(root_path))
            elif root_path.is_file() and root_path.suffix.lower() in ARCHIVE_SUFFIXES:
                found = list(_walk_archive(root_path))
            else:
                reporter.debug(
                    f"Skipping missing root: {root_path}", context="UnitCatalog"
                )
                continue

            reporter.debug(
                f"Found {len(found)} class(es) in {root_path}", context="UnitCatalog"
            )
            classes.extend(found)

        declared = {info.dotted_name for info, _ in classes}

        units = []
        for info, source in classes:
            super_name = info.dotted_super_name
            parent_id = super_name if super_name in declared else None
            interface_ids = tuple(
                name
                for name in (i.replace("/", ".") for i in info.interfaces)
                if name in declared
            )

            units.append(
                Unit(
                    unit_id=info.dotted_name,
                    abstract=info.is_abstract,
                    parent_id=parent_id,
                    interface_ids=interface_ids,
                    source=source,
                )
            )

        catalog = cls(units)

        reporter.info(
            f"Catalog built: {len(catalog)} unit(s) from {len(roots)} root(s)",
            context="UnitCatalog",
            verbose_level=2,
        )

        return catalog

    def load_by_name(self, unit_id: str) -> Unit:
        """
        Resolve a unit id.

        Args:
            unit_id: Fully qualified unit name

        Returns:
            The unit

        Raises:
            UnitNotFoundError: If no compiled artifact declares the name
            InvariantViolationError: If several artifacts declare it
        """
        entries = self._entries.get(unit_id)

        if not entries:
            raise UnitNotFoundError(unit_id)

        if len(entries) > 1:
            sources = [unit.source for unit in entries]
            raise InvariantViolationError(
                f"Unit '{unit_id}' is declared by {len(entries)} artifacts: "
                f"{', '.join(sources)}",
                details={"unit_id": unit_id, "sources": sources},
            )

        return entries[0]

    def specializations_of(self, unit_id: str) -> List[Unit]:
        """
        Find every unit that inherits from a unit, directly or not.

        Args:
            unit_id: Ancestor unit id

        Returns:
            Descendant units in catalog order, excluding unit_id itself

        Raises:
            InvariantViolationError: If the supertype edges loop
        """
        return [
            unit
            for unit in self._order
            if unit.unit_id != unit_id and self._descends_from(unit, unit_id)
        ]

    def _descends_from(self, unit: Unit, ancestor_id: str) -> bool:
        """
        Walk every supertype edge of unit (super class and interfaces).

        Diamonds through shared interfaces are visited once; only an
        edge back onto the current path is a cycle.
        """
        finished = set()
        # Depth-first over (unit id, remaining supertype ids)
        path = [unit.unit_id]
        stack = [(unit.unit_id, list(unit.supertype_ids))]

        while stack:
            current_id, pending = stack[-1]

            if not pending:
                stack.pop()
                path.pop()
                finished.add(current_id)
                continue

            supertype_id = pending.pop(0)
            if supertype_id == ancestor_id:
                return True

            if supertype_id in path:
                raise InvariantViolationError(
                    f"Inheritance cycle through '{supertype_id}' "
                    f"while walking supertypes of '{unit.unit_id}'",
                    details={"unit_id": unit.unit_id, "cycle_at": supertype_id},
                )

            entries = self._entries.get(supertype_id)
            if supertype_id in finished or not entries:
                continue

            path.append(supertype_id)
            stack.append((supertype_id, list(entries[0].supertype_ids)))

        return False

    def units(self) -> List[Unit]:
        """All units in discovery order."""
        return list(self._order)

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._entries

    def __iter__(self) -> Iterator[Unit]:
        return iter(self.units())

    def __len__(self) -> int:
        return len(self._order)


def _walk_directory(root: Path) -> Iterator[Tuple[ClassInfo, str]]:
    """Yield every class under a compiled output directory."""
    for path in sorted(root.rglob(f"*{CLASS_SUFFIX}")):
        if path.name in SKIPPED_CLASS_FILES or not path.is_file():
            continue

        try:
            data = path.read_bytes()
        except OSError as e:
            raise CatalogReadError(
                f"Cannot read class file {path}: {e}", details={"origin": str(path)}
            ) from e

        yield parse_class_file(data, origin=str(path)), str(path)


def _walk_archive(archive: Path) -> Iterator[Tuple[ClassInfo, str]]:
    """Yield every class inside a jar or zip archive."""
    try:
        zf = zipfile.ZipFile(archive)
    except (zipfile.BadZipFile, OSError) as e:
        raise CatalogReadError(
            f"Cannot open archive {archive}: {e}", details={"origin": str(archive)}
        ) from e

    with zf:
        for name in sorted(zf.namelist()):
            if not name.endswith(CLASS_SUFFIX) or name.endswith("/"):
                continue
            if name.rsplit("/", 1)[-1] in SKIPPED_CLASS_FILES:
                continue
            # Multi-release and shaded metadata entries are not units
            if name.startswith("META-INF/"):
                continue

            origin = f"{archive}!/{name}"
            try:
                data = zf.read(name)
            except (zipfile.BadZipFile, zlib.error, OSError) as e:
                raise CatalogReadError(
                    f"Cannot read {origin}: {e}", details={"origin": origin}
                ) from e

            yield parse_class_file(data, origin=origin), origin
