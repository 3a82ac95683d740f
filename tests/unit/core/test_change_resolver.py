"""
Unit tests for ChangeResolver.

Tests selection of changed units and of the concrete units inheriting
from them.

Usage:
    pytest tests/unit/core/test_change_resolver.py
"""

import pytest

from changetest.core.change_resolver import ChangeResolver
from changetest.core.unit_catalog import UnitCatalog
from changetest.domain.exceptions import UnitNotFoundError
from changetest.domain.models import Unit
from tests.helpers.class_files import write_class


def source_of(unit_id: str) -> str:
    return "src/test/java/" + unit_id.replace(".", "/") + ".java"


@pytest.fixture
def resolver(reporter):
    return ChangeResolver("src/test/java/", ".java", reporter)


@pytest.fixture
def catalog():
    """GrandParent <- Parent <- ChildA, ChildB plus a lone Standalone."""
    return UnitCatalog(
        [
            Unit("p.GrandParent", abstract=True),
            Unit("p.Parent", abstract=True, parent_id="p.GrandParent"),
            Unit("p.ChildA", parent_id="p.Parent"),
            Unit("p.ChildB", parent_id="p.Parent"),
            Unit("p.Standalone"),
        ]
    )


class TestChangeResolver:
    """Unit tests for ChangeResolver.resolve."""

    # ================================================================
    # Selection
    # ================================================================

    def test_abstract_parent_selects_concrete_children(self, resolver, catalog):
        """Test a changed abstract class runs through its subclasses."""
        result = resolver.resolve([source_of("p.Parent")], catalog)

        assert result.unit_ids() == ["p.ChildA", "p.ChildB"]

    def test_standalone_unit_selects_itself(self, resolver, catalog):
        """Test a concrete class without children runs alone."""
        result = resolver.resolve([source_of("p.Standalone")], catalog)

        assert result.unit_ids() == ["p.Standalone"]

    def test_grandparent_selects_transitive_descendants(self, resolver, catalog):
        """Test abstract intermediates are skipped, leaves are kept."""
        result = resolver.resolve([source_of("p.GrandParent")], catalog)

        assert result.unit_ids() == ["p.ChildA", "p.ChildB"]
        assert "p.Parent" not in result

    def test_concrete_parent_selects_itself_first(self, resolver):
        """Test a concrete base runs together with its subclasses."""
        catalog = UnitCatalog(
            [Unit("q.Sub", parent_id="q.Base"), Unit("q.Base")],
        )

        result = resolver.resolve([source_of("q.Base")], catalog)

        assert result.unit_ids() == ["q.Base", "q.Sub"]

    def test_changed_interface_selects_implementors(self, resolver):
        """Test a changed interface runs through every implementing class."""
        catalog = UnitCatalog(
            [
                Unit("p.CommonTests", abstract=True),
                Unit("p.ImplATest", interface_ids=("p.CommonTests",)),
                Unit("p.ImplBTest", interface_ids=("p.CommonTests",)),
                Unit("p.UnrelatedTest"),
            ]
        )

        result = resolver.resolve([source_of("p.CommonTests")], catalog)

        assert result.unit_ids() == ["p.ImplATest", "p.ImplBTest"]

    # ================================================================
    # Deduplication and filtering
    # ================================================================

    def test_siblings_and_parent_selected_once(self, resolver, catalog):
        """Test overlapping changes keep first-insertion order."""
        result = resolver.resolve(
            [
                source_of("p.ChildB"),
                source_of("p.Parent"),
                source_of("p.ChildA"),
                source_of("p.Standalone"),
            ],
            catalog,
        )

        assert result.unit_ids() == ["p.ChildB", "p.ChildA", "p.Standalone"]

    def test_non_test_paths_ignored(self, resolver, catalog):
        """Test production sources and resources never reach the catalog."""
        result = resolver.resolve(
            [
                "src/main/java/p/Parent.java",
                "pom.xml",
                "src/test/java/p/fixture.json",
            ],
            catalog,
        )

        assert not result

    def test_empty_diff(self, resolver, catalog):
        """Test no changes gives an empty set."""
        assert len(resolver.resolve([], catalog)) == 0

    def test_repeated_calls_agree(self, resolver, catalog):
        """Test each call returns a fresh, equal result."""
        paths = [source_of("p.Parent"), source_of("p.Standalone")]

        first = resolver.resolve(paths, catalog)
        second = resolver.resolve(paths, catalog)

        assert first is not second
        assert first.unit_ids() == second.unit_ids()

    # ================================================================
    # Errors
    # ================================================================

    def test_stale_build_raises(self, resolver, catalog):
        """Test a changed source missing from compiled output aborts."""
        with pytest.raises(UnitNotFoundError) as exc_info:
            resolver.resolve(
                [source_of("p.Standalone"), source_of("p.NewTest")], catalog
            )

        assert exc_info.value.unit_id == "p.NewTest"

    def test_resolves_against_compiled_output(self, classes_dir, add_class, reporter):
        """Test resolution over a catalog read from class files."""
        add_class("basic.project.AbstractDaoTest", abstract=True)
        add_class("basic.project.UserDaoTest", "basic.project.AbstractDaoTest")
        add_class("basic.project.OrderDaoTest", "basic.project.AbstractDaoTest")
        add_class("basic.project.OtherTest")

        catalog = UnitCatalog.load([classes_dir], reporter)
        result = ChangeResolver(reporter=reporter).resolve(
            [source_of("basic.project.AbstractDaoTest")], catalog
        )

        assert sorted(result.unit_ids()) == [
            "basic.project.OrderDaoTest",
            "basic.project.UserDaoTest",
        ]

    def test_interface_from_compiled_output(self, classes_dir, reporter):
        """Test implementors read from class files follow a changed interface."""
        write_class(classes_dir, "basic.project.CommonTests", interface=True)
        write_class(
            classes_dir,
            "basic.project.ImplATest",
            interfaces=("basic.project.CommonTests",),
        )
        write_class(
            classes_dir,
            "basic.project.AbstractImplTest",
            abstract=True,
            interfaces=("basic.project.CommonTests",),
        )
        write_class(
            classes_dir, "basic.project.ImplBTest", "basic.project.AbstractImplTest"
        )

        catalog = UnitCatalog.load([classes_dir], reporter)
        result = ChangeResolver(reporter=reporter).resolve(
            [source_of("basic.project.CommonTests")], catalog
        )

        assert sorted(result.unit_ids()) == [
            "basic.project.ImplATest",
            "basic.project.ImplBTest",
        ]
