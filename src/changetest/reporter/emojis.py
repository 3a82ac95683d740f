"""
Emoji definitions for changetest output.

Emojis for git operations, catalog discovery, builds and test runs.
"""

from typing import Dict, List


class ComponentEmoji:
    """
    Base class for emoji collections.

    Class attributes define emojis as constants; no instances needed.
    """

    @classmethod
    def get_all(cls) -> Dict[str, str]:
        """
        Get all emoji definitions from this category.

        Returns:
            Dictionary mapping emoji name to emoji character
        """
        result: Dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            for name, value in vars(klass).items():
                if name.isupper() and isinstance(value, str):
                    result[name] = value
        return result

    @classmethod
    def list_names(cls) -> List[str]:
        """Get list of all emoji names in this category."""
        return [
            name for name in dir(cls) if not name.startswith("_") and name.isupper()
        ]


class ChangeTestEmoji(ComponentEmoji):
    """
    Change-driven test selection emojis.

    Categories:
        - Git: Branches, diffs and working tree state
        - Review: Merge request lookup
        - Build: Compilation
        - Catalog: Compiled unit discovery
        - Testing: Test execution and results
    """

    # ============================================================
    # Git Operations
    # ============================================================
    GIT = "🔀"  # Git operation
    GIT_DIFF = "🔍"  # Git diff
    BRANCH = "🌿"  # Branch name
    DIRTY = "🚧"  # Uncommitted changes
    CHANGED = "📝"  # Changed file

    # ============================================================
    # Review Lookup
    # ============================================================
    REVIEW = "🔗"  # Merge request lookup
    TARGET = "🎯"  # Target branch

    # ============================================================
    # Build
    # ============================================================
    BUILD = "🔨"  # Compilation
    BUILD_FAIL = "🧱"  # Compilation failed

    # ============================================================
    # Catalog
    # ============================================================
    DISCOVER = "🔎"  # Catalog scan
    UNIT = "📦"  # Concrete unit
    ABSTRACT = "🧬"  # Abstract unit
    INHERITED = "↳"  # Selected through inheritance

    # ============================================================
    # Testing
    # ============================================================
    TEST_RUN = "🔬"  # Test runner active
    TEST_PASS = "✅"  # Test run passed
    TEST_FAIL = "❌"  # Test run failed
    TEST_ERROR = "💥"  # Fatal error

    # ============================================================
    # Results & Modes
    # ============================================================
    SUMMARY = "📊"  # Summary
    SUCCESS = "🎉"  # Done
    WARNING = "⚠️"  # Warning message
    INFO = "ℹ️"  # Information
    STOPPED = "⏹️"  # Aborted
    DRY_RUN = "🏃"  # Dry run mode
