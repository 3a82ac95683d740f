"""
Core components for changetest.

Modules:
- command: Runs external tools
- diff_provider: Branch, clean tree and diff queries via git
- target_resolver: Merge target lookup via GitLab
- class_file: Compiled class header decoding
- unit_catalog: Index of compiled units
- change_resolver: Changed paths to execution set
- build_runner: Maven compile and test invocations
- reporter: Rich renderables
- orchestrator: Run state machine
"""

from changetest.core.build_runner import MavenBuildRunner
from changetest.core.change_resolver import ChangeResolver
from changetest.core.command import CommandRunner
from changetest.core.diff_provider import GitDiffProvider
from changetest.core.orchestrator import Orchestrator
from changetest.core.reporter import ChangeTestReporter
from changetest.core.target_resolver import GitLabTargetResolver
from changetest.core.unit_catalog import UnitCatalog

__all__ = [
    "ChangeResolver",
    "ChangeTestReporter",
    "CommandRunner",
    "GitDiffProvider",
    "GitLabTargetResolver",
    "MavenBuildRunner",
    "Orchestrator",
    "UnitCatalog",
]
