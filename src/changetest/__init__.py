"""
changetest - run only the tests a branch touches.

Diffs the current branch against its merge request target, compiles the
project, and runs the changed test classes plus every class that
inherits from them.
"""

__version__ = "0.1.0"
