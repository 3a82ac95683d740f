"""Logging and emoji definitions for changetest."""

from changetest.reporter.emojis import ChangeTestEmoji, ComponentEmoji
from changetest.reporter.system_reporter import SystemReporter

__all__ = [
    "ChangeTestEmoji",
    "ComponentEmoji",
    "SystemReporter",
]
