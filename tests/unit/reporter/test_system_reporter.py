"""
Unit tests for SystemReporter.

Usage:
    pytest tests/unit/reporter/test_system_reporter.py
"""

import logging

from changetest.reporter.system_reporter import SystemReporter


class TestSystemReporter:
    """Unit tests for verbose filtering and file output."""

    def test_context_prefix(self, capsys):
        """Test messages carry their context tag."""
        reporter = SystemReporter(name="reporter_prefix", verbose=1)

        reporter.info("hello", context="Unit")
        reporter.close()

        assert "[Unit] hello" in capsys.readouterr().out

    def test_verbose_filtering(self, capsys):
        """Test messages above the verbose level are dropped."""
        reporter = SystemReporter(
            name="reporter_filter", level=logging.DEBUG, verbose=1
        )

        reporter.debug("detail")
        reporter.info("shown")
        reporter.info("hidden", verbose_level=2)
        reporter.error("always")
        reporter.close()

        out = capsys.readouterr().out
        assert "shown" in out
        assert "always" in out
        assert "detail" not in out
        assert "hidden" not in out

    def test_set_verbose_clamps(self):
        """Test verbosity stays within 0-3."""
        reporter = SystemReporter(name="reporter_clamp", verbose=1)

        reporter.set_verbose(9)
        assert reporter.verbose == 3

        reporter.set_verbose(-2)
        assert reporter.verbose == 0
        reporter.close()

    def test_log_file(self, tmp_path):
        """Test log_dir adds a per-run file."""
        reporter = SystemReporter(name="reporter_file", log_dir=str(tmp_path / "logs"))

        reporter.warning("written to disk", context="File")
        reporter.close()

        assert reporter.log_file == str(tmp_path / "logs" / "reporter_file.log")
        content = (tmp_path / "logs" / "reporter_file.log").read_text()
        assert "[File] written to disk" in content

    def test_close_detaches_handlers(self):
        """Test close() removes every handler."""
        reporter = SystemReporter(name="reporter_close")

        reporter.close()

        assert reporter.logger.handlers == []
