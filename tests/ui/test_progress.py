from __future__ import annotations

import io

import pytest
from rich.console import Console

from advisor_harvester.ui import ProgressReporter
from advisor_harvester.ui.progress import ProgressState


def test_disabled_reporter_still_counts() -> None:
    reporter = ProgressReporter(enabled=False)
    reporter.start(3, "Fetching agent IDs", completed=1)
    reporter.advance()
    reporter.advance(success=False)
    reporter.close()
    assert reporter.state == ProgressState(total=3, completed=3, success=1, failed=1)


def test_advance_before_start_raises() -> None:
    with pytest.raises(RuntimeError):
        ProgressReporter(enabled=False).advance()


def test_non_terminal_console_disables_rendering() -> None:
    console = Console(file=io.StringIO(), force_terminal=False)
    reporter = ProgressReporter(console=console)
    reporter.start(2, "Fetching full details")
    reporter.advance()
    reporter.close()
    assert reporter.enabled is False
    assert console.file.getvalue() == ""
    assert reporter.state.success == 1


def test_start_resets_counters_between_phases() -> None:
    reporter = ProgressReporter(enabled=False)
    reporter.start(2, "Fetching agent IDs")
    reporter.advance()
    reporter.start(5, "Fetching full details")
    assert reporter.state == ProgressState(total=5)
