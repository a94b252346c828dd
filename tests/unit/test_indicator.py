"""Unit tests for the status indicator state machine."""

from travis_status.models.status import (
    DisplayState,
    ErrorKind,
    ErrorReport,
    SnapshotState,
    StatusSnapshot,
)
from travis_status.services.indicator import StatusIndicator


def snapshot(label, state=SnapshotState.PASSED):
    return StatusSnapshot(state=state, build_number=1, label=label)


class TestStatusIndicator:
    """Test display state transitions and stale-result handling."""

    def test_starts_idle_and_hidden(self):
        indicator = StatusIndicator()

        assert indicator.state == DisplayState.IDLE
        assert not indicator.rendering.visible

    def test_begin_enters_loading(self):
        indicator = StatusIndicator()

        seq = indicator.begin()

        assert seq == 1
        assert indicator.state == DisplayState.LOADING
        assert indicator.rendering.icon == "sync"

    def test_terminal_states(self):
        indicator = StatusIndicator()
        cases = [
            (snapshot("a", SnapshotState.PASSED), DisplayState.SUCCESS),
            (snapshot("a", SnapshotState.RUNNING), DisplayState.RUNNING),
            (snapshot("a", SnapshotState.FAILED), DisplayState.FAILURE),
            (ErrorReport(kind=ErrorKind.QUERY_FAILURE, message="boom"), DisplayState.ERROR),
            (None, DisplayState.IDLE),
        ]

        for result, expected in cases:
            seq = indicator.begin()
            assert indicator.complete(seq, result)
            assert indicator.state == expected

    def test_terminal_state_is_not_sticky(self):
        indicator = StatusIndicator()
        indicator.complete(indicator.begin(), ErrorReport(kind=ErrorKind.NEVER_BUILT, message="x"))

        indicator.begin()

        assert indicator.state == DisplayState.LOADING

    def test_loading_drops_previous_result(self):
        indicator = StatusIndicator()
        indicator.complete(indicator.begin(), snapshot("0123456"))

        indicator.begin()
        view = indicator.view()

        assert view.state == DisplayState.LOADING
        assert view.snapshot is None
        assert view.error is None

        indicator.complete(indicator.begin(), ErrorReport(kind=ErrorKind.QUERY_FAILURE, message="boom"))
        indicator.begin()

        assert indicator.error is None

    def test_error_keeps_cause_in_tooltip(self):
        indicator = StatusIndicator()

        indicator.complete(indicator.begin(), ErrorReport(kind=ErrorKind.REPOSITORY_NOT_FOUND, message="not found"))

        assert indicator.error.kind == ErrorKind.REPOSITORY_NOT_FOUND
        assert indicator.snapshot is None
        assert indicator.rendering.tooltip == "not found"

    def test_stale_completion_is_discarded(self):
        indicator = StatusIndicator()
        first = indicator.begin()
        second = indicator.begin()

        assert indicator.complete(second, snapshot("second"))
        assert not indicator.complete(first, snapshot("first"))

        assert indicator.snapshot.label == "second"
        assert indicator.applied_seq == second

    def test_in_order_completions_are_both_applied(self):
        indicator = StatusIndicator()
        first = indicator.begin()
        second = indicator.begin()

        assert indicator.complete(first, snapshot("first"))
        assert indicator.snapshot.label == "first"
        assert indicator.complete(second, snapshot("second"))
        assert indicator.snapshot.label == "second"

    def test_notifications_are_drained_once(self):
        indicator = StatusIndicator()
        report = ErrorReport(kind=ErrorKind.PROXY_CONFIGURATION_INVALID, message="bad proxy")
        indicator.notify(report)

        assert indicator.view().notifications == [report]
        assert indicator.drain_notifications() == [report]
        assert indicator.drain_notifications() == []
        assert indicator.view().notifications == []

    def test_view(self):
        indicator = StatusIndicator()
        indicator.complete(indicator.begin(), snapshot("0123456"))

        view = indicator.view()

        assert view.state == DisplayState.SUCCESS
        assert view.request_seq == 1
        assert view.applied_seq == 1
        assert view.snapshot.label == "0123456"
        assert view.rendering.text == "Travis CI 0123456 $(check)"
