"""
Status indicator state machine.

States: idle -> loading -> {success, running, failure, error}, and back
to loading on every new update request. Each request takes a sequence
number when it begins; a completion is applied only when it is newer
than the last applied one, so a slow earlier request can never overwrite
the result of a later one.
"""

from typing import List, Optional

from travis_status.models.status import (
    DisplayState,
    ErrorReport,
    IndicatorView,
    Rendering,
    SnapshotState,
    StatusSnapshot,
    UpdateResult,
)
from travis_status.services.presenter import render_hidden, render_loading, render_result
from travis_status.utils.logging import get_logger


logger = get_logger(__name__)

_SNAPSHOT_STATES = {
    SnapshotState.PASSED: DisplayState.SUCCESS,
    SnapshotState.RUNNING: DisplayState.RUNNING,
    SnapshotState.FAILED: DisplayState.FAILURE,
}


def display_state_for(result: UpdateResult) -> DisplayState:
    if result is None:
        return DisplayState.IDLE
    if isinstance(result, ErrorReport):
        return DisplayState.ERROR
    return _SNAPSHOT_STATES[result.state]


class StatusIndicator:
    """A single status indicator, owned by one session."""

    def __init__(self) -> None:
        self.state = DisplayState.IDLE
        self.rendering: Rendering = render_hidden()
        self.snapshot: Optional[StatusSnapshot] = None
        self.error: Optional[ErrorReport] = None
        self.request_seq = 0
        self.applied_seq = 0
        self._notifications: List[ErrorReport] = []

    def begin(self) -> int:
        """
        Enter the loading state for a new update request.

        Returns:
            Sequence number of the request
        """
        self.request_seq += 1
        self.state = DisplayState.LOADING
        self.snapshot = None
        self.error = None
        self.rendering = render_loading()
        return self.request_seq

    def complete(self, seq: int, result: UpdateResult) -> bool:
        """
        Apply the result of an update request.

        Args:
            seq: Sequence number returned by ``begin``
            result: Snapshot, error report, or None for "not a Travis project"

        Returns:
            True if applied, False if a newer result was already shown
        """
        if seq <= self.applied_seq:
            logger.info(
                f"Discarding stale status update {seq}",
                extra={"request_seq": seq, "applied_seq": self.applied_seq},
            )
            return False

        self.applied_seq = seq
        self.state = display_state_for(result)
        self.snapshot = result if isinstance(result, StatusSnapshot) else None
        self.error = result if isinstance(result, ErrorReport) else None
        self.rendering = render_hidden() if result is None else render_result(result)
        return True

    def notify(self, report: ErrorReport) -> None:
        """Queue a one-time warning for the user."""
        self._notifications.append(report)

    def drain_notifications(self) -> List[ErrorReport]:
        pending, self._notifications = self._notifications, []
        return pending

    def view(self) -> IndicatorView:
        return IndicatorView(
            state=self.state,
            request_seq=self.request_seq,
            applied_seq=self.applied_seq,
            rendering=self.rendering,
            snapshot=self.snapshot,
            error=self.error,
            notifications=list(self._notifications),
        )
