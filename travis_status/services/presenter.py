"""
Rendering of status results for a status indicator.

Turns a snapshot or error report into an icon/text/tooltip triple and
builds the "open in browser" link of a workspace.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from travis_status.models.identity import RepositoryIdentity
from travis_status.models.status import (
    ErrorReport,
    Rendering,
    SnapshotState,
    StatusSnapshot,
)
from travis_status.services.reconciler import is_travis_project


TITLE = "Travis CI"

ICON_LOADING = "sync"
ICON_PASSED = "check"
ICON_RUNNING = "clock"
ICON_FAILED = "x"
ICON_ERROR = "stop"

LOADING_TOOLTIP = "Fetching Travis CI status for this project..."

_STATE_ICONS = {
    SnapshotState.PASSED: ICON_PASSED,
    SnapshotState.RUNNING: ICON_RUNNING,
    SnapshotState.FAILED: ICON_FAILED,
}

_STATE_SENTENCES = {
    SnapshotState.PASSED: "Build {number} has passed.",
    SnapshotState.RUNNING: "Build {number} is currently running.",
    SnapshotState.FAILED: "Build {number} failed.",
}


def indicator_text(icon: str, label: Optional[str] = None) -> str:
    if label:
        return f"{TITLE} {label} $({icon})"
    return f"{TITLE} $({icon})"


def format_duration(duration_seconds: Optional[int]) -> str:
    """Whole minutes, rounded half up: ``1 minute``, ``3 minutes``."""
    if duration_seconds is None:
        return "unknown"
    minutes = int(duration_seconds / 60 + 0.5)
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


def format_started(started_at: Optional[datetime]) -> str:
    if started_at is None:
        return "unknown"
    return started_at.date().isoformat()


def render_loading() -> Rendering:
    return Rendering(icon=ICON_LOADING, text=indicator_text(ICON_LOADING), tooltip=LOADING_TOOLTIP)


def render_hidden() -> Rendering:
    return Rendering(icon="", text="", tooltip="", visible=False)


def render_result(result: Union[StatusSnapshot, ErrorReport]) -> Rendering:
    """
    Render a snapshot or error report.

    Args:
        result: Outcome of an update cycle

    Returns:
        Rendering for the indicator; errors put their cause in the tooltip
    """
    if isinstance(result, ErrorReport):
        return Rendering(icon=ICON_ERROR, text=indicator_text(ICON_ERROR), tooltip=result.message)

    icon = _STATE_ICONS[result.state]
    headline = _STATE_SENTENCES[result.state].format(number=result.build_number)
    tooltip = (
        f"{headline}\n"
        f"Started: {format_started(result.started_at)}\n"
        f"Duration: {format_duration(result.duration_seconds)}"
    )
    return Rendering(icon=icon, text=indicator_text(icon, result.label), tooltip=tooltip)


def build_open_url(
    identity: RepositoryIdentity,
    web_base: str,
    workspace_root: Optional[Union[str, Path]] = None,
) -> Optional[str]:
    """
    Build the Travis page URL of a repository.

    Args:
        identity: Resolved repository identity
        web_base: ``https://travis-ci.org`` or ``https://travis-ci.com``
        workspace_root: When given, the workspace must be a Travis project

    Returns:
        Repository URL, or None when there is nothing to open
    """
    if workspace_root is not None and not is_travis_project(workspace_root):
        return None
    if not identity.is_resolved:
        return None
    return f"{web_base.rstrip('/')}/{identity.owner}/{identity.name}"
