"""Status snapshot, error report and indicator data models."""

from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


FALLBACK_LABEL = "master"


class SnapshotState(str, Enum):
    """Build states that can be displayed as a snapshot."""

    PASSED = "passed"
    RUNNING = "running"
    FAILED = "failed"


class StatusSnapshot(BaseModel):
    """Reconciled, presentation-ready build status."""

    model_config = ConfigDict(frozen=True)

    state: SnapshotState
    build_number: int
    started_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    label: str


class ErrorKind(str, Enum):
    """Reasons an update cycle can end without a snapshot."""

    IDENTITY_UNRESOLVED = "identity_unresolved"
    REPOSITORY_NOT_FOUND = "repository_not_found"
    NEVER_BUILT = "never_built"
    UNSUPPORTED_BUILD_STATE = "unsupported_build_state"
    QUERY_FAILURE = "query_failure"
    PROXY_CONFIGURATION_INVALID = "proxy_configuration_invalid"


class ErrorReport(BaseModel):
    """Terminal error for one update cycle; ``message`` goes in the tooltip."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


# None means the workspace is not a Travis project
UpdateResult = Optional[Union[StatusSnapshot, ErrorReport]]


class DisplayState(str, Enum):
    """Status indicator display states."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    RUNNING = "running"
    FAILURE = "failure"
    ERROR = "error"


class Rendering(BaseModel):
    """Icon/text/tooltip triple for a status indicator."""

    icon: str
    text: str
    tooltip: str
    visible: bool = True


class IndicatorView(BaseModel):
    """Current state of a status indicator."""

    state: DisplayState
    request_seq: int
    applied_seq: int
    rendering: Rendering
    snapshot: Optional[StatusSnapshot] = None
    error: Optional[ErrorReport] = None
    notifications: list[ErrorReport] = []
