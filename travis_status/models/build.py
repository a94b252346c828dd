"""Build record data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class BuildState(str, Enum):
    """Build states the Travis API reports that we know about."""

    PASSED = "passed"
    RUNNING = "running"
    FAILED = "failed"
    ERRORED = "errored"
    UNKNOWN = "unknown"


class BuildRecord(BaseModel):
    """
    Raw build record as returned by the Travis API.

    ``state`` keeps the remote value verbatim so that states outside
    ``BuildState`` (e.g. ``queued``) survive until they are reported.
    """

    model_config = ConfigDict(frozen=True)

    state: Optional[str] = None
    build_number: Optional[int] = None
    started_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    commit_id: Optional[str] = None  # Branch-scoped records only

    @property
    def known_state(self) -> BuildState:
        try:
            return BuildState(self.state)
        except ValueError:
            return BuildState.UNKNOWN
