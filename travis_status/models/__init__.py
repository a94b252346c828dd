"""Data models for the Travis status service."""

from .build import BuildRecord, BuildState
from .identity import RepositoryIdentity, VCSState
from .status import (
    FALLBACK_LABEL,
    DisplayState,
    ErrorKind,
    ErrorReport,
    IndicatorView,
    Rendering,
    SnapshotState,
    StatusSnapshot,
    UpdateResult,
)

__all__ = [
    # Identity models
    "RepositoryIdentity",
    "VCSState",
    # Build models
    "BuildState",
    "BuildRecord",
    # Status models
    "FALLBACK_LABEL",
    "SnapshotState",
    "StatusSnapshot",
    "ErrorKind",
    "ErrorReport",
    "UpdateResult",
    # Indicator models
    "DisplayState",
    "Rendering",
    "IndicatorView",
]
