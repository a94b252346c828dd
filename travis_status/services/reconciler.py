"""
Status reconciliation.

Sequences identity resolution, git queries and Travis queries for one
workspace, decides which build record is authoritative and maps it to a
``StatusSnapshot`` or an ``ErrorReport``.

Record precedence:
1. The branch-scoped record, when its commit equals the checked-out
   commit. Label: the short commit id.
2. Otherwise (branch query failed, no record, or the branch record is
   for another commit) the repository-level record. Label: "master".
"""

import asyncio
from pathlib import Path
from typing import Optional, Tuple, Union

from travis_status.models.build import BuildRecord, BuildState
from travis_status.models.identity import RepositoryIdentity, VCSState
from travis_status.models.status import (
    FALLBACK_LABEL,
    ErrorKind,
    ErrorReport,
    SnapshotState,
    StatusSnapshot,
    UpdateResult,
)
from travis_status.services.errors import (
    RepositoryNotFoundError,
    TravisQueryError,
    VCSQueryError,
)
from travis_status.services.identity_resolver import RepositoryIdentityResolver
from travis_status.services.travis_client import TravisClient
from travis_status.services.vcs_reader import GitStateReader
from travis_status.utils.logging import get_logger


logger = get_logger(__name__)

CI_MARKER_FILE = ".travis.yml"

IDENTITY_UNRESOLVED_MESSAGE = (
    "Fetching Travis CI build status failed: Could not detect username and repository"
)
NEVER_BUILT_MESSAGE = "Travis found your repository, but it never ran a test."

_DISPLAYABLE = {
    BuildState.PASSED: SnapshotState.PASSED,
    BuildState.RUNNING: SnapshotState.RUNNING,
    BuildState.FAILED: SnapshotState.FAILED,
}


def is_travis_project(workspace_root: Union[str, Path]) -> bool:
    """Check whether the workspace root holds a Travis marker file."""
    return (Path(workspace_root) / CI_MARKER_FILE).is_file()


class StatusReconciler:
    """
    Produces the canonical build status of a workspace.

    ``update_status`` never raises for expected failures: every error of
    the cycle is returned as an ``ErrorReport``.
    """

    def __init__(
        self,
        resolver: RepositoryIdentityResolver,
        vcs_reader: GitStateReader,
        travis_client: TravisClient,
    ):
        """
        Initialize the reconciler.

        Args:
            resolver: Workspace identity resolver
            vcs_reader: Git branch/commit reader
            travis_client: Travis API client
        """
        self.resolver = resolver
        self.vcs_reader = vcs_reader
        self.travis_client = travis_client

    async def update_status(self, workspace_root: Union[str, Path]) -> UpdateResult:
        """
        Run one reconciliation cycle.

        Args:
            workspace_root: Workspace root directory

        Returns:
            StatusSnapshot, ErrorReport, or None when the workspace is not
            a Travis project
        """
        log = logger.with_context(workspace=str(workspace_root))

        if not is_travis_project(workspace_root):
            log.debug("No Travis marker file, skipping update")
            return None

        loop = asyncio.get_running_loop()
        identity: RepositoryIdentity = await loop.run_in_executor(
            None, self.resolver.resolve, workspace_root
        )
        if not identity.is_resolved:
            log.warning("Could not resolve repository identity")
            return ErrorReport(kind=ErrorKind.IDENTITY_UNRESOLVED, message=IDENTITY_UNRESOLVED_MESSAGE)

        log = log.with_context(repository=identity.slug)

        try:
            vcs_state = await self._read_vcs_state(workspace_root)
        except VCSQueryError as e:
            log.warning(f"Git query failed: {e}")
            return ErrorReport(
                kind=ErrorKind.QUERY_FAILURE,
                message=f"Fetching Travis CI build status failed: {e}",
            )

        log = log.with_context(branch=vcs_state.branch)

        try:
            record, label = await self._authoritative_record(identity, vcs_state, log)
        except RepositoryNotFoundError as e:
            log.warning(f"Repository not found: {e}")
            return ErrorReport(kind=ErrorKind.REPOSITORY_NOT_FOUND, message=str(e))
        except TravisQueryError as e:
            log.warning(f"Travis query failed: {e}")
            return ErrorReport(
                kind=ErrorKind.QUERY_FAILURE,
                message=f"Fetching Travis CI build status failed: {e}",
            )

        return to_snapshot(record, label)

    async def _read_vcs_state(self, workspace_root: Union[str, Path]) -> VCSState:
        branch, commit_id = await asyncio.gather(
            self.vcs_reader.current_branch(workspace_root),
            self.vcs_reader.current_commit(workspace_root),
        )
        return VCSState(branch=branch, commit_id=commit_id)

    async def _authoritative_record(
        self, identity: RepositoryIdentity, vcs_state: VCSState, log
    ) -> Tuple[BuildRecord, str]:
        branch_record: Optional[BuildRecord] = None
        try:
            branch_record = await self.travis_client.get_branch_build(
                identity.owner, identity.name, vcs_state.branch
            )
        except TravisQueryError as e:
            log.info(f"Branch build unavailable, falling back to repository build: {e}")

        if branch_record is not None:
            if branch_record.commit_id == vcs_state.commit_id:
                return branch_record, vcs_state.short_commit_id
            log.info(
                "Branch build is for another commit, falling back to repository build",
                extra={"build_commit": branch_record.commit_id, "head_commit": vcs_state.commit_id},
            )

        repo_record = await self.travis_client.get_repository_build(identity.owner, identity.name)
        return repo_record, FALLBACK_LABEL


def to_snapshot(record: BuildRecord, label: str) -> Union[StatusSnapshot, ErrorReport]:
    """
    Map an authoritative build record to a snapshot.

    Args:
        record: Authoritative build record
        label: Short commit id or the fallback label

    Returns:
        StatusSnapshot for passed/running/failed records, otherwise an
        ErrorReport (never built, or a state we cannot display)
    """
    if record.build_number is None:
        return ErrorReport(kind=ErrorKind.NEVER_BUILT, message=NEVER_BUILT_MESSAGE)

    state = _DISPLAYABLE.get(record.known_state)
    if state is None:
        return ErrorReport(
            kind=ErrorKind.UNSUPPORTED_BUILD_STATE,
            message=f"Build {record.build_number} has unsupported state '{record.state}'",
        )

    return StatusSnapshot(
        state=state,
        build_number=record.build_number,
        started_at=record.started_at,
        duration_seconds=record.duration_seconds,
        label=label,
    )
