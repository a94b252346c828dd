"""
Status session.

A session explicitly owns everything one status indicator needs: the
settings it started with, the proxy decision, the identity resolver, the
git reader, the Travis client, the reconciler and the indicator itself.
"""

from pathlib import Path
from typing import Optional, Union

from travis_status.config import Settings, get_settings
from travis_status.models.status import ErrorKind, ErrorReport, UpdateResult
from travis_status.services.identity_resolver import RepositoryIdentityResolver
from travis_status.services.indicator import StatusIndicator, display_state_for
from travis_status.services.presenter import build_open_url
from travis_status.services.proxy import ProxyConfig, configure_proxy
from travis_status.services.reconciler import StatusReconciler
from travis_status.services.travis_client import TravisClient, get_travis_client
from travis_status.services.vcs_reader import GitStateReader
from travis_status.utils.logging import get_logger, log_update_result
from travis_status.utils.metrics import UpdateTimer


logger = get_logger(__name__)


class StatusSession:
    """Runs update cycles for one workspace and one indicator."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        resolver: Optional[RepositoryIdentityResolver] = None,
        vcs_reader: Optional[GitStateReader] = None,
        travis_client: Optional[TravisClient] = None,
    ):
        """
        Initialize the session and run proxy setup once.

        Args:
            settings: Startup settings; the Travis client still re-reads
                settings on every query
            resolver: Identity resolver override
            vcs_reader: Git reader override
            travis_client: Travis client override
        """
        self.settings = settings or get_settings()
        self.workspace_root = Path(self.settings.workspace_root)

        self.proxy: ProxyConfig = configure_proxy(self.settings)
        self.indicator = StatusIndicator()
        if self.proxy.error is not None:
            self.indicator.notify(self.proxy.error)

        self.resolver = resolver or RepositoryIdentityResolver()
        self.vcs_reader = vcs_reader or GitStateReader(
            timeout_seconds=self.settings.request_timeout_seconds
        )
        self.travis_client = travis_client or get_travis_client(proxy=self.proxy.url)
        self.reconciler = StatusReconciler(self.resolver, self.vcs_reader, self.travis_client)

    async def update(self, workspace_root: Optional[Union[str, Path]] = None) -> UpdateResult:
        """
        Run one update cycle and publish its result to the indicator.

        The indicator enters the loading state before anything is awaited.
        Concurrent calls may race; the indicator keeps the result of the
        most recently started request that has completed.

        Args:
            workspace_root: Workspace to update; defaults to the session's

        Returns:
            The cycle's result, whether or not it was displayed
        """
        root = Path(workspace_root) if workspace_root is not None else self.workspace_root
        seq = self.indicator.begin()
        timer = UpdateTimer(seq)
        log = logger.with_context(workspace=str(root), request_seq=seq)

        try:
            result = await self.reconciler.update_status(root)
        except Exception as e:
            log.error(f"Unexpected failure during status update: {e}", exc_info=True)
            result = ErrorReport(
                kind=ErrorKind.QUERY_FAILURE,
                message=f"Fetching Travis CI build status failed: {e}",
            )

        outcome = display_state_for(result).value
        timer.stop(outcome)
        self.indicator.complete(seq, result)

        detail = None
        if isinstance(result, ErrorReport):
            detail = result.message
        elif result is not None:
            detail = result.label
        log_update_result(log, seq, outcome, detail)
        return result

    def open_url(self, workspace_root: Optional[Union[str, Path]] = None) -> Optional[str]:
        """
        Build the Travis page URL of the workspace.

        Returns:
            URL, or None when the workspace is not a resolvable Travis project
        """
        root = Path(workspace_root) if workspace_root is not None else self.workspace_root
        identity = self.resolver.resolve(root)
        return build_open_url(identity, get_settings().web_base, workspace_root=root)


_session: Optional[StatusSession] = None


def get_status_session() -> StatusSession:
    """
    Get the application's status session, creating it on first use.

    Returns:
        StatusSession instance
    """
    global _session
    if _session is None:
        _session = StatusSession()
    return _session


def reset_status_session() -> None:
    """Drop the application's status session (used on shutdown)."""
    global _session
    _session = None
