"""Business logic services package."""

from travis_status.services.errors import (
    TravisStatusError,
    VCSQueryError,
    TravisQueryError,
    RepositoryNotFoundError,
    BuildNotFoundError,
    ProxyConfigurationError,
)
from travis_status.services.identity_resolver import (
    RepositoryIdentityResolver,
    ResolutionRule,
    parse_remote_url,
)
from travis_status.services.vcs_reader import GitStateReader
from travis_status.services.travis_client import (
    TravisClient,
    get_travis_client,
)
from travis_status.services.proxy import (
    ProxyConfig,
    configure_proxy,
)
from travis_status.services.reconciler import (
    StatusReconciler,
    is_travis_project,
    to_snapshot,
)
from travis_status.services.indicator import StatusIndicator
from travis_status.services.session import (
    StatusSession,
    get_status_session,
    reset_status_session,
)

__all__ = [
    'TravisStatusError',
    'VCSQueryError',
    'TravisQueryError',
    'RepositoryNotFoundError',
    'BuildNotFoundError',
    'ProxyConfigurationError',
    'RepositoryIdentityResolver',
    'ResolutionRule',
    'parse_remote_url',
    'GitStateReader',
    'TravisClient',
    'get_travis_client',
    'ProxyConfig',
    'configure_proxy',
    'StatusReconciler',
    'is_travis_project',
    'to_snapshot',
    'StatusIndicator',
    'StatusSession',
    'get_status_session',
    'reset_status_session',
]
