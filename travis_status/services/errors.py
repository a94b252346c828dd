"""Exceptions raised by the status services."""


class TravisStatusError(Exception):
    """Base exception for Travis status errors."""
    pass


class VCSQueryError(TravisStatusError):
    """A git query for the branch or commit failed."""
    pass


class TravisQueryError(TravisStatusError):
    """A Travis API query failed (transport, timeout, unexpected status)."""
    pass


class RepositoryNotFoundError(TravisQueryError):
    """Travis does not know the repository."""
    pass


class ProxyConfigurationError(TravisStatusError):
    """The proxy address supplied by the environment could not be parsed."""
    pass


class BuildNotFoundError(TravisQueryError):
    """Travis has no build record for the requested branch."""
    pass
