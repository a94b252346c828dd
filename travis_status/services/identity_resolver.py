"""
Repository identity resolution for a local workspace.

Derives the (owner, repository name) pair Travis knows a workspace by,
from two sources:

- the per-workspace settings file (``.vscode/settings.json``, keys
  ``travis.username`` and ``travis.repository``);
- the ``origin`` remote URL recorded in ``.git/config``.

Each field is resolved independently through an ordered rule table, so
an explicit username does not force the repository name to come from
settings too. Resolution never raises; every failure mode collapses to
empty fields, which callers treat as "cannot resolve".
"""

import configparser
import json
import re
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from travis_status.models.identity import RepositoryIdentity
from travis_status.utils.logging import get_logger


logger = get_logger(__name__)

SETTINGS_FILE = Path(".vscode") / "settings.json"
GIT_CONFIG_FILE = Path(".git") / "config"
ORIGIN_SECTION = 'remote "origin"'

USERNAME_KEY = "travis.username"
REPOSITORY_KEY = "travis.repository"

# "https://host/", "ssh://git@host/", "git@host:" and similar prefixes
_REMOTE_PREFIX = re.compile(r'^(.*//)?[^/:]+[/:]')
_REMOTE_SUFFIX = re.compile(r'\.git/?$')

EMPTY_PAIR: Tuple[str, str] = ("", "")

PathLike = Union[str, Path]


def parse_remote_url(url: str) -> Tuple[str, str]:
    """
    Split a git remote URL into (owner, name).

    Args:
        url: Remote URL, e.g. ``https://github.com/owner/repo.git`` or
            ``git@github.com:owner/repo.git``

    Returns:
        (owner, name), or two empty strings when the URL has fewer than
        two path components after the host
    """
    path = _REMOTE_PREFIX.sub('', url.strip(), count=1)
    path = _REMOTE_SUFFIX.sub('', path)
    parts = path.split('/')

    if len(parts) < 2:
        return EMPTY_PAIR
    return parts[0], parts[1]


def read_settings_pair(workspace_root: PathLike) -> Tuple[str, str]:
    """Read (username, repository) from the workspace settings file."""
    settings_file = Path(workspace_root) / SETTINGS_FILE

    try:
        settings = json.loads(settings_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"No usable workspace settings at {settings_file}: {e}")
        return EMPTY_PAIR

    if not isinstance(settings, dict):
        return EMPTY_PAIR

    user = settings.get(USERNAME_KEY)
    repo = settings.get(REPOSITORY_KEY)
    return (
        user if isinstance(user, str) else "",
        repo if isinstance(repo, str) else "",
    )


def read_git_remote_pair(workspace_root: PathLike) -> Tuple[str, str]:
    """Read (owner, name) from the ``origin`` remote in ``.git/config``."""
    config_file = Path(workspace_root) / GIT_CONFIG_FILE
    parser = configparser.ConfigParser(
        strict=False,
        allow_no_value=True,
        interpolation=None,
    )

    try:
        with open(config_file, encoding="utf-8") as f:
            parser.read_file(f)
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        logger.debug(f"No usable git config at {config_file}: {e}")
        return EMPTY_PAIR

    url = parser.get(ORIGIN_SECTION, "url", fallback=None)
    if not url:
        return EMPTY_PAIR
    return parse_remote_url(url)


class ResolutionRule(NamedTuple):
    """One (source, field) precedence entry."""

    source: str
    field: str


# Evaluated top to bottom per field; first non-empty value wins
DEFAULT_RULES: Tuple[ResolutionRule, ...] = (
    ResolutionRule("settings", "owner"),
    ResolutionRule("git_remote", "owner"),
    ResolutionRule("settings", "name"),
    ResolutionRule("git_remote", "name"),
)

IDENTITY_FIELDS = ("owner", "name")

Source = Callable[[PathLike], Tuple[str, str]]


class RepositoryIdentityResolver:
    """
    Resolves the Travis repository identity of a workspace.

    Sources are plain callables returning an (owner, name) pair; they are
    evaluated lazily and at most once per ``resolve`` call.
    """

    def __init__(
        self,
        sources: Optional[Dict[str, Source]] = None,
        rules: Tuple[ResolutionRule, ...] = DEFAULT_RULES,
    ):
        """
        Initialize the resolver.

        Args:
            sources: Mapping of source name to reader. Defaults to the
                workspace settings file and the git ``origin`` remote.
            rules: Ordered precedence table
        """
        self.sources: Dict[str, Source] = sources or {
            "settings": read_settings_pair,
            "git_remote": read_git_remote_pair,
        }
        self.rules = rules

        unknown = {rule.source for rule in rules} - set(self.sources)
        if unknown:
            raise ValueError(f"Rules reference unknown sources: {sorted(unknown)}")

    def resolve(self, workspace_root: PathLike) -> RepositoryIdentity:
        """
        Resolve the identity of a workspace.

        Args:
            workspace_root: Workspace root directory

        Returns:
            RepositoryIdentity; fields left empty when no source has them
        """
        loaded: Dict[str, Tuple[str, str]] = {}
        values: Dict[str, str] = {}

        for field in IDENTITY_FIELDS:
            values[field] = ""
            for rule in self._rules_for(field):
                if rule.source not in loaded:
                    loaded[rule.source] = self._load(rule.source, workspace_root)
                value = loaded[rule.source][IDENTITY_FIELDS.index(field)]
                if value:
                    values[field] = value
                    break

        identity = RepositoryIdentity(**values)
        logger.debug(
            f"Resolved identity '{identity.slug}'",
            extra={"workspace": str(workspace_root), "sources": sorted(loaded)},
        )
        return identity

    def _rules_for(self, field: str) -> List[ResolutionRule]:
        return [rule for rule in self.rules if rule.field == field]

    def _load(self, source: str, workspace_root: PathLike) -> Tuple[str, str]:
        try:
            pair = self.sources[source](workspace_root)
        except Exception as e:
            # A custom source must not break resolution
            logger.warning(f"Identity source '{source}' failed: {e}")
            return EMPTY_PAIR

        if not pair or len(pair) < 2:
            return EMPTY_PAIR
        return (pair[0] or "", pair[1] or "")
