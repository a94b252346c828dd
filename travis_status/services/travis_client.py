"""
Travis CI API client.

This module queries the Travis API (v2 media type) for build records:
- branch-scoped: the latest build of one branch, with its commit
- repository-level: the most recent build of the repository

Settings are re-read on every query, so credential, mode and timeout
changes take effect without a restart. No query is retried.
"""

from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from travis_status.config import Settings, get_settings
from travis_status.models.build import BuildRecord
from travis_status.services.errors import (
    BuildNotFoundError,
    RepositoryNotFoundError,
    TravisQueryError,
)
from travis_status.utils.logging import get_logger
from travis_status.utils.metrics import track_api_call


logger = get_logger(__name__)

TRAVIS_MEDIA_TYPE = "application/vnd.travis-ci.2+json"
USER_AGENT = "travis-status/0.1.0"

# Scopes Travis asks for when it signs a user in through GitHub
GITHUB_TOKEN_SCOPES = ["read:org", "user:email", "repo_deployment", "repo:status", "write:repo_hook"]
GITHUB_TOKEN_NOTE = "temporary token to authenticate travis-status"


class TravisClient:
    """
    Read-only client for Travis build records.

    Authentication, in order of preference:
    - a GitHub OAuth token, exchanged once for a Travis access token
    - a GitHub user and password, used to create a temporary GitHub
      token that is exchanged the same way, then revoked
    - anonymous
    """

    def __init__(
        self,
        settings_provider: Callable[[], Settings] = get_settings,
        proxy: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Travis client.

        Args:
            settings_provider: Returns the settings to use for one query
            proxy: Validated proxy URL, or None for a direct connection
            transport: Optional httpx transport (used by tests)
        """
        self.settings_provider = settings_provider
        self.proxy = proxy
        self.transport = transport
        # credential key -> Travis access token
        self._access_tokens: Dict[Tuple[str, ...], str] = {}

    async def get_branch_build(self, owner: str, name: str, branch: str) -> BuildRecord:
        """
        Retrieve the latest build record of a branch.

        Args:
            owner: Repository owner
            name: Repository name
            branch: Branch name

        Returns:
            BuildRecord including the commit the build ran against

        Raises:
            BuildNotFoundError: If Travis has no build for the branch
            TravisQueryError: If the query fails or the reply is malformed
        """
        path = f"/repos/{owner}/{name}/branches/{quote(branch, safe='')}"
        payload = await self._get(path)

        build = payload.get("branch") if isinstance(payload, dict) else None
        if not build:
            raise BuildNotFoundError(f"Travis has no build for branch '{branch}'")
        if not isinstance(build, dict):
            raise TravisQueryError(f"Travis returned a malformed build for branch '{branch}'")

        commit = payload.get("commit") or {}
        if not isinstance(commit, dict):
            raise TravisQueryError(f"Travis returned a malformed commit for branch '{branch}'")

        return self._record(
            state=build.get("state"),
            build_number=build.get("number"),
            started_at=build.get("started_at"),
            duration_seconds=build.get("duration"),
            commit_id=commit.get("sha"),
        )

    async def get_repository_build(self, owner: str, name: str) -> BuildRecord:
        """
        Retrieve the most recent build record of a repository.

        Args:
            owner: Repository owner
            name: Repository name

        Returns:
            BuildRecord; ``build_number`` is None when it never built

        Raises:
            RepositoryNotFoundError: If Travis does not know the repository
            TravisQueryError: If the query fails or the reply is malformed
        """
        try:
            payload = await self._get(f"/repos/{owner}/{name}")
        except BuildNotFoundError as e:
            raise RepositoryNotFoundError(f"Travis could not find {owner}/{name}") from e

        if not payload or not isinstance(payload, dict) or not payload.get("repo"):
            raise RepositoryNotFoundError("Travis CI could not find your repository.")

        repo = payload["repo"]
        if not isinstance(repo, dict):
            raise TravisQueryError(f"Travis returned a malformed repository for {owner}/{name}")

        return self._record(
            state=repo.get("last_build_state"),
            build_number=repo.get("last_build_number"),
            started_at=repo.get("last_build_started_at"),
            duration_seconds=repo.get("last_build_duration"),
        )

    def has_credentials(self, settings: Optional[Settings] = None) -> bool:
        settings = settings or self.settings_provider()
        return self._credential_key(settings) is not None

    async def _get(self, path: str) -> Any:
        settings = self.settings_provider()
        credential_key = self._credential_key(settings)
        if credential_key is None:
            logger.debug(f"Querying {settings.api_base} anonymously")

        async with self._client(settings) as client:
            try:
                headers = await self._auth_headers(client, settings, credential_key)
                async with track_api_call("travis", logger, endpoint=path) as call:
                    response = await client.get(path, headers=headers)
                    call["status_code"] = response.status_code
            except httpx.TimeoutException as e:
                raise TravisQueryError(
                    f"Travis did not answer within {settings.request_timeout_seconds}s"
                ) from e
            except httpx.HTTPError as e:
                raise TravisQueryError(f"Travis query failed: {e}") from e

        if response.status_code in (401, 403) and credential_key in self._access_tokens:
            # Revoked or expired; the next query signs in again
            del self._access_tokens[credential_key]
            logger.warning(
                f"Travis rejected the access token with HTTP {response.status_code}, "
                "it will be renewed on the next update"
            )
        if response.status_code == 404:
            raise BuildNotFoundError(f"Travis returned 404 for {path}")
        if response.is_error:
            raise TravisQueryError(
                f"Travis query failed with HTTP {response.status_code}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise TravisQueryError("Travis returned a malformed response") from e

    def _client(self, settings: Settings) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=settings.api_base,
            headers={"Accept": TRAVIS_MEDIA_TYPE, "User-Agent": USER_AGENT},
            timeout=httpx.Timeout(settings.request_timeout_seconds),
            proxy=self.proxy,
            transport=self.transport,
            trust_env=False,
        )

    @staticmethod
    def _credential_key(settings: Settings) -> Optional[Tuple[str, ...]]:
        if settings.github_oauth_token:
            return ("token", settings.github_oauth_token)
        if settings.github_user and settings.github_password:
            return ("password", settings.github_user, settings.github_password)
        return None

    async def _auth_headers(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        credential_key: Optional[Tuple[str, ...]],
    ) -> Dict[str, str]:
        if credential_key is None:
            return {}

        access_token = self._access_tokens.get(credential_key)
        if access_token is None:
            if settings.github_oauth_token:
                access_token = await self._exchange_github_token(client, settings.github_oauth_token)
            else:
                access_token = await self._sign_in_with_password(client, settings)
            self._access_tokens[credential_key] = access_token
        return {"Authorization": f'token "{access_token}"'}

    async def _sign_in_with_password(self, client: httpx.AsyncClient, settings: Settings) -> str:
        """
        Exchange a GitHub user and password for a Travis access token.

        A temporary GitHub token is created for the exchange and deleted
        afterwards; the password itself is only ever sent to GitHub.
        """
        github_auth = httpx.BasicAuth(settings.github_user, settings.github_password)
        authorizations_url = f"{settings.github_api_url.rstrip('/')}/authorizations"

        async with track_api_call("github", logger, endpoint="/authorizations", method="POST") as call:
            response = await client.post(
                authorizations_url,
                auth=github_auth,
                headers={"Accept": "application/vnd.github+json"},
                json={"scopes": GITHUB_TOKEN_SCOPES, "note": GITHUB_TOKEN_NOTE},
            )
            call["status_code"] = response.status_code

        if response.is_error:
            raise TravisQueryError(
                f"GitHub sign-in failed with HTTP {response.status_code}"
            )
        try:
            authorization = response.json()
            github_token = authorization.get("token")
        except (ValueError, AttributeError) as e:
            raise TravisQueryError("GitHub returned a malformed authorization") from e
        if not github_token:
            raise TravisQueryError("GitHub did not return a token")

        try:
            return await self._exchange_github_token(client, github_token)
        finally:
            await self._revoke_github_authorization(client, github_auth, authorization.get("url"))

    async def _revoke_github_authorization(
        self, client: httpx.AsyncClient, github_auth: httpx.BasicAuth, url: Optional[str]
    ) -> None:
        if not url:
            return
        try:
            async with track_api_call("github", logger, endpoint="/authorizations", method="DELETE") as call:
                response = await client.delete(url, auth=github_auth)
                call["status_code"] = response.status_code
        except httpx.HTTPError as e:
            logger.warning(f"Could not delete temporary GitHub token: {e}")
            return
        if response.is_error:
            logger.warning(
                f"Could not delete temporary GitHub token: HTTP {response.status_code}"
            )

    async def _exchange_github_token(self, client: httpx.AsyncClient, github_token: str) -> str:
        async with track_api_call("travis", logger, endpoint="/auth/github", method="POST") as call:
            response = await client.post("/auth/github", json={"github_token": github_token})
            call["status_code"] = response.status_code

        if response.is_error:
            raise TravisQueryError(
                f"Travis authentication failed with HTTP {response.status_code}"
            )
        try:
            access_token = response.json().get("access_token")
        except (ValueError, AttributeError) as e:
            raise TravisQueryError("Travis returned a malformed authentication response") from e
        if not access_token:
            raise TravisQueryError("Travis did not return an access token")
        return access_token

    @staticmethod
    def _record(**fields: Any) -> BuildRecord:
        try:
            return BuildRecord(**fields)
        except ValidationError as e:
            raise TravisQueryError(f"Travis returned an unreadable build record: {e}") from e


def get_travis_client(proxy: Optional[str] = None) -> TravisClient:
    """
    Factory function to create a TravisClient reading live settings.

    Args:
        proxy: Validated proxy URL from the proxy initializer

    Returns:
        TravisClient instance
    """
    return TravisClient(settings_provider=get_settings, proxy=proxy)
