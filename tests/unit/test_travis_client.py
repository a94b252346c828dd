"""Unit tests for TravisClient."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from travis_status.config import Settings
from travis_status.services.errors import (
    BuildNotFoundError,
    RepositoryNotFoundError,
    TravisQueryError,
)
from travis_status.services.travis_client import TRAVIS_MEDIA_TYPE, TravisClient


BRANCH_PAYLOAD = {
    "branch": {
        "id": 1001,
        "number": "57",
        "state": "passed",
        "started_at": "2016-03-01T12:00:00Z",
        "duration": 185,
    },
    "commit": {"sha": "a" * 40},
}

REPO_PAYLOAD = {
    "repo": {
        "id": 42,
        "slug": "octo/widgets",
        "last_build_number": "58",
        "last_build_state": "running",
        "last_build_started_at": "2016-03-02T08:30:00Z",
        "last_build_duration": None,
    }
}


def make_settings(**overrides):
    values = {
        "pro": False,
        "api_base_url": None,
        "github_oauth_token": "",
        "github_user": "",
        "github_password": "",
        "request_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def make_client(handler, settings=None, **settings_overrides):
    current = settings or make_settings(**settings_overrides)
    return TravisClient(
        settings_provider=lambda: current,
        transport=httpx.MockTransport(handler),
    )


class TestBranchBuild:
    """Test branch-scoped queries."""

    @pytest.mark.asyncio
    async def test_branch_build_success(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=BRANCH_PAYLOAD)

        record = await make_client(handler).get_branch_build("octo", "widgets", "main")

        assert requests[0].url == "https://api.travis-ci.org/repos/octo/widgets/branches/main"
        assert requests[0].headers["Accept"] == TRAVIS_MEDIA_TYPE
        assert "Authorization" not in requests[0].headers
        assert record.state == "passed"
        assert record.build_number == 57
        assert record.duration_seconds == 185
        assert record.started_at == datetime(2016, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert record.commit_id == "a" * 40

    @pytest.mark.asyncio
    async def test_branch_name_is_escaped(self):
        seen = []

        def handler(request):
            seen.append(request.url.raw_path)
            return httpx.Response(200, json=BRANCH_PAYLOAD)

        await make_client(handler).get_branch_build("octo", "widgets", "feature/login")

        assert seen[0] == b"/repos/octo/widgets/branches/feature%2Flogin"

    @pytest.mark.asyncio
    async def test_branch_not_found(self):
        client = make_client(lambda request: httpx.Response(404, json={"file": "not found"}))

        with pytest.raises(BuildNotFoundError):
            await client.get_branch_build("octo", "widgets", "nope")

    @pytest.mark.asyncio
    async def test_payload_without_branch(self):
        client = make_client(lambda request: httpx.Response(200, json={"commit": {"sha": "x"}}))

        with pytest.raises(BuildNotFoundError):
            await client.get_branch_build("octo", "widgets", "main")

    @pytest.mark.asyncio
    async def test_unreadable_record(self):
        payload = {"branch": {"number": "not-a-number", "state": "passed"}, "commit": {}}
        client = make_client(lambda request: httpx.Response(200, json=payload))

        with pytest.raises(TravisQueryError):
            await client.get_branch_build("octo", "widgets", "main")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"branch": {"number": "57", "state": "passed"}, "commit": "deadbeef"},
        {"branch": {"number": "57", "state": "passed"}, "commit": ["deadbeef"]},
        {"branch": "57", "commit": {"sha": "x"}},
    ])
    async def test_malformed_branch_payload(self, payload):
        client = make_client(lambda request: httpx.Response(200, json=payload))

        with pytest.raises(TravisQueryError, match="malformed"):
            await client.get_branch_build("octo", "widgets", "main")


class TestRepositoryBuild:
    """Test repository-level queries."""

    @pytest.mark.asyncio
    async def test_repository_build_success(self):
        client = make_client(lambda request: httpx.Response(200, json=REPO_PAYLOAD))

        record = await client.get_repository_build("octo", "widgets")

        assert record.state == "running"
        assert record.build_number == 58
        assert record.duration_seconds is None
        assert record.commit_id is None

    @pytest.mark.asyncio
    async def test_never_built_repository(self):
        payload = {"repo": {"slug": "octo/widgets", "last_build_number": None, "last_build_state": None}}
        client = make_client(lambda request: httpx.Response(200, json=payload))

        record = await client.get_repository_build("octo", "widgets")

        assert record.build_number is None
        assert record.state is None

    @pytest.mark.asyncio
    async def test_repository_404(self):
        client = make_client(lambda request: httpx.Response(404))

        with pytest.raises(RepositoryNotFoundError, match="Travis could not find octo/widgets"):
            await client.get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"repo": None}, {"repo": {}}, [], None])
    async def test_payload_without_repo(self, payload):
        client = make_client(lambda request: httpx.Response(200, content=json.dumps(payload)))

        with pytest.raises(RepositoryNotFoundError, match="could not find your repository"):
            await client.get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("repo", ["octo/widgets", ["octo", "widgets"], 42])
    async def test_malformed_repo_payload(self, repo):
        client = make_client(lambda request: httpx.Response(200, json={"repo": repo}))

        with pytest.raises(TravisQueryError, match="malformed") as exc_info:
            await client.get_repository_build("octo", "widgets")

        assert not isinstance(exc_info.value, RepositoryNotFoundError)

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = make_client(lambda request: httpx.Response(503))

        with pytest.raises(TravisQueryError) as exc_info:
            await client.get_repository_build("octo", "widgets")

        assert not isinstance(exc_info.value, RepositoryNotFoundError)
        assert "503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))

        with pytest.raises(TravisQueryError, match="malformed"):
            await client.get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TravisQueryError, match="did not answer"):
            await make_client(handler).get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TravisQueryError):
            await make_client(handler).get_repository_build("octo", "widgets")


class TestModesAndCredentials:
    """Test API base selection and authentication."""

    @pytest.mark.asyncio
    async def test_pro_mode_uses_com_api(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200, json=REPO_PAYLOAD)

        await make_client(handler, pro=True).get_repository_build("octo", "widgets")

        assert hosts == ["api.travis-ci.com"]

    @pytest.mark.asyncio
    async def test_private_instance_base(self):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200, json=REPO_PAYLOAD)

        client = make_client(handler, pro=True, api_base_url="https://travis.example.com/api/")
        await client.get_repository_build("octo", "widgets")

        assert urls == ["https://travis.example.com/api/repos/octo/widgets"]

    @pytest.mark.asyncio
    async def test_github_token_is_exchanged_once(self):
        calls = []

        def handler(request):
            calls.append((request.method, request.url.path))
            if request.url.path == "/auth/github":
                assert json.loads(request.content) == {"github_token": "gh-token"}
                return httpx.Response(200, json={"access_token": "travis-token"})
            assert request.headers["Authorization"] == 'token "travis-token"'
            return httpx.Response(200, json=REPO_PAYLOAD)

        client = make_client(handler, github_oauth_token="gh-token")
        await client.get_repository_build("octo", "widgets")
        await client.get_repository_build("octo", "widgets")

        assert calls == [
            ("POST", "/auth/github"),
            ("GET", "/repos/octo/widgets"),
            ("GET", "/repos/octo/widgets"),
        ]

    @pytest.mark.asyncio
    async def test_failed_token_exchange(self):
        client = make_client(lambda request: httpx.Response(403), github_oauth_token="bad")

        with pytest.raises(TravisQueryError, match="authentication failed"):
            await client.get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    async def test_user_and_password_are_exchanged_for_travis_token(self):
        calls = []

        def handler(request):
            calls.append((request.method, request.url.host, request.url.path))
            if request.url.host == "api.github.com":
                assert request.headers["Authorization"].startswith("Basic ")
                if request.method == "POST":
                    return httpx.Response(201, json={
                        "id": 7,
                        "token": "gh-temp",
                        "url": "https://api.github.com/authorizations/7",
                    })
                return httpx.Response(204)
            assert not request.headers.get("Authorization", "").startswith("Basic ")
            if request.url.path == "/auth/github":
                assert json.loads(request.content) == {"github_token": "gh-temp"}
                return httpx.Response(200, json={"access_token": "travis-token"})
            assert request.headers["Authorization"] == 'token "travis-token"'
            return httpx.Response(200, json=REPO_PAYLOAD)

        client = make_client(handler, github_user="alice", github_password="secret")
        await client.get_repository_build("octo", "widgets")
        await client.get_repository_build("octo", "widgets")

        assert calls == [
            ("POST", "api.github.com", "/authorizations"),
            ("POST", "api.travis-ci.org", "/auth/github"),
            ("DELETE", "api.github.com", "/authorizations/7"),
            ("GET", "api.travis-ci.org", "/repos/octo/widgets"),
            ("GET", "api.travis-ci.org", "/repos/octo/widgets"),
        ]

    @pytest.mark.asyncio
    async def test_rejected_github_password(self):
        def handler(request):
            assert request.url.host == "api.github.com"
            return httpx.Response(401, json={"message": "Bad credentials"})

        client = make_client(handler, github_user="alice", github_password="wrong")

        with pytest.raises(TravisQueryError, match="GitHub sign-in failed with HTTP 401"):
            await client.get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    async def test_revoked_access_token_is_renewed(self):
        exchanges = []
        revoked = set()

        def handler(request):
            if request.url.path == "/auth/github":
                token = f"travis-{len(exchanges) + 1}"
                exchanges.append(token)
                return httpx.Response(200, json={"access_token": token})
            token = request.headers["Authorization"]
            if token in revoked:
                return httpx.Response(401)
            return httpx.Response(200, json=REPO_PAYLOAD)

        client = make_client(handler, github_oauth_token="gh-token")
        await client.get_repository_build("octo", "widgets")
        revoked.add('token "travis-1"')

        with pytest.raises(TravisQueryError, match="HTTP 401"):
            await client.get_repository_build("octo", "widgets")
        record = await client.get_repository_build("octo", "widgets")

        assert exchanges == ["travis-1", "travis-2"]
        assert record.build_number == 58

    @pytest.mark.asyncio
    async def test_anonymous_query_rejected(self):
        client = make_client(lambda request: httpx.Response(401))

        with pytest.raises(TravisQueryError, match="HTTP 401"):
            await client.get_repository_build("octo", "widgets")

    @pytest.mark.asyncio
    async def test_settings_are_read_on_every_query(self):
        current = {"settings": make_settings()}
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200, json=REPO_PAYLOAD)

        client = TravisClient(
            settings_provider=lambda: current["settings"],
            transport=httpx.MockTransport(handler),
        )
        await client.get_repository_build("octo", "widgets")
        current["settings"] = make_settings(pro=True)
        await client.get_repository_build("octo", "widgets")

        assert hosts == ["api.travis-ci.org", "api.travis-ci.com"]

    def test_has_credentials(self):
        client = TravisClient(settings_provider=make_settings)

        assert not client.has_credentials()
        assert client.has_credentials(make_settings(github_oauth_token="t"))
        assert client.has_credentials(make_settings(github_user="u", github_password="p"))
        assert not client.has_credentials(make_settings(github_user="u"))
