"""Session tokens: signing, revocation, pattern revoke."""

import jwt
import pytest

from gitpoke.accounts.identifiers import GitHubUserId, Username
from gitpoke.auth.sessions import InvalidSessionError, SessionManager
from gitpoke.cache.hot import InMemoryHotCache
from gitpoke.pokes.policy import UserAccount

SECRET = "test-session-secret-0123456789abcdef"
ACCOUNT = UserAccount(github_id=GitHubUserId(42), username=Username("octocat"))


@pytest.fixture
def manager():
    return SessionManager(InMemoryHotCache(), secret=SECRET)


class TestSessionManager:
    async def test_issue_and_authenticate(self, manager):
        token = await manager.issue(ACCOUNT)
        claims = await manager.authenticate(token)
        assert claims.github_id == ACCOUNT.github_id
        assert claims.username == ACCOUNT.username

    async def test_token_claims(self, manager):
        token = await manager.issue(ACCOUNT)
        payload = jwt.decode(token, SECRET, algorithms=["HS256"], issuer="gitpoke")
        assert payload["sub"] == "42"
        assert payload["username"] == "octocat"
        assert payload["exp"] > payload["iat"]

    async def test_record_stored_under_session_key(self, manager):
        token = await manager.issue(ACCOUNT)
        claims = manager.decode(token)
        assert manager.hot.keys() == [f"session:{claims.sid}:octocat"]

    async def test_wrong_secret_rejected(self, manager):
        other = SessionManager(manager.hot, secret="another-session-secret-0123456789abcdef")
        token = await other.issue(ACCOUNT)
        with pytest.raises(InvalidSessionError):
            await manager.authenticate(token)

    async def test_garbage_rejected(self, manager):
        with pytest.raises(InvalidSessionError):
            await manager.authenticate("not-a-jwt")

    async def test_revoke(self, manager):
        token = await manager.issue(ACCOUNT)
        await manager.revoke(manager.decode(token))
        with pytest.raises(InvalidSessionError):
            await manager.authenticate(token)

    async def test_revoke_all_only_touches_that_user(self, manager):
        first = await manager.issue(ACCOUNT)
        second = await manager.issue(ACCOUNT)
        other = await manager.issue(UserAccount(github_id=GitHubUserId(7), username=Username("hubot")))

        assert await manager.revoke_all(ACCOUNT.username) == 2
        for token in (first, second):
            with pytest.raises(InvalidSessionError):
                await manager.authenticate(token)
        assert (await manager.authenticate(other)).username == Username("hubot")
