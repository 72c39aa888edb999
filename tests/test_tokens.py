"""Unit tests for auth/tokens.py -- SDK token issuance, authentication, revocation.

Uses an in-memory FakeRepository implementing the TokenRepository protocol so
the store is observable: tests assert not only on outcomes but on whether a
lookup happened at all.

Covers:
- token format and that only the hash and display prefix are stored
- issuance against environment, project and unknown scopes
- Bearer parsing: scheme case, extra parts, missing header
- malformed credentials are rejected before any store lookup
- revoked and unknown tokens fail closed
- soft and hard revocation, including repeat revocation
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import replace
from typing import Optional

import pytest

from auth.models import ScopeBinding, ServiceToken
from auth.tokens import (
    TOKEN_PREFIX,
    TOKEN_PREFIX_LENGTH,
    authenticate_token,
    generate_token,
    hash_token,
    issue_token,
    list_tokens,
    parse_bearer,
    revoke_token,
)
from core.errors import AuthenticationError, NotFoundError

PROJECT_ID = "11111111-1111-4111-8111-111111111111"
ENV_ID = "22222222-2222-4222-8222-222222222222"


class FakeRepository:
    """Dict-backed TokenRepository that counts hash lookups."""

    def __init__(self) -> None:
        self.scopes = {
            ENV_ID: ScopeBinding(project_id=PROJECT_ID, env_id=ENV_ID),
            PROJECT_ID: ScopeBinding(project_id=PROJECT_ID),
        }
        self.tokens: dict[str, ServiceToken] = {}
        self.lookups = 0
        self._seq = 0

    def find_scope(self, scope_id: str) -> Optional[ScopeBinding]:
        return self.scopes.get(scope_id)

    def find_token_by_hash(self, token_hash: str) -> Optional[ServiceToken]:
        self.lookups += 1
        return next((t for t in self.tokens.values() if t.token_hash == token_hash), None)

    def insert_token(self, token: ServiceToken) -> ServiceToken:
        self._seq += 1
        stored = replace(token, id=f"tok-{self._seq}", created_at=f"2026-01-01T00:00:{self._seq:02d}+00:00")
        self.tokens[stored.id] = stored
        return stored

    def revoke_token(self, token_id: str) -> bool:
        token = self.tokens.get(token_id)
        if token is None or token.revoked_at is not None:
            return False
        self.tokens[token_id] = replace(token, revoked_at="2026-01-02T00:00:00+00:00")
        return True

    def delete_token(self, token_id: str) -> bool:
        return self.tokens.pop(token_id, None) is not None

    def list_tokens(self, project_id: Optional[str] = None, env_id: Optional[str] = None) -> list[ServiceToken]:
        return [
            t
            for t in sorted(self.tokens.values(), key=lambda t: t.created_at or "", reverse=True)
            if t.is_active
            and (project_id is None or t.project_id == project_id)
            and (env_id is None or t.env_id == env_id)
        ]


@pytest.fixture
def repo() -> FakeRepository:
    return FakeRepository()


class TestGeneration:
    def test_format(self) -> None:
        assert re.fullmatch(rf"{TOKEN_PREFIX}[0-9a-f]{{64}}", generate_token())

    def test_tokens_are_unique(self) -> None:
        assert len({generate_token() for _ in range(50)}) == 50

    def test_hash_is_sha256_hex(self) -> None:
        assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()


class TestIssue:
    def test_env_scoped_token(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID, name="web")
        assert issued.token.startswith(TOKEN_PREFIX)
        assert issued.project_id == PROJECT_ID
        assert issued.env_id == ENV_ID
        assert issued.name == "web"

        stored = repo.tokens[issued.id]
        assert stored.token_hash == hash_token(issued.token)
        assert stored.token_prefix == issued.token[:TOKEN_PREFIX_LENGTH]
        assert issued.token not in repr(stored)

    def test_project_scoped_token(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, PROJECT_ID)
        assert issued.env_id is None
        assert issued.project_id == PROJECT_ID

    def test_unknown_scope(self, repo: FakeRepository) -> None:
        with pytest.raises(NotFoundError):
            issue_token(repo, "33333333-3333-4333-8333-333333333333")
        assert repo.tokens == {}

    def test_issued_repr_hides_token(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        assert issued.token not in repr(issued)


class TestParseBearer:
    @pytest.mark.parametrize(
        "header",
        [None, "", "Bearer", "Bearer ", "bearer abc", "BEARER abc", "Basic abc", "Bearer a b", "Bearer  abc"],
    )
    def test_rejected(self, header) -> None:
        assert parse_bearer(header) is None

    def test_accepted(self) -> None:
        assert parse_bearer("Bearer abc") == "abc"


class TestAuthenticate:
    def test_valid_token(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        binding = authenticate_token(repo, f"Bearer {issued.token}")
        assert binding == ScopeBinding(project_id=PROJECT_ID, env_id=ENV_ID, token_id=issued.id)

    @pytest.mark.parametrize(
        "header",
        [None, "Basic abc", "Bearer not_the_prefix_0123", "bearer pennant_sdk_abc", "Bearer pennant_sdk_a extra"],
    )
    def test_malformed_rejected_without_lookup(self, repo: FakeRepository, header) -> None:
        """Anything not shaped like our token must not reach the store."""
        with pytest.raises(AuthenticationError):
            authenticate_token(repo, header)
        assert repo.lookups == 0

    def test_unknown_token(self, repo: FakeRepository) -> None:
        with pytest.raises(AuthenticationError):
            authenticate_token(repo, f"Bearer {generate_token()}")
        assert repo.lookups == 1

    def test_revoked_token(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        revoke_token(repo, issued.id)
        with pytest.raises(AuthenticationError):
            authenticate_token(repo, f"Bearer {issued.token}")

    def test_revocation_visible_to_next_call(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        header = f"Bearer {issued.token}"
        authenticate_token(repo, header)
        revoke_token(repo, issued.id, hard=True)
        with pytest.raises(AuthenticationError):
            authenticate_token(repo, header)


class TestRevokeAndList:
    def test_soft_revoke_keeps_record(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        revoke_token(repo, issued.id)
        assert repo.tokens[issued.id].revoked_at is not None

    def test_soft_revoke_twice(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        revoke_token(repo, issued.id)
        with pytest.raises(NotFoundError):
            revoke_token(repo, issued.id)

    def test_hard_revoke_removes_record(self, repo: FakeRepository) -> None:
        issued = issue_token(repo, ENV_ID)
        revoke_token(repo, issued.id, hard=True)
        assert issued.id not in repo.tokens
        with pytest.raises(NotFoundError):
            revoke_token(repo, issued.id, hard=True)

    def test_list_excludes_revoked_and_filters(self, repo: FakeRepository) -> None:
        env_token = issue_token(repo, ENV_ID)
        project_token = issue_token(repo, PROJECT_ID)
        revoked = issue_token(repo, ENV_ID)
        revoke_token(repo, revoked.id)

        assert [t.id for t in list_tokens(repo)] == [project_token.id, env_token.id]
        assert [t.id for t in list_tokens(repo, env_id=ENV_ID)] == [env_token.id]
