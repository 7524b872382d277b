from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from iam_api.core.config import Settings
from iam_api.core.context import OperationContext
from iam_api.core.errors import CredentialError, ErrorKind, OperationCanceled, SessionError
from iam_api.domain.entities import Session, User
from iam_api.repositories import Repositories, build_repositories

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["memory", "sql"])
def repos(request) -> Repositories:
    repositories = build_repositories(Settings(db_driver=request.param))
    yield repositories
    repositories.dispose()


def _user(email: str = "alice@example.com", username: str = "alice") -> User:
    return User(
        id=str(uuid4()),
        email=email,
        username=username,
        password_hash="pbkdf2_sha256$1000$c2FsdA==$ZGlnZXN0",
        created_at=NOW,
        updated_at=NOW,
    )


def _session(user_id: str, *, expires_at: datetime | None = None, token: str | None = None) -> Session:
    return Session(
        id=str(uuid4()),
        user_id=user_id,
        token=token or uuid4().hex,
        expires_at=expires_at or NOW + timedelta(hours=24),
        created_at=NOW,
    )


def test_user_create_and_lookups(repos: Repositories):
    user = _user()
    repos.users.create(user)

    assert repos.users.get_by_id(user.id).email == "alice@example.com"
    assert repos.users.get_by_email("alice@example.com").id == user.id
    assert repos.users.get_by_username("alice").id == user.id
    assert repos.users.get_by_id(user.id).created_at == NOW


def test_user_lookups_are_exact_match(repos: Repositories):
    repos.users.create(_user())

    with pytest.raises(CredentialError) as exc:
        repos.users.get_by_email("ALICE@example.com")
    assert exc.value.kind is ErrorKind.NOT_FOUND
    with pytest.raises(CredentialError):
        repos.users.get_by_username("Alice")


def test_user_create_rejects_duplicate_email_or_username(repos: Repositories):
    repos.users.create(_user())

    with pytest.raises(CredentialError) as exc:
        repos.users.create(_user(username="other"))
    assert exc.value.kind is ErrorKind.ALREADY_EXISTS

    with pytest.raises(CredentialError) as exc:
        repos.users.create(_user(email="other@example.com"))
    assert exc.value.kind is ErrorKind.ALREADY_EXISTS
    assert repos.users.count() == 1


def test_user_update_replaces_record(repos: Repositories):
    user = _user()
    repos.users.create(user)
    updated = User(
        id=user.id,
        email="alice2@example.com",
        username="alice",
        password_hash=user.password_hash,
        created_at=user.created_at,
        updated_at=NOW + timedelta(minutes=5),
    )
    repos.users.update(updated)

    assert repos.users.get_by_email("alice2@example.com").id == user.id
    assert repos.users.get_by_id(user.id).updated_at == NOW + timedelta(minutes=5)
    with pytest.raises(CredentialError):
        repos.users.get_by_email("alice@example.com")


def test_user_update_and_delete_missing_user(repos: Repositories):
    with pytest.raises(CredentialError) as exc:
        repos.users.update(_user())
    assert exc.value.kind is ErrorKind.NOT_FOUND

    with pytest.raises(CredentialError) as exc:
        repos.users.delete("missing")
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_user_delete_frees_email_and_username(repos: Repositories):
    user = _user()
    repos.users.create(user)
    repos.users.delete(user.id)

    with pytest.raises(CredentialError):
        repos.users.get_by_id(user.id)
    repos.users.create(_user())
    assert repos.users.count() == 1


def test_user_list_pagination(repos: Repositories):
    assert repos.users.list(0, 10) == []
    for index in range(5):
        repos.users.create(_user(email=f"u{index}@example.com", username=f"u{index}"))

    assert len(repos.users.list(0, 10)) == 5
    assert len(repos.users.list(0, 2)) == 2
    assert len(repos.users.list(4, 10)) == 1
    assert repos.users.list(5, 10) == []
    assert repos.users.list(50, 10) == []

    seen = {user.id for offset in range(0, 5, 2) for user in repos.users.list(offset, 2)}
    assert len(seen) == 5


def test_session_create_lookup_and_delete(repos: Repositories):
    session = _session("user-1")
    repos.sessions.create(session)

    found = repos.sessions.get_by_token(session.token)
    assert found.id == session.id
    assert found.expires_at == session.expires_at

    repos.sessions.delete_by_token(session.token)
    with pytest.raises(SessionError) as exc:
        repos.sessions.get_by_token(session.token)
    assert exc.value.kind is ErrorKind.NOT_FOUND
    # 删除不存在的令牌不报错。
    repos.sessions.delete_by_token(session.token)


def test_session_create_overwrites_same_token(repos: Repositories):
    repos.sessions.create(_session("user-1", token="same-token"))
    repos.sessions.create(_session("user-2", token="same-token"))

    assert repos.sessions.get_by_token("same-token").user_id == "user-2"


def test_session_lookup_and_delete_by_user(repos: Repositories):
    for _ in range(3):
        repos.sessions.create(_session("user-1"))
    other = _session("user-2")
    repos.sessions.create(other)

    assert len(repos.sessions.get_by_user("user-1")) == 3
    assert repos.sessions.get_by_user("nobody") == []

    assert repos.sessions.delete_by_user("user-1") == 3
    assert repos.sessions.get_by_user("user-1") == []
    assert repos.sessions.delete_by_user("user-1") == 0
    assert repos.sessions.get_by_token(other.token).user_id == "user-2"


def test_session_delete_expired_is_strictly_before_now(repos: Repositories):
    expired = _session("user-1", expires_at=NOW - timedelta(seconds=1))
    boundary = _session("user-1", expires_at=NOW)
    live = _session("user-1", expires_at=NOW + timedelta(hours=1))
    for session in (expired, boundary, live):
        repos.sessions.create(session)

    assert repos.sessions.delete_expired(NOW) == 1

    remaining = {session.token for session in repos.sessions.get_by_user("user-1")}
    assert remaining == {boundary.token, live.token}


def test_canceled_context_leaves_no_record(repos: Repositories):
    ctx = OperationContext()
    ctx.cancel()

    with pytest.raises(OperationCanceled):
        repos.users.create(_user(), ctx)
    with pytest.raises(OperationCanceled):
        repos.sessions.create(_session("user-1"), ctx)

    assert repos.users.count() == 0
    assert repos.sessions.get_by_user("user-1") == []


def test_concurrent_create_same_email_succeeds_once(repos: Repositories):
    def attempt(index: int) -> bool:
        try:
            repos.users.create(_user(email="race@example.com", username=f"racer-{index}"))
        except CredentialError as exc:
            assert exc.kind is ErrorKind.ALREADY_EXISTS
            return False
        return True

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(attempt, range(50)))

    assert results.count(True) == 1
    assert repos.users.count() == 1
