import pytest

from iam_api.core.context import OperationContext
from iam_api.core.errors import CredentialError, ErrorKind, OperationCanceled, SessionError
from iam_api.core.security import verify_password
from iam_api.repositories import InMemoryUserRepository
from iam_api.services import AuthService, UserService


def _seed(auth_service: AuthService, count: int) -> list[str]:
    return [
        auth_service.register(f"user{index}@example.com", f"user{index}", "secret").id
        for index in range(count)
    ]


def test_list_users_on_empty_store(user_service):
    page = user_service.list_users()

    assert page.items == []
    assert page.total == 0
    assert page.limit == 10


def test_list_users_defaults_and_caps_limit(auth_service, user_service):
    ids = _seed(auth_service, 12)

    default_page = user_service.list_users(0, 0)
    assert [user.id for user in default_page.items] == ids[:10]
    assert default_page.total == 12

    assert user_service.list_users(0, 1000).limit == 100
    assert len(user_service.list_users(10, 10).items) == 2


def test_list_users_offset_past_end(auth_service, user_service):
    _seed(auth_service, 3)

    page = user_service.list_users(3, 10)
    assert page.items == []
    assert page.total == 3


@pytest.mark.parametrize(("offset", "limit"), [(-1, 10), (0, -5)])
def test_list_users_rejects_negative_paging(user_service, offset, limit):
    with pytest.raises(CredentialError) as exc:
        user_service.list_users(offset, limit)
    assert exc.value.kind is ErrorKind.INVALID_INPUT


def test_get_user(auth_service, user_service):
    (user_id,) = _seed(auth_service, 1)

    assert user_service.get_user(user_id).username == "user0"
    with pytest.raises(CredentialError) as exc:
        user_service.get_user("missing")
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_update_user_changes_fields_and_timestamp(auth_service, user_service, user_repo, clock):
    (user_id,) = _seed(auth_service, 1)
    created = user_repo.get_by_id(user_id)
    clock.advance(minutes=10)

    updated = user_service.update_user(user_id, email="new@example.com", password="new-secret")

    assert updated.email == "new@example.com"
    assert updated.username == "user0"
    assert updated.created_at == created.created_at
    assert updated.updated_at == clock.now
    assert verify_password("new-secret", updated.password_hash)
    assert user_repo.get_by_email("new@example.com").id == user_id

    # 新密码可登录，旧密码失效。
    assert auth_service.login("user0", "new-secret").user_id == user_id
    with pytest.raises(CredentialError):
        auth_service.login("user0", "secret")


def test_update_user_rejects_empty_values(auth_service, user_service):
    (user_id,) = _seed(auth_service, 1)

    with pytest.raises(CredentialError) as exc:
        user_service.update_user(user_id, username="")
    assert exc.value.kind is ErrorKind.INVALID_INPUT


def test_update_missing_user(user_service):
    with pytest.raises(CredentialError) as exc:
        user_service.update_user("missing", email="x@example.com")
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_update_without_recheck_allows_colliding_email(auth_service, user_service, user_repo):
    first, second = _seed(auth_service, 2)

    user_service.update_user(second, email="user0@example.com")

    assert user_repo.get_by_id(second).email == "user0@example.com"
    # 多个持有者时返回最早的持有者。
    assert user_repo.get_by_email("user0@example.com").id == first
    with pytest.raises(CredentialError):
        user_repo.get_by_email("user1@example.com")


def test_shared_email_stays_indexed_after_first_holder_deleted(auth_service, user_service, user_repo):
    first, second = _seed(auth_service, 2)
    user_service.update_user(first, email="user1@example.com", username="shared")
    user_service.update_user(second, username="shared")

    user_service.delete_user(second)

    assert user_repo.get_by_email("user1@example.com").id == first
    assert user_repo.get_by_username("shared").id == first
    with pytest.raises(CredentialError) as exc:
        auth_service.register("user1@example.com", "newcomer", "secret")
    assert exc.value.kind is ErrorKind.ALREADY_EXISTS
    with pytest.raises(CredentialError) as exc:
        auth_service.register("newcomer@example.com", "shared", "secret")
    assert exc.value.kind is ErrorKind.ALREADY_EXISTS
    assert user_repo.count() == 1


def test_freed_email_can_be_registered_again(auth_service, user_service, user_repo):
    (user_id,) = _seed(auth_service, 1)
    user_service.update_user(user_id, email="moved@example.com")

    assert auth_service.register("user0@example.com", "newcomer", "secret").email == "user0@example.com"
    assert user_repo.get_by_email("moved@example.com").id == user_id


def test_update_with_recheck_rejects_colliding_email(session_repo, clock):
    user_repo = InMemoryUserRepository(recheck_uniqueness_on_update=True)
    auth_service = AuthService(user_repo, session_repo, clock=clock)
    user_service = UserService(user_repo, session_repo, clock=clock)
    _, second = _seed(auth_service, 2)

    with pytest.raises(CredentialError) as exc:
        user_service.update_user(second, email="user0@example.com")
    assert exc.value.kind is ErrorKind.ALREADY_EXISTS
    assert user_repo.get_by_id(second).email == "user1@example.com"

    # 保留自身邮箱不算冲突。
    assert user_service.update_user(second, email="user1@example.com").email == "user1@example.com"


def test_delete_user_revokes_sessions(auth_service, user_service, user_repo):
    user_id, other_id = _seed(auth_service, 2)
    first = auth_service.login("user0", "secret")
    auth_service.login("user0", "secret")
    other = auth_service.login("user1", "secret")

    assert user_service.delete_user(user_id) == 2

    with pytest.raises(CredentialError):
        user_repo.get_by_id(user_id)
    assert auth_service.list_sessions(user_id) == []
    with pytest.raises(SessionError):
        auth_service.validate_session(first.token)
    assert auth_service.validate_session(other.token).user_id == other_id


def test_delete_missing_user(user_service):
    with pytest.raises(CredentialError) as exc:
        user_service.delete_user("missing")
    assert exc.value.kind is ErrorKind.NOT_FOUND


def test_canceled_update_leaves_user_untouched(auth_service, user_service, user_repo):
    (user_id,) = _seed(auth_service, 1)
    ctx = OperationContext()
    ctx.cancel()

    with pytest.raises(OperationCanceled):
        user_service.update_user(user_id, email="new@example.com", ctx=ctx)
    assert user_repo.get_by_id(user_id).email == "user0@example.com"
