from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest

from iam_api.core.config import get_settings
from iam_api.repositories import InMemorySessionRepository, InMemoryUserRepository
from iam_api.services import AuthService, UserService

TEST_HASH_ITERATIONS = "1000"


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch) -> Generator[None, None, None]:
    """测试统一使用低迭代次数，并关闭后台清理线程。"""
    monkeypatch.setenv("IAM_AUTH_PASSWORD_HASH_ITERATIONS", TEST_HASH_ITERATIONS)
    monkeypatch.setenv("IAM_AUTH_SESSION_SWEEP_INTERVAL_SECONDS", "0")
    monkeypatch.delenv("IAM_DB_DRIVER", raising=False)
    monkeypatch.delenv("IAM_USERS_UPDATE_UNIQUENESS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeClock:
    """可手动拨动的时钟。"""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def session_repo() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def auth_service(user_repo, session_repo, clock) -> AuthService:
    return AuthService(user_repo, session_repo, clock=clock)


@pytest.fixture
def user_service(user_repo, session_repo, clock) -> UserService:
    return UserService(user_repo, session_repo, clock=clock)
