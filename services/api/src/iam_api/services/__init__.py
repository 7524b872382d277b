"""服务层能力导出与装配。"""

from dataclasses import dataclass
from datetime import timedelta

from iam_api.core.config import Settings
from iam_api.repositories import Repositories, build_repositories
from iam_api.services.auth import AuthService
from iam_api.services.sweeper import SessionSweeper
from iam_api.services.users import UserPage, UserService


@dataclass
class ServiceContainer:
    """进程级服务集合，挂在 `app.state` 上供路由依赖注入。"""

    repositories: Repositories
    auth: AuthService
    users: UserService
    sweeper: SessionSweeper

    def shutdown(self) -> None:
        self.sweeper.stop()
        self.repositories.dispose()


def build_services(settings: Settings, repositories: Repositories | None = None) -> ServiceContainer:
    """按配置装配存储与服务。"""
    repos = repositories or build_repositories(settings)
    auth = AuthService(
        repos.users,
        repos.sessions,
        session_ttl=timedelta(seconds=settings.auth_session_ttl_seconds),
    )
    users = UserService(
        repos.users,
        repos.sessions,
        default_limit=settings.users_default_page_limit,
        max_limit=settings.users_max_page_limit,
    )
    sweeper = SessionSweeper(auth, settings.auth_session_sweep_interval_seconds)
    return ServiceContainer(repositories=repos, auth=auth, users=users, sweeper=sweeper)


__all__ = [
    "AuthService",
    "ServiceContainer",
    "SessionSweeper",
    "UserPage",
    "UserService",
    "build_services",
]
