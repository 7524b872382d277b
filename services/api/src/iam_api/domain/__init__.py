"""领域实体与存储接口导出集合。"""

from iam_api.domain.entities import Session, User, utc_now
from iam_api.domain.repositories import SessionRepository, UserRepository

__all__ = [
    "Session",
    "SessionRepository",
    "User",
    "UserRepository",
    "utc_now",
]
