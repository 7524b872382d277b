"""存储接口定义。

服务层只依赖这里的抽象接口，不依赖具体存储技术；
存储实现只负责存取，不做过期判断等业务规则。
所有方法都接受可选的 `OperationContext`，以便把取消信号传到存储层。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from iam_api.core.context import OperationContext
from iam_api.domain.entities import Session, User


class UserRepository(ABC):
    """用户存储接口。"""

    @abstractmethod
    def create(self, user: User, ctx: OperationContext | None = None) -> None:
        """写入新用户；邮箱或用户名已被占用时抛出 ALREADY_EXISTS。

        唯一性检查与写入必须是一个原子步骤。
        """

    @abstractmethod
    def get_by_id(self, user_id: str, ctx: OperationContext | None = None) -> User:
        """按 ID 查询，不存在时抛出 NOT_FOUND。"""

    @abstractmethod
    def get_by_email(self, email: str, ctx: OperationContext | None = None) -> User:
        """按邮箱精确查询，不存在时抛出 NOT_FOUND。"""

    @abstractmethod
    def get_by_username(self, username: str, ctx: OperationContext | None = None) -> User:
        """按用户名精确查询，不存在时抛出 NOT_FOUND。"""

    @abstractmethod
    def update(self, user: User, ctx: OperationContext | None = None) -> None:
        """整体替换已存在的用户记录，不存在时抛出 NOT_FOUND。"""

    @abstractmethod
    def delete(self, user_id: str, ctx: OperationContext | None = None) -> None:
        """删除用户，不存在时抛出 NOT_FOUND。"""

    @abstractmethod
    def list(self, offset: int, limit: int, ctx: OperationContext | None = None) -> list[User]:
        """分页返回用户，顺序由实现决定；offset 越界返回空列表。"""

    @abstractmethod
    def count(self, ctx: OperationContext | None = None) -> int:
        """返回用户总数。"""


class SessionRepository(ABC):
    """会话存储接口。"""

    @abstractmethod
    def create(self, session: Session, ctx: OperationContext | None = None) -> None:
        """按令牌写入会话，令牌已存在时静默覆盖。"""

    @abstractmethod
    def get_by_token(self, token: str, ctx: OperationContext | None = None) -> Session:
        """按令牌查询，不存在时抛出 NOT_FOUND。"""

    @abstractmethod
    def get_by_user(self, user_id: str, ctx: OperationContext | None = None) -> list[Session]:
        """返回用户的全部会话，没有时返回空列表。"""

    @abstractmethod
    def delete_by_token(self, token: str, ctx: OperationContext | None = None) -> None:
        """按令牌删除，幂等。"""

    @abstractmethod
    def delete_by_user(self, user_id: str, ctx: OperationContext | None = None) -> int:
        """删除用户的全部会话，幂等，返回删除条数。"""

    @abstractmethod
    def delete_expired(self, now: datetime, ctx: OperationContext | None = None) -> int:
        """删除 `expires_at` 严格早于 `now` 的会话，返回删除条数。"""
