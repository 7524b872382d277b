"""用户管理服务。"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime

from iam_api.core.context import OperationContext, ensure_context
from iam_api.core.errors import CredentialError, ErrorKind
from iam_api.core.security import hash_password
from iam_api.domain.entities import User, utc_now
from iam_api.domain.repositories import SessionRepository, UserRepository

logger = logging.getLogger("iam_api.users")

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


@dataclass
class UserPage:
    """用户分页结果。"""

    items: list[User]
    total: int
    offset: int
    limit: int


class UserService:
    """用户查询、更新与删除。"""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository,
        *,
        default_limit: int = DEFAULT_PAGE_LIMIT,
        max_limit: int = MAX_PAGE_LIMIT,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.clock = clock

    def get_user(self, user_id: str, ctx: OperationContext | None = None) -> User:
        return self.users.get_by_id(user_id, ensure_context(ctx))

    def list_users(
        self,
        offset: int = 0,
        limit: int | None = None,
        ctx: OperationContext | None = None,
    ) -> UserPage:
        """分页查询用户；limit 未设置或为 0 时取默认值。"""
        ctx = ensure_context(ctx)
        if offset < 0:
            raise CredentialError(ErrorKind.INVALID_INPUT, "offset must not be negative")
        if limit is not None and limit < 0:
            raise CredentialError(ErrorKind.INVALID_INPUT, "limit must not be negative")
        effective_limit = min(limit or self.default_limit, self.max_limit)
        items = self.users.list(offset, effective_limit, ctx)
        total = self.users.count(ctx)
        return UserPage(items=items, total=total, offset=offset, limit=effective_limit)

    def update_user(
        self,
        user_id: str,
        *,
        email: str | None = None,
        username: str | None = None,
        password: str | None = None,
        ctx: OperationContext | None = None,
    ) -> User:
        """更新用户资料，未传入的字段保持不变。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("update user")
        for field_name, value in (("email", email), ("username", username), ("password", password)):
            if value is not None and not value:
                raise CredentialError(ErrorKind.INVALID_INPUT, f"{field_name} must not be empty")

        current = self.users.get_by_id(user_id, ctx)
        changes: dict[str, object] = {}
        if email is not None:
            changes["email"] = email
        if username is not None:
            changes["username"] = username
        if password is not None:
            changes["password_hash"] = hash_password(password)

        ctx.raise_if_cancelled("update user")
        updated = replace(current, **changes, updated_at=self.clock())
        self.users.update(updated, ctx)
        logger.info("user updated user_id=%s fields=%s", user_id, ",".join(sorted(changes)) or "-")
        return updated

    def delete_user(self, user_id: str, ctx: OperationContext | None = None) -> int:
        """删除用户并级联删除其全部会话，返回删除的会话数。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("delete user")
        self.users.delete(user_id, ctx)
        # 用户已删除，级联清理不再响应取消，避免遗留孤儿会话。
        removed = self.sessions.delete_by_user(user_id, OperationContext())
        logger.info("user deleted user_id=%s sessions=%s", user_id, removed)
        return removed
