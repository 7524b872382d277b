"""认证服务：注册、登录、登出与会话校验。

服务本身不持有可变状态，可被任意多个并发请求共享；
共享状态只存在于两个存储中。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import uuid4

from iam_api.core.context import OperationContext, ensure_context
from iam_api.core.errors import (
    CredentialError,
    ErrorKind,
    invalid_credentials,
    session_expired,
    session_not_found,
    user_already_exists,
)
from iam_api.core.logging import token_fingerprint
from iam_api.core.security import generate_session_token, hash_password, verify_password
from iam_api.domain.entities import Session, User, utc_now
from iam_api.domain.repositories import SessionRepository, UserRepository

logger = logging.getLogger("iam_api.auth")

DEFAULT_SESSION_TTL = timedelta(hours=24)


class AuthService:
    """认证引擎。"""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionRepository,
        *,
        session_ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.users = users
        self.sessions = sessions
        self.session_ttl = session_ttl
        self.clock = clock

    def _user_exists(self, lookup: Callable[..., User], value: str, ctx: OperationContext) -> bool:
        try:
            lookup(value, ctx)
        except CredentialError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                return False
            raise
        return True

    def _find_user(self, identifier: str, ctx: OperationContext) -> User | None:
        """先按邮箱查找，再按用户名查找。"""
        for lookup in (self.users.get_by_email, self.users.get_by_username):
            try:
                return lookup(identifier, ctx)
            except CredentialError as exc:
                if exc.kind is not ErrorKind.NOT_FOUND:
                    raise
        return None

    def register(
        self,
        email: str,
        username: str,
        password: str,
        ctx: OperationContext | None = None,
    ) -> User:
        """注册新用户。

        这里的两次查询只用于尽早返回；唯一性由存储层的原子写入保证。
        """
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("register")
        if not email or not username or not password:
            raise CredentialError(ErrorKind.INVALID_INPUT, "email, username and password are required")

        if self._user_exists(self.users.get_by_email, email, ctx) or self._user_exists(
            self.users.get_by_username, username, ctx
        ):
            raise user_already_exists()

        password_hash = hash_password(password)
        ctx.raise_if_cancelled("register")
        now = self.clock()
        user = User(
            id=str(uuid4()),
            email=email,
            username=username,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        self.users.create(user, ctx)
        logger.info("user registered user_id=%s", user.id)
        return user

    def login(self, email_or_username: str, password: str, ctx: OperationContext | None = None) -> Session:
        """校验凭据并创建会话。

        标识不存在与口令错误对外统一为 INVALID_CREDENTIALS，仅在日志中区分。
        """
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("login")
        if not email_or_username or not password:
            raise invalid_credentials()

        user = self._find_user(email_or_username, ctx)
        if user is None:
            logger.warning("login failed reason=unknown_identifier")
            raise invalid_credentials()
        if not verify_password(password, user.password_hash):
            logger.warning("login failed reason=bad_password user_id=%s", user.id)
            raise invalid_credentials()

        token = generate_session_token()
        ctx.raise_if_cancelled("login")
        now = self.clock()
        session = Session(
            id=str(uuid4()),
            user_id=user.id,
            token=token,
            expires_at=now + self.session_ttl,
            created_at=now,
        )
        self.sessions.create(session, ctx)
        logger.info("session created user_id=%s token=%s", user.id, token_fingerprint(token))
        return session

    def logout(self, token: str, ctx: OperationContext | None = None) -> None:
        """删除令牌对应会话，令牌不存在时同样视为成功。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("logout")
        self.sessions.delete_by_token(token, ctx)
        logger.info("session revoked token=%s", token_fingerprint(token))

    def logout_all(self, user_id: str, ctx: OperationContext | None = None) -> int:
        """删除用户的全部会话。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("logout all")
        removed = self.sessions.delete_by_user(user_id, ctx)
        logger.info("sessions revoked user_id=%s count=%s", user_id, removed)
        return removed

    def validate_session(self, token: str, ctx: OperationContext | None = None) -> Session:
        """校验令牌；过期会话在此被顺带删除。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("validate session")
        if not token:
            raise session_not_found()
        session = self.sessions.get_by_token(token, ctx)
        if session.is_expired(self.clock()):
            self.sessions.delete_by_token(token, ctx)
            logger.info("expired session removed token=%s", token_fingerprint(token))
            raise session_expired()
        return session

    def list_sessions(self, user_id: str, ctx: OperationContext | None = None) -> list[Session]:
        """返回用户的全部会话（含尚未清理的过期会话）。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("list sessions")
        return self.sessions.get_by_user(user_id, ctx)

    def sweep_expired_sessions(self, ctx: OperationContext | None = None) -> int:
        """批量清理过期会话，返回清理条数。"""
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("sweep sessions")
        removed = self.sessions.delete_expired(self.clock(), ctx)
        if removed:
            logger.info("expired sessions swept count=%s", removed)
        return removed
