"""内存存储实现。

进程内字典 + 读写锁，数据随进程退出丢失。
锁内只做字典读写，不调用哈希或令牌生成等耗时原语。
"""

from __future__ import annotations

from datetime import datetime

from iam_api.core.context import OperationContext, ensure_context
from iam_api.core.errors import session_not_found, user_already_exists, user_not_found
from iam_api.core.locks import ReadWriteLock
from iam_api.domain.entities import Session, User
from iam_api.domain.repositories import SessionRepository, UserRepository


def _index_add(index: dict[str, list[str]], key: str, user_id: str) -> None:
    holders = index.setdefault(key, [])
    if user_id not in holders:
        holders.append(user_id)


def _index_remove(index: dict[str, list[str]], key: str, user_id: str) -> None:
    holders = index.get(key)
    if not holders or user_id not in holders:
        return
    holders.remove(user_id)
    if not holders:
        del index[key]


def _held_by_other(index: dict[str, list[str]], key: str, user_id: str) -> bool:
    return any(holder != user_id for holder in index.get(key, ()))


class InMemoryUserRepository(UserRepository):
    """基于字典的用户存储。"""

    def __init__(self, *, recheck_uniqueness_on_update: bool = False) -> None:
        self.recheck_uniqueness_on_update = recheck_uniqueness_on_update
        self._lock = ReadWriteLock()
        self._users: dict[str, User] = {}
        # 二级索引：email/username -> 按写入顺序排列的全部持有者。
        # 宽松更新策略下同一取值可能被多个用户持有，索引必须与全表扫描结果一致。
        self._email_index: dict[str, list[str]] = {}
        self._username_index: dict[str, list[str]] = {}

    def _first_holder(self, index: dict[str, list[str]], key: str) -> User | None:
        holders = index.get(key)
        return self._users[holders[0]] if holders else None

    def create(self, user: User, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("user create")
        with self._lock.write():
            ctx.raise_if_cancelled("user create")
            if user.email in self._email_index or user.username in self._username_index:
                raise user_already_exists()
            self._users[user.id] = user
            _index_add(self._email_index, user.email, user.id)
            _index_add(self._username_index, user.username, user.id)

    def get_by_id(self, user_id: str, ctx: OperationContext | None = None) -> User:
        ensure_context(ctx).raise_if_cancelled("user lookup")
        with self._lock.read():
            user = self._users.get(user_id)
        if user is None:
            raise user_not_found()
        return user

    def get_by_email(self, email: str, ctx: OperationContext | None = None) -> User:
        ensure_context(ctx).raise_if_cancelled("user lookup")
        with self._lock.read():
            user = self._first_holder(self._email_index, email)
        if user is None:
            raise user_not_found()
        return user

    def get_by_username(self, username: str, ctx: OperationContext | None = None) -> User:
        ensure_context(ctx).raise_if_cancelled("user lookup")
        with self._lock.read():
            user = self._first_holder(self._username_index, username)
        if user is None:
            raise user_not_found()
        return user

    def update(self, user: User, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("user update")
        with self._lock.write():
            ctx.raise_if_cancelled("user update")
            current = self._users.get(user.id)
            if current is None:
                raise user_not_found()
            if self.recheck_uniqueness_on_update and (
                _held_by_other(self._email_index, user.email, user.id)
                or _held_by_other(self._username_index, user.username, user.id)
            ):
                raise user_already_exists()
            if current.email != user.email:
                _index_remove(self._email_index, current.email, user.id)
                _index_add(self._email_index, user.email, user.id)
            if current.username != user.username:
                _index_remove(self._username_index, current.username, user.id)
                _index_add(self._username_index, user.username, user.id)
            self._users[user.id] = user

    def delete(self, user_id: str, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("user delete")
        with self._lock.write():
            ctx.raise_if_cancelled("user delete")
            user = self._users.pop(user_id, None)
            if user is None:
                raise user_not_found()
            _index_remove(self._email_index, user.email, user_id)
            _index_remove(self._username_index, user.username, user_id)

    def list(self, offset: int, limit: int, ctx: OperationContext | None = None) -> list[User]:
        ensure_context(ctx).raise_if_cancelled("user list")
        with self._lock.read():
            users = list(self._users.values())
        if offset >= len(users):
            return []
        return users[offset:min(offset + limit, len(users))]

    def count(self, ctx: OperationContext | None = None) -> int:
        ensure_context(ctx).raise_if_cancelled("user count")
        with self._lock.read():
            return len(self._users)


class InMemorySessionRepository(SessionRepository):
    """基于字典的会话存储，以令牌为主键。"""

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._sessions: dict[str, Session] = {}

    def create(self, session: Session, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session create")
        with self._lock.write():
            ctx.raise_if_cancelled("session create")
            self._sessions[session.token] = session

    def get_by_token(self, token: str, ctx: OperationContext | None = None) -> Session:
        ensure_context(ctx).raise_if_cancelled("session lookup")
        with self._lock.read():
            session = self._sessions.get(token)
        if session is None:
            raise session_not_found()
        return session

    def get_by_user(self, user_id: str, ctx: OperationContext | None = None) -> list[Session]:
        ensure_context(ctx).raise_if_cancelled("session lookup")
        with self._lock.read():
            return [session for session in self._sessions.values() if session.user_id == user_id]

    def delete_by_token(self, token: str, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session delete")
        with self._lock.write():
            ctx.raise_if_cancelled("session delete")
            self._sessions.pop(token, None)

    def delete_by_user(self, user_id: str, ctx: OperationContext | None = None) -> int:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session delete")
        with self._lock.write():
            ctx.raise_if_cancelled("session delete")
            tokens = [token for token, session in self._sessions.items() if session.user_id == user_id]
            for token in tokens:
                del self._sessions[token]
        return len(tokens)

    def delete_expired(self, now: datetime, ctx: OperationContext | None = None) -> int:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session sweep")
        with self._lock.write():
            ctx.raise_if_cancelled("session sweep")
            tokens = [token for token, session in self._sessions.items() if session.expires_at < now]
            for token in tokens:
                del self._sessions[token]
        return len(tokens)
