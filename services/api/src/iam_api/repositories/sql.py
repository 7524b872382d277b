"""SQLAlchemy 存储实现。

与内存实现共享同一接口，可替换为任意 SQLAlchemy 支持的数据库。
唯一性由数据库唯一约束兜底，写入前的扫描只用于尽早返回。
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DbSession, sessionmaker

from iam_api.core.context import OperationContext, ensure_context
from iam_api.core.errors import session_not_found, user_already_exists, user_not_found
from iam_api.core.locks import ReadWriteLock
from iam_api.domain.entities import Session, User
from iam_api.domain.repositories import SessionRepository, UserRepository
from iam_api.models.session import SessionRecord
from iam_api.models.user import UserRecord


def _as_utc(value: datetime) -> datetime:
    """SQLite 读回的时间不带时区，统一补齐为 UTC。"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_user(record: UserRecord) -> User:
    return User(
        id=record.id,
        email=record.email,
        username=record.username,
        password_hash=record.password_hash,
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at),
    )


def _to_session(record: SessionRecord) -> Session:
    return Session(
        id=record.id,
        user_id=record.user_id,
        token=record.token,
        expires_at=_as_utc(record.expires_at),
        created_at=_as_utc(record.created_at),
    )


class _SqlStore:
    """SQL 存储公共部分：会话工厂与进程内读写锁。"""

    def __init__(
        self,
        session_factory: sessionmaker[DbSession],
        *,
        lock: ReadWriteLock | None = None,
        exclusive_reads: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self._lock = lock or ReadWriteLock()
        # 单连接数据库（如内存 SQLite）上的读也必须互斥。
        self._exclusive_reads = exclusive_reads

    @contextmanager
    def _reading(self) -> Iterator[DbSession]:
        guard = self._lock.write() if self._exclusive_reads else self._lock.read()
        with guard, self._session_factory() as db:
            yield db

    @contextmanager
    def _writing(self, ctx: OperationContext, operation: str) -> Iterator[DbSession]:
        with self._lock.write(), self._session_factory() as db:
            ctx.raise_if_cancelled(operation)
            yield db


class SqlUserRepository(_SqlStore, UserRepository):
    """基于 `users` 表的用户存储。"""

    def __init__(
        self,
        session_factory: sessionmaker[DbSession],
        *,
        lock: ReadWriteLock | None = None,
        exclusive_reads: bool = False,
        recheck_uniqueness_on_update: bool = False,
    ) -> None:
        super().__init__(session_factory, lock=lock, exclusive_reads=exclusive_reads)
        self.recheck_uniqueness_on_update = recheck_uniqueness_on_update

    def create(self, user: User, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("user create")
        with self._writing(ctx, "user create") as db:
            existing = db.execute(
                select(UserRecord.id).where(
                    or_(UserRecord.email == user.email, UserRecord.username == user.username)
                )
            ).first()
            if existing is not None:
                raise user_already_exists()
            db.add(
                UserRecord(
                    id=user.id,
                    email=user.email,
                    username=user.username,
                    password_hash=user.password_hash,
                    created_at=_as_utc(user.created_at),
                    updated_at=_as_utc(user.updated_at),
                )
            )
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise user_already_exists() from exc

    def get_by_id(self, user_id: str, ctx: OperationContext | None = None) -> User:
        ensure_context(ctx).raise_if_cancelled("user lookup")
        with self._reading() as db:
            record = db.get(UserRecord, user_id)
            if record is None:
                raise user_not_found()
            return _to_user(record)

    def get_by_email(self, email: str, ctx: OperationContext | None = None) -> User:
        ensure_context(ctx).raise_if_cancelled("user lookup")
        with self._reading() as db:
            record = db.execute(select(UserRecord).where(UserRecord.email == email)).scalar_one_or_none()
            if record is None:
                raise user_not_found()
            return _to_user(record)

    def get_by_username(self, username: str, ctx: OperationContext | None = None) -> User:
        ensure_context(ctx).raise_if_cancelled("user lookup")
        with self._reading() as db:
            record = db.execute(select(UserRecord).where(UserRecord.username == username)).scalar_one_or_none()
            if record is None:
                raise user_not_found()
            return _to_user(record)

    def update(self, user: User, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("user update")
        with self._writing(ctx, "user update") as db:
            record = db.get(UserRecord, user.id)
            if record is None:
                raise user_not_found()
            if self.recheck_uniqueness_on_update:
                conflict = db.execute(
                    select(UserRecord.id)
                    .where(UserRecord.id != user.id)
                    .where(or_(UserRecord.email == user.email, UserRecord.username == user.username))
                ).first()
                if conflict is not None:
                    raise user_already_exists()
            record.email = user.email
            record.username = user.username
            record.password_hash = user.password_hash
            record.created_at = _as_utc(user.created_at)
            record.updated_at = _as_utc(user.updated_at)
            try:
                db.commit()
            except IntegrityError as exc:
                # 表级唯一约束始终生效，宽松策略在此退化为冲突报错。
                db.rollback()
                raise user_already_exists() from exc

    def delete(self, user_id: str, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("user delete")
        with self._writing(ctx, "user delete") as db:
            record = db.get(UserRecord, user_id)
            if record is None:
                raise user_not_found()
            db.delete(record)
            db.commit()

    def list(self, offset: int, limit: int, ctx: OperationContext | None = None) -> list[User]:
        ensure_context(ctx).raise_if_cancelled("user list")
        with self._reading() as db:
            records = (
                db.execute(select(UserRecord).order_by(UserRecord.created_at, UserRecord.id).offset(offset).limit(limit))
                .scalars()
                .all()
            )
            return [_to_user(record) for record in records]

    def count(self, ctx: OperationContext | None = None) -> int:
        ensure_context(ctx).raise_if_cancelled("user count")
        with self._reading() as db:
            return int(db.execute(select(func.count()).select_from(UserRecord)).scalar_one())


class SqlSessionRepository(_SqlStore, SessionRepository):
    """基于 `sessions` 表的会话存储。"""

    def create(self, session: Session, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session create")
        with self._writing(ctx, "session create") as db:
            # 令牌冲突按覆盖处理。
            db.merge(
                SessionRecord(
                    token=session.token,
                    id=session.id,
                    user_id=session.user_id,
                    expires_at=_as_utc(session.expires_at),
                    created_at=_as_utc(session.created_at),
                )
            )
            db.commit()

    def get_by_token(self, token: str, ctx: OperationContext | None = None) -> Session:
        ensure_context(ctx).raise_if_cancelled("session lookup")
        with self._reading() as db:
            record = db.get(SessionRecord, token)
            if record is None:
                raise session_not_found()
            return _to_session(record)

    def get_by_user(self, user_id: str, ctx: OperationContext | None = None) -> list[Session]:
        ensure_context(ctx).raise_if_cancelled("session lookup")
        with self._reading() as db:
            records = db.execute(select(SessionRecord).where(SessionRecord.user_id == user_id)).scalars().all()
            return [_to_session(record) for record in records]

    def delete_by_token(self, token: str, ctx: OperationContext | None = None) -> None:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session delete")
        with self._writing(ctx, "session delete") as db:
            db.execute(delete(SessionRecord).where(SessionRecord.token == token))
            db.commit()

    def delete_by_user(self, user_id: str, ctx: OperationContext | None = None) -> int:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session delete")
        with self._writing(ctx, "session delete") as db:
            result = db.execute(delete(SessionRecord).where(SessionRecord.user_id == user_id))
            db.commit()
            return int(result.rowcount or 0)

    def delete_expired(self, now: datetime, ctx: OperationContext | None = None) -> int:
        ctx = ensure_context(ctx)
        ctx.raise_if_cancelled("session sweep")
        with self._writing(ctx, "session sweep") as db:
            result = db.execute(delete(SessionRecord).where(SessionRecord.expires_at < _as_utc(now)))
            db.commit()
            return int(result.rowcount or 0)
