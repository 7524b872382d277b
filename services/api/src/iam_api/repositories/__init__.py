"""存储实现导出与驱动选择。"""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from iam_api.core.config import Settings
from iam_api.core.locks import ReadWriteLock
from iam_api.db.session import build_engine, build_session_factory, create_schema
from iam_api.domain.repositories import SessionRepository, UserRepository
from iam_api.repositories.memory import InMemorySessionRepository, InMemoryUserRepository
from iam_api.repositories.sql import SqlSessionRepository, SqlUserRepository


@dataclass
class Repositories:
    """按驱动装配好的一组存储。"""

    users: UserRepository
    sessions: SessionRepository
    # 仅 sql 驱动下存在。
    engine: Engine | None = None

    def dispose(self) -> None:
        """释放数据库连接池。"""
        if self.engine is not None:
            self.engine.dispose()


def build_repositories(settings: Settings) -> Repositories:
    """根据 `db_driver` 构造存储实现。"""
    if settings.db_driver == "memory":
        return Repositories(
            users=InMemoryUserRepository(recheck_uniqueness_on_update=settings.recheck_uniqueness_on_update),
            sessions=InMemorySessionRepository(),
        )

    engine = build_engine(settings.database_url)
    create_schema(engine)
    session_factory = build_session_factory(engine)
    # 单连接的 SQLite 上两个存储共用一把锁，读写全部串行。
    single_connection = engine.dialect.name == "sqlite"
    lock = ReadWriteLock() if single_connection else None
    return Repositories(
        users=SqlUserRepository(
            session_factory,
            lock=lock,
            exclusive_reads=single_connection,
            recheck_uniqueness_on_update=settings.recheck_uniqueness_on_update,
        ),
        sessions=SqlSessionRepository(session_factory, lock=lock, exclusive_reads=single_connection),
        engine=engine,
    )


__all__ = [
    "InMemorySessionRepository",
    "InMemoryUserRepository",
    "Repositories",
    "SqlSessionRepository",
    "SqlUserRepository",
    "build_repositories",
]
