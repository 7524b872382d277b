"""数据库引擎与会话工厂。"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from iam_api.models.base import Base


def build_engine(database_url: str) -> Engine:
    """按连接地址创建数据库引擎。"""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # 内存库只存在于单个连接上，所有线程必须共享同一连接。
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, future=True, **kwargs)
    # 全局数据库引擎，开启连接预检查以减少僵尸连接影响。
    return create_engine(database_url, future=True, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """统一会话工厂，存储层每次操作获取短生命周期会话。"""
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


def create_schema(engine: Engine) -> None:
    """按模型创建缺失的表。"""
    Base.metadata.create_all(engine)
