"""对象映射基础模型与通用混入。"""

from datetime import datetime

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """全局对象映射声明基类。"""

    metadata = MetaData(
        naming_convention={
            # 统一约束/索引命名规范（无外键场景）。
            "pk": "pk_%(table_name)s",
            "ix": "ix_%(table_name)s_%(column_0_name)s",
            "uq": "uk_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
        }
    )


class StringPrimaryKeyMixin:
    """提供统一字符串主键字段。"""

    # 主键由服务层生成（UUID 文本），存储层不自动分配。
    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="主键 ID。")


class CreatedAtMixin:
    """提供创建时间字段。"""

    # 创建时间由服务层写入，保持与内存实现一致。
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, comment="创建时间。")
