"""用户账号模型。"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from iam_api.models.base import Base, CreatedAtMixin, StringPrimaryKeyMixin


class UserRecord(Base, StringPrimaryKeyMixin, CreatedAtMixin):
    """用户账号表。"""

    __tablename__ = "users"

    # 登录邮箱，全局唯一，精确匹配。
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # 用户名，全局唯一，精确匹配。
    username: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    # 口令哈希，不存明文。
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    # 最近更新时间。
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, comment="更新时间。")
