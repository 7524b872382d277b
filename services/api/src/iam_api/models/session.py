"""登录会话模型。"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from iam_api.models.base import Base, CreatedAtMixin


class SessionRecord(Base, CreatedAtMixin):
    """登录会话表，以令牌为主键。"""

    __tablename__ = "sessions"

    # 对外凭据。
    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    # 会话 ID。
    id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    # 所属用户 ID（逻辑关联 users.id，不声明数据库外键）。
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # 绝对过期时刻。
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
