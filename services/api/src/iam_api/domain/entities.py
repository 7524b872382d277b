"""领域实体。"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now() -> datetime:
    """返回带时区的当前 UTC 时间。"""
    return datetime.now(timezone.utc)


@dataclass
class User:
    """用户账号。

    `password_hash` 不参与 repr，对外结构中也从不输出。
    """

    # 用户 ID，创建时分配，此后不可变。
    id: str
    # 登录邮箱，全局唯一，按原样精确匹配。
    email: str
    # 用户名，全局唯一，按原样精确匹配。
    username: str
    # 口令哈希，不存明文。
    password_hash: str = field(repr=False)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class Session:
    """登录会话。"""

    # 会话 ID。
    id: str
    # 所属用户 ID（逻辑关联，存储层不校验）。
    user_id: str
    # 对外凭据，也是存储主键。
    token: str
    # 绝对过期时刻。
    expires_at: datetime
    created_at: datetime = field(default_factory=utc_now)

    def is_expired(self, now: datetime | None = None) -> bool:
        """当前时刻晚于过期时刻即视为过期。"""
        return (now or utc_now()) > self.expires_at
