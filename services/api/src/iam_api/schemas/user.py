"""用户管理相关结构。"""

from datetime import datetime

from pydantic import BaseModel, Field

from iam_api.schemas.common import BaseSchema


class UserUpdateRequest(BaseModel):
    """更新用户资料请求体，未传字段保持不变。"""

    email: str | None = Field(default=None, max_length=256, description="新的登录邮箱。")
    username: str | None = Field(default=None, max_length=128, description="新的用户名。")
    password: str | None = Field(default=None, max_length=128, description="新的登录密码。")


class UserData(BaseSchema):
    """用户对外结构，从不包含口令哈希。"""

    id: str = Field(description="用户 ID。")
    email: str = Field(description="登录邮箱。")
    username: str = Field(description="用户名。")
    created_at: datetime = Field(description="创建时间（UTC）。")
    updated_at: datetime = Field(description="更新时间（UTC）。")


class UserDeleteData(BaseSchema):
    """删除用户结果结构。"""

    deleted: bool = Field(description="是否已删除。")
    revoked_sessions: int = Field(description="级联撤销的会话数。")
