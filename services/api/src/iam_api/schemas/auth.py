"""注册、登录与会话结构。"""

from datetime import datetime

from pydantic import BaseModel, Field

from iam_api.schemas.common import BaseSchema


class AuthRegisterRequest(BaseModel):
    """注册请求。"""

    email: str = Field(max_length=256, description="登录邮箱。", examples=["alice@example.com"])
    username: str = Field(max_length=128, description="用户名。", examples=["alice"])
    password: str = Field(max_length=128, description="登录密码。", examples=["StrongPassw0rd!"])


class AuthLoginRequest(BaseModel):
    """登录请求，邮箱或用户名均可作为登录标识。"""

    email_or_username: str = Field(max_length=256, description="邮箱或用户名。", examples=["alice@example.com"])
    password: str = Field(max_length=128, description="登录密码。", examples=["StrongPassw0rd!"])


class AuthSessionData(BaseSchema):
    """登录结果结构，令牌即后续请求的 Bearer 凭据。"""

    id: str = Field(description="会话 ID。")
    user_id: str = Field(description="所属用户 ID。")
    token: str = Field(description="会话令牌。")
    token_type: str = Field(default="bearer", description="令牌类型。")
    expires_at: datetime = Field(description="过期时间（UTC）。")
    created_at: datetime = Field(description="创建时间（UTC）。")
    expires_in: int = Field(description="距过期剩余秒数。")


class AuthSessionInfoData(BaseSchema):
    """会话概要，不包含完整令牌。"""

    id: str = Field(description="会话 ID。")
    user_id: str = Field(description="所属用户 ID。")
    expires_at: datetime = Field(description="过期时间（UTC）。")
    created_at: datetime = Field(description="创建时间（UTC）。")
    current: bool = Field(description="是否为当前请求所用会话。")


class AuthLogoutData(BaseSchema):
    """登出结果结构。"""

    logged_out: bool = Field(description="是否已完成登出。")
    revoked_sessions: int | None = Field(default=None, description="本次撤销的会话数，单令牌登出时不返回。")
