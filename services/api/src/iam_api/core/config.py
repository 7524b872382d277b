"""应用运行配置。"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_DB_DRIVERS = ("memory", "sql")
SUPPORTED_UPDATE_UNIQUENESS = ("none", "strict")
MIN_SESSION_TOKEN_BYTES = 32


class Settings(BaseSettings):
    """身份认证服务共享配置。"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="IAM_", extra="ignore")

    app_name: str = Field(default="IAM Service", description="应用名称。")
    app_env: str = Field(default="dev", description="运行环境标识。")
    app_debug: bool = Field(default=False, description="是否开启调试模式。")
    api_prefix: str = Field(default="/api", description="统一接口前缀。")
    server_host: str = Field(default="0.0.0.0", description="服务监听地址。")
    server_port: int = Field(default=8080, description="服务监听端口。")
    log_level: str = Field(default="INFO", description="日志级别。")

    db_driver: str = Field(default="memory", description="存储驱动，可选 memory/sql。")
    database_url: str = Field(
        default="sqlite+pysqlite:///:memory:",
        description="sql 驱动下的数据库连接地址。",
    )

    auth_session_ttl_seconds: int = Field(default=86400, description="登录会话有效期（秒）。")
    auth_password_hash_iterations: int = Field(default=390000, description="PBKDF2 密码哈希迭代次数。")
    auth_session_token_bytes: int = Field(default=32, description="会话令牌随机字节数。")
    auth_session_sweep_interval_seconds: float = Field(
        default=300.0,
        description="过期会话清理周期（秒），0 表示关闭后台清理。",
    )
    request_timeout_seconds: float = Field(default=15.0, description="单请求处理截止时长（秒），0 表示不限制。")

    users_default_page_limit: int = Field(default=10, description="用户列表默认分页大小。")
    users_max_page_limit: int = Field(default=100, description="用户列表分页大小上限。")
    users_update_uniqueness: str = Field(
        default="none",
        description="更新用户时是否复核邮箱/用户名唯一性，可选 none/strict。",
    )

    @field_validator("db_driver")
    @classmethod
    def normalize_db_driver(cls, value: str) -> str:
        """规范化存储驱动名称。"""
        normalized = value.strip().lower()
        if normalized not in SUPPORTED_DB_DRIVERS:
            raise ValueError(f"db_driver must be one of {', '.join(SUPPORTED_DB_DRIVERS)}")
        return normalized

    @field_validator("users_update_uniqueness")
    @classmethod
    def normalize_update_uniqueness(cls, value: str) -> str:
        """规范化更新唯一性策略。"""
        normalized = value.strip().lower()
        if normalized not in SUPPORTED_UPDATE_UNIQUENESS:
            raise ValueError(f"users_update_uniqueness must be one of {', '.join(SUPPORTED_UPDATE_UNIQUENESS)}")
        return normalized

    @field_validator("auth_session_token_bytes")
    @classmethod
    def check_token_bytes(cls, value: int) -> int:
        """令牌熵不得低于 256 位。"""
        if value < MIN_SESSION_TOKEN_BYTES:
            raise ValueError(f"auth_session_token_bytes must be at least {MIN_SESSION_TOKEN_BYTES}")
        return value

    @property
    def recheck_uniqueness_on_update(self) -> bool:
        """更新用户时是否执行严格唯一性复核。"""
        return self.users_update_uniqueness == "strict"


@lru_cache
def get_settings() -> Settings:
    """返回缓存后的配置单例。"""
    return Settings()
