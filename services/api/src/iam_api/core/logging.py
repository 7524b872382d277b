"""日志初始化。"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """初始化日志输出格式与级别。"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def token_fingerprint(token: str) -> str:
    """日志中只输出令牌前缀，避免泄露完整凭据。"""
    return f"{token[:8]}..." if len(token) > 8 else "***"
