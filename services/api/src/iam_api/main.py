"""FastAPI 应用入口点。"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from iam_api.api.router import api_router
from iam_api.core.config import Settings, get_settings
from iam_api.core.logging import setup_logging
from iam_api.exceptions import register_exception_handlers
from iam_api.middlewares import register_middlewares
from iam_api.services import ServiceContainer, build_services

logger = logging.getLogger("iam_api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """启动过期会话清理线程，退出时停止并释放存储。"""
    services: ServiceContainer = app.state.services
    services.sweeper.start()
    logger.info("iam service started driver=%s", app.state.settings.db_driver)
    try:
        yield
    finally:
        services.shutdown()
        logger.info("iam service stopped")


def create_app(settings: Settings | None = None, services: ServiceContainer | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用实例。"""
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        lifespan=lifespan,
        description=(
            "身份认证服务接口。\n\n"
            "所有业务接口统一返回：`{request_id, data, meta}`。\n"
            "登录后通过 `Authorization: Bearer <token>` 携带会话令牌。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "auth", "description": "注册、登录、登出与会话校验。"},
            {"name": "users", "description": "用户查询与自助管理。"},
        ],
    )
    app.state.settings = settings
    app.state.services = services or build_services(settings)

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


def run() -> None:
    """以 uvicorn 启动服务。"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port, log_level="info")
