import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from ._version import APP_VERSION
from .adapters import AsgiAdapter
from .config import Settings, get_settings
from .handlers import DanmuHandlers
from .log_manager import setup_logging
from .service import cleanup_task, close_gateway, create_gateway

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    settings: Optional[Settings] = None,
    handlers: Optional[DanmuHandlers] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    adapter = AsgiAdapter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        应用生命周期管理器。
        - `yield` 之前的部分在应用启动时执行。
        - `yield` 之后的部分在应用关闭时执行。
        """
        # --- Startup Logic ---
        setup_logging(settings)
        logger.info(f"Danmu API 网关版本 {APP_VERSION} 正在启动 (环境: {settings.environment})...")

        app.state.gateway = await create_gateway(settings, handlers=handlers, transport=transport)
        app.state.cleanup_task = asyncio.create_task(
            cleanup_task(app.state.gateway, settings.cleanup_interval_seconds)
        )
        logger.info("应用启动完成")

        yield

        # --- Shutdown Logic ---
        logger.info("应用正在关闭...")
        app.state.cleanup_task.cancel()
        try:
            await app.state.cleanup_task
        except asyncio.CancelledError:
            pass
        await close_gateway(app.state.gateway)
        logger.info("应用已完全关闭")

    app = FastAPI(
        title="Danmu API Gateway",
        description="兼容弹弹play接口规范的弹幕 API 网关。所有接口都需要把 token 作为路径的第一段。",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        """下游处理器中未预料的异常，按统一的错误格式返回。"""
        logger.error(f"处理请求 {request.method} {request.url.path} 时发生未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"errorCode": 500, "success": False, "errorMessage": "Internal server error"},
        )

    # 所有路径都交给 Gateway 处理：token 在路径中，且方法不匹配时需要返回 404 而不是 405
    @app.api_route("/{full_path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def gateway_entry(request: Request, full_path: str) -> Response:
        canonical_request = await adapter.to_canonical_request(request)
        canonical_response = await request.app.state.gateway.handle(canonical_request)
        return adapter.from_canonical_response(canonical_response)

    return app


app = create_app()


# 通过 `python -m danmu_gateway.main` 运行，使用环境变量中的主机和端口
if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(
        "danmu_gateway.main:app",
        host=_settings.server.host,
        port=_settings.server.port,
        reload=_settings.environment == "development"
    )
