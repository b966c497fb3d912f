"""
app.main
~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api import room, ws
from app.api.deps import get_connection_manager, get_registry
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.schemas.api_response import ApiResponse
from app.services.connection import ConnectionManager
from app.services.registry import RoomRegistry, run_periodic_trim

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子：创建房间注册表与连接管理器，启动历史清理任务。"""
    # ── 启动 ──
    registry = RoomRegistry(
        max_members=settings.ROOM_MAX_MEMBERS,
        history_limit=settings.ROOM_HISTORY_LIMIT,
        trim_keep=settings.HISTORY_TRIM_KEEP,
    )
    app.state.registry = registry
    app.state.connections = ConnectionManager()
    trim_task = asyncio.create_task(
        run_periodic_trim(registry, settings.HISTORY_TRIM_INTERVAL_SECONDS),
    )
    logger.info(
        "🚀 应用已启动 | env=%s | port=%d | log_level=%s",
        settings.ENVIRONMENT,
        settings.PORT,
        settings.effective_log_level,
    )
    yield
    # ── 关闭 ──
    trim_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await trim_task
    logger.info("👋 应用已关闭")


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="端到端加密聊天室的 WebSocket 中继",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# ── CORS 中间件 ───────────────────────────────────────────────────────
if settings.allow_cors_all_origins:
    # dev / test 环境：允许所有来源，方便本地调试
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(room.router, prefix="/api", tags=["Rooms"])
app.include_router(ws.router, tags=["WebSocket Chat"])


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "Internal server error"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check(
    registry: RoomRegistry = Depends(get_registry),
    connections: ConnectionManager = Depends(get_connection_manager),
) -> JSONResponse:
    """服务健康检查。

    Returns:
        当前房间数与在线连接数的只读快照。
    """
    return JSONResponse(
        content={
            "status": "ok",
            "rooms": len(registry),
            "connections": connections.online_count,
            "environment": settings.ENVIRONMENT,
        },
    )


# ── 静态资源（前端页面）───────────────────────────────────────────────
# 必须最后挂载：根路径的 Mount 会匹配所有未被上面路由命中的请求
if os.path.isdir(settings.STATIC_DIR):
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
    logger.debug("静态资源目录已挂载 -> %s", settings.STATIC_DIR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )
