"""
SuiLens Web API 入口

启动命令:
    uvicorn suilens.api.main:app --reload --host 0.0.0.0 --port 8000
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routers import analyses

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings = get_settings()
    logging.getLogger("suilens").setLevel(settings.log_level.upper())

    # 初始化数据库
    from ..storage.database import init_db
    await init_db()

    logger.info(f"{settings.app_name} v{settings.app_version} 启动成功")

    yield

    logger.info("API 服务关闭")


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="SuiLens - Sui Move 包结构分析 API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册路由
    app.include_router(analyses.router, prefix="/api/v1")

    # 健康检查
    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": settings.app_version,
            "service": "suilens-api"
        }

    return app


# 应用实例
app = create_app()
