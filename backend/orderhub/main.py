import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.api.api_v1.api import api_router as api_v1_router
from orderhub.core.config import settings
from orderhub.core.deps import get_db
from orderhub.core.exceptions import OrderOperationError
from orderhub.core.logging_config import setup_logging
from orderhub.services.notifications import notifier
from orderhub.services.scheduler import init_scheduler, shutdown_scheduler, get_scheduler_status
from orderhub.db.init_db import ensure_tables_exist, ping_database

# 初始化日志系统
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR, settings.LOG_TO_FILE)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    logger.info("🚀 应用启动中...")

    # 确保数据库表存在
    try:
        await ensure_tables_exist()
        logger.info("📊 数据库表已就绪")
    except SQLAlchemyError as e:
        logger.warning(f"数据库表初始化警告: {e}")

    init_scheduler()
    yield
    # 关闭时
    logger.info("🛑 应用关闭中...")
    shutdown_scheduler()
    await notifier.drain()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    description="订单中心 - 订单生命周期与批量操作",
    lifespan=lifespan
)

# CORS配置
if settings.BACKEND_CORS_ORIGINS:
    logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(OrderOperationError)
async def order_operation_error_handler(request: Request, exc: OrderOperationError):
    """业务错误统一返回 {"success": false, "error": {"code", "message"}}"""
    return JSONResponse(
        status_code=exc.http_status,
        content={"success": False, "error": exc.to_dict()},
    )


logger.info(f"注册API v1路由，前缀: {settings.API_V1_STR}")
app.include_router(api_v1_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await ping_database(db)
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"数据库健康检查失败: {e}")
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "scheduler": get_scheduler_status(),
    }
