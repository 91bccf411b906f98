from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse
from sqlalchemy import text

from bookstore.core.config import settings
from bookstore.db import init_db
from bookstore.db.session import engine
from bookstore.core.redis import async_redis
from bookstore.routers import (
    admin_router,
    book_router,
    cart_router,
    user_router,
    wishlist_router,
)
from bookstore.schemas.common import APIInfoResponse, HealthCheckResponse

import uvicorn

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting bookstore API...")

    # 数据库连接检查
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        logger.info("✅ Database connection successful")
    except Exception as e:
        logger.error("❌ Database connection failed: %s", e)
        raise

    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("✅ Database tables created")

    # Redis 只用于缓存和分布式锁，不可用时降级运行
    try:
        await async_redis.ping()
        logger.info("✅ Redis connected successfully")
    except Exception as e:
        logger.warning(f"⚠️  Redis connection failed: {e}")
        logger.warning("⚠️  Application will run without stock cache and cart locks")

    yield

    logger.info("Shutting down bookstore API...")


app = FastAPI(
    title="书店 API",
    description="书店前台：目录、购物车（加入即预占库存）、心愿单、结算与后台库存管理",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(book_router.router, prefix="/api/v1")
app.include_router(cart_router.router, prefix="/api/v1")
app.include_router(wishlist_router.router, prefix="/api/v1")
app.include_router(user_router.router, prefix="/api/v1")
app.include_router(admin_router.router, prefix="/api/v1")


# 全局异常处理
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "请求参数验证失败",
            "details": exc.errors()
        }
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        logger.error(f"HTTP error: {exc.status_code} - {exc.detail}")
    else:
        logger.info(f"HTTP error: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail
        }
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "服务器内部错误"
        }
    )


@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """健康检查接口"""
    return HealthCheckResponse()

@app.get("/", response_model=APIInfoResponse)
async def read_root():
    return APIInfoResponse()


if __name__ == "__main__":
    uvicorn.run(
        "bookstore.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
