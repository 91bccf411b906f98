"""通用响应模型"""

from pydantic import BaseModel, Field
from typing import Optional

from bookstore.schemas.base import BaseResponse


class OperationResponse(BaseResponse):
    """简单操作响应"""
    data: Optional[bool] = Field(
        None,
        description="操作结果"
    )


class CleanupRequest(BaseModel):
    """清理任务请求"""
    batch_size: int = Field(
        500,
        ge=1,
        le=10000,
        description="批处理大小",
        examples=[500]
    )
    ttl_minutes: Optional[int] = Field(
        None,
        ge=1,
        description="预占有效期（分钟），默认取配置"
    )


class CleanupResponse(BaseResponse):
    """清理任务响应"""
    cleaned_count: Optional[int] = Field(
        None,
        ge=0,
        description="释放的购物车条目数量"
    )


class CeleryTaskResponse(BaseResponse):
    """Celery任务响应"""
    task_id: Optional[str] = Field(
        None,
        description="任务ID"
    )


class TaskStatusResponse(BaseModel):
    """任务状态响应"""
    task_id: str = Field(
        ...,
        description="任务ID"
    )
    status: str = Field(
        ...,
        description="任务状态描述"
    )
    state: str = Field(
        ...,
        description="任务状态码"
    )


class HealthCheckResponse(BaseModel):
    """健康检查响应"""
    status: str = Field(
        "healthy",
        description="服务状态"
    )
    service: str = Field(
        "bookstore-api",
        description="服务名称"
    )
    version: str = Field(
        "1.0.0",
        description="服务版本"
    )


class APIInfoResponse(BaseModel):
    """API信息响应"""
    message: str = Field(
        "Welcome to the bookstore API",
        description="欢迎信息"
    )
    docs: str = Field(
        "/docs",
        description="API文档路径"
    )
    health: str = Field(
        "/health",
        description="健康检查路径"
    )
