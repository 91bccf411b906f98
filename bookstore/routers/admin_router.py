"""管理员 API 路由：图书维护、库存日志、用户列表、过期预占清理"""

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
from sqlalchemy import select
from sqlalchemy.orm import Session
import logging

from bookstore.core.dependencies import (
    get_book_service,
    get_db,
    get_redis,
    get_redlock,
    require_admin,
)
from bookstore.core.errors import operation_failed
from bookstore.models.user import User
from bookstore.services.book_service import BookService
from bookstore.services.cart_service import CartService
from bookstore.schemas.base import BaseResponse
from bookstore.schemas.book import (
    BookCreateRequest,
    BookDetail,
    BookResponse,
    BookUpdateRequest,
    StockLogDetail,
    StockLogListResponse,
)
from bookstore.schemas.common import (
    CeleryTaskResponse,
    CleanupRequest,
    CleanupResponse,
    TaskStatusResponse,
)
from bookstore.schemas.user import UserListResponse, UserProfile

# 导入 Celery 应用与任务
from celery_app import app as celery_app
from tasks.cart_tasks import release_expired_reservations as celery_release_task

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/admin",
    tags=["管理员"],
    responses={
        401: {"description": "未登录"},
        403: {"description": "需要管理员权限"},
    }
)


# ==================== 图书维护 ====================

@router.post("/books", response_model=BookResponse, summary="新增图书")
async def create_book(
    request: BookCreateRequest = Body(...),
    admin: User = Depends(require_admin),
    service: BookService = Depends(get_book_service)
):
    """新增图书，初始库存大于 0 时写入一条 add 库存日志"""
    try:
        book = service.create_book(request.model_dump(), admin)
        return {"success": True, "message": "Book added", "data": BookDetail.model_validate(book)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to add book")


@router.put("/books/{book_id}", response_model=BookResponse, summary="编辑图书")
async def update_book(
    book_id: str = Path(..., description="图书ID"),
    request: BookUpdateRequest = Body(...),
    admin: User = Depends(require_admin),
    service: BookService = Depends(get_book_service)
):
    """编辑图书；修改库存时按差值写入 add/remove 日志"""
    try:
        book = service.update_book(book_id, request.model_dump(exclude_unset=True), admin)
        return {"success": True, "message": "Book updated", "data": BookDetail.model_validate(book)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to update book")


@router.delete("/books/{book_id}", response_model=BaseResponse, summary="删除图书")
async def delete_book(
    book_id: str = Path(..., description="图书ID"),
    admin: User = Depends(require_admin),
    service: BookService = Depends(get_book_service)
):
    try:
        service.delete_book(book_id)
        return {"success": True, "message": "Book deleted"}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to delete book")


@router.get("/books/{book_id}/stock-logs", response_model=StockLogListResponse, summary="库存变更日志")
async def stock_logs(
    book_id: str = Path(..., description="图书ID"),
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(require_admin),
    service: BookService = Depends(get_book_service)
):
    try:
        logs = service.stock_history(book_id, limit)
        return {"success": True, "data": [StockLogDetail.model_validate(log) for log in logs]}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load stock logs")


# ==================== 用户 ====================

@router.get("/users", response_model=UserListResponse, summary="用户列表")
async def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        users = db.execute(select(User).order_by(User.created_at.desc(), User.id)).scalars().all()
        return {"success": True, "data": [UserProfile.model_validate(u) for u in users]}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load users")


# ==================== 过期预占清理 ====================

@router.post("/cleanup/manual", response_model=CleanupResponse, summary="同步释放过期预占")
async def manual_cleanup(
    request: CleanupRequest = Body(CleanupRequest()),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    redis = Depends(get_redis),
    rlock = Depends(get_redlock)
):
    """直接在请求内执行清理（适合小规模数据）"""
    try:
        service = CartService(db, None, redis, rlock)
        count = service.release_expired_reservations(request.ttl_minutes, request.batch_size)
        service.purge_expired_operation_keys()
        return {
            "success": True,
            "message": f"Released {count} expired cart reservations",
            "cleaned_count": count
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to release expired reservations")


@router.post("/cleanup/celery", response_model=CeleryTaskResponse, summary="异步释放过期预占")
async def celery_cleanup(
    request: CleanupRequest = Body(CleanupRequest()),
    admin: User = Depends(require_admin)
):
    """投递 Celery 任务，立即返回任务ID"""
    try:
        task = celery_release_task.delay(request.batch_size, request.ttl_minutes)
        logger.info(f"已投递过期预占清理任务: task_id={task.id}")
        return {
            "success": True,
            "message": "Cleanup task submitted",
            "task_id": task.id
        }
    except Exception as e:
        logger.error(f"投递清理任务失败: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to submit cleanup task")


@router.get("/cleanup/status/{task_id}", response_model=TaskStatusResponse, summary="清理任务状态")
async def get_cleanup_status(
    task_id: str = Path(..., description="任务ID"),
    admin: User = Depends(require_admin)
):
    try:
        task = celery_app.AsyncResult(task_id)

        if task.state == 'PENDING':
            status = "任务等待中"
        elif task.state == 'SUCCESS':
            status = f"任务完成: {task.result}"
        elif task.state == 'FAILURE':
            status = f"任务失败: {str(task.info)}"
        else:
            status = f"任务状态: {task.state}"

        return {
            "task_id": task_id,
            "status": status,
            "state": task.state
        }
    except Exception as e:
        logger.error(f"查询任务状态失败: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to load task status")
