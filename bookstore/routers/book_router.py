"""图书目录 API 路由（无需登录）"""

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query
import logging

from bookstore.core.dependencies import get_book_service
from bookstore.core.errors import operation_failed
from bookstore.services.book_service import BookService
from bookstore.schemas.book import (
    BookDetail,
    BookListResponse,
    BookResponse,
    StockResponse,
    BatchStockQueryRequest,
    BatchStockResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/books", tags=["图书目录"])


@router.get("", response_model=BookListResponse, summary="图书列表")
async def list_books(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: BookService = Depends(get_book_service)
):
    try:
        books = service.list_books(limit, offset)
        return {"success": True, "data": [BookDetail.model_validate(b) for b in books]}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load books")


@router.get("/{book_id}", response_model=BookResponse, summary="图书详情")
async def get_book(
    book_id: str = Path(..., description="图书ID"),
    service: BookService = Depends(get_book_service)
):
    try:
        return {"success": True, "data": BookDetail.model_validate(service.get_book(book_id))}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load book")


@router.get(
    "/{book_id}/stock",
    response_model=StockResponse,
    summary="查询可售库存",
    description="""查询单本图书的可售库存，优先读取 Redis 缓存。

    **缓存策略：**
    - 缓存时间：5分钟
    - 购物车操作与后台改库存后主动失效
    """,
)
async def get_stock(
    book_id: str = Path(..., description="图书ID"),
    service: BookService = Depends(get_book_service)
):
    try:
        available = service.get_book_stock(book_id)
        return {
            "success": True,
            "book_id": book_id,
            "available_stock": available
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load stock")


@router.post(
    "/stock/batch",
    response_model=BatchStockResponse,
    summary="批量查询库存",
    description="""一次查询最多 100 本图书的库存，使用 Redis MGET 和 Pipeline 减少往返。
    不存在的图书返回 0。""",
)
async def batch_get_stocks(
    request: BatchStockQueryRequest = Body(...),
    service: BookService = Depends(get_book_service)
):
    try:
        stocks = service.batch_get_stocks(request.book_ids)
        return {"success": True, "data": stocks}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load stock")
