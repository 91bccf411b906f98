"""图书相关的请求与响应模型"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional
from decimal import Decimal
from datetime import datetime

from bookstore.models.stock_logs import ChangeType
from bookstore.schemas.base import BaseResponse, ORMSchema, TimestampedSchema


class BookSnapshot(ORMSchema):
    """购物车/心愿单中展示的图书快照"""
    id: str
    title: str
    author: str
    price: Decimal
    stock: int
    cover_image: Optional[str] = None


class BookDetail(TimestampedSchema):
    id: str
    title: str
    author: str
    category: str
    year: int
    price: Decimal
    stock: int
    cover_image: Optional[str] = None
    description: str


class BookCreateRequest(BaseModel):
    """新增图书请求"""
    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=0, le=9999)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0, description="初始库存")
    cover_image: Optional[str] = Field(None, max_length=512)
    description: str = ""


class BookUpdateRequest(BaseModel):
    """编辑图书请求，只更新传入的字段"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    author: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=0, le=9999)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0, description="新的可售库存")
    cover_image: Optional[str] = Field(None, max_length=512)
    description: Optional[str] = None

    @field_validator("title", "author", "category", "year", "price", "stock", "description")
    @classmethod
    def reject_null(cls, value):
        # 非空列只能省略，不能显式传 null
        if value is None:
            raise ValueError("must not be null")
        return value


class BookResponse(BaseResponse):
    data: Optional[BookDetail] = None


class BookListResponse(BaseResponse):
    data: List[BookDetail] = []


class StockResponse(BaseResponse):
    """单本图书库存响应"""
    book_id: str = Field(
        ...,
        description="图书ID"
    )
    available_stock: int = Field(
        ...,
        ge=0,
        description="可售库存数量"
    )


class BatchStockQueryRequest(BaseModel):
    """批量查询库存请求"""
    book_ids: List[str] = Field(
        ...,
        min_length=1,
        max_length=100,
        description="图书ID列表"
    )


class BatchStockResponse(BaseResponse):
    """批量库存查询响应"""
    data: Dict[str, int] = Field(
        ...,
        description="图书ID到库存数量的映射"
    )


class StockLogDetail(ORMSchema):
    """库存变更日志详情"""
    id: str
    book_id: str
    change_type: ChangeType
    quantity_change: int
    previous_stock: int
    new_stock: int
    user_id: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class StockLogListResponse(BaseResponse):
    data: List[StockLogDetail] = []
