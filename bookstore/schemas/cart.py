"""购物车API专用的Pydantic模型"""

from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal

from bookstore.schemas.base import BaseResponse, ORMSchema
from bookstore.schemas.book import BookSnapshot
from bookstore.utils.formatters import format_rupiah


# ==================== 请求模型 ====================

class AddToCartRequest(BaseModel):
    """加入购物车请求"""
    book_id: str = Field(
        ...,
        min_length=1,
        max_length=36,
        description="图书ID"
    )
    quantity: int = Field(
        1,
        gt=0,
        description="加入数量",
        examples=[1]
    )


class UpdateQuantityRequest(BaseModel):
    """修改数量请求，小于等于 0 视为移除"""
    quantity: int = Field(
        ...,
        description="新的数量",
        examples=[2]
    )


# ==================== 响应模型 ====================

class CartItemDetail(ORMSchema):
    id: str
    book_id: str
    quantity: int
    book: BookSnapshot


class CartSummary(BaseModel):
    items: List[CartItemDetail] = []
    total_items: int = 0
    total_amount: Decimal = Decimal("0")
    total_amount_display: str = "Rp 0"

    @classmethod
    def from_service(cls, service) -> "CartSummary":
        """从 CartService 的内存快照生成，汇总值随 items 一起计算"""
        total_amount = service.total_amount
        return cls(
            items=[CartItemDetail.model_validate(item) for item in service.items],
            total_items=service.total_items,
            total_amount=total_amount,
            total_amount_display=format_rupiah(total_amount),
        )


class CartResponse(BaseResponse):
    data: Optional[CartSummary] = None


class CheckoutResult(BaseModel):
    transaction_id: Optional[str] = None


class CheckoutResponse(BaseResponse):
    data: Optional[CheckoutResult] = None
