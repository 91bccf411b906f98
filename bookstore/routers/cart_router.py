"""购物车 API 路由"""

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Path
from typing import Optional
import logging

from bookstore.core.dependencies import get_cart_service
from bookstore.core.errors import operation_failed
from bookstore.services.cart_service import CartService
from bookstore.schemas.cart import (
    AddToCartRequest,
    UpdateQuantityRequest,
    CartResponse,
    CartSummary,
    CheckoutResponse,
    CheckoutResult,
)

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/cart",
    tags=["购物车"],
    responses={
        400: {"description": "库存不足"},
        401: {"description": "未登录"},
        404: {"description": "资源未找到"},
        422: {"description": "请求验证失败"},
        429: {"description": "同一用户的购物车操作正在进行"},
        500: {"description": "服务器内部错误"},
        503: {"description": "数据库连接失败"}
    }
)


def _operation_id(
    idempotency_key: Optional[str] = Header(
        None,
        alias="Idempotency-Key",
        max_length=64,
        description="客户端生成的操作ID，重试时重复提交不会重复变更库存"
    )
) -> Optional[str]:
    return idempotency_key


@router.get(
    "",
    response_model=CartResponse,
    summary="查询购物车",
)
async def get_cart(service: CartService = Depends(get_cart_service)):
    """查询当前用户购物车（含图书快照和汇总）"""
    try:
        service.load()
        return {"success": True, "data": CartSummary.from_service(service)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load cart items")


@router.post(
    "/items",
    response_model=CartResponse,
    summary="加入购物车",
    description="""加入购物车并立即预占库存。

    **特点：**
    - 条件更新扣减库存，库存不足时不写入任何数据
    - 同一本书重复加入时合并数量
    - 购物车行、库存、库存日志在同一事务内提交
    """,
)
async def add_to_cart(
    request: AddToCartRequest = Body(...),
    operation_id: Optional[str] = Depends(_operation_id),
    service: CartService = Depends(get_cart_service)
):
    try:
        service.add_to_cart(request.book_id, request.quantity, operation_id)
        return {
            "success": True,
            "message": "Item added to cart",
            "data": CartSummary.from_service(service)
        }
    except HTTPException:
        # 透传 HTTPException
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to add item to cart")


@router.patch(
    "/items/{cart_item_id}",
    response_model=CartResponse,
    summary="修改购物车数量",
    description="""修改数量，增加部分扣减库存，减少部分归还库存；数量小于等于 0 时移除。""",
)
async def update_quantity(
    cart_item_id: str = Path(..., description="购物车条目ID"),
    request: UpdateQuantityRequest = Body(...),
    operation_id: Optional[str] = Depends(_operation_id),
    service: CartService = Depends(get_cart_service)
):
    try:
        service.update_quantity(cart_item_id, request.quantity, operation_id)
        return {
            "success": True,
            "message": "Cart quantity updated",
            "data": CartSummary.from_service(service)
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to update quantity")


@router.delete(
    "/items/{cart_item_id}",
    response_model=CartResponse,
    summary="移除购物车条目",
)
async def remove_from_cart(
    cart_item_id: str = Path(..., description="购物车条目ID"),
    operation_id: Optional[str] = Depends(_operation_id),
    service: CartService = Depends(get_cart_service)
):
    """移除条目并归还全部预占库存"""
    try:
        service.remove_from_cart(cart_item_id, operation_id)
        return {
            "success": True,
            "message": "Item removed from cart",
            "data": CartSummary.from_service(service)
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to remove item from cart")


@router.delete(
    "",
    response_model=CartResponse,
    summary="清空购物车",
)
async def clear_cart(
    operation_id: Optional[str] = Depends(_operation_id),
    service: CartService = Depends(get_cart_service)
):
    """清空购物车，逐条归还库存"""
    try:
        service.clear_cart(operation_id)
        return {
            "success": True,
            "message": "Cart cleared",
            "data": CartSummary.from_service(service)
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to clear cart")


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    summary="结算",
    description="""把购物车转为已完成交易。

    **注意：**
    - 库存在加入购物车时已扣减，结算不再变更库存，只写成交日志
    - 购物车为空时不做任何操作
    - 携带 Idempotency-Key 重试时返回第一次的交易ID
    """,
)
async def checkout(
    operation_id: Optional[str] = Depends(_operation_id),
    service: CartService = Depends(get_cart_service)
):
    try:
        transaction_id = service.checkout(operation_id)
        if transaction_id is None:
            return {
                "success": False,
                "message": "Cart is empty",
                "data": CheckoutResult()
            }
        return {
            "success": True,
            "message": "Purchase completed successfully!",
            "data": CheckoutResult(transaction_id=transaction_id)
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to complete purchase")
