"""心愿单 API 路由"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
import logging

from bookstore.core.dependencies import get_cart_service, get_wishlist_service
from bookstore.core.errors import operation_failed
from bookstore.services.cart_service import CartService
from bookstore.services.wishlist_service import WishlistService
from bookstore.schemas.base import BaseResponse
from bookstore.schemas.cart import CartResponse, CartSummary
from bookstore.schemas.wishlist import (
    WishlistResponse,
    WishlistStatusResponse,
    WishlistSummary,
    WishlistItemDetail,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/wishlist", tags=["心愿单"])


def _summary(service: WishlistService) -> WishlistSummary:
    return WishlistSummary(
        items=[WishlistItemDetail.model_validate(item) for item in service.items],
        total_items=service.total_items,
    )


@router.get("", response_model=WishlistResponse, summary="查询心愿单")
async def get_wishlist(service: WishlistService = Depends(get_wishlist_service)):
    try:
        service.load()
        return {"success": True, "data": _summary(service)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load wishlist items")


@router.post("/{book_id}", response_model=WishlistResponse, summary="加入心愿单")
async def add_to_wishlist(
    book_id: str = Path(..., description="图书ID"),
    service: WishlistService = Depends(get_wishlist_service)
):
    try:
        service.add(book_id)
        return {"success": True, "message": "Item added to wishlist", "data": _summary(service)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to add item to wishlist")


@router.get("/status/{book_id}", response_model=WishlistStatusResponse, summary="是否已在心愿单")
async def wishlist_status(
    book_id: str = Path(..., description="图书ID"),
    service: WishlistService = Depends(get_wishlist_service)
):
    try:
        return {"success": True, "in_wishlist": service.contains(book_id)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to load wishlist items")


@router.delete("/items/{item_id}", response_model=WishlistResponse, summary="移除心愿单条目")
async def remove_from_wishlist(
    item_id: str = Path(..., description="心愿单条目ID"),
    service: WishlistService = Depends(get_wishlist_service)
):
    try:
        service.remove(item_id)
        return {"success": True, "message": "Item removed from wishlist", "data": _summary(service)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to remove item from wishlist")


@router.delete("/books/{book_id}", response_model=WishlistResponse, summary="按图书移除心愿单条目")
async def remove_from_wishlist_by_book(
    book_id: str = Path(..., description="图书ID"),
    service: WishlistService = Depends(get_wishlist_service)
):
    try:
        service.remove_by_book(book_id)
        return {"success": True, "message": "Item removed from wishlist", "data": _summary(service)}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to remove item from wishlist")


@router.delete("", response_model=BaseResponse, summary="清空心愿单")
async def clear_wishlist(service: WishlistService = Depends(get_wishlist_service)):
    try:
        service.clear()
        return {"success": True, "message": "Wishlist cleared"}
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to clear wishlist")


@router.post("/items/{item_id}/cart", response_model=CartResponse, summary="心愿单加入购物车")
async def move_to_cart(
    item_id: str = Path(..., description="心愿单条目ID"),
    quantity: int = Query(1, gt=0, description="加入数量"),
    service: WishlistService = Depends(get_wishlist_service),
    cart: CartService = Depends(get_cart_service)
):
    """复用购物车的加入逻辑（同样预占库存）"""
    try:
        service.move_to_cart(item_id, cart, quantity)
        return {
            "success": True,
            "message": "Item added to cart",
            "data": CartSummary.from_service(cart)
        }
    except HTTPException:
        raise
    except Exception as e:
        raise operation_failed(e, "Failed to add item to cart")
