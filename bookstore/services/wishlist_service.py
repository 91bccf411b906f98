"""心愿单服务（不涉及库存）"""

from fastapi import HTTPException
from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from bookstore.models.book import Book
from bookstore.models.user import User
from bookstore.models.wishlist_items import WishlistItem
from bookstore.services.book_service import BOOK_NOT_FOUND
from bookstore.services.cart_service import CartService

logger = logging.getLogger(__name__)

WISHLIST_LOGIN_REQUIRED = "Please log in to add items to wishlist"
ALREADY_IN_WISHLIST = "Item already in wishlist"
WISHLIST_ITEM_NOT_FOUND = "Wishlist item not found"


class WishlistService:

    def __init__(self, db: Session, user: Optional[User]):
        self.db = db
        self.user = user
        self.items: List[WishlistItem] = []

    @property
    def total_items(self) -> int:
        return len(self.items)

    def load(self) -> List[WishlistItem]:
        self._require_user()
        self.items = list(self.db.execute(
            select(WishlistItem)
            .where(WishlistItem.user_id == self.user.id)
            .order_by(WishlistItem.created_at, WishlistItem.id)
            .execution_options(populate_existing=True)
        ).scalars().all())
        return self.items

    def contains(self, book_id: str) -> bool:
        self._require_user()
        return self._find_by_book(book_id) is not None

    def count(self) -> int:
        self._require_user()
        return self.db.execute(
            select(func.count())
            .select_from(WishlistItem)
            .where(WishlistItem.user_id == self.user.id)
        ).scalar_one()

    def add(self, book_id: str) -> List[WishlistItem]:
        self._require_user()
        try:
            if self.db.get(Book, book_id) is None:
                raise HTTPException(status_code=404, detail=BOOK_NOT_FOUND)

            if self._find_by_book(book_id) is not None:
                raise HTTPException(status_code=400, detail=ALREADY_IN_WISHLIST)

            self.db.add(WishlistItem(user_id=self.user.id, book_id=book_id))
            self.db.commit()
            logger.info(f"加入心愿单成功: user_id={self.user.id}, book_id={book_id}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"加入心愿单失败: {str(e)}")
            raise
        return self.load()

    def remove(self, item_id: str) -> List[WishlistItem]:
        self._require_user()
        try:
            item = self._get_item(item_id)
            self.db.delete(item)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"移除心愿单条目失败: {str(e)}")
            raise
        return self.load()

    def remove_by_book(self, book_id: str) -> List[WishlistItem]:
        self._require_user()
        try:
            self.db.execute(
                delete(WishlistItem)
                .where(
                    WishlistItem.user_id == self.user.id,
                    WishlistItem.book_id == book_id,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"移除心愿单条目失败: {str(e)}")
            raise
        return self.load()

    def clear(self) -> None:
        self._require_user()
        try:
            self.db.execute(
                delete(WishlistItem)
                .where(WishlistItem.user_id == self.user.id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"清空心愿单失败: {str(e)}")
            raise
        self.items = []

    def move_to_cart(self, item_id: str, cart: CartService, quantity: int = 1):
        """心愿单条目加入购物车，完全复用购物车的 add_to_cart"""
        self._require_user()
        item = self._get_item(item_id)
        return cart.add_to_cart(item.book_id, quantity)

    def _require_user(self):
        if self.user is None:
            raise HTTPException(status_code=401, detail=WISHLIST_LOGIN_REQUIRED)

    def _find_by_book(self, book_id: str) -> Optional[WishlistItem]:
        return self.db.execute(
            select(WishlistItem).where(
                WishlistItem.user_id == self.user.id,
                WishlistItem.book_id == book_id,
            )
        ).scalar_one_or_none()

    def _get_item(self, item_id: str) -> WishlistItem:
        item = self.db.execute(
            select(WishlistItem).where(
                WishlistItem.id == item_id,
                WishlistItem.user_id == self.user.id,
            )
        ).scalar_one_or_none()
        if item is None:
            raise HTTPException(status_code=404, detail=WISHLIST_ITEM_NOT_FOUND)
        return item
