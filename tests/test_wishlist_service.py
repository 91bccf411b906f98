"""心愿单服务单元测试"""
import pytest
from fastapi import HTTPException
from sqlalchemy import select

from bookstore.models import Book
from bookstore.services.cart_service import CartService
from bookstore.services.wishlist_service import (
    WishlistService,
    ALREADY_IN_WISHLIST,
    WISHLIST_LOGIN_REQUIRED,
)


class TestWishlistService:
    """心愿单测试类（不涉及库存）"""

    def test_requires_login(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            WishlistService(db_session, None).load()
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == WISHLIST_LOGIN_REQUIRED

    def test_add_and_contains(self, db_session, customer, make_book):
        book = make_book(stock=5)
        service = WishlistService(db_session, customer)

        items = service.add(book.id)

        assert len(items) == 1
        assert items[0].book.title == "Laskar Pelangi"
        assert service.contains(book.id) is True
        assert service.count() == 1
        # 心愿单不预占库存
        assert db_session.execute(select(Book.stock).where(Book.id == book.id)).scalar_one() == 5

    def test_add_duplicate(self, db_session, customer, make_book):
        book = make_book()
        service = WishlistService(db_session, customer)
        service.add(book.id)

        with pytest.raises(HTTPException) as exc_info:
            service.add(book.id)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == ALREADY_IN_WISHLIST
        assert service.count() == 1

    def test_add_unknown_book(self, db_session, customer):
        with pytest.raises(HTTPException) as exc_info:
            WishlistService(db_session, customer).add("missing-book")
        assert exc_info.value.status_code == 404

    def test_remove(self, db_session, customer, make_book):
        book = make_book()
        service = WishlistService(db_session, customer)
        item = service.add(book.id)[0]

        assert service.remove(item.id) == []
        assert service.contains(book.id) is False

    def test_remove_other_users_item(self, db_session, customer, other_customer, make_book):
        book = make_book()
        item = WishlistService(db_session, other_customer).add(book.id)[0]

        with pytest.raises(HTTPException) as exc_info:
            WishlistService(db_session, customer).remove(item.id)

        assert exc_info.value.status_code == 404

    def test_remove_by_book_and_clear(self, db_session, customer, make_book):
        first = make_book(title="A")
        second = make_book(title="B")
        service = WishlistService(db_session, customer)
        service.add(first.id)
        service.add(second.id)

        assert len(service.remove_by_book(first.id)) == 1
        service.clear()
        assert service.items == []
        assert service.count() == 0

    def test_move_to_cart_reserves_stock(self, db_session, customer, make_book):
        book = make_book(stock=5)
        wishlist = WishlistService(db_session, customer)
        item = wishlist.add(book.id)[0]
        cart = CartService(db_session, customer)

        wishlist.move_to_cart(item.id, cart, 2)

        assert cart.total_items == 2
        assert db_session.execute(select(Book.stock).where(Book.id == book.id)).scalar_one() == 3
        # 加入购物车后仍保留在心愿单
        assert wishlist.contains(book.id) is True
