"""图书服务单元测试"""
import pytest
from unittest.mock import Mock
from fastapi import HTTPException
from sqlalchemy import select

from bookstore.models import Book, ChangeType, StockLog, Transaction, TransactionItem, TransactionStatus
from bookstore.services.book_service import BOOK_HAS_HISTORY, BookService


class TestCatalogStock:
    """库存查询（带缓存）"""

    def test_get_book_stock_cache_hit(self, mock_redis):
        mock_redis.get.return_value = "50"
        db_mock = Mock()

        service = BookService(db_mock, mock_redis)

        assert service.get_book_stock("b-1") == 50
        mock_redis.get.assert_called_once_with("stock:available:b-1")
        db_mock.execute.assert_not_called()

    def test_get_book_stock_cache_miss(self, db_session, make_book, mock_redis):
        book = make_book(stock=30)
        service = BookService(db_session, mock_redis)

        assert service.get_book_stock(book.id) == 30
        mock_redis.setex.assert_called_once_with(f"stock:available:{book.id}", 300, 30)

    def test_get_book_stock_unknown_book(self, db_session, mock_redis):
        with pytest.raises(HTTPException) as exc_info:
            BookService(db_session, mock_redis).get_book_stock("missing-book")
        assert exc_info.value.status_code == 404

    def test_batch_get_stocks(self, db_session, make_book, mock_redis):
        book = make_book(stock=4)
        mock_redis.mget.return_value = [None, "9"]
        pipe = mock_redis.pipeline.return_value

        stocks = BookService(db_session, mock_redis).batch_get_stocks([book.id, "cached-book"])

        assert stocks == {book.id: 4, "cached-book": 9}
        pipe.setex.assert_called_once_with(f"stock:available:{book.id}", 300, 4)
        pipe.execute.assert_called_once()

    def test_batch_get_stocks_without_redis(self, db_session, make_book):
        book = make_book(stock=4)

        stocks = BookService(db_session, None).batch_get_stocks([book.id, "missing-book"])

        assert stocks == {book.id: 4, "missing-book": 0}


class TestBookAdministration:
    """管理员维护图书"""

    def logs_of(self, db, book_id):
        return db.execute(select(StockLog).where(StockLog.book_id == book_id)).scalars().all()

    def test_create_book_logs_initial_stock(self, db_session, admin):
        book = BookService(db_session).create_book({
            "title": "Bumi",
            "author": "Tere Liye",
            "category": "Novel",
            "year": 2014,
            "price": 89000,
            "stock": 6,
        }, admin)

        logs = self.logs_of(db_session, book.id)
        assert len(logs) == 1
        assert logs[0].change_type == ChangeType.ADD
        assert (logs[0].previous_stock, logs[0].new_stock) == (0, 6)

    def test_create_book_without_stock(self, db_session, admin):
        book = BookService(db_session).create_book({
            "title": "Bumi",
            "author": "Tere Liye",
            "category": "Novel",
            "year": 2014,
            "price": 89000,
            "stock": 0,
        }, admin)

        assert self.logs_of(db_session, book.id) == []

    def test_update_book_stock_and_fields(self, db_session, admin, make_book, mock_redis):
        book = make_book(stock=5)
        service = BookService(db_session, mock_redis)

        updated = service.update_book(book.id, {"title": "Sang Pemimpi", "stock": 2}, admin)

        assert updated.title == "Sang Pemimpi"
        assert db_session.execute(select(Book.stock).where(Book.id == book.id)).scalar_one() == 2
        logs = self.logs_of(db_session, book.id)
        assert len(logs) == 1
        assert logs[0].change_type == ChangeType.REMOVE
        assert logs[0].quantity_change == -3
        assert logs[0].notes == "Stock updated via book edit"
        mock_redis.delete.assert_called_once_with(f"stock:available:{book.id}")

    def test_update_book_without_stock_change(self, db_session, admin, make_book):
        book = make_book(stock=5)

        BookService(db_session).update_book(book.id, {"stock": 5}, admin)

        assert self.logs_of(db_session, book.id) == []

    def test_update_unknown_book(self, db_session, admin):
        with pytest.raises(HTTPException) as exc_info:
            BookService(db_session).update_book("missing-book", {"title": "X"}, admin)
        assert exc_info.value.status_code == 404

    def test_delete_book(self, db_session, make_book):
        book = make_book()
        BookService(db_session).delete_book(book.id)
        assert db_session.get(Book, book.id) is None

    def test_delete_book_keeps_stock_history(self, db_session, admin):
        service = BookService(db_session)
        book = service.create_book({
            "title": "Bumi",
            "author": "Tere Liye",
            "category": "Novel",
            "year": 2014,
            "price": 89000,
            "stock": 5,
        }, admin)

        with pytest.raises(HTTPException) as exc_info:
            service.delete_book(book.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.detail == BOOK_HAS_HISTORY
        assert db_session.get(Book, book.id) is not None
        assert len(self.logs_of(db_session, book.id)) == 1

    def test_delete_sold_book_rejected(self, db_session, customer, make_book):
        book = make_book(stock=0)
        transaction = Transaction(
            user_id=customer.id,
            total_amount=book.price,
            status=TransactionStatus.COMPLETED,
        )
        transaction.items.append(TransactionItem(book_id=book.id, quantity=1, price=book.price))
        db_session.add(transaction)
        db_session.commit()

        with pytest.raises(HTTPException) as exc_info:
            BookService(db_session).delete_book(book.id)

        assert exc_info.value.status_code == 409
        assert db_session.get(Book, book.id) is not None

    def test_stock_history_unknown_book(self, db_session):
        with pytest.raises(HTTPException):
            BookService(db_session).stock_history("missing-book")
