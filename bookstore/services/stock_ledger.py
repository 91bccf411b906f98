"""库存台账：每一次库存变更与一条审计日志成对写入"""

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from bookstore.models.book import Book
from bookstore.models.stock_logs import StockLog, ChangeType

logger = logging.getLogger(__name__)


class InsufficientStockError(Exception):
    """可售库存不足（条件更新未命中任何行）"""

    def __init__(self, book_id: str, requested: int):
        super().__init__(f"insufficient stock: book_id={book_id}, requested={requested}")
        self.book_id = book_id
        self.requested = requested


class BookNotFoundError(Exception):
    def __init__(self, book_id: str):
        super().__init__(f"book not found: book_id={book_id}")
        self.book_id = book_id


class StockLedger:
    """库存台账

    只负责在调用方的会话里写入，不提交事务；提交、回滚和缓存失效由调用方负责。
    """

    def __init__(self, db: Session):
        self.db = db

    def reserve(self, book_id: str, quantity: int, user_id: str, notes: str) -> StockLog:
        """原子扣减可售库存，库存不足时不写入任何数据

        等价于 UPDATE books SET stock = stock - :qty
               WHERE id = :id AND stock >= :qty RETURNING stock
        """
        new_stock = self.db.execute(
            update(Book)
            .where(Book.id == book_id, Book.stock >= quantity)
            .values(stock=Book.stock - quantity)
            .returning(Book.stock)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()

        if new_stock is None:
            raise InsufficientStockError(book_id, quantity)

        return self._append(
            book_id,
            ChangeType.REMOVE,
            -quantity,
            new_stock + quantity,
            new_stock,
            user_id,
            notes,
        )

    def release(
        self,
        book_id: str,
        quantity: int,
        user_id: str,
        notes: str,
        change_type: ChangeType = ChangeType.ADD,
    ) -> StockLog:
        """原子归还可售库存"""
        new_stock = self.db.execute(
            update(Book)
            .where(Book.id == book_id)
            .values(stock=Book.stock + quantity)
            .returning(Book.stock)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()

        if new_stock is None:
            raise BookNotFoundError(book_id)

        return self._append(
            book_id,
            change_type,
            quantity,
            new_stock - quantity,
            new_stock,
            user_id,
            notes,
        )

    def record_purchase(self, book_id: str, quantity: int, user_id: str, notes: str) -> StockLog:
        """记录成交；库存在加入购物车时已扣除，这里不再变更"""
        current = self.current_stock(book_id)
        if current is None:
            raise BookNotFoundError(book_id)

        return self._append(
            book_id,
            ChangeType.PURCHASE,
            -quantity,
            current + quantity,
            current,
            user_id,
            notes,
        )

    def set_stock(self, book_id: str, new_stock: int, user_id: str, notes: str) -> Optional[StockLog]:
        """管理员直接设置库存（行级锁），库存未变化时不写日志"""
        book = self.db.execute(
            select(Book)
            .where(Book.id == book_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if book is None:
            raise BookNotFoundError(book_id)

        previous = book.stock
        if previous == new_stock:
            return None

        book.stock = new_stock
        diff = new_stock - previous
        return self._append(
            book_id,
            ChangeType.ADD if diff > 0 else ChangeType.REMOVE,
            diff,
            previous,
            new_stock,
            user_id,
            notes,
        )

    def record_initial_stock(self, book_id: str, stock: int, user_id: str) -> Optional[StockLog]:
        if stock <= 0:
            return None
        return self._append(
            book_id,
            ChangeType.ADD,
            stock,
            0,
            stock,
            user_id,
            "Initial stock when adding book",
        )

    def current_stock(self, book_id: str) -> Optional[int]:
        return self.db.execute(
            select(Book.stock).where(Book.id == book_id)
        ).scalar_one_or_none()

    def history(self, book_id: str, limit: int = 50) -> List[StockLog]:
        """按时间倒序查询图书的库存变更记录"""
        return self.db.execute(
            select(StockLog)
            .where(StockLog.book_id == book_id)
            .order_by(StockLog.created_at.desc())
            .limit(limit)
        ).scalars().all()

    def _append(
        self,
        book_id: str,
        change_type: ChangeType,
        quantity_change: int,
        previous_stock: int,
        new_stock: int,
        user_id: str,
        notes: str,
    ) -> StockLog:
        log = StockLog(
            book_id=book_id,
            change_type=change_type,
            quantity_change=quantity_change,
            previous_stock=previous_stock,
            new_stock=new_stock,
            user_id=user_id,
            notes=notes,
        )
        self.db.add(log)
        logger.debug(
            f"库存变更: book_id={book_id}, type={change_type.value}, "
            f"{previous_stock} -> {new_stock}"
        )
        return log
