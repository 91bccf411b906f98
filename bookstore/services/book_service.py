"""图书目录与后台库存管理服务"""

from fastapi import HTTPException
from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List
import logging
from redis import Redis

from bookstore.core.config import settings
from bookstore.models.book import Book
from bookstore.models.stock_logs import StockLog
from bookstore.models.transactions import TransactionItem
from bookstore.models.user import User
from bookstore.services.stock_ledger import StockLedger, BookNotFoundError

logger = logging.getLogger(__name__)

BOOK_NOT_FOUND = "Book not found"
BOOK_HAS_HISTORY = "Book has sales or stock history"


class BookService:
    """图书服务类：目录查询（带缓存）与管理员维护"""

    def __init__(self, db: Session, redis: Redis = None):
        self.db = db
        self.redis = redis
        self.ledger = StockLedger(db)

    # ==================== 目录查询 ====================

    def list_books(self, limit: int = 100, offset: int = 0) -> List[Book]:
        return self.db.execute(
            select(Book)
            .order_by(Book.created_at.desc(), Book.id)
            .limit(limit)
            .offset(offset)
        ).scalars().all()

    def get_book(self, book_id: str) -> Book:
        book = self.db.get(Book, book_id)
        if book is None:
            raise HTTPException(status_code=404, detail=BOOK_NOT_FOUND)
        return book

    def get_book_stock(self, book_id: str) -> int:
        """查询图书可售库存（带缓存）"""
        cache_key = f"stock:available:{book_id}"

        # 先查缓存
        if self.redis:
            cached = self.redis.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for book {book_id}")
                return int(cached)

        # 缓存未命中，查询数据库
        available = self.ledger.current_stock(book_id)
        if available is None:
            raise HTTPException(status_code=404, detail=BOOK_NOT_FOUND)

        if self.redis:
            self.redis.setex(cache_key, settings.STOCK_CACHE_TTL_SECONDS, available)
            logger.debug(f"Cache set for book {book_id}: {available}")

        return available

    def batch_get_stocks(self, book_ids: List[str]) -> dict:
        """批量获取库存（带缓存优化），不存在的图书记为 0"""
        if not book_ids:
            return {}

        results = {}
        uncached_ids = []

        if self.redis:
            cache_keys = [f"stock:available:{bid}" for bid in book_ids]
            cached_values = self.redis.mget(cache_keys)

            for bid, cached in zip(book_ids, cached_values):
                if cached is not None:
                    results[bid] = int(cached)
                    logger.debug(f"Batch cache hit for book {bid}")
                else:
                    uncached_ids.append(bid)
        else:
            uncached_ids = list(book_ids)

        if uncached_ids:
            rows = self.db.execute(
                select(Book.id, Book.stock).where(Book.id.in_(uncached_ids))
            ).all()
            stock_map = {row.id: row.stock for row in rows}

            pipe = self.redis.pipeline() if self.redis else None
            for bid in uncached_ids:
                available = stock_map.get(bid, 0)
                results[bid] = available
                if pipe is not None:
                    pipe.setex(f"stock:available:{bid}", settings.STOCK_CACHE_TTL_SECONDS, available)

            if pipe is not None:
                pipe.execute()

        return results

    # ==================== 管理员维护 ====================

    def create_book(self, data: dict, actor: User) -> Book:
        """新增图书，初始库存写入库存日志"""
        try:
            book = Book(**data)
            self.db.add(book)
            self.db.flush()
            self.ledger.record_initial_stock(book.id, book.stock or 0, actor.id)
            self.db.commit()
            logger.info(f"新增图书成功: book_id={book.id}, stock={book.stock}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"新增图书失败: {str(e)}")
            raise
        return book

    def update_book(self, book_id: str, data: dict, actor: User) -> Book:
        """编辑图书；库存字段通过库存台账修改并记录日志"""
        new_stock = data.pop("stock", None)
        try:
            book = self.get_book(book_id)
            for field, value in data.items():
                setattr(book, field, value)

            self.db.flush()

            if new_stock is not None:
                self.ledger.set_stock(book_id, new_stock, actor.id, "Stock updated via book edit")

            self.db.commit()
            self.db.refresh(book)
            logger.info(f"编辑图书成功: book_id={book_id}")
        except BookNotFoundError:
            self.db.rollback()
            raise HTTPException(status_code=404, detail=BOOK_NOT_FOUND)
        except Exception as e:
            self.db.rollback()
            logger.error(f"编辑图书失败: {str(e)}")
            raise

        self._invalidate_stock_cache(book_id)
        return book

    def delete_book(self, book_id: str) -> None:
        """删除图书；已有库存日志或成交记录的图书不能删除"""
        try:
            book = self.get_book(book_id)
            if self._has_history(book_id):
                raise HTTPException(status_code=409, detail=BOOK_HAS_HISTORY)
            self.db.delete(book)
            self.db.commit()
            logger.info(f"删除图书成功: book_id={book_id}")
        except IntegrityError as e:
            # 检查之后并发写入了日志或成交明细，由外键拦截
            self.db.rollback()
            logger.warning(f"删除图书被外键拒绝: book_id={book_id}, {str(e)}")
            raise HTTPException(status_code=409, detail=BOOK_HAS_HISTORY)
        except Exception as e:
            self.db.rollback()
            logger.error(f"删除图书失败: {str(e)}")
            raise
        self._invalidate_stock_cache(book_id)

    def stock_history(self, book_id: str, limit: int = 50) -> List[StockLog]:
        self.get_book(book_id)
        return self.ledger.history(book_id, limit)

    def _invalidate_stock_cache(self, book_id: str):
        if self.redis:
            self.redis.delete(f"stock:available:{book_id}")
            logger.debug(f"Cache invalidated for book {book_id}")

    def _has_history(self, book_id: str) -> bool:
        return self.db.execute(
            select(
                exists().where(StockLog.book_id == book_id)
                | exists().where(TransactionItem.book_id == book_id)
            )
        ).scalar()
