"""购物车预占服务实现

加入购物车即扣减可售库存（预占），移除、减少数量、清空时归还；
结算时把预占转为成交记录，不再变更库存。
每个操作在同一个数据库事务内完成：购物车行、图书库存、库存日志一起提交或一起回滚。
"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional
import logging

from fastapi import HTTPException
from sqlalchemy import select, delete
from sqlalchemy.orm import Session, joinedload
from redis import Redis
from redlock import Redlock

from bookstore.core.config import settings
from bookstore.models.book import Book
from bookstore.models.cart_items import CartItem
from bookstore.models.idempotency_keys import IdempotencyKey
from bookstore.models.stock_logs import ChangeType
from bookstore.models.transactions import Transaction, TransactionItem, TransactionStatus
from bookstore.models.user import User
from bookstore.services.book_service import BOOK_NOT_FOUND
from bookstore.services.stock_ledger import StockLedger, InsufficientStockError

logger = logging.getLogger(__name__)

LOGIN_REQUIRED = "Please log in to add items to cart"
NOT_ENOUGH_STOCK = "Not enough stock available"
CART_ITEM_NOT_FOUND = "Cart item not found"
CART_BUSY = "Cart operation in progress, please retry"
CART_CHANGED = "Cart changed during the operation, please retry"


class CartService:
    """购物车核心服务类

    user 由调用方显式传入（请求级会话上下文），items 是当前用户购物车的内存快照，
    每次变更成功后从数据库重新加载。
    """

    def __init__(
        self,
        db: Session,
        user: Optional[User],
        redis: Redis = None,
        rlock: Redlock = None,
    ):
        self.db = db
        self.user = user
        self.redis = redis
        self.rlock = rlock
        self.ledger = StockLedger(db)
        self.items: List[CartItem] = []

    # ==================== 派生值 ====================

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_amount(self) -> Decimal:
        return sum(
            (Decimal(item.book.price) * item.quantity for item in self.items),
            Decimal("0"),
        )

    # ==================== 查询 ====================

    def load(self) -> List[CartItem]:
        """加载当前用户购物车（含图书快照），不影响库存

        查询失败时保留原有 items，异常交给调用方处理。
        """
        self._require_user()
        self.items = self._query_items()
        return self.items

    # ==================== 预占 ====================

    def add_to_cart(self, book_id: str, quantity: int = 1, operation_id: Optional[str] = None) -> List[CartItem]:
        """加入购物车并预占库存"""
        self._require_user()

        with self._cart_lock():
            try:
                if self._replay("add", operation_id) is not None:
                    self.db.rollback()
                    return self.load()

                book = self.db.get(Book, book_id)
                if book is None:
                    raise HTTPException(status_code=404, detail=BOOK_NOT_FOUND)

                existing = self.db.execute(
                    select(CartItem)
                    .where(
                        CartItem.user_id == self.user.id,
                        CartItem.book_id == book_id,
                    )
                    .with_for_update(of=CartItem)
                ).scalar_one_or_none()

                # 条件扣减：库存不足时不会写入任何数据
                try:
                    log = self.ledger.reserve(book_id, quantity, self.user.id, "Added to cart")
                except InsufficientStockError:
                    raise HTTPException(status_code=400, detail=NOT_ENOUGH_STOCK)

                if existing:
                    # 合并后的总数量也不能超过扣减前的可售库存，不满足时整体回滚
                    new_quantity = existing.quantity + quantity
                    if log.previous_stock < new_quantity:
                        raise HTTPException(status_code=400, detail=NOT_ENOUGH_STOCK)
                    existing.quantity = new_quantity
                else:
                    self.db.add(CartItem(
                        user_id=self.user.id,
                        book_id=book_id,
                        quantity=quantity,
                    ))

                self._remember("add", operation_id, {"book_id": book_id, "quantity": quantity})
                self.db.commit()
                logger.info(f"加入购物车成功: user_id={self.user.id}, book_id={book_id}, quantity={quantity}")

            except Exception as e:
                self.db.rollback()
                logger.error(f"加入购物车失败: {str(e)}")
                raise

        self._invalidate_stock_cache([book_id])
        return self.load()

    def update_quantity(self, cart_item_id: str, new_quantity: int, operation_id: Optional[str] = None) -> List[CartItem]:
        """修改购物车数量，差额部分扣减或归还库存"""
        if new_quantity <= 0:
            return self.remove_from_cart(cart_item_id, operation_id)

        self._require_user()

        with self._cart_lock():
            try:
                if self._replay("update", operation_id) is not None:
                    self.db.rollback()
                    return self.load()

                item = self._get_item(cart_item_id)
                diff = new_quantity - item.quantity

                # 数量未变化：不写库存也不写日志
                if diff == 0:
                    self.db.rollback()
                    return self.load()

                if diff > 0:
                    try:
                        self.ledger.reserve(item.book_id, diff, self.user.id, "Cart quantity updated")
                    except InsufficientStockError:
                        raise HTTPException(status_code=400, detail=NOT_ENOUGH_STOCK)
                else:
                    self.ledger.release(item.book_id, -diff, self.user.id, "Cart quantity updated")

                item.quantity = new_quantity
                book_id = item.book_id

                self._remember("update", operation_id, {"cart_item_id": cart_item_id, "quantity": new_quantity})
                self.db.commit()
                logger.info(f"修改购物车数量成功: cart_item_id={cart_item_id}, diff={diff}")

            except Exception as e:
                self.db.rollback()
                logger.error(f"修改购物车数量失败: {str(e)}")
                raise

        self._invalidate_stock_cache([book_id])
        return self.load()

    def remove_from_cart(self, cart_item_id: str, operation_id: Optional[str] = None) -> List[CartItem]:
        """移除购物车条目并归还全部预占库存"""
        self._require_user()

        with self._cart_lock():
            try:
                if self._replay("remove", operation_id) is not None:
                    self.db.rollback()
                    return self.load()

                item = self._get_item(cart_item_id)
                book_id = item.book_id
                quantity = item.quantity

                self.db.delete(item)
                self.ledger.release(book_id, quantity, self.user.id, "Removed from cart")

                self._remember("remove", operation_id, {"cart_item_id": cart_item_id})
                self.db.commit()
                logger.info(f"移除购物车条目成功: cart_item_id={cart_item_id}, released={quantity}")

            except Exception as e:
                self.db.rollback()
                logger.error(f"移除购物车条目失败: {str(e)}")
                raise

        self._invalidate_stock_cache([book_id])
        return self.load()

    def clear_cart(self, operation_id: Optional[str] = None) -> int:
        """清空购物车，逐条归还库存；返回归还的条目数"""
        self._require_user()

        with self._cart_lock():
            try:
                if self._replay("clear", operation_id) is not None:
                    self.db.rollback()
                    self.items = []
                    return 0

                items = self._query_items(for_update=True)
                book_ids = [item.book_id for item in items]
                for item in items:
                    self.ledger.release(item.book_id, item.quantity, self.user.id, "Cart cleared")

                self._delete_cart_rows(len(items))

                self._remember("clear", operation_id, {"released": len(book_ids)})
                self.db.commit()
                logger.info(f"清空购物车成功: user_id={self.user.id}, items={len(book_ids)}")

            except Exception as e:
                self.db.rollback()
                logger.error(f"清空购物车失败: {str(e)}")
                raise

        self.items = []
        self._invalidate_stock_cache(book_ids)
        return len(book_ids)

    # ==================== 结算 ====================

    def checkout(self, operation_id: Optional[str] = None) -> Optional[str]:
        """结算：预占转成交，返回交易ID；购物车为空时返回 None

        库存已在加入购物车时扣减，这里只写成交日志。
        """
        self._require_user()

        with self._cart_lock():
            try:
                snapshot = self._replay("checkout", operation_id)
                if snapshot is not None:
                    self.db.rollback()
                    self.items = []
                    return snapshot.get("transaction_id")

                items = self._query_items(for_update=True)
                if not items:
                    self.db.rollback()
                    self.items = []
                    return None

                total_amount = sum(
                    (Decimal(item.book.price) * item.quantity for item in items),
                    Decimal("0"),
                )

                transaction = Transaction(
                    user_id=self.user.id,
                    total_amount=total_amount,
                    status=TransactionStatus.COMPLETED,
                )
                self.db.add(transaction)
                self.db.flush()

                for item in items:
                    transaction.items.append(TransactionItem(
                        book_id=item.book_id,
                        quantity=item.quantity,
                        price=item.book.price,
                    ))

                self._delete_cart_rows(len(items))

                for item in items:
                    self.ledger.record_purchase(
                        item.book_id,
                        item.quantity,
                        self.user.id,
                        f"Transaction #{transaction.id}",
                    )

                transaction_id = transaction.id
                self._remember("checkout", operation_id, {"transaction_id": transaction_id})
                self.db.commit()
                logger.info(
                    f"结算成功: user_id={self.user.id}, transaction_id={transaction_id}, "
                    f"total_amount={total_amount}"
                )

            except Exception as e:
                self.db.rollback()
                logger.error(f"结算失败: {str(e)}")
                raise

        self.items = []
        return transaction_id

    # ==================== 过期释放 ====================

    def release_expired_reservations(self, ttl_minutes: int = None, batch_size: int = 500) -> int:
        """释放长时间未变动的购物车预占

        Args:
            ttl_minutes: 预占有效期（分钟），默认取配置
            batch_size: 批处理大小，默认500条

        Returns:
            释放的购物车条目数量
        """
        ttl_minutes = ttl_minutes or settings.CART_RESERVATION_TTL_MINUTES
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=ttl_minutes)
        total_released = 0

        while True:
            try:
                # skip_locked 防止多 worker 重复处理
                expired_items = self.db.execute(
                    select(CartItem)
                    .where(CartItem.updated_at <= cutoff)
                    .order_by(CartItem.updated_at)
                    .limit(batch_size)
                    .with_for_update(of=CartItem, skip_locked=True)
                ).scalars().all()

                if not expired_items:
                    break

                logger.info(f"本次释放 {len(expired_items)} 条过期购物车预占")

                book_ids = []
                for item in expired_items:
                    self.ledger.release(
                        item.book_id,
                        item.quantity,
                        item.user_id,
                        "Reservation expired",
                        change_type=ChangeType.EXPIRED,
                    )
                    book_ids.append(item.book_id)
                    self.db.delete(item)

                self.db.commit()
                total_released += len(expired_items)
                self._invalidate_stock_cache(book_ids)
                logger.info(f"已完成批次释放，累计释放 {total_released} 条记录")

                # 本批不足 batch_size，说明已处理完
                if len(expired_items) < batch_size:
                    break

            except Exception as e:
                logger.error(f"释放过期预占失败: {str(e)}")
                self.db.rollback()
                raise

        logger.info(f"过期预占释放完成，总共释放 {total_released} 条")
        return total_released

    def purge_expired_operation_keys(self) -> int:
        """清理过期的幂等记录"""
        try:
            result = self.db.execute(
                delete(IdempotencyKey)
                .where(IdempotencyKey.expires_at <= datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception as e:
            logger.error(f"清理幂等记录失败: {str(e)}")
            self.db.rollback()
            raise
        return result.rowcount or 0

    # ==================== 内部方法 ====================

    def _require_user(self):
        if self.user is None:
            raise HTTPException(status_code=401, detail=LOGIN_REQUIRED)

    def _query_items(self, for_update: bool = False) -> List[CartItem]:
        """当前用户购物车，最新加入的在前

        for_update 时锁住购物车行，过期释放任务（skip_locked）会跳过这些行。
        """
        stmt = (
            select(CartItem)
            .options(joinedload(CartItem.book))
            .where(CartItem.user_id == self.user.id)
            .order_by(CartItem.created_at.desc(), CartItem.id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update(of=CartItem)
        return list(self.db.execute(stmt).scalars().all())

    def _get_item(self, cart_item_id: str) -> CartItem:
        item = self.db.execute(
            select(CartItem)
            .where(
                CartItem.id == cart_item_id,
                CartItem.user_id == self.user.id,
            )
            .with_for_update(of=CartItem)
        ).scalar_one_or_none()
        if item is None:
            raise HTTPException(status_code=404, detail=CART_ITEM_NOT_FOUND)
        return item

    def _delete_cart_rows(self, expected: int):
        """删除当前用户全部购物车行，行数与已归还/已成交的条目不一致时回滚"""
        result = self.db.execute(
            delete(CartItem)
            .where(CartItem.user_id == self.user.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != expected:
            logger.warning(
                f"购物车行数不一致: user_id={self.user.id}, expected={expected}, deleted={result.rowcount}"
            )
            raise HTTPException(status_code=409, detail=CART_CHANGED)

    @contextmanager
    def _cart_lock(self):
        """按用户串行化购物车操作（防止重复点击并发执行）"""
        lock = None
        if self.rlock:
            lock = self.rlock.lock(f"lock:cart:{self.user.id}", settings.CART_LOCK_TTL_MS)
            if not lock:
                raise HTTPException(status_code=429, detail=CART_BUSY)
        try:
            yield
        finally:
            if self.rlock and lock:
                self.rlock.unlock(lock)

    def _operation_key(self, action: str, operation_id: str) -> str:
        return f"{action}:{self.user.id}:{operation_id}"

    def _replay(self, action: str, operation_id: Optional[str]) -> Optional[dict]:
        """已完成的同一操作直接返回快照，不再重复变更库存"""
        if not operation_id:
            return None
        record = self.db.get(IdempotencyKey, self._operation_key(action, operation_id))
        if record is None:
            return None
        logger.info(f"重复请求，跳过执行: key={record.key}")
        return record.response_snapshot or {}

    def _remember(self, action: str, operation_id: Optional[str], snapshot: dict):
        if not operation_id:
            return
        self.db.add(IdempotencyKey(
            key=self._operation_key(action, operation_id),
            action=action,
            response_snapshot=snapshot,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.IDEMPOTENCY_TTL_HOURS),
        ))

    def _invalidate_stock_cache(self, book_ids: List[str]):
        if not self.redis:
            return
        for book_id in set(book_ids):
            self.redis.delete(f"stock:available:{book_id}")
            logger.debug(f"Cache invalidated for book {book_id}")
