import enum

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    TIMESTAMP,
    Enum,
    ForeignKey,
    Index,
    func,
)
from bookstore.db.base import Base, generate_uuid

# 1️ 库存变更类型（数据库 ENUM）
class ChangeType(str, enum.Enum):
    ADD = "add"            # 归还/入库
    REMOVE = "remove"      # 加入购物车预占/出库
    PURCHASE = "purchase"  # 结算成交（库存已在预占时扣除）
    EXPIRED = "expired"    # 预占过期释放


# 2️ 库存日志表（只追加，不更新不删除；有日志的图书不能删除）
class StockLog(Base):
    __tablename__ = "stock_logs"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    book_id = Column(
        String(36),
        ForeignKey("books.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="图书ID",
    )

    change_type = Column(
        Enum(
            ChangeType,
            name="stock_change_type",  # PostgreSQL ENUM 类型名
            values_callable=lambda e: [m.value for m in e],
            create_type=True,
        ),
        nullable=False,
        comment="库存变更类型",
    )

    # 带符号：new_stock = previous_stock + quantity_change
    quantity_change = Column(
        Integer,
        nullable=False,
        comment="变更数量",
    )

    previous_stock = Column(
        Integer,
        nullable=False,
        comment="变更前可售库存",
    )

    new_stock = Column(
        Integer,
        nullable=False,
        comment="变更后可售库存",
    )

    user_id = Column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        comment="操作人",
    )

    notes = Column(
        Text,
        nullable=True,
        comment="备注",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

# 3️ 组合索引（按图书查询变更历史）


Index(
    "idx_stock_logs_book_created_desc",
    StockLog.book_id,
    StockLog.created_at.desc(),
)
