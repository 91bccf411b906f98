import enum

from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    TIMESTAMP,
    Enum,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import relationship
from bookstore.db.base import Base, generate_uuid


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    user_id = Column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
        comment="购买用户",
    )

    # 收银台下单时填写，线上结算为空
    cashier_id = Column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
        comment="收银员",
    )

    total_amount = Column(
        Numeric(12, 2),
        nullable=False,
        comment="订单总额",
    )

    status = Column(
        Enum(
            TransactionStatus,
            name="transaction_status_type",
            values_callable=lambda e: [m.value for m in e],
            create_type=True,
        ),
        nullable=False,
        default=TransactionStatus.PENDING,
        server_default=TransactionStatus.PENDING.value,
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    transaction_id = Column(
        String(36),
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    book_id = Column(
        String(36),
        ForeignKey("books.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # 成交时快照，与图书当前价格无关
    quantity = Column(
        Integer,
        nullable=False,
    )

    price = Column(
        Numeric(10, 2),
        nullable=False,
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    transaction = relationship("Transaction", back_populates="items")


Index(
    "idx_transactions_status_created",
    Transaction.status,
    Transaction.created_at.desc(),
)
