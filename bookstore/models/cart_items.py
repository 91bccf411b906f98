from sqlalchemy import (
    Column,
    String,
    Integer,
    TIMESTAMP,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship
from bookstore.db.base import Base, generate_uuid


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="用户ID",
    )

    book_id = Column(
        String(36),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="图书ID",
    )

    # 预占数量，已从 books.stock 扣除
    quantity = Column(
        Integer,
        nullable=False,
        comment="预占数量",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="最后变更时间（用于过期释放）",
    )

    book = relationship("Book", lazy="joined", innerjoin=True)

    # 同一用户同一本书只能有一条购物车记录
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "book_id",
            name="uq_cart_user_book",
        ),
        CheckConstraint(
            "quantity > 0",
            name="ck_cart_quantity_positive",
        ),
    )


Index(
    "idx_cart_items_updated_at",
    CartItem.updated_at,
)
