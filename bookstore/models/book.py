from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    Text,
    TIMESTAMP,
    CheckConstraint,
    Index,
    func,
)
from bookstore.db.base import Base, generate_uuid


class Book(Base):
    __tablename__ = "books"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    title = Column(
        String(255),
        nullable=False,
        comment="书名",
    )

    author = Column(
        String(255),
        nullable=False,
        comment="作者",
    )

    category = Column(
        String(100),
        nullable=False,
        comment="分类",
    )

    year = Column(
        Integer,
        nullable=False,
        comment="出版年份",
    )

    price = Column(
        Numeric(10, 2),
        nullable=False,
        comment="单价",
    )

    # 可售库存，已放入购物车的数量不计入
    stock = Column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="当前可售库存",
    )

    cover_image = Column(
        String(512),
        nullable=True,
        comment="封面图片地址",
    )

    description = Column(
        Text,
        nullable=False,
        default="",
        comment="简介",
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
    )

    __table_args__ = (
        CheckConstraint(
            "stock >= 0",
            name="ck_books_stock_non_negative",
        ),
        CheckConstraint(
            "price >= 0",
            name="ck_books_price_non_negative",
        ),
    )


Index(
    "idx_books_created_at",
    Book.created_at.desc(),
)
