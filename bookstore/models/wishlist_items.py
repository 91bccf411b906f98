from sqlalchemy import (
    Column,
    String,
    TIMESTAMP,
    ForeignKey,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship
from bookstore.db.base import Base, generate_uuid


class WishlistItem(Base):
    __tablename__ = "wishlist_items"

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
    )

    book_id = Column(
        String(36),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    book = relationship("Book", lazy="joined", innerjoin=True)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "book_id",
            name="uq_wishlist_user_book",
        ),
    )
