# Models
from .user import User, Role
from .book import Book
from .cart_items import CartItem
from .wishlist_items import WishlistItem
from .stock_logs import StockLog, ChangeType
from .transactions import Transaction, TransactionItem, TransactionStatus
from .idempotency_keys import IdempotencyKey

__all__ = [
    "User",
    "Role",
    "Book",
    "CartItem",
    "WishlistItem",
    "StockLog",
    "ChangeType",
    "Transaction",
    "TransactionItem",
    "TransactionStatus",
    "IdempotencyKey"
]
