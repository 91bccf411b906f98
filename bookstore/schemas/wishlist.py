from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal

from bookstore.schemas.base import BaseResponse, ORMSchema


class WishlistBook(ORMSchema):
    id: str
    title: str
    author: str
    price: Decimal
    stock: int
    cover_image: Optional[str] = None
    category: str
    year: int
    description: str


class WishlistItemDetail(ORMSchema):
    id: str
    book_id: str
    book: WishlistBook


class WishlistSummary(BaseModel):
    items: List[WishlistItemDetail] = []
    total_items: int = 0


class WishlistResponse(BaseResponse):
    data: Optional[WishlistSummary] = None


class WishlistStatusResponse(BaseResponse):
    in_wishlist: bool = False
