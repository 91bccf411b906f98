"""依赖注入配置模块"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException

# 数据库会话依赖
from bookstore.db.session import SessionLocal
from sqlalchemy.orm import Session

# Redis 依赖
from bookstore.core.redis import redis_client, redlock

from bookstore.models.user import User, Role
from bookstore.services.cart_service import CartService
from bookstore.services.book_service import BookService
from bookstore.services.wishlist_service import WishlistService

logger = logging.getLogger(__name__)

LOGIN_REQUIRED = "Please log in"
ADMIN_REQUIRED = "Admin access required"


def get_redis():
    """获取同步 Redis 客户端，不可用时返回 None（服务降级为直连数据库）"""
    try:
        redis_client.ping()
    except Exception as e:
        logger.warning(f"Redis 不可用: {e}")
        return None
    return redis_client

def get_redlock():
    """获取 Redlock 分布式锁实例，未配置服务器时返回 None"""
    if not redlock.servers:
        return None
    return redlock

def get_db() -> Session:
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    """当前登录用户

    会话由上游认证服务维护，这里只根据 X-User-Id 取用户资料；
    未携带用户标识时直接返回 401，不访问数据库。
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail=LOGIN_REQUIRED)

    user = db.get(User, x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail=LOGIN_REQUIRED)
    return user


def require_roles(*roles: Role):
    """限定角色访问"""
    def checker(current_user: User = Depends(get_current_user)) -> User:
        if Role(current_user.role) not in roles:
            raise HTTPException(status_code=403, detail=ADMIN_REQUIRED)
        return current_user
    return checker


require_admin = require_roles(Role.ADMIN)


def get_cart_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    redis = Depends(get_redis),
    rlock = Depends(get_redlock)
) -> CartService:
    """获取购物车服务实例（依赖注入）

    Redis 不可用时同时停用用户锁，购物车操作只依赖数据库的条件更新。
    """
    if redis is None:
        rlock = None
    return CartService(db=db, user=current_user, redis=redis, rlock=rlock)


def get_wishlist_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> WishlistService:
    return WishlistService(db=db, user=current_user)


def get_book_service(
    db: Session = Depends(get_db),
    redis = Depends(get_redis),
) -> BookService:
    return BookService(db=db, redis=redis)

