"""购物车相关的 Celery 任务"""

from celery_app import app
from bookstore.db.session import SessionLocal
from bookstore.services.cart_service import CartService
from bookstore.core.redis import redis_client, redlock
import logging

logger = logging.getLogger(__name__)


@app.task(name='tasks.cart.release_expired_reservations')
def release_expired_reservations(batch_size: int = 500, ttl_minutes: int = None):
    """释放过期的购物车预占，并清理过期的幂等记录

    Args:
        batch_size: 批处理大小，默认500条
        ttl_minutes: 预占有效期（分钟），默认取配置

    Returns:
        处理结果描述
    """
    db = SessionLocal()
    try:
        service = CartService(db, None, redis_client, redlock)
        count = service.release_expired_reservations(ttl_minutes, batch_size)
        purged = service.purge_expired_operation_keys()
        result = f"成功释放 {count} 条过期购物车预占，清理 {purged} 条幂等记录"
        logger.info(result)
        return result
    except Exception as e:
        logger.error(f"释放过期预占任务执行失败: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


__all__ = ['release_expired_reservations']
