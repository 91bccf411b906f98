"""过期购物车预占的本地清理脚本

用法：python -m bookstore.jobs.manual_cleanup [--batch-size 500] [--ttl-minutes 1440] [--dry-run]
"""

import argparse
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, func

from bookstore.core.config import settings
from bookstore.core.redis import redis_client, redlock
from bookstore.db.session import SessionLocal
from bookstore.models.cart_items import CartItem
from bookstore.services.cart_service import CartService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def count_expired(db, ttl_minutes: int = None) -> int:
    """统计超过有效期的购物车条目数量"""
    ttl_minutes = ttl_minutes or settings.CART_RESERVATION_TTL_MINUTES
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=ttl_minutes)
    return db.execute(
        select(func.count())
        .select_from(CartItem)
        .where(CartItem.updated_at <= cutoff)
    ).scalar_one()


def run_cleanup(batch_size: int = 500, ttl_minutes: int = None, dry_run: bool = False) -> int:
    """执行过期预占释放

    Args:
        batch_size: 批处理大小
        ttl_minutes: 预占有效期（分钟），默认取配置
        dry_run: 试运行，只统计不释放
    """
    db = SessionLocal()
    try:
        if dry_run:
            expired_count = count_expired(db, ttl_minutes)
            logger.info(f"试运行模式：发现 {expired_count} 条过期购物车预占待释放")
            return expired_count

        service = CartService(db, None, redis_client, redlock)
        count = service.release_expired_reservations(ttl_minutes, batch_size)
        purged = service.purge_expired_operation_keys()
        logger.info(f"清理完成：释放 {count} 条过期预占，清理 {purged} 条幂等记录")
        return count
    except Exception as e:
        logger.error(f"清理执行失败: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='过期购物车预占释放工具')
    parser.add_argument(
        '--batch-size',
        type=int,
        default=500,
        help='批处理大小 (默认: 500)'
    )
    parser.add_argument(
        '--ttl-minutes',
        type=int,
        default=None,
        help=f'预占有效期，单位分钟 (默认: {settings.CART_RESERVATION_TTL_MINUTES})'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='试运行模式，只统计不执行释放'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='详细输出模式'
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = run_cleanup(args.batch_size, args.ttl_minutes, args.dry_run)
        if args.dry_run:
            print(f"📊 试运行结果：发现 {result} 条过期预占")
        else:
            print(f"✅ 清理完成：释放了 {result} 条预占")
    except Exception as e:
        print(f"❌ 执行失败: {str(e)}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
