"""Celery 配置文件"""

from celery import Celery

from bookstore.core.config import settings

# 创建 Celery 应用实例
app = Celery('bookstore_worker', include=['tasks.cart_tasks'])

# Redis db1 作为 broker，db2 作为 backend
app.conf.broker_url = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.CELERY_BROKER_DB}"
app.conf.result_backend = f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/{settings.CELERY_RESULT_DB}"

# 任务序列化配置
app.conf.task_serializer = 'json'
app.conf.result_serializer = 'json'
app.conf.accept_content = ['json']

app.conf.timezone = 'Asia/Jakarta'
app.conf.enable_utc = True

app.conf.task_routes = {
    'tasks.cart.*': {'queue': 'cart'},
}

# 每小时释放一次过期的购物车预占
app.conf.beat_schedule = {
    'release-expired-cart-reservations': {
        'task': 'tasks.cart.release_expired_reservations',
        'schedule': 3600.0,
        'args': (500,),
    },
}

# Worker 配置
app.conf.worker_prefetch_multiplier = 1
app.conf.task_acks_late = True

__all__ = ['app']
