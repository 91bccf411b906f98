import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # 数据库配置
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "postgres")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "123456")
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "bookstore")

    # Redis 配置
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    # Redlock 多实例，逗号分隔
    REDIS_HOSTS: str = os.getenv("REDIS_HOSTS", "")

    # Celery 使用的 Redis 库
    CELERY_BROKER_DB: int = 1
    CELERY_RESULT_DB: int = 2

    # 业务参数
    STOCK_CACHE_TTL_SECONDS: int = 300
    CART_LOCK_TTL_MS: int = 10000
    CART_RESERVATION_TTL_MINUTES: int = 1440
    IDEMPOTENCY_TTL_HOURS: int = 24

    # 启动时自动建表（开发环境使用，生产环境由迁移脚本建表）
    AUTO_CREATE_TABLES: bool = False

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+psycopg://"
            f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/"
            f"{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

settings = Settings()
