"""测试配置和 fixtures"""
import pytest
from decimal import Decimal
from unittest.mock import Mock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from redis import Redis
from redlock import Redlock

from bookstore.db.base import Base
from bookstore.models import Book, Role, User


@pytest.fixture
def db_session():
    """SQLite 内存数据库会话（需要 SQLite 3.35+ 支持 RETURNING）"""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db = SessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def mock_redis():
    """创建模拟 Redis 客户端"""
    redis_mock = Mock(spec=Redis)
    redis_mock.get.return_value = None
    redis_mock.setex.return_value = True
    redis_mock.delete.return_value = 1
    redis_mock.mget.return_value = [None, None]
    redis_mock.pipeline.return_value = Mock()
    return redis_mock


@pytest.fixture
def mock_redlock():
    """创建模拟 Redlock 分布式锁"""
    redlock_mock = Mock(spec=Redlock)
    lock_mock = Mock()
    redlock_mock.lock.return_value = lock_mock
    redlock_mock.unlock.return_value = True
    return redlock_mock


@pytest.fixture
def customer(db_session):
    user = User(email="budi@example.com", full_name="Budi", role=Role.CUSTOMER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def other_customer(db_session):
    user = User(email="sari@example.com", full_name="Sari", role=Role.CUSTOMER)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin(db_session):
    user = User(email="admin@example.com", full_name="Admin", role=Role.ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def make_book(db_session):
    """按需创建图书"""
    def _make_book(title="Laskar Pelangi", stock=5, price="150000"):
        book = Book(
            title=title,
            author="Andrea Hirata",
            category="Novel",
            year=2005,
            price=Decimal(price),
            stock=stock,
            description="",
        )
        db_session.add(book)
        db_session.commit()
        return book
    return _make_book
