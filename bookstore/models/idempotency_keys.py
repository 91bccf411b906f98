from sqlalchemy import (
    Column,
    String,
    JSON,
    TIMESTAMP,
    Index,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from bookstore.db.base import Base


# 幂等表：只记录已提交成功的操作，与业务写入同一事务

class IdempotencyKey(Base):
    __tablename__ = "idempotency_keys"

    # 幂等唯一Key（操作类型:用户ID:客户端操作ID）
    key = Column(
        String(128),
        primary_key=True,
        comment="幂等唯一键",
    )

    action = Column(
        String(32),
        nullable=False,
        comment="操作类型",
    )

    # 存储接口响应快照（重放时返回）
    response_snapshot = Column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=True,
        comment="接口响应结果快照",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    expires_at = Column(
        TIMESTAMP(timezone=True),
        nullable=True,
        comment="过期时间（用于清理）",
    )


Index(
    "idx_idempotency_keys_expires_at",
    IdempotencyKey.expires_at,
)
