import enum

from sqlalchemy import (
    Column,
    String,
    TIMESTAMP,
    Enum,
    func,
)
from bookstore.db.base import Base, generate_uuid


# 1️ 用户角色枚举（封闭集合）

class Role(str, enum.Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    CUSTOMER = "customer"


# 各角色的默认首页，新增角色时必须补齐
ROLE_HOME = {
    Role.ADMIN: "/admin",
    Role.CASHIER: "/cashier",
    Role.CUSTOMER: "/customer",
}


def home_path_for(role: Role) -> str:
    return ROLE_HOME[Role(role)]


# 2️ 用户表（账号由外部认证服务创建，这里只保存资料和角色）

class User(Base):
    __tablename__ = "users"

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    email = Column(
        String(255),
        nullable=False,
        unique=True,
        comment="登录邮箱",
    )

    full_name = Column(
        String(255),
        nullable=False,
        comment="姓名",
    )

    role = Column(
        Enum(
            Role,
            name="user_role_type",
            values_callable=lambda e: [m.value for m in e],
            create_type=True,
        ),
        nullable=False,
        default=Role.CUSTOMER,
        server_default=Role.CUSTOMER.value,
        comment="用户角色",
    )

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
