"""
数据库连接模块

管理数据库引擎的创建和初始数据填充。

重要提示：
- 数据库表结构通过 Alembic 迁移管理，不要在这里创建表
- 确保在使用前导入所有模型（storefront.models），否则关系可能无法正确初始化
"""
import logging

from sqlmodel import Session, create_engine, select

from storefront.core.config import settings
from storefront.enums import UserRole
from storefront.models import StoreSettings, User

logger = logging.getLogger(__name__)

# 创建数据库引擎（连接池）
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI))


def init_db(session: Session) -> None:
    """
    初始化种子数据

    - 店铺设置只有一行，不存在时创建默认值（取件邮编需要后台填写）
    - 配置了 FIRST_ADMIN_EMAIL 时创建首个管理员账号
    """
    store = session.exec(select(StoreSettings)).first()
    if not store:
        session.add(StoreSettings())
        logger.info("Created default store settings")

    if settings.FIRST_ADMIN_EMAIL:
        admin = session.exec(
            select(User).where(User.email == settings.FIRST_ADMIN_EMAIL)
        ).first()
        if not admin:
            session.add(
                User(
                    email=settings.FIRST_ADMIN_EMAIL,
                    name=settings.FIRST_ADMIN_NAME,
                    role=UserRole.admin,
                )
            )
            logger.info("Created first admin %s", settings.FIRST_ADMIN_EMAIL)
        elif admin.role != UserRole.admin:
            admin.role = UserRole.admin
            session.add(admin)

    session.commit()
