"""
初始数据脚本

在数据库迁移完成后执行：创建默认店铺设置，配置了 FIRST_ADMIN_EMAIL 时创建首个管理员。
"""
import logging

from sqlmodel import Session

from storefront.core.db import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init() -> None:
    with Session(engine) as session:
        init_db(session)


def main() -> None:
    logger.info("Creating initial data")
    init()
    logger.info("Initial data created")


if __name__ == "__main__":  # pragma: no cover
    main()
