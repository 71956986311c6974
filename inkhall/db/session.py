# inkhall/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from inkhall.core.config import settings

# SQLite 需要特殊配置来处理多线程
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in settings.DATABASE_URL else {},
    pool_pre_ping="sqlite" not in settings.DATABASE_URL,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal() # 创建一个新的数据库会话
    try:
        yield db    # 提供数据库会话“交给”请求使用
    finally:
        db.close()  # 请求结束时自动关闭数据库会话
