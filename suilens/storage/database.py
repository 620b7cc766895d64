"""
数据库模型与连接管理

使用 SQLAlchemy 2.0 异步模式
"""
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..api.config import get_settings


def utc_now():
    """返回当前 UTC 时间 (timezone-aware)"""
    return datetime.now(timezone.utc)


# =============================================================================
# 基类
# =============================================================================

class Base(DeclarativeBase):
    """SQLAlchemy 基类"""
    pass


def generate_uuid() -> str:
    """生成 UUID"""
    return str(uuid.uuid4())


# =============================================================================
# 数据模型
# =============================================================================

class Analysis(Base):
    """分析结果表"""
    __tablename__ = "analyses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    package_id = Column(String(128), nullable=False, index=True)
    network = Column(String(16), nullable=False)
    depth = Column(Integer, default=1)

    params_json = Column(JSON, default=dict)    # 分析参数
    summary_json = Column(JSON, default=dict)   # 完整图数据

    user_id = Column(String(64), nullable=True, index=True)
    slug = Column(String(64), unique=True, nullable=False)

    created_at = Column(DateTime, default=utc_now)

    __table_args__ = (
        Index("ix_analyses_package_created", "package_id", "created_at"),
    )

    def __repr__(self):
        return f"<Analysis(id={self.id}, package={self.package_id}, network={self.network})>"


# =============================================================================
# 数据库连接
# =============================================================================

# 引擎和会话工厂（延迟初始化）
_engine = None
_async_session_factory = None


def _get_engine():
    """获取数据库引擎"""
    global _engine
    if _engine is None:
        settings = get_settings()
        connect_args = {}
        if settings.database_url.startswith("sqlite"):
            connect_args = {
                "timeout": 30,
                "check_same_thread": False,
            }
        _engine = create_async_engine(
            settings.database_url,
            echo=False,
            connect_args=connect_args,
        )
    return _engine


def _get_session_factory():
    """获取会话工厂"""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=_get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_factory


async def init_db():
    """初始化数据库（创建表）"""
    url = make_url(get_settings().database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话（依赖注入用）"""
    session_factory = _get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
