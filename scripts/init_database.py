"""
初始化数据库脚本
直接使用 SQLAlchemy 创建所有表
"""
import asyncio
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import func, select

from suilens.api.config import get_settings
from suilens.storage.database import Analysis, _get_session_factory, init_db


async def main():
    """初始化数据库"""
    settings = get_settings()
    print("🔄 初始化数据库...")
    print(f"📍 DATABASE_URL: {settings.database_url}")

    await init_db()
    print("✅ 数据库表创建完成")

    session_factory = _get_session_factory()
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(Analysis))
        count = result.scalar_one()
        print(f"✅ 已有分析记录: {count} 条")

    print("✅ 数据库初始化完成！")


if __name__ == "__main__":
    asyncio.run(main())
