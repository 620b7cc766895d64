"""
存储模块

- database: ORM 模型、引擎与会话
- analysis_store: 分析结果的保存与查询
"""

from .database import Analysis, Base, get_db, init_db
from .analysis_store import (
    generate_slug,
    get_analysis,
    get_analysis_by_slug,
    get_history,
    get_last_analysis,
    save_analysis,
)

__all__ = [
    "Analysis",
    "Base",
    "get_db",
    "init_db",
    "generate_slug",
    "save_analysis",
    "get_analysis",
    "get_analysis_by_slug",
    "get_last_analysis",
    "get_history",
]
