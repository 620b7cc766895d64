"""
API 路由
"""
from . import analyses

__all__ = ["analyses"]
