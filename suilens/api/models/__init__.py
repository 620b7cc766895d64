"""
API 数据模型
"""
from .analysis import (
    AnalysisCreate,
    AnalysisGraphResponse,
    HistoryItem,
    HistoryResponse,
    JobResponse,
)

__all__ = [
    "AnalysisCreate",
    "AnalysisGraphResponse",
    "HistoryItem",
    "HistoryResponse",
    "JobResponse",
]
