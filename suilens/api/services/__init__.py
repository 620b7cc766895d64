"""
API 服务层
"""
from .analysis_service import AnalysisJob, AnalysisService, JobStatus

__all__ = ["AnalysisJob", "AnalysisService", "JobStatus"]
