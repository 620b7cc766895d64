"""
分析相关 Pydantic 模型
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...config import AnalysisConfig


class AnalysisCreate(BaseModel):
    """提交分析请求 (camelCase / snake_case 均可)"""
    package_id: str = Field(..., alias="packageId", pattern=r"^0x[a-fA-F0-9]+$", description="包地址")
    config: AnalysisConfig = Field(default_factory=AnalysisConfig)
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = {"populate_by_name": True}


class JobResponse(BaseModel):
    """任务状态响应"""
    job_id: str = Field(..., alias="jobId")
    package_id: str = Field(..., alias="packageId")
    status: str
    progress: int = 0
    network: Optional[str] = None
    analysis_id: Optional[str] = Field(None, alias="analysisId")
    slug: Optional[str] = None
    error: Optional[str] = None
    created_at: str = Field(..., alias="createdAt")
    finished_at: Optional[str] = Field(None, alias="finishedAt")

    model_config = {"populate_by_name": True}


class HistoryItem(BaseModel):
    analysis_id: str = Field(..., alias="analysisId")
    package_id: str = Field(..., alias="packageId")
    network: str
    created_at: Optional[str] = Field(None, alias="createdAt")
    slug: str

    model_config = {"populate_by_name": True}


class HistoryResponse(BaseModel):
    """分析历史响应"""
    items: List[HistoryItem]
    has_more: bool = Field(..., alias="hasMore")

    model_config = {"populate_by_name": True}


# 图数据结构较大且随版本演进，直接以 dict 返回
AnalysisGraphResponse = Dict[str, Any]
