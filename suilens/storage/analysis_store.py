"""
分析结果存取

所有函数接收一个 AsyncSession，由调用方 (路由依赖 / CLI) 负责提交。
"""
import logging
import time
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import AnalysisConfig
from ..graph.models import GraphData
from .database import Analysis

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def generate_slug(package_id: str, user_id: Optional[str] = None, timestamp_ms: Optional[int] = None) -> str:
    """<包前 8 位>-<用户前 8 位>-<base36 毫秒时间戳>"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    user = user_id or ANONYMOUS_USER
    return f"{package_id[:8]}-{user[:8]}-{_to_base36(timestamp_ms)}"


def _with_metadata(analysis: Analysis, include_slug: bool = True) -> Dict[str, Any]:
    """图数据 + _metadata"""
    metadata = {
        "network": analysis.network,
        "packageId": analysis.package_id,
        "depth": analysis.depth,
        "createdAt": analysis.created_at.isoformat() if analysis.created_at else None,
    }
    if include_slug:
        metadata["slug"] = analysis.slug
    result = dict(analysis.summary_json or {})
    result["_metadata"] = metadata
    return result


async def save_analysis(
    session: AsyncSession,
    package_id: str,
    network: str,
    depth: int,
    config: AnalysisConfig,
    graph: GraphData,
    user_id: Optional[str] = None,
) -> Tuple[str, str]:
    """
    保存一次分析

    Returns:
        (analysis_id, slug)
    """
    slug = generate_slug(package_id, user_id)
    # 同一毫秒内的重复保存追加序号
    existing = await session.execute(select(Analysis.id).where(Analysis.slug.like(f"{slug}%")))
    taken = len(existing.all())
    if taken:
        slug = f"{slug}-{taken}"

    analysis = Analysis(
        package_id=package_id,
        network=network,
        depth=depth,
        params_json=config.model_dump(mode="json"),
        summary_json=graph.to_dict(),
        user_id=user_id,
        slug=slug,
    )
    session.add(analysis)
    await session.flush()

    logger.info(f"Analysis saved with ID: {analysis.id}, slug: {slug} for network: {network}")
    return analysis.id, slug


async def get_analysis(session: AsyncSession, analysis_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """按 ID 读取；指定 user_id 时只返回该用户的分析"""
    query = select(Analysis).where(Analysis.id == analysis_id)
    if user_id:
        query = query.where(Analysis.user_id == user_id)
    analysis = (await session.execute(query)).scalar_one_or_none()
    return _with_metadata(analysis) if analysis else None


async def get_analysis_by_slug(session: AsyncSession, slug: str) -> Optional[Dict[str, Any]]:
    analysis = (await session.execute(select(Analysis).where(Analysis.slug == slug))).scalar_one_or_none()
    return _with_metadata(analysis) if analysis else None


async def get_last_analysis(session: AsyncSession, package_id: str) -> Optional[Dict[str, Any]]:
    """包的最近一次分析"""
    query = (
        select(Analysis)
        .where(Analysis.package_id == package_id)
        .order_by(Analysis.created_at.desc())
        .limit(1)
    )
    analysis = (await session.execute(query)).scalar_one_or_none()
    return _with_metadata(analysis, include_slug=False) if analysis else None


async def get_history(
    session: AsyncSession,
    user_id: Optional[str] = None,
    package_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    """
    分析历史 (按创建时间倒序)

    Returns:
        {"items": [...], "hasMore": bool}
    """
    query = select(Analysis).order_by(Analysis.created_at.desc())
    if user_id:
        query = query.where(Analysis.user_id == user_id)
    if package_id:
        query = query.where(Analysis.package_id == package_id)
    # 多取一条判断是否还有下一页
    rows = (await session.execute(query.offset(offset).limit(limit + 1))).scalars().all()

    has_more = len(rows) > limit
    items = rows[:limit]
    return {
        "items": [
            {
                "analysisId": a.id,
                "packageId": a.package_id,
                "network": a.network,
                "createdAt": a.created_at.isoformat() if a.created_at else None,
                "slug": a.slug,
            }
            for a in items
        ],
        "hasMore": has_more,
    }
