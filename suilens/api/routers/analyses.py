"""
分析 API 路由

- POST /analyses                 提交分析任务
- GET  /jobs/{job_id}            任务状态 / 进度
- DELETE /jobs/{job_id}          取消任务
- GET  /analyses/{analysis_id}   读取分析结果
- GET  /analyses/slug/{slug}     按 slug 读取
- GET  /packages/{package_id}/last  包的最近一次分析
- GET  /history                  分析历史

按需查询 (基于已保存的图):
- GET  /analyses/{id}/edge                       边详情 (?from=&to=&kind=)
- GET  /analyses/{id}/modules/{module_fqn}       模块详情
- GET  /analyses/{id}/types/{type_fqn}/objects   即时抓取该类型的对象
- GET  /analyses/{id}/types/{type_fqn}           类型详情
- GET  /analyses/{id}/objects/{object_id}        对象详情
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...errors import SuiLensError
from ...graph.query import find_edge, find_type, module_detail, object_detail, type_detail
from ...storage.analysis_store import (
    get_analysis,
    get_analysis_by_slug,
    get_history,
    get_last_analysis,
)
from ...storage.database import get_db
from ..models.analysis import AnalysisCreate, AnalysisGraphResponse, HistoryResponse, JobResponse
from ..services.analysis_service import AnalysisService

router = APIRouter(tags=["analyses"])


def get_analysis_service() -> AnalysisService:
    """分析服务依赖 (测试中可覆盖)"""
    return AnalysisService.get_instance()


@router.post("/analyses", response_model=JobResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_analysis(
    request: AnalysisCreate,
    service: AnalysisService = Depends(get_analysis_service),
):
    """提交分析任务，立即返回任务 ID"""
    job = await service.start_analysis(request.package_id, request.config, request.user_id)
    return JobResponse(**job.to_dict())


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job_status(
    job_id: str,
    service: AnalysisService = Depends(get_analysis_service),
):
    """查询任务状态与进度"""
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="任务不存在")
    return JobResponse(**job.to_dict())


@router.delete("/jobs/{job_id}", response_model=JobResponse)
async def cancel_job(
    job_id: str,
    service: AnalysisService = Depends(get_analysis_service),
):
    """取消运行中的任务"""
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="任务不存在")
    if not await service.cancel_job(job_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="任务已结束，无法取消")
    return JobResponse(**job.to_dict())


@router.get("/analyses/slug/{slug}", response_model=AnalysisGraphResponse)
async def read_analysis_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    analysis = await get_analysis_by_slug(db, slug)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="分析不存在")
    return analysis


@router.get("/analyses/{analysis_id}", response_model=AnalysisGraphResponse)
async def read_analysis(
    analysis_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    """读取分析结果 (图数据 + _metadata)"""
    analysis = await get_analysis(db, analysis_id, user_id)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="分析不存在")
    return analysis


@router.get("/packages/{package_id}/last", response_model=AnalysisGraphResponse)
async def read_last_analysis(package_id: str, db: AsyncSession = Depends(get_db)):
    """包的最近一次分析"""
    analysis = await get_last_analysis(db, package_id)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="该包暂无分析记录")
    return analysis


@router.get("/history", response_model=HistoryResponse)
async def read_history(
    user_id: Optional[str] = Query(None, alias="userId"),
    package_id: Optional[str] = Query(None, alias="packageId"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """分析历史 (按时间倒序，分页)"""
    return await get_history(db, user_id=user_id, package_id=package_id, limit=limit, offset=offset)


# =============================================================================
# 按需查询
# =============================================================================

async def _load_analysis(db: AsyncSession, analysis_id: str, user_id: Optional[str]) -> Dict[str, Any]:
    analysis = await get_analysis(db, analysis_id, user_id)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="分析不存在")
    return analysis


@router.get("/analyses/{analysis_id}/edge")
async def read_edge(
    analysis_id: str,
    from_id: str = Query(..., alias="from"),
    to_id: str = Query(..., alias="to"),
    kind: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    """边详情 (含调用证据 / 字段名)"""
    graph = await _load_analysis(db, analysis_id, user_id)
    edge = find_edge(graph, from_id, to_id, kind)
    if not edge:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="边不存在")
    return {"edge": edge}


@router.get("/analyses/{analysis_id}/modules/{module_fqn:path}")
async def read_module(
    analysis_id: str,
    module_fqn: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    graph = await _load_analysis(db, analysis_id, user_id)
    detail = module_detail(graph, module_fqn)
    if not detail:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="模块不存在")
    return detail


# 必须注册在类型详情路由之前，否则 {type_fqn:path} 会吞掉 /objects 后缀
@router.get("/analyses/{analysis_id}/types/{type_fqn:path}/objects")
async def read_type_objects(
    analysis_id: str,
    type_fqn: str,
    limit: int = Query(50, ge=1, le=50),
    cursor: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
    service: AnalysisService = Depends(get_analysis_service),
):
    """即时抓取某类型的对象 (与分析同一网络)"""
    graph = await _load_analysis(db, analysis_id, user_id)
    network = graph["_metadata"]["network"]
    type_node = find_type(graph, type_fqn)
    if not type_node:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="类型不存在")

    if not type_node.get("hasKey"):
        return {
            "objects": [],
            "hasMore": False,
            "nextCursor": None,
            "network": network,
            "message": "该类型没有 key 能力，不是链上对象类型",
        }

    try:
        return await service.fetch_type_objects(network, type_node["fqn"], limit, cursor)
    except SuiLensError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/analyses/{analysis_id}/types/{type_fqn:path}")
async def read_type(
    analysis_id: str,
    type_fqn: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    graph = await _load_analysis(db, analysis_id, user_id)
    detail = type_detail(graph, type_fqn)
    if not detail:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="类型不存在")
    return detail


@router.get("/analyses/{analysis_id}/objects/{object_id}")
async def read_object(
    analysis_id: str,
    object_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    graph = await _load_analysis(db, analysis_id, user_id)
    detail = object_detail(graph, object_id)
    if not detail:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="对象不存在")
    return detail
