"""
分析任务服务

在进程内管理分析任务:
- 启动分析 (asyncio.create_task)
- 记录进度与错误
- 完成后保存到数据库
- 取消任务
- 按类型即时抓取对象 (不依赖已保存的图)
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ...analysis.engine import analyze_package
from ...analysis.objects import object_node_from_graphql
from ...config import AnalysisConfig
from ...errors import PackageNotFoundError, SuiLensError
from ...storage.analysis_store import save_analysis
from ...storage.database import _get_session_factory
from ...sui.network import ClientsFactory, get_sui_clients
from ..config import get_settings

logger = logging.getLogger(__name__)


def utc_now():
    """返回当前 UTC 时间"""
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """任务状态"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class AnalysisJob:
    """进程内的分析任务"""
    job_id: str
    package_id: str
    config: AnalysisConfig
    user_id: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    network: Optional[str] = None
    analysis_id: Optional[str] = None
    slug: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    task: Optional[asyncio.Task] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "packageId": self.package_id,
            "status": self.status.value,
            "progress": self.progress,
            "network": self.network,
            "analysisId": self.analysis_id,
            "slug": self.slug,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
        }


class AnalysisService:
    """
    分析服务

    管理所有分析任务，提供：
    - 启动分析
    - 查询任务状态
    - 取消任务
    - 按类型即时抓取对象

    已结束的任务在 job_retention_seconds 之后被移出内存。
    """

    _instance: Optional["AnalysisService"] = None

    def __init__(
        self,
        clients_factory: ClientsFactory = get_sui_clients,
        session_factory: Optional[Callable[[], Any]] = None,
        job_retention_seconds: Optional[float] = None,
    ):
        self._jobs: Dict[str, AnalysisJob] = {}
        self._lock = asyncio.Lock()
        self.clients_factory = clients_factory
        self._session_factory = session_factory
        if job_retention_seconds is None:
            job_retention_seconds = get_settings().job_retention_seconds
        self.job_retention = timedelta(seconds=job_retention_seconds)

    @classmethod
    def get_instance(cls) -> "AnalysisService":
        """获取单例实例"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def session_factory(self):
        return self._session_factory or _get_session_factory()

    async def start_analysis(
        self,
        package_id: str,
        config: Optional[AnalysisConfig] = None,
        user_id: Optional[str] = None,
    ) -> AnalysisJob:
        """
        创建并启动分析任务

        Args:
            package_id: 包地址
            config: 分析参数
            user_id: 提交者 (为空时按 anonymous 生成 slug)

        Returns:
            新建的任务
        """
        async with self._lock:
            self._evict_finished()
            job = AnalysisJob(
                job_id=str(uuid.uuid4()),
                package_id=package_id,
                config=config or AnalysisConfig(),
                user_id=user_id,
            )
            self._jobs[job.job_id] = job
            job.task = asyncio.create_task(self._run_job(job))
            logger.info(f"[Job {job.job_id[:8]}] queued analysis for {package_id}")
            return job

    async def _run_job(self, job: AnalysisJob) -> None:
        """执行分析任务"""
        job.status = JobStatus.RUNNING

        async def on_progress(percent: int) -> None:
            job.progress = percent

        try:
            result = await analyze_package(
                job.package_id,
                job.config,
                on_progress=on_progress,
                clients_factory=self.clients_factory,
            )
            job.network = result.network

            async with self.session_factory() as session:
                job.analysis_id, job.slug = await save_analysis(
                    session,
                    package_id=job.package_id,
                    network=result.network,
                    depth=job.config.max_pkg_depth,
                    config=job.config.model_copy(update={"network": result.network}),
                    graph=result.graph,
                    user_id=job.user_id,
                )
                await session.commit()

            job.progress = 100
            job.status = JobStatus.COMPLETED
            logger.info(f"[Job {job.job_id[:8]}] completed, analysis {job.analysis_id}")

        except asyncio.CancelledError:
            job.status = JobStatus.CANCELLED
            job.error = "分析已被取消"
            logger.info(f"[Job {job.job_id[:8]}] cancelled")
            raise
        except PackageNotFoundError as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.warning(f"[Job {job.job_id[:8]}] {e}")
        except SuiLensError as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            logger.error(f"[Job {job.job_id[:8]}] analysis failed: {e}")
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = f"{type(e).__name__}: {e}"
            logger.exception(f"[Job {job.job_id[:8]}] unexpected failure")
        finally:
            job.finished_at = utc_now()

    def get_job(self, job_id: str) -> Optional[AnalysisJob]:
        self._evict_finished()
        return self._jobs.get(job_id)

    def is_running(self, job_id: str) -> bool:
        """检查任务是否在运行"""
        job = self._jobs.get(job_id)
        if job and job.task:
            return not job.task.done()
        return False

    async def cancel_job(self, job_id: str) -> bool:
        """取消运行中的任务"""
        job = self._jobs.get(job_id)
        if not job or not job.task or job.task.done():
            return False
        job.task.cancel()
        try:
            await job.task
        except asyncio.CancelledError:
            pass
        return True

    def cleanup(self, job_id: str) -> None:
        """清理已完成的任务"""
        job = self._jobs.get(job_id)
        if job and job.task and job.task.done():
            del self._jobs[job_id]

    def _evict_finished(self) -> None:
        """移除超过保留期的已结束任务"""
        now = utc_now()
        expired = [
            job_id for job_id, job in self._jobs.items()
            if job.finished_at is not None and now - job.finished_at >= self.job_retention
        ]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} finished jobs")

    # ------------------------------------------------------------------
    # 按需查询
    # ------------------------------------------------------------------

    async def fetch_type_objects(
        self,
        network: str,
        type_fqn: str,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        即时抓取某类型的一页链上对象 (不写入已保存的图)

        Raises:
            SuiRpcError: 对象源请求失败
        """
        clients = self.clients_factory(network)
        page = await clients.objects.query_page(type_fqn, limit, cursor)

        objects = []
        for raw in page.objects:
            try:
                objects.append(object_node_from_graphql(raw, type_fqn).to_dict())
            except (ValidationError, ValueError) as e:
                address = raw.get("address") if isinstance(raw, dict) else None
                logger.warning(f"Skipping object {address} of {type_fqn}: {e}")

        logger.info(f"Fetched {len(objects)} objects for {type_fqn} on {network}")
        return {
            "objects": objects,
            "hasMore": page.has_next_page,
            "nextCursor": page.next_cursor,
            "network": network,
        }
