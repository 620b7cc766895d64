"""
分析引擎

- analyze_single_package: 单包流水线
      模块解析 -> 包依赖 -> 对象发现 -> 事件 -> 安全标记 -> build()
- analyze_package_recursive: 以显式深度计数的广度优先前沿遍历依赖包，
  visited 集合保证每个包只分析一次，最后 merge_graphs
- analyze_package: 网络探测 + 选择单包 / 递归

Usage:
    from suilens.analysis import analyze_package

    result = await analyze_package("0x...", AnalysisConfig(maxPkgDepth=2))
    print(result.graph.summary())
"""

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Set

from ..config import (
    PROGRESS_MILESTONES,
    RECURSIVE_PROGRESS_CAP,
    RECURSIVE_PROGRESS_RANGE,
    AnalysisConfig,
)
from ..errors import AnalysisError, SuiLensError
from ..graph.builder import GraphBuilder
from ..graph.merge import merge_graphs
from ..graph.models import CallType, EdgeKind, GraphData, strip_prefix
from ..security.flag_rules import detect_security_flags
from ..sui.explorers import package_explorer_links
from ..sui.network import ClientsFactory, get_sui_clients, locate_package
from ..sui.sources import SuiClients
from .dependencies import add_package_dependencies
from .events import collect_events
from .module_parser import ModuleParser
from .objects import ObjectDiscovery

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Awaitable[None]]


@dataclass
class AnalysisResult:
    """一次完整分析的结果"""
    graph: GraphData
    network: str
    package_id: str
    packages_analyzed: List[str] = field(default_factory=list)
    failed_packages: Dict[str, str] = field(default_factory=dict)


async def _report(on_progress: Optional[ProgressCallback], percent: int) -> None:
    if on_progress is not None:
        await on_progress(percent)


@contextmanager
def _stage(package_id: str, name: str) -> Iterator[None]:
    """阶段内未处理的异常统一包装为 AnalysisError；SuiLensError 原样抛出"""
    try:
        yield
    except SuiLensError:
        raise
    except Exception as e:
        logger.error(f"Analysis of {package_id} failed during {name}: {type(e).__name__}: {e}")
        raise AnalysisError(package_id, e) from e


# =============================================================================
# 单包分析
# =============================================================================

async def analyze_single_package(
    package_id: str,
    clients: SuiClients,
    config: Optional[AnalysisConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    raw_modules: Optional[Dict[str, Any]] = None,
) -> GraphData:
    """
    分析单个包

    Args:
        package_id: 包地址
        clients: 该包所在网络的数据源
        config: 分析参数
        on_progress: 进度回调 (5 / 15 / 35 / 45 / 65 / 80 / 90 / 100)
        raw_modules: 已获取的 normalized modules (网络探测时取得)，为空时重新获取

    Returns:
        该包的 GraphData

    Raises:
        PackageNotFoundError / SuiRpcError: 模块获取失败
        AnalysisError: 其他未处理的异常
    """
    config = config or AnalysisConfig()
    network = clients.network
    logger.info(f"Starting analysis for package: {package_id} on {network}")
    await _report(on_progress, PROGRESS_MILESTONES["start"])

    builder = GraphBuilder(root_package=package_id)

    if raw_modules is None:
        with _stage(package_id, "module fetch"):
            raw_modules = await clients.modules.get_normalized_modules(package_id)
    logger.info(f"Fetched {len(raw_modules)} modules for package {package_id}")
    await _report(on_progress, PROGRESS_MILESTONES["modules_fetched"])

    with _stage(package_id, "module parsing"):
        root = builder.ensure_package(package_id)
        root.explorer_links = package_explorer_links(package_id, network)
        parsed = ModuleParser(builder, package_id, config, network).parse(raw_modules)
    await _report(on_progress, PROGRESS_MILESTONES["modules_parsed"])

    with _stage(package_id, "dependency graph"):
        add_package_dependencies(builder, package_id, parsed.package_dependencies)
    await _report(on_progress, PROGRESS_MILESTONES["dependencies"])

    with _stage(package_id, "object discovery"):
        if config.discover_objects:
            discovery = ObjectDiscovery(builder, clients.objects, clients.dynamic_fields, config)
            await discovery.discover()
        else:
            logger.info("Object discovery disabled, skipping")
    await _report(on_progress, PROGRESS_MILESTONES["objects"])

    with _stage(package_id, "event collection"):
        event_count = await collect_events(builder, clients.events, package_id, config.events_window_days)
    await _report(on_progress, PROGRESS_MILESTONES["events"])

    with _stage(package_id, "security flags"):
        builder.add_flags(detect_security_flags(
            builder.modules.values(),
            builder.types.values(),
            builder.objects.values(),
        ))
        own_modules = [m for m in builder.modules.values() if m.package == root.id]
        root.stats = {
            "modules": len(own_modules),
            "types": sum(len(m.types_defined) for m in own_modules),
            "recentEvents": event_count,
        }
        graph = builder.build()
    await _report(on_progress, PROGRESS_MILESTONES["flags"])

    logger.info(f"Graph data created for {package_id}: {graph.summary()}")
    await _report(on_progress, PROGRESS_MILESTONES["done"])
    return graph


# =============================================================================
# 递归分析
# =============================================================================

def dependencies_of(graph: GraphData) -> List[str]:
    """下一层前沿: PKG_DEPENDS 目标 + external MOD_CALLS 目标模块所在的包"""
    deps: List[str] = []
    for edge in graph.edges:
        if edge.kind == EdgeKind.PKG_DEPENDS:
            target = strip_prefix(edge.to_id)
        elif edge.kind == EdgeKind.MOD_CALLS and edge.call_type == CallType.EXTERNAL:
            target = strip_prefix(edge.to_id).partition("::")[0]
        else:
            continue
        if target and target not in deps:
            deps.append(target)
    return deps


class _ProgressTracker:
    """把各包的 0-100 进度映射到递归分析的总进度，并保证单调不减"""

    def __init__(self, on_progress: Optional[ProgressCallback]):
        self.on_progress = on_progress
        self.last = 0

    def scaled(self, offset: float, span: float) -> ProgressCallback:
        async def callback(percent: int) -> None:
            value = round(min(offset + percent * span / 100, RECURSIVE_PROGRESS_CAP))
            if value > self.last:
                self.last = value
                await _report(self.on_progress, value)
        return callback

    async def emit(self, percent: int) -> None:
        self.last = max(self.last, percent)
        await _report(self.on_progress, percent)


async def analyze_package_recursive(
    package_id: str,
    clients: SuiClients,
    config: Optional[AnalysisConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    root_modules: Optional[Dict[str, Any]] = None,
) -> AnalysisResult:
    """
    递归分析包及其依赖

    根包深度为 1；深度 < max_pkg_depth 的包把依赖加入下一层前沿。
    依赖包因任何异常失败都只丢弃该分支；根包失败则整体失败。

    Returns:
        AnalysisResult (合并后的图)
    """
    config = config or AnalysisConfig()
    max_depth = config.max_pkg_depth
    logger.info(f"Starting recursive analysis for {package_id} with depth {max_depth}")

    tracker = _ProgressTracker(on_progress)
    level_span = RECURSIVE_PROGRESS_RANGE / max_depth
    semaphore = asyncio.Semaphore(config.max_concurrency)

    visited: Set[str] = set()
    graphs: List[GraphData] = []
    analyzed: List[str] = []
    failed: Dict[str, str] = {}

    def drop_branch(pkg: str, error: Exception) -> None:
        reason = str(error) if isinstance(error, SuiLensError) else f"{type(error).__name__}: {error}"
        logger.error(f"Failed to analyze {pkg}, dropping branch: {reason}")
        failed[pkg] = reason

    async def run_one(pkg: str, offset: float, span: float) -> Optional[GraphData]:
        async with semaphore:
            modules = root_modules if pkg == package_id else None
            try:
                return await analyze_single_package(
                    pkg, clients, config, tracker.scaled(offset, span), raw_modules=modules,
                )
            except SuiLensError as e:
                if pkg == package_id:
                    raise
                drop_branch(pkg, e)
                return None

    frontier = [package_id]
    depth = 1
    while frontier and depth <= max_depth:
        # 检查并标记 visited 在派发任务前一次完成
        level = [pkg for pkg in dict.fromkeys(frontier) if pkg not in visited]
        visited.update(level)
        if not level:
            break

        level_offset = (depth - 1) * level_span
        slot = level_span / len(level)
        logger.info(f"Depth {depth}: analyzing {len(level)} packages")

        jobs = [run_one(pkg, level_offset + i * slot, slot) for i, pkg in enumerate(level)]
        if config.parallel_siblings and len(jobs) > 1:
            # 等所有兄弟任务结束后再处理异常
            results = await asyncio.gather(*jobs, return_exceptions=True)
        else:
            results = []
            for job in jobs:
                try:
                    results.append(await job)
                except Exception as e:
                    results.append(e)

        next_frontier: List[str] = []
        for pkg, graph in zip(level, results):
            if isinstance(graph, asyncio.CancelledError):
                raise graph
            if isinstance(graph, Exception):
                if pkg == package_id:
                    raise graph
                drop_branch(pkg, graph)
                continue
            if graph is None:
                continue
            graphs.append(graph)
            analyzed.append(pkg)
            if depth < max_depth:
                deps = [d for d in dependencies_of(graph) if d not in visited]
                logger.info(f"Found {len(deps)} dependencies for {pkg}")
                next_frontier.extend(deps)

        frontier = next_frontier
        depth += 1

    logger.info(f"Merging {len(graphs)} package graphs")
    merged = merge_graphs(graphs)
    await tracker.emit(RECURSIVE_PROGRESS_CAP)

    result = AnalysisResult(
        graph=merged,
        network=clients.network,
        package_id=package_id,
        packages_analyzed=analyzed,
        failed_packages=failed,
    )
    await tracker.emit(PROGRESS_MILESTONES["done"])
    logger.info(f"Recursive analysis complete for {package_id}: {len(analyzed)} packages, {len(failed)} failed")
    return result


# =============================================================================
# 入口
# =============================================================================

async def analyze_package(
    package_id: str,
    config: Optional[AnalysisConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
    clients_factory: ClientsFactory = get_sui_clients,
) -> AnalysisResult:
    """
    分析入口: 探测网络后执行单包或递归分析

    Args:
        package_id: 包地址
        config: 分析参数 (network 为首选网络)
        on_progress: 进度回调
        clients_factory: network -> SuiClients

    Raises:
        PackageNotFoundError: 包在候选网络上都不存在
    """
    config = config or AnalysisConfig()
    logger.info(f"Detecting package network for {package_id} (preferred: {config.network})")
    location = await locate_package(package_id, config.network, clients_factory)
    network = location.network
    logger.info(f"Using network: {network}")

    config = config.model_copy(update={"network": network})
    clients = location.clients

    if config.max_pkg_depth > 1:
        return await analyze_package_recursive(
            package_id, clients, config, on_progress, root_modules=location.modules,
        )

    graph = await analyze_single_package(package_id, clients, config, on_progress, raw_modules=location.modules)
    return AnalysisResult(graph=graph, network=network, package_id=package_id, packages_analyzed=[package_id])
