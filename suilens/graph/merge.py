"""
图合并

- 节点表按 ID 取并集，后写入者覆盖 (占位节点不会覆盖真实节点)
- 边按 (kind, from, to) 去重，保留首次出现的边
- TypeStats 按类型 FQN 后写入者覆盖
- 标记列表直接拼接，不去重

对同一子图重复合并是幂等的 (节点 ID 集合、边三元组集合不变)。
"""

import logging
from typing import Dict, Iterable, List, Set, Tuple, TypeVar

from .models import Edge, Flag, GraphData, TypeStats

logger = logging.getLogger(__name__)

N = TypeVar("N")


def _union_nodes(target: Dict[str, N], nodes: Iterable[N], label: str) -> None:
    for node in nodes:
        existing = target.get(node.id)
        if existing is not None:
            if node.placeholder and not existing.placeholder:
                continue
            if label == "module" and not node.placeholder and not existing.placeholder:
                logger.warning(f"Duplicate module ID: {node.id}")
        target[node.id] = node


def merge_graphs(graphs: Iterable[GraphData]) -> GraphData:
    """合并多个 GraphData 为一个"""
    graphs = list(graphs)
    logger.info(f"Merging {len(graphs)} package graphs")

    packages: Dict[str, object] = {}
    modules: Dict[str, object] = {}
    types: Dict[str, object] = {}
    objects: Dict[str, object] = {}
    addresses: Dict[str, object] = {}
    events: Dict[str, object] = {}
    edges: List[Edge] = []
    edge_keys: Set[Tuple[str, str, str]] = set()
    type_stats: Dict[str, TypeStats] = {}
    flags: List[Flag] = []

    for graph in graphs:
        logger.debug(
            f"Merging graph: packages={len(graph.packages)}, modules={len(graph.modules)}, "
            f"types={len(graph.types)}, edges={len(graph.edges)}"
        )
        _union_nodes(packages, graph.packages, "package")
        _union_nodes(modules, graph.modules, "module")
        _union_nodes(types, graph.types, "type")
        _union_nodes(objects, graph.objects, "object")
        _union_nodes(addresses, graph.addresses, "address")
        _union_nodes(events, graph.events, "event")

        for edge in graph.edges:
            if edge.key not in edge_keys:
                edge_keys.add(edge.key)
                edges.append(edge)

        type_stats.update(graph.type_stats)
        flags.extend(graph.flags)

    merged = GraphData(
        packages=list(packages.values()),
        modules=list(modules.values()),
        types=list(types.values()),
        objects=list(objects.values()),
        addresses=list(addresses.values()),
        events=list(events.values()),
        edges=edges,
        type_stats=type_stats,
        flags=flags,
    )
    logger.info(f"Graph merge complete: {merged.summary()}")
    return merged
