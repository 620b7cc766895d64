"""
包级依赖图
"""

import logging
from typing import Iterable, List

from ..graph.builder import GraphBuilder
from ..graph.models import Edge, EdgeKind, pkg_id

logger = logging.getLogger(__name__)


def add_package_dependencies(
    builder: GraphBuilder,
    package_id: str,
    dependencies: Iterable[str],
) -> List[str]:
    """
    为每个依赖包建节点 (若不存在) 并连 PKG_DEPENDS 边

    Args:
        builder: 当前分析的构建器
        package_id: 被分析的包
        dependencies: 模块解析得到的外部包地址

    Returns:
        实际连边的依赖地址
    """
    added = []
    for dep in dependencies:
        if dep == package_id or dep in added:
            continue
        builder.ensure_package(dep)
        builder.add_edge(Edge(
            kind=EdgeKind.PKG_DEPENDS,
            from_id=pkg_id(package_id),
            to_id=pkg_id(dep),
            evidence=[],
        ))
        added.append(dep)

    logger.info(f"Package {package_id} depends on {len(added)} packages")
    return added
