"""
图数据层

包含:
- models: 节点 / 边 / 标记 / 统计数据模型
- builder: 单包分析累加器 GraphBuilder
- merge: 多图合并
- query: 已保存图的节点 / 边详情查询
"""

from .models import (
    AddressNode,
    CallEvidence,
    CallType,
    Edge,
    EdgeKind,
    EventKind,
    EventNode,
    Flag,
    FlagLevel,
    FlagScope,
    FunctionParam,
    FunctionSummary,
    GraphData,
    ModuleConstant,
    ModuleNode,
    ObjectNode,
    ObjectOwner,
    OwnerKind,
    PackageNode,
    TypeField,
    TypeNode,
    TypeStats,
    Visibility,
    addr_id,
    evt_id,
    mod_id,
    obj_id,
    pkg_id,
    type_id,
)
from .builder import GraphBuilder
from .merge import merge_graphs
from .query import find_edge, find_type, module_detail, object_detail, type_detail

__all__ = [
    # Nodes
    "PackageNode",
    "ModuleNode",
    "TypeNode",
    "TypeField",
    "ObjectNode",
    "ObjectOwner",
    "AddressNode",
    "EventNode",
    "FunctionSummary",
    "FunctionParam",
    "ModuleConstant",
    # Edges / flags / stats
    "Edge",
    "CallEvidence",
    "Flag",
    "TypeStats",
    "GraphData",
    # Enums
    "Visibility",
    "OwnerKind",
    "EventKind",
    "EdgeKind",
    "CallType",
    "FlagLevel",
    "FlagScope",
    # ID helpers
    "pkg_id",
    "mod_id",
    "type_id",
    "obj_id",
    "addr_id",
    "evt_id",
    # Builder / merge
    "GraphBuilder",
    "merge_graphs",
    # Queries
    "find_edge",
    "find_type",
    "module_detail",
    "type_detail",
    "object_detail",
]
