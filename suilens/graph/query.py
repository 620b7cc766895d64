"""
已保存图数据的按需查询

输入是 GraphData.to_dict() 的结果 (即数据库中保存的 JSON)，
节点可以用带前缀的 id ("mod:0xa::m") 或裸名 ("0xa::m") 指定。
"""

from typing import Any, Dict, List, Optional

from ..sui.type_refs import module_fqn_of
from .models import EdgeKind, mod_id, obj_id, type_id

GraphDict = Dict[str, Any]


def _edges(graph: GraphDict, kind: EdgeKind) -> List[Dict[str, Any]]:
    return [e for e in graph.get("edges", []) if e.get("kind") == kind.value]


def _flags_for(graph: GraphDict, node_id: str) -> List[Dict[str, Any]]:
    return [f for f in graph.get("flags", []) if f.get("refId") == node_id]


def _strip(value: str, prefix: str) -> str:
    return value[len(prefix):] if value.startswith(prefix) else value


# =============================================================================
# 边
# =============================================================================

def find_edge(graph: GraphDict, from_id: str, to_id: str, kind: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """按端点 (及可选的类型) 查找第一条边"""
    for edge in graph.get("edges", []):
        if edge.get("from") != from_id or edge.get("to") != to_id:
            continue
        if kind is not None and edge.get("kind") != kind:
            continue
        return edge
    return None


# =============================================================================
# 节点详情
# =============================================================================

def module_detail(graph: GraphDict, module_fqn: str) -> Optional[Dict[str, Any]]:
    """
    模块详情: 定义的类型、调用 / 被调用的模块、friend 以及安全标记

    Returns:
        None 表示图中没有该模块
    """
    fqn = _strip(module_fqn, "mod:")
    module = next((m for m in graph.get("modules", []) if m.get("fullName") == fqn), None)
    if module is None:
        return None

    node_id = mod_id(fqn)
    calls = _edges(graph, EdgeKind.MOD_CALLS)
    return {
        "module": module,
        "types": [t for t in graph.get("types", []) if t.get("module") == node_id],
        "outgoingCalls": [e["to"] for e in calls if e["from"] == node_id],
        "incomingCalls": [e["from"] for e in calls if e["to"] == node_id],
        "friends": [e["to"] for e in _edges(graph, EdgeKind.MOD_FRIEND_ALLOW) if e["from"] == node_id],
        "flags": _flags_for(graph, node_id),
    }


def type_detail(graph: GraphDict, type_fqn: str, sample_limit: int = 10) -> Optional[Dict[str, Any]]:
    """类型详情: 统计、样本对象、定义模块、引用的其他类型"""
    fqn = _strip(type_fqn, "type:")
    type_node = find_type(graph, fqn)
    if type_node is None:
        return None

    node_id = type_id(type_node["fqn"])
    known_types = {t["id"]: t["fqn"] for t in graph.get("types", [])}
    uses_types = [
        known_types[e["to"]]
        for e in _edges(graph, EdgeKind.TYPE_USES_TYPE)
        if e["from"] == node_id and e["to"] in known_types
    ]

    defined_by = _strip(type_node.get("module") or "", "mod:") or module_fqn_of(type_node["fqn"])
    instances = [o for o in graph.get("objects", []) if o.get("typeFqn") == type_node["fqn"]]

    return {
        "type": type_node,
        "stats": graph.get("stats", {}).get("types", {}).get(type_node["fqn"]),
        "samples": [o["objectId"] for o in instances[:sample_limit]],
        "objectCount": len(instances),
        "definedBy": defined_by,
        "usesTypes": uses_types,
        "flags": _flags_for(graph, node_id),
    }


def find_type(graph: GraphDict, type_fqn: str) -> Optional[Dict[str, Any]]:
    """精确匹配类型全名，找不到时再忽略大小写匹配"""
    fqn = _strip(type_fqn, "type:")
    types = graph.get("types", [])
    found = next((t for t in types if t.get("fqn") == fqn), None)
    if found is None:
        lowered = fqn.lower()
        found = next((t for t in types if t.get("fqn", "").lower() == lowered), None)
    return found


def object_detail(graph: GraphDict, object_id: str) -> Optional[Dict[str, Any]]:
    """对象详情: 动态字段父 / 子对象、快照引用以及安全标记"""
    raw_id = _strip(object_id, "obj:")
    obj = next((o for o in graph.get("objects", []) if o.get("objectId") == raw_id), None)
    if obj is None:
        return None

    node_id = obj_id(raw_id)
    df_edges = _edges(graph, EdgeKind.OBJ_DF_CHILD)
    refs: List[str] = []
    for edge in _edges(graph, EdgeKind.OBJ_REFERS_OBJ):
        if edge["from"] == node_id:
            other = edge["to"]
        elif edge["to"] == node_id:
            other = edge["from"]
        else:
            continue
        if other != node_id and other not in refs:
            refs.append(other)

    return {
        "object": obj,
        "parents": [e["from"] for e in df_edges if e["to"] == node_id],
        "children": [e["to"] for e in df_edges if e["from"] == node_id],
        "refs": refs,
        "flags": _flags_for(graph, node_id),
    }
