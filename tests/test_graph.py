"""
图模型 / 构建器 / 合并测试
"""
import pytest

from suilens.graph import (
    CallEvidence,
    CallType,
    Edge,
    EdgeKind,
    GraphBuilder,
    ModuleNode,
    ObjectNode,
    ObjectOwner,
    OwnerKind,
    TypeNode,
    merge_graphs,
)
from suilens.graph.models import Flag, FlagLevel, FlagScope, TypeStats, strip_prefix


def _package_graph(address: str, dep: str):
    builder = GraphBuilder(address)
    builder.ensure_package(address)
    builder.add_module(ModuleNode(full_name=f"{address}::m", package=f"pkg:{address}", name="m"))
    builder.add_edge(Edge(EdgeKind.PKG_CONTAINS, f"pkg:{address}", f"mod:{address}::m"))
    builder.add_edge(Edge(
        EdgeKind.MOD_CALLS,
        f"mod:{address}::m",
        f"mod:{dep}::n",
        call_type=CallType.EXTERNAL,
        calls=[CallEvidence("detected", f"{dep}::n", "<via type reference>")],
    ))
    builder.add_flag(Flag(FlagLevel.LOW, "Droppable", FlagScope.TYPE, f"type:{address}::m::T"))
    return builder.build()


# =============================================================================
# 模型
# =============================================================================

def test_owner_invariants():
    with pytest.raises(ValueError):
        ObjectOwner(OwnerKind.ADDRESS_OWNER)
    with pytest.raises(ValueError):
        ObjectOwner(OwnerKind.SHARED, "0x1")
    with pytest.raises(ValueError):
        ObjectNode("0x1", "0xa::m::S", ObjectOwner.address_owner("0xb"), shared=True)

    assert ObjectOwner.address_owner("0xb").to_dict() == {"kind": "AddressOwner", "address": "0xb"}
    assert ObjectOwner.immutable().to_dict() == {"kind": "Immutable"}


def test_placeholder_object():
    node = ObjectNode.make_placeholder("0x9")
    assert node.placeholder is True
    assert node.type_fqn == "unknown"
    assert node.owner.kind == OwnerKind.SHARED
    assert node.shared is False
    assert node.to_dict()["placeholder"] is True


def test_strip_prefix():
    assert strip_prefix("pkg:0x2") == "0x2"
    assert strip_prefix("mod:0x2::coin") == "0x2::coin"
    assert strip_prefix("0x2") == "0x2"


# =============================================================================
# GraphBuilder
# =============================================================================

def test_build_closes_dangling_endpoints():
    builder = GraphBuilder("0xa")
    builder.add_edge(Edge(EdgeKind.PKG_DEPENDS, "pkg:0xa", "pkg:0x2", evidence=[]))
    builder.add_edge(Edge(EdgeKind.TYPE_USES_TYPE, "type:0xa::m::S", "type:0x2::coin::Coin", field_name="c"))
    builder.add_edge(Edge(EdgeKind.OBJ_OWNED_BY, "obj:0x5", "addr:0xalice"))
    builder.add_edge(Edge(EdgeKind.PKG_EMITS_EVENT, "pkg:0xa", "evt:tx:0"))

    graph = builder.build()

    assert graph.dangling_edges() == []
    coin = next(t for t in graph.types if t.fqn == "0x2::coin::Coin")
    assert coin.placeholder is True
    assert coin.module == "mod:0x2::coin"
    assert next(p for p in graph.packages if p.address == "0x2").placeholder is True
    assert next(e for e in graph.events if e.event_key == "tx:0").placeholder is True


def test_builder_is_frozen_after_build():
    builder = GraphBuilder("0xa")
    builder.build()
    with pytest.raises(RuntimeError):
        builder.ensure_package("0xb")
    with pytest.raises(RuntimeError):
        builder.build()


def test_placeholder_does_not_replace_real_object():
    builder = GraphBuilder("0xa")
    real = ObjectNode("0x5", "0xa::m::S", ObjectOwner.shared(), shared=True)
    builder.add_object(real)
    builder.ensure_object_placeholder("0x5")
    builder.add_object(ObjectNode.make_placeholder("0x5"))
    assert builder.objects["0x5"] is real


def test_to_dict_shape():
    graph = _package_graph("0xa", "0xb")
    data = graph.to_dict()

    assert set(data) == {"packages", "modules", "types", "objects", "addresses", "events", "edges", "stats", "flags"}
    calls = next(e for e in data["edges"] if e["kind"] == "MOD_CALLS")
    assert calls["from"] == "mod:0xa::m"
    assert calls["to"] == "mod:0xb::n"
    assert calls["callType"] == "external"
    assert calls["calls"][0]["calleeFunc"] == "<via type reference>"
    assert data["flags"][0]["refId"] == "type:0xa::m::T"


# =============================================================================
# merge_graphs
# =============================================================================

def test_merge_is_idempotent():
    graph = _package_graph("0xa", "0xb")
    merged = merge_graphs([graph, graph])

    assert merged.node_ids() == graph.node_ids()
    assert merged.edge_keys() == graph.edge_keys()
    assert len(merged.edges) == len(graph.edges)


def test_merge_unions_nodes_and_dedupes_edges():
    a = _package_graph("0xa", "0xb")
    b = _package_graph("0xb", "0xa")
    merged = merge_graphs([a, b])

    assert {"pkg:0xa", "pkg:0xb", "mod:0xa::m", "mod:0xb::m"} <= merged.node_ids()
    assert len(merged.edge_keys()) == len(merged.edges)
    assert len(merged.flags) == 2
    assert merged.dangling_edges() == []


def test_merge_keeps_first_mod_calls_edge():
    first = GraphBuilder("0xa")
    first.add_edge(Edge(EdgeKind.MOD_CALLS, "mod:0xa::m", "mod:0xb::n", call_type=CallType.EXTERNAL,
                        calls=[CallEvidence("detected", "0xb::n", "<via type reference>")]))
    second = GraphBuilder("0xa")
    second.add_edge(Edge(EdgeKind.MOD_CALLS, "mod:0xa::m", "mod:0xb::n", call_type=CallType.EXTERNAL,
                         calls=[CallEvidence("detected", "0xb::n", "<inferred>")]))

    merged = merge_graphs([first.build(), second.build()])

    calls = merged.edges_of(EdgeKind.MOD_CALLS)
    assert len(calls) == 1
    assert calls[0].calls[0].callee_func == "<via type reference>"


def test_merge_prefers_real_nodes_over_placeholders():
    # 依赖包在根包图里只是占位，在自身图里是真实节点
    root = GraphBuilder("0xa")
    root.add_edge(Edge(EdgeKind.TYPE_USES_TYPE, "type:0xa::m::S", "type:0xb::n::T", field_name="t"))
    root_graph = root.build()

    dep = GraphBuilder("0xb")
    dep.add_type(TypeNode(fqn="0xb::n::T", module="mod:0xb::n", abilities=("Key",), has_key=True))
    dep_graph = dep.build()

    for order in ([root_graph, dep_graph], [dep_graph, root_graph]):
        merged = merge_graphs(order)
        t = next(t for t in merged.types if t.fqn == "0xb::n::T")
        assert t.placeholder is False
        assert t.has_key is True


def test_merge_type_stats_last_wins():
    first = GraphBuilder("0xa")
    first.set_type_stats(TypeStats("0xa::m::S", count=1))
    second = GraphBuilder("0xa")
    second.set_type_stats(TypeStats("0xa::m::S", count=7))

    merged = merge_graphs([first.build(), second.build()])
    assert merged.type_stats["0xa::m::S"].count == 7
