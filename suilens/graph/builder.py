"""
GraphBuilder - 单包分析的图累加器

每次单包分析持有一个独立的 GraphBuilder，各阶段 (模块解析 / 依赖 / 对象 /
事件 / 安全标记) 只通过它写入节点与边。build() 之后构建器冻结，产出的
GraphData 交给 merge_graphs 做函数式合并。
"""

import logging
from typing import Dict, Iterable, List, Optional

from .models import (
    ADDR_PREFIX,
    EVT_PREFIX,
    MOD_PREFIX,
    OBJ_PREFIX,
    PKG_PREFIX,
    TYPE_PREFIX,
    AddressNode,
    Edge,
    EventNode,
    Flag,
    GraphData,
    ModuleNode,
    ObjectNode,
    PackageNode,
    TypeNode,
    TypeStats,
    mod_id,
    pkg_id,
    strip_prefix,
)

logger = logging.getLogger(__name__)


class GraphBuilder:
    """按 ID 去重的节点表 + 边列表"""

    def __init__(self, root_package: Optional[str] = None):
        self.root_package = root_package
        self.packages: Dict[str, PackageNode] = {}      # address -> node
        self.modules: Dict[str, ModuleNode] = {}        # module FQN -> node
        self.types: Dict[str, TypeNode] = {}            # type FQN -> node
        self.objects: Dict[str, ObjectNode] = {}        # object id -> node
        self.addresses: Dict[str, AddressNode] = {}     # address -> node
        self.events: Dict[str, EventNode] = {}          # "<digest>:<seq>" -> node
        self.edges: List[Edge] = []
        self.flags: List[Flag] = []
        self.type_stats: Dict[str, TypeStats] = {}
        self._finalized = False

    # ------------------------------------------------------------------
    # 写入
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("GraphBuilder already finalized")

    def ensure_package(self, address: str, display_name: Optional[str] = None) -> PackageNode:
        self._check_open()
        node = self.packages.get(address)
        if node is None:
            node = PackageNode(address=address, display_name=display_name or address)
            self.packages[address] = node
        return node

    def add_module(self, module: ModuleNode) -> None:
        self._check_open()
        if module.full_name in self.modules:
            logger.warning(f"Module {module.full_name} parsed twice, keeping the latest")
        self.modules[module.full_name] = module

    def add_type(self, type_node: TypeNode) -> None:
        self._check_open()
        self.types[type_node.fqn] = type_node

    def add_object(self, obj: ObjectNode) -> None:
        """写入对象；占位节点不会覆盖已抓取的真实对象"""
        self._check_open()
        existing = self.objects.get(obj.object_id)
        if existing is not None and obj.placeholder and not existing.placeholder:
            return
        self.objects[obj.object_id] = obj

    def ensure_object_placeholder(self, object_id: str) -> None:
        if object_id not in self.objects:
            self.add_object(ObjectNode.make_placeholder(object_id))

    def ensure_address(self, address: str) -> AddressNode:
        self._check_open()
        node = self.addresses.get(address)
        if node is None:
            node = AddressNode(address=address)
            self.addresses[address] = node
        return node

    def add_event(self, event: EventNode) -> None:
        self._check_open()
        self.events[event.event_key] = event

    def add_edge(self, edge: Edge) -> None:
        self._check_open()
        self.edges.append(edge)

    def add_flag(self, flag: Flag) -> None:
        self._check_open()
        self.flags.append(flag)

    def add_flags(self, flags: Iterable[Flag]) -> None:
        for flag in flags:
            self.add_flag(flag)

    def set_type_stats(self, stats: TypeStats) -> None:
        self._check_open()
        self.type_stats[stats.type_fqn] = stats

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    def has_module(self, module_fqn: str) -> bool:
        return module_fqn in self.modules

    def key_types(self) -> List[TypeNode]:
        """具有 key 能力的类型 (对象发现的唯一入口)"""
        return [t for t in self.types.values() if t.has_key and not t.placeholder]

    def real_object_count(self) -> int:
        return sum(1 for o in self.objects.values() if not o.placeholder)

    # ------------------------------------------------------------------
    # 完成
    # ------------------------------------------------------------------

    def _close_dangling_endpoints(self) -> int:
        """为边上未知的端点补占位节点，保证每条边的端点都在图中"""
        created = 0
        for edge in self.edges:
            for node_id in (edge.from_id, edge.to_id):
                if self._ensure_endpoint(node_id):
                    created += 1
        return created

    def _ensure_endpoint(self, node_id: str) -> bool:
        raw = strip_prefix(node_id)
        if node_id.startswith(PKG_PREFIX):
            if raw not in self.packages:
                self.packages[raw] = PackageNode(address=raw, display_name=raw, placeholder=True)
                return True
        elif node_id.startswith(MOD_PREFIX):
            if raw not in self.modules:
                address, _, name = raw.partition("::")
                self.modules[raw] = ModuleNode(
                    full_name=raw,
                    package=pkg_id(address),
                    name=name,
                    placeholder=True,
                )
                return True
        elif node_id.startswith(TYPE_PREFIX):
            if raw not in self.types:
                module_fqn = "::".join(raw.split("::")[:2])
                self.types[raw] = TypeNode(fqn=raw, module=mod_id(module_fqn), placeholder=True)
                return True
        elif node_id.startswith(OBJ_PREFIX):
            if raw not in self.objects:
                self.objects[raw] = ObjectNode.make_placeholder(raw)
                return True
        elif node_id.startswith(ADDR_PREFIX):
            if raw not in self.addresses:
                self.addresses[raw] = AddressNode(address=raw)
                return True
        elif node_id.startswith(EVT_PREFIX):
            if raw not in self.events:
                self.events[raw] = EventNode(event_key=raw, placeholder=True)
                return True
        else:
            logger.warning(f"Edge endpoint with unknown prefix: {node_id}")
        return False

    def build(self) -> GraphData:
        """冻结构建器并产出 GraphData"""
        self._check_open()
        created = self._close_dangling_endpoints()
        if created:
            logger.debug(f"Created {created} placeholder nodes for edge endpoints")
        self._finalized = True

        return GraphData(
            packages=list(self.packages.values()),
            modules=list(self.modules.values()),
            types=list(self.types.values()),
            objects=list(self.objects.values()),
            addresses=list(self.addresses.values()),
            events=list(self.events.values()),
            edges=list(self.edges),
            type_stats=dict(self.type_stats),
            flags=list(self.flags),
        )
