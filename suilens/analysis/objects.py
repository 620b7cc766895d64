"""
对象发现引擎 (Object Discovery Engine)

只对具有 key 能力的类型查询链上实例，按类型的重要性和规模选择策略:

    关键类型            -> 全量抓取，上限 hard_cap_critical
    数量 <= 阈值        -> 全量抓取，上限 type_count_threshold
    允许采样            -> 采样 object_sample_size 个
    否则                -> 抓取到 type_count_threshold 为止

单个类型 / 单个对象 / 动态字段的失败都只记录日志，不中断整个分析。
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from ..config import (
    AnalysisConfig,
    BUILTIN_CRITICAL_TYPES,
    CRITICAL_TYPE_SUFFIX,
    OBJECT_DISCOVERY_CONFIG,
    SUI_OBJECT_ID_PATTERN,
    UNKNOWN_TYPE_FQN,
)
from ..graph.builder import GraphBuilder
from ..graph.models import (
    Edge,
    EdgeKind,
    ObjectNode,
    OwnerKind,
    TypeNode,
    TypeStats,
    addr_id,
    obj_id,
)
from ..sui.schemas import (
    GraphQLObject,
    RpcDynamicField,
    RpcObjectData,
    decode_graphql_owner,
    decode_rpc_owner,
    is_rpc_shared,
)
from ..sui.sources import CountEstimate, DynamicFieldSource, ObjectSource

logger = logging.getLogger(__name__)

_OBJECT_ID_RE = re.compile(SUI_OBJECT_ID_PATTERN)


# =============================================================================
# 关键类型判定 / 抓取策略
# =============================================================================

def is_critical_type(type_fqn: str, user_critical_types: Sequence[str] = ()) -> bool:
    """
    关键类型判定

    1. 用户配置的任一子串出现在类型全名中
    2. 短名以 Cap 结尾
    3. 短名包含内置关键类型表中的任一项
    """
    if any(ct and ct in type_fqn for ct in user_critical_types):
        return True

    short_name = type_fqn.split("<", 1)[0].split("::")[-1]
    if short_name.endswith(CRITICAL_TYPE_SUFFIX):
        return True
    return any(ct in short_name for ct in BUILTIN_CRITICAL_TYPES)


class FetchMode(str, Enum):
    ALL = "all"
    SAMPLE = "sample"


@dataclass(frozen=True)
class FetchStrategy:
    mode: FetchMode
    limit: int
    reason: str = ""


def select_fetch_strategy(critical: bool, estimate: CountEstimate, config: AnalysisConfig) -> FetchStrategy:
    """按顺序匹配，第一条命中的规则生效"""
    if critical:
        return FetchStrategy(FetchMode.ALL, config.hard_cap_critical, "critical type")
    if estimate.estimated_count <= config.type_count_threshold and not estimate.has_more:
        return FetchStrategy(FetchMode.ALL, config.type_count_threshold, "count within threshold")
    if config.sample_large_types:
        return FetchStrategy(FetchMode.SAMPLE, config.object_sample_size, "large type, sampling")
    return FetchStrategy(FetchMode.ALL, config.type_count_threshold, "sampling disabled")


def compute_type_count(estimate: CountEstimate, fetched: int) -> int:
    """首页估计与实际抓取数的合成计数 (has_more 时至少为估计值)"""
    if estimate.has_more:
        return estimate.estimated_count + max(0, fetched - estimate.estimated_count)
    return fetched


def scan_snapshot_for_object_ids(
    snapshot: Any,
    max_depth: int = OBJECT_DISCOVERY_CONFIG["snapshot_scan_max_depth"],
    max_hits: int = OBJECT_DISCOVERY_CONFIG["snapshot_scan_max_hits"],
) -> List[str]:
    """
    在对象快照中查找形如 0x + 64 位十六进制的字符串

    Args:
        snapshot: 对象 JSON 内容
        max_depth: 最大嵌套深度 (根为 0)
        max_hits: 最多返回的 ID 数

    Returns:
        去重后的对象 ID，按遍历顺序
    """
    found: List[str] = []

    def walk(value: Any, depth: int) -> None:
        if depth > max_depth or len(found) >= max_hits:
            return
        if isinstance(value, str):
            if _OBJECT_ID_RE.match(value) and value not in found:
                found.append(value)
        elif isinstance(value, list):
            for item in value:
                walk(item, depth + 1)
        elif isinstance(value, dict):
            for item in value.values():
                walk(item, depth + 1)

    walk(snapshot, 0)
    return found


def object_node_from_graphql(raw: Dict[str, Any], type_fqn: str) -> ObjectNode:
    """
    GraphQL 对象 -> ObjectNode

    Raises:
        ValidationError / ValueError: 对象结构或 owner 不合法
    """
    gql = GraphQLObject.model_validate(raw)
    return ObjectNode(
        object_id=gql.address,
        type_fqn=type_fqn,
        owner=decode_graphql_owner(gql.owner),
        shared=gql.owner is not None and gql.owner.typename == "Shared",
        version=str(gql.version) if gql.version is not None else None,
        digest=gql.digest,
        snapshot=gql.snapshot(),
    )


# =============================================================================
# 发现引擎
# =============================================================================

class ObjectDiscovery:
    """按类型发现对象并写入构建器"""

    def __init__(
        self,
        builder: GraphBuilder,
        objects: ObjectSource,
        dynamic_fields: DynamicFieldSource,
        config: AnalysisConfig,
    ):
        self.builder = builder
        self.objects = objects
        self.dynamic_fields = dynamic_fields
        self.config = config
        self.page_size = OBJECT_DISCOVERY_CONFIG["page_size"]
        self.max_pages = OBJECT_DISCOVERY_CONFIG["max_pages"]

    async def discover(self, types: Optional[Iterable[TypeNode]] = None) -> int:
        """
        对所有 key 类型执行发现

        Returns:
            发现后构建器中的对象数
        """
        candidates = [t for t in (types if types is not None else self.builder.key_types()) if t.has_key]
        logger.info(f"Found {len(candidates)} object types (has key)")
        if not candidates:
            return len(self.builder.objects)

        cap = self.config.global_object_node_cap
        for type_node in candidates:
            if cap is not None and self.builder.real_object_count() >= cap:
                logger.warning(
                    f"Object node cap reached ({cap}), "
                    f"skipping remaining types starting at {type_node.fqn}"
                )
                break
            try:
                await self._discover_type(type_node)
            except Exception as e:
                logger.error(f"Error processing type {type_node.fqn}: {type(e).__name__}: {e}")

        logger.info(f"Total objects discovered: {len(self.builder.objects)}")
        return len(self.builder.objects)

    async def _discover_type(self, type_node: TypeNode) -> None:
        critical = is_critical_type(type_node.fqn, self.config.critical_types)
        logger.info(f"Processing type: {type_node.fqn} [{'CRITICAL' if critical else 'non-critical'}]")

        estimate = await self.objects.estimate_count(type_node.fqn)
        logger.info(
            f"Estimated count for {type_node.fqn}: {estimate.estimated_count}{'+' if estimate.has_more else ''}"
        )

        strategy = select_fetch_strategy(critical, estimate, self.config)
        logger.info(f"Strategy: {strategy.mode.value.upper()} (limit={strategy.limit}, {strategy.reason})")

        raw_objects = await self._fetch_objects(type_node.fqn, strategy.limit)
        logger.info(f"Fetched {len(raw_objects)} objects for type {type_node.fqn}")

        for raw in raw_objects:
            try:
                await self._add_object(raw, type_node)
            except (ValidationError, ValueError) as e:
                address = raw.get("address") if isinstance(raw, dict) else None
                logger.warning(f"Failed to process object {address}: {e}")

        stats = self._type_stats(type_node.fqn, estimate, len(raw_objects))
        self.builder.set_type_stats(stats)
        logger.info(
            f"Stats for {type_node.fqn}: count={stats.count}, sampled={stats.sampled}, "
            f"shared={stats.shared}, uniqueOwners={stats.unique_owners}"
        )

    async def _fetch_objects(self, type_fqn: str, limit: int) -> List[Dict[str, Any]]:
        """固定页大小翻页，直到达到上限 / 没有下一页 / 页数上限，最后裁剪"""
        collected: List[Dict[str, Any]] = []
        if limit <= 0:
            return collected

        cursor: Optional[str] = None
        page_count = 0
        while True:
            page_count += 1
            page = await self.objects.query_page(type_fqn, self.page_size, cursor)
            collected.extend(page.objects)
            cursor = page.next_cursor
            logger.debug(f"Page {page_count}: fetched {len(page.objects)} objects, total={len(collected)}")

            if len(collected) >= limit:
                logger.info(f"Reached fetch limit ({limit}), stopping pagination")
                break
            if not page.has_next_page or not cursor:
                break
            if page_count >= self.max_pages:
                logger.warning(f"Reached max page count ({self.max_pages}), stopping pagination")
                break

        return collected[:limit]

    async def _add_object(self, raw: Dict[str, Any], type_node: TypeNode) -> None:
        node = object_node_from_graphql(raw, type_node.fqn)
        owner = node.owner
        self.builder.add_object(node)
        self.builder.add_edge(Edge(EdgeKind.OBJ_INSTANCE_OF, node.id, type_node.id))

        if owner.kind == OwnerKind.ADDRESS_OWNER:
            self.builder.ensure_address(owner.address)
            self.builder.add_edge(Edge(EdgeKind.OBJ_OWNED_BY, node.id, addr_id(owner.address)))

        for ref in scan_snapshot_for_object_ids(node.snapshot):
            self.builder.add_edge(Edge(EdgeKind.OBJ_REFERS_OBJ, node.id, obj_id(ref)))
            self.builder.ensure_object_placeholder(ref)

        if self.config.max_obj_depth > 0:
            await self._expand_dynamic_fields(node.object_id)

    # ------------------------------------------------------------------
    # 动态字段
    # ------------------------------------------------------------------

    async def _expand_dynamic_fields(self, root_id: str) -> None:
        """按层展开动态字段子对象，最多 max_obj_depth 层"""
        frontier = [root_id]
        seen = {root_id}
        for _level in range(self.config.max_obj_depth):
            next_frontier: List[str] = []
            for parent_id in frontier:
                next_frontier.extend(await self._children_of(parent_id, seen))
            if not next_frontier:
                break
            frontier = next_frontier

    async def _children_of(self, parent_id: str, seen: set) -> List[str]:
        try:
            fields = await self.dynamic_fields.list_dynamic_fields(parent_id)
        except Exception as e:
            logger.debug(f"Failed to fetch dynamic fields for {parent_id}: {e}")
            return []

        children = []
        for raw in fields:
            try:
                df = RpcDynamicField.model_validate(raw)
            except ValidationError:
                logger.debug(f"Skipping malformed dynamic field under {parent_id}")
                continue

            self.builder.add_edge(Edge(EdgeKind.OBJ_DF_CHILD, obj_id(parent_id), obj_id(df.object_id)))
            if df.object_id in seen:
                continue
            seen.add(df.object_id)
            children.append(df.object_id)

            if df.object_id not in self.builder.objects:
                self.builder.add_object(await self._fetch_child(df.object_id))
        return children

    async def _fetch_child(self, object_id: str) -> ObjectNode:
        """抓取子对象的 owner 与类型；失败时返回占位节点"""
        try:
            raw = await self.dynamic_fields.get_object(object_id)
            if raw is None:
                return ObjectNode.make_placeholder(object_id)
            data = RpcObjectData.model_validate(raw)
            return ObjectNode(
                object_id=data.object_id,
                type_fqn=data.type or UNKNOWN_TYPE_FQN,
                owner=decode_rpc_owner(data.owner),
                shared=is_rpc_shared(data.owner),
                version=data.version,
                digest=data.digest,
            )
        except Exception as e:
            logger.debug(f"Failed to fetch dynamic field child {object_id}: {e}")
            return ObjectNode.make_placeholder(object_id)

    # ------------------------------------------------------------------
    # 统计
    # ------------------------------------------------------------------

    def _type_stats(self, type_fqn: str, estimate: CountEstimate, fetched: int) -> TypeStats:
        instances = [o for o in self.builder.objects.values() if o.type_fqn == type_fqn]
        owners = {o.owner.address for o in instances if o.owner.address}
        return TypeStats(
            type_fqn=type_fqn,
            count=compute_type_count(estimate, fetched),
            sampled=fetched,
            shared=sum(1 for o in instances if o.shared),
            unique_owners=len(owners),
        )


async def discover_objects(
    builder: GraphBuilder,
    objects: ObjectSource,
    dynamic_fields: DynamicFieldSource,
    config: AnalysisConfig,
) -> int:
    """ObjectDiscovery 的函数式入口"""
    return await ObjectDiscovery(builder, objects, dynamic_fields, config).discover()
