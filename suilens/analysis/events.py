"""
事件收集器 (Event Collector)

查询包最近的事件 (最多 EVENT_QUERY_LIMIT 条)，按事件类型推断种类与所属模块。
"""

import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..config import EVENT_KIND_MARKERS, EVENT_QUERY_LIMIT
from ..graph.builder import GraphBuilder
from ..graph.models import Edge, EdgeKind, EventKind, EventNode, evt_id, mod_id, pkg_id
from ..sui.schemas import SuiEvent
from ..sui.sources import EventSource

logger = logging.getLogger(__name__)

_EVENT_MODULE_RE = re.compile(r"^0x[a-fA-F0-9]+::([^:]+)::")


def classify_event(event_type: str) -> EventKind:
    """按类型串中的模块名片段判定事件种类"""
    for marker, kind in EVENT_KIND_MARKERS:
        if marker in event_type:
            return EventKind(kind)
    return EventKind.CUSTOM


def event_module_name(event_type: str) -> Optional[str]:
    match = _EVENT_MODULE_RE.match(event_type)
    return match.group(1) if match else None


async def collect_events(
    builder: GraphBuilder,
    source: EventSource,
    package_id: str,
    events_window_days: int = 7,
) -> int:
    """
    收集包事件并连边

    Args:
        builder: 当前分析的构建器
        source: 事件数据源
        package_id: 包地址
        events_window_days: 时间窗口 (仅记录在日志中，查询不按时间过滤)

    Returns:
        写入的事件数
    """
    logger.info(f"Fetching events for {package_id} (window {events_window_days} days, limit {EVENT_QUERY_LIMIT})")

    query: Dict[str, Any] = {"Package": package_id}
    try:
        raw_events = await source.query_events(query, EVENT_QUERY_LIMIT)
    except Exception as e:
        logger.warning(f"Failed to query events for {package_id}: {e}")
        return 0

    added = 0
    for raw in raw_events[:EVENT_QUERY_LIMIT]:
        try:
            event = SuiEvent.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Skipping malformed event: {e.error_count()} validation errors")
            continue

        mod_name = event_module_name(event.type)
        module_ref = mod_id(f"{package_id}::{mod_name}") if mod_name else None

        node = EventNode(
            event_key=event.event_key,
            kind=classify_event(event.type),
            pkg=pkg_id(package_id),
            mod=module_ref,
            ts=event.timestamp_ms,
            tx=event.id.tx_digest,
            data=event.parsed_json,
            sender=event.sender,
        )
        builder.add_event(node)

        if mod_name and builder.has_module(f"{package_id}::{mod_name}"):
            builder.add_edge(Edge(EdgeKind.MOD_EMITS_EVENT, module_ref, evt_id(node.event_key)))
        builder.add_edge(Edge(EdgeKind.PKG_EMITS_EVENT, pkg_id(package_id), evt_id(node.event_key)))
        added += 1

    logger.info(f"Total events fetched: {added}")
    return added
