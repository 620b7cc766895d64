"""
外部数据源协议

分析引擎只依赖这些窄接口；SuiRpcClient / SuiGraphQLClient 是默认实现，
测试中用内存假实现替换。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class CountEstimate:
    """首页计数估计"""
    estimated_count: int = 0
    has_more: bool = False


@dataclass
class ObjectPage:
    """一页对象 (原始 GraphQL 结构，由对象发现引擎逐个解析)"""
    objects: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_next_page: bool = False


class ModuleSource(Protocol):
    async def get_normalized_modules(self, package_id: str) -> Dict[str, Any]:
        """包不存在时抛 PackageNotFoundError"""
        ...


class ObjectSource(Protocol):
    async def estimate_count(self, type_fqn: str) -> CountEstimate:
        ...

    async def query_page(self, type_fqn: str, limit: int, cursor: Optional[str] = None) -> ObjectPage:
        ...


class DynamicFieldSource(Protocol):
    async def list_dynamic_fields(self, object_id: str) -> List[Dict[str, Any]]:
        ...

    async def get_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        ...


class EventSource(Protocol):
    async def query_events(self, query: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        ...


@dataclass
class SuiClients:
    """单个网络上的一组数据源"""
    network: str
    modules: ModuleSource
    objects: ObjectSource
    dynamic_fields: DynamicFieldSource
    events: EventSource
