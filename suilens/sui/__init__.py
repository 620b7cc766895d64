"""
Sui 数据接入层

- schemas: 外部 JSON 的 pydantic 解析边界
- sources: 分析引擎依赖的数据源协议
- rpc / graphql: 默认的 httpx 实现
- network: 网络探测与客户端工厂
- explorers: 区块浏览器链接
- type_refs: Move 类型表达式工具
"""

from .sources import (
    CountEstimate,
    DynamicFieldSource,
    EventSource,
    ModuleSource,
    ObjectPage,
    ObjectSource,
    SuiClients,
)
from .rpc import SuiRpcClient
from .graphql import SuiGraphQLClient
from .network import ClientsFactory, PackageLocation, detect_package_network, get_sui_clients, locate_package

__all__ = [
    "CountEstimate",
    "ObjectPage",
    "ModuleSource",
    "ObjectSource",
    "DynamicFieldSource",
    "EventSource",
    "SuiClients",
    "SuiRpcClient",
    "SuiGraphQLClient",
    "ClientsFactory",
    "PackageLocation",
    "detect_package_network",
    "locate_package",
    "get_sui_clients",
]
