"""
测试共用的内存数据源与 normalized 模块构造函数
"""
from typing import Any, Dict, Iterable, List, Optional

import pytest

from suilens.config import AnalysisConfig
from suilens.errors import PackageNotFoundError, SuiRpcError
from suilens.graph.builder import GraphBuilder
from suilens.sui.sources import CountEstimate, ObjectPage, SuiClients


# =============================================================================
# normalized 模块构造
# =============================================================================

def struct_ref(address: str, module: str, name: str, type_args: Optional[List[Any]] = None) -> Dict[str, Any]:
    return {
        "Struct": {
            "address": address,
            "module": module,
            "name": name,
            "typeArguments": type_args or [],
        }
    }


def make_struct(abilities: Iterable[str] = (), fields: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "abilities": {"abilities": list(abilities)},
        "typeParameters": [],
        "fields": fields or [],
    }


def make_function(
    parameters: Optional[List[Any]] = None,
    returns: Optional[List[Any]] = None,
    visibility: str = "Public",
    is_entry: bool = False,
) -> Dict[str, Any]:
    return {
        "visibility": visibility,
        "isEntry": is_entry,
        "typeParameters": [],
        "parameters": parameters or [],
        "return": returns or [],
    }


def make_module(
    address: str,
    name: str,
    structs: Optional[Dict[str, Any]] = None,
    functions: Optional[Dict[str, Any]] = None,
    friends: Optional[List[Dict[str, str]]] = None,
    constants: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    module = {
        "fileFormatVersion": 6,
        "address": address,
        "name": name,
        "friends": friends or [],
        "structs": structs or {},
        "exposedFunctions": functions or {},
    }
    if constants is not None:
        module["constants"] = constants
    return module


def oid(n: int) -> str:
    """合法的 Sui 对象 ID (0x + 64 位十六进制)"""
    return "0x" + format(n, "064x")


def gql_object(
    address: str,
    owner: Optional[Dict[str, Any]] = None,
    contents: Optional[Dict[str, Any]] = None,
    version: int = 1,
) -> Dict[str, Any]:
    return {
        "address": address,
        "version": version,
        "digest": f"digest-{address[-6:]}",
        "owner": owner,
        "asMoveObject": {"contents": {"type": {"repr": "x"}, "json": contents or {"id": address}}},
    }


def address_owner(address: str) -> Dict[str, Any]:
    return {"__typename": "AddressOwner", "owner": {"address": address}}


def shared_owner() -> Dict[str, Any]:
    return {"__typename": "Shared", "initialSharedVersion": 3}


def parent_owner(address: str) -> Dict[str, Any]:
    return {"__typename": "Parent", "parent": {"address": address}}


def make_event(digest: str, seq: int, event_type: str, ts: int = 1700000000000) -> Dict[str, Any]:
    return {
        "id": {"txDigest": digest, "eventSeq": str(seq)},
        "type": event_type,
        "timestampMs": ts,
        "parsedJson": {"value": seq},
        "sender": "0xsender",
    }


# =============================================================================
# 内存数据源
# =============================================================================

class FakeModuleSource:
    def __init__(self, packages: Dict[str, Dict[str, Any]], network: str = "mainnet",
                 errors: Optional[Dict[str, Exception]] = None):
        self.packages = packages
        self.network = network
        self.errors = errors or {}
        self.calls: List[str] = []

    async def get_normalized_modules(self, package_id: str) -> Dict[str, Any]:
        self.calls.append(package_id)
        if package_id in self.errors:
            raise self.errors[package_id]
        if package_id not in self.packages:
            raise PackageNotFoundError(package_id, [self.network])
        return self.packages[package_id]


class FakeObjectSource:
    def __init__(self, objects_by_type: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 failing_types: Iterable[str] = (), page_size: int = 50):
        self.objects_by_type = objects_by_type or {}
        self.failing_types = set(failing_types)
        self.page_size = page_size
        self.page_calls: List[tuple] = []
        self.estimate_calls: List[str] = []

    async def estimate_count(self, type_fqn: str) -> CountEstimate:
        self.estimate_calls.append(type_fqn)
        if type_fqn in self.failing_types:
            raise SuiRpcError("graphql.objects", "boom")
        objects = self.objects_by_type.get(type_fqn, [])
        return CountEstimate(estimated_count=min(len(objects), self.page_size), has_more=len(objects) > self.page_size)

    async def query_page(self, type_fqn: str, limit: int, cursor: Optional[str] = None) -> ObjectPage:
        self.page_calls.append((type_fqn, limit, cursor))
        objects = self.objects_by_type.get(type_fqn, [])
        start = int(cursor) if cursor else 0
        end = start + limit
        has_next = end < len(objects)
        return ObjectPage(
            objects=objects[start:end],
            next_cursor=str(end) if has_next else None,
            has_next_page=has_next,
        )


class FakeDynamicFieldSource:
    def __init__(self, children: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 objects: Optional[Dict[str, Dict[str, Any]]] = None):
        self.children = children or {}
        self.objects = objects or {}
        self.listed: List[str] = []

    async def list_dynamic_fields(self, object_id: str) -> List[Dict[str, Any]]:
        self.listed.append(object_id)
        return self.children.get(object_id, [])

    async def get_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        return self.objects.get(object_id)


class FakeEventSource:
    def __init__(self, events: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.events = events or []
        self.error = error
        self.queries: List[tuple] = []

    async def query_events(self, query: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        self.queries.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.events[:limit]


def make_clients(
    packages: Dict[str, Dict[str, Any]],
    network: str = "mainnet",
    objects: Optional[FakeObjectSource] = None,
    dynamic_fields: Optional[FakeDynamicFieldSource] = None,
    events: Optional[FakeEventSource] = None,
    errors: Optional[Dict[str, Exception]] = None,
) -> SuiClients:
    return SuiClients(
        network=network,
        modules=FakeModuleSource(packages, network, errors),
        objects=objects or FakeObjectSource(),
        dynamic_fields=dynamic_fields or FakeDynamicFieldSource(),
        events=events or FakeEventSource(),
    )


# =============================================================================
# 示例包
# =============================================================================

ADMIN_PACKAGE = "0xa"


def admin_package_modules() -> Dict[str, Any]:
    """一个定义 AdminCap (key) 并带 mint 入口函数的包"""
    return {
        f"{ADMIN_PACKAGE}::admin": make_module(
            ADMIN_PACKAGE,
            "admin",
            structs={
                "AdminCap": make_struct(
                    ["Key", "Store"],
                    [{"name": "id", "type": struct_ref("0x2", "object", "UID")}],
                ),
            },
            functions={
                "mint": make_function(
                    parameters=[
                        {"Reference": struct_ref(ADMIN_PACKAGE, "admin", "AdminCap")},
                        "U64",
                        {"MutableReference": struct_ref("0x2", "tx_context", "TxContext")},
                    ],
                    is_entry=True,
                ),
            },
        ),
    }


@pytest.fixture
def config() -> AnalysisConfig:
    return AnalysisConfig()


@pytest.fixture
def builder() -> GraphBuilder:
    return GraphBuilder(root_package=ADMIN_PACKAGE)
