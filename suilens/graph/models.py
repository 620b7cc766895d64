"""
图数据模型

所有实体使用带前缀的稳定 ID (pkg: / mod: / type: / obj: / addr: / evt:)，
多次分析结果的合并即按 ID 取并集。

to_dict() 输出前端使用的 camelCase JSON 结构。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union

from ..config import UNKNOWN_TYPE_FQN


# ============================================================================
# ID 前缀
# ============================================================================

PKG_PREFIX = "pkg:"
MOD_PREFIX = "mod:"
TYPE_PREFIX = "type:"
OBJ_PREFIX = "obj:"
ADDR_PREFIX = "addr:"
EVT_PREFIX = "evt:"


def pkg_id(address: str) -> str:
    return f"{PKG_PREFIX}{address}"


def mod_id(module_fqn: str) -> str:
    return f"{MOD_PREFIX}{module_fqn}"


def type_id(type_fqn: str) -> str:
    return f"{TYPE_PREFIX}{type_fqn}"


def obj_id(object_id: str) -> str:
    return f"{OBJ_PREFIX}{object_id}"


def addr_id(address: str) -> str:
    return f"{ADDR_PREFIX}{address}"


def evt_id(event_key: str) -> str:
    return f"{EVT_PREFIX}{event_key}"


def strip_prefix(node_id: str) -> str:
    """去掉 ID 前缀: "pkg:0x2" -> "0x2" """
    return node_id.split(":", 1)[1] if ":" in node_id else node_id


# ============================================================================
# 枚举类型
# ============================================================================

class Visibility(str, Enum):
    """函数可见性"""
    ENTRY = "Entry"
    PUBLIC = "Public"
    PRIVATE = "Private"
    FRIEND = "Friend"


class OwnerKind(str, Enum):
    """对象所有权类型"""
    ADDRESS_OWNER = "AddressOwner"
    SHARED = "Shared"
    IMMUTABLE = "Immutable"
    OBJECT_OWNER = "ObjectOwner"


class EventKind(str, Enum):
    """事件类型"""
    PUBLISH = "Publish"
    UPGRADE = "Upgrade"
    MINT = "Mint"
    BURN = "Burn"
    CUSTOM = "Custom"


class EdgeKind(str, Enum):
    """边类型"""
    PKG_CONTAINS = "PKG_CONTAINS"
    PKG_DEPENDS = "PKG_DEPENDS"
    MOD_CALLS = "MOD_CALLS"
    MOD_DEFINES_TYPE = "MOD_DEFINES_TYPE"
    TYPE_USES_TYPE = "TYPE_USES_TYPE"
    MOD_FRIEND_ALLOW = "MOD_FRIEND_ALLOW"
    OBJ_INSTANCE_OF = "OBJ_INSTANCE_OF"
    OBJ_OWNED_BY = "OBJ_OWNED_BY"
    OBJ_DF_CHILD = "OBJ_DF_CHILD"
    OBJ_REFERS_OBJ = "OBJ_REFERS_OBJ"
    MOD_EMITS_EVENT = "MOD_EMITS_EVENT"
    PKG_EMITS_EVENT = "PKG_EMITS_EVENT"


class CallType(str, Enum):
    """模块调用关系分类"""
    FRIEND = "friend"
    SAME_PACKAGE = "samePackage"
    EXTERNAL = "external"


class FlagLevel(str, Enum):
    """安全标记严重性"""
    HIGH = "HIGH"
    MED = "MED"
    LOW = "LOW"


class FlagScope(str, Enum):
    """安全标记作用域"""
    MODULE = "module"
    TYPE = "type"
    OBJECT = "object"


# ============================================================================
# 节点
# ============================================================================

@dataclass
class PackageNode:
    address: str
    display_name: Optional[str] = None
    explorer_links: Optional[Dict[str, str]] = None
    stats: Optional[Dict[str, int]] = None
    placeholder: bool = False

    @property
    def id(self) -> str:
        return pkg_id(self.address)

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "address": self.address,
            "displayName": self.display_name or self.address,
        }
        if self.explorer_links:
            result["explorerLinks"] = self.explorer_links
        if self.stats is not None:
            result["stats"] = self.stats
        if self.placeholder:
            result["placeholder"] = True
        return result


@dataclass
class FunctionParam:
    name: str
    type: str

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type}


@dataclass
class FunctionSummary:
    name: str
    visibility: Visibility = Visibility.PUBLIC
    is_entry: bool = False
    parameters: List[FunctionParam] = field(default_factory=list)
    return_type: str = "void"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "visibility": self.visibility.value,
            "isEntry": self.is_entry,
            "parameters": [p.to_dict() for p in self.parameters],
            "returnType": self.return_type,
        }


@dataclass
class ModuleConstant:
    name: str
    type: str
    value: Union[str, int, bool]

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type, "value": self.value}


@dataclass
class ModuleNode:
    full_name: str                     # "0xP::m"
    package: str                       # "pkg:0xP"
    name: str                          # 模块短名
    functions: List[FunctionSummary] = field(default_factory=list)
    types_defined: List[str] = field(default_factory=list)   # 类型 FQN
    friends: List[str] = field(default_factory=list)         # 友元模块 FQN
    flags: List[str] = field(default_factory=list)           # 触发的标记类型
    constants: List[ModuleConstant] = field(default_factory=list)
    explorer_links: Optional[Dict[str, str]] = None
    placeholder: bool = False

    @property
    def id(self) -> str:
        return mod_id(self.full_name)

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "fullName": self.full_name,
            "package": self.package,
            "name": self.name,
            "functions": [f.to_dict() for f in self.functions],
            "typesDefined": self.types_defined,
            "friends": self.friends,
            "flags": self.flags,
        }
        if self.constants:
            result["constants"] = [c.to_dict() for c in self.constants]
        if self.explorer_links:
            result["explorerLinks"] = self.explorer_links
        if self.placeholder:
            result["placeholder"] = True
        return result


@dataclass(frozen=True)
class TypeField:
    name: str
    type: str

    def to_dict(self) -> dict:
        return {"name": self.name, "type": self.type}


@dataclass(frozen=True)
class TypeNode:
    fqn: str                           # "0xP::m::S"
    module: str                        # "mod:0xP::m"
    fields: Tuple[TypeField, ...] = ()
    abilities: Tuple[str, ...] = ()
    has_key: bool = False
    placeholder: bool = False

    @property
    def id(self) -> str:
        return type_id(self.fqn)

    @property
    def short_name(self) -> str:
        return self.fqn.split("::")[-1]

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "fqn": self.fqn,
            "module": self.module,
            "fields": [f.to_dict() for f in self.fields],
            "hasKey": self.has_key,
            "abilities": list(self.abilities),
        }
        if self.placeholder:
            result["placeholder"] = True
        return result


@dataclass(frozen=True)
class ObjectOwner:
    """对象所有者；address 仅在 AddressOwner / ObjectOwner 时存在"""
    kind: OwnerKind
    address: Optional[str] = None

    def __post_init__(self):
        needs_address = self.kind in (OwnerKind.ADDRESS_OWNER, OwnerKind.OBJECT_OWNER)
        if needs_address and not self.address:
            raise ValueError(f"{self.kind.value} owner requires an address")
        if not needs_address and self.address is not None:
            raise ValueError(f"{self.kind.value} owner cannot carry an address")

    @classmethod
    def address_owner(cls, address: str) -> "ObjectOwner":
        return cls(OwnerKind.ADDRESS_OWNER, address)

    @classmethod
    def object_owner(cls, address: str) -> "ObjectOwner":
        return cls(OwnerKind.OBJECT_OWNER, address)

    @classmethod
    def shared(cls) -> "ObjectOwner":
        return cls(OwnerKind.SHARED)

    @classmethod
    def immutable(cls) -> "ObjectOwner":
        return cls(OwnerKind.IMMUTABLE)

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {"kind": self.kind.value}
        if self.address is not None:
            result["address"] = self.address
        return result


@dataclass
class ObjectNode:
    object_id: str
    type_fqn: str
    owner: ObjectOwner
    shared: bool = False
    version: Optional[str] = None
    digest: Optional[str] = None
    snapshot: Optional[Dict[str, Any]] = None
    placeholder: bool = False

    def __post_init__(self):
        if self.shared and self.owner.kind != OwnerKind.SHARED:
            raise ValueError(f"Object {self.object_id} is shared but owner is {self.owner.kind.value}")

    @classmethod
    def make_placeholder(cls, object_id: str) -> "ObjectNode":
        """仅被引用、未被抓取的对象"""
        return cls(
            object_id=object_id,
            type_fqn=UNKNOWN_TYPE_FQN,
            owner=ObjectOwner.shared(),
            shared=False,
            placeholder=True,
        )

    @property
    def id(self) -> str:
        return obj_id(self.object_id)

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "objectId": self.object_id,
            "typeFqn": self.type_fqn,
            "owner": self.owner.to_dict(),
            "shared": self.shared,
        }
        if self.version is not None:
            result["version"] = self.version
        if self.digest is not None:
            result["digest"] = self.digest
        if self.snapshot is not None:
            result["snapshot"] = self.snapshot
        if self.placeholder:
            result["placeholder"] = True
        return result


@dataclass
class AddressNode:
    address: str
    label: Optional[str] = None

    @property
    def id(self) -> str:
        return addr_id(self.address)

    def to_dict(self) -> dict:
        result = {"id": self.id, "address": self.address}
        if self.label:
            result["label"] = self.label
        return result


@dataclass
class EventNode:
    event_key: str                     # "<txDigest>:<eventSeq>"
    kind: EventKind = EventKind.CUSTOM
    pkg: Optional[str] = None
    mod: Optional[str] = None
    ts: Optional[int] = None
    tx: Optional[str] = None
    data: Optional[Any] = None
    sender: Optional[str] = None
    placeholder: bool = False

    @property
    def id(self) -> str:
        return evt_id(self.event_key)

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {"id": self.id, "kind": self.kind.value}
        for key in ("pkg", "mod", "ts", "tx", "data", "sender"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.placeholder:
            result["placeholder"] = True
        return result


# ============================================================================
# 边
# ============================================================================

@dataclass
class CallEvidence:
    caller_func: str
    callee_module: Optional[str] = None
    callee_func: Optional[str] = None

    def to_dict(self) -> dict:
        result = {"callerFunc": self.caller_func}
        if self.callee_module is not None:
            result["calleeModule"] = self.callee_module
        if self.callee_func is not None:
            result["calleeFunc"] = self.callee_func
        return result


@dataclass
class Edge:
    kind: EdgeKind
    from_id: str
    to_id: str
    call_type: Optional[CallType] = None          # MOD_CALLS
    calls: Optional[List[CallEvidence]] = None    # MOD_CALLS
    field_name: Optional[str] = None              # TYPE_USES_TYPE
    evidence: Optional[List[Dict[str, Any]]] = None  # PKG_DEPENDS

    @property
    def key(self) -> Tuple[str, str, str]:
        """合并去重键 (kind, from, to)"""
        return (self.kind.value, self.from_id, self.to_id)

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {
            "kind": self.kind.value,
            "from": self.from_id,
            "to": self.to_id,
        }
        if self.call_type is not None:
            result["callType"] = self.call_type.value
        if self.calls is not None:
            result["calls"] = [c.to_dict() for c in self.calls]
        if self.field_name is not None:
            result["fieldName"] = self.field_name
        if self.evidence is not None:
            result["evidence"] = self.evidence
        return result


# ============================================================================
# 统计与标记
# ============================================================================

@dataclass
class TypeStats:
    type_fqn: str
    count: int = 0
    sampled: int = 0
    shared: int = 0
    unique_owners: int = 0

    def to_dict(self) -> dict:
        return {
            "typeFqn": self.type_fqn,
            "count": self.count,
            "sampled": self.sampled,
            "shared": self.shared,
            "uniqueOwners": self.unique_owners,
        }


@dataclass
class Flag:
    level: FlagLevel
    kind: str
    scope: FlagScope
    ref_id: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "kind": self.kind,
            "scope": self.scope.value,
            "refId": self.ref_id,
            "details": self.details,
        }


# ============================================================================
# 完整图
# ============================================================================

@dataclass
class GraphData:
    packages: List[PackageNode] = field(default_factory=list)
    modules: List[ModuleNode] = field(default_factory=list)
    types: List[TypeNode] = field(default_factory=list)
    objects: List[ObjectNode] = field(default_factory=list)
    addresses: List[AddressNode] = field(default_factory=list)
    events: List[EventNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    type_stats: Dict[str, TypeStats] = field(default_factory=dict)
    flags: List[Flag] = field(default_factory=list)

    def iter_nodes(self) -> Iterator[Any]:
        for group in (self.packages, self.modules, self.types, self.objects, self.addresses, self.events):
            yield from group

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.iter_nodes()}

    def edge_keys(self) -> Set[Tuple[str, str, str]]:
        return {edge.key for edge in self.edges}

    def edges_of(self, kind: EdgeKind) -> List[Edge]:
        return [e for e in self.edges if e.kind == kind]

    def dangling_edges(self) -> List[Edge]:
        """端点不在图中的边 (构建完成后应为空)"""
        ids = self.node_ids()
        return [e for e in self.edges if e.from_id not in ids or e.to_id not in ids]

    def summary(self) -> Dict[str, int]:
        return {
            "packages": len(self.packages),
            "modules": len(self.modules),
            "types": len(self.types),
            "objects": len(self.objects),
            "addresses": len(self.addresses),
            "events": len(self.events),
            "edges": len(self.edges),
            "flags": len(self.flags),
        }

    def to_dict(self) -> dict:
        return {
            "packages": [p.to_dict() for p in self.packages],
            "modules": [m.to_dict() for m in self.modules],
            "types": [t.to_dict() for t in self.types],
            "objects": [o.to_dict() for o in self.objects],
            "addresses": [a.to_dict() for a in self.addresses],
            "events": [e.to_dict() for e in self.events],
            "edges": [e.to_dict() for e in self.edges],
            "stats": {
                "types": {fqn: s.to_dict() for fqn, s in self.type_stats.items()},
            },
            "flags": [f.to_dict() for f in self.flags],
        }
