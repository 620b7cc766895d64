"""
Sui 外部数据的解析边界

RPC / GraphQL 返回的都是松散 JSON，这里用 pydantic 模型做一次校验，
之后引擎只操作封闭的类型化结构。不符合结构的记录由调用方显式跳过；
字段 / 参数内部未知的类型表达式保留为原始值，由 type_refs.stringify_type
序列化成字符串 (有损但安全)。
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..graph.models import ObjectOwner


# =============================================================================
# Normalized Move modules (sui_getNormalizedMoveModulesByPackage)
# =============================================================================

class NormalizedFriend(BaseModel):
    address: Optional[str] = None
    name: Optional[str] = None


class NormalizedAbilities(BaseModel):
    abilities: List[str] = Field(default_factory=list)


class NormalizedField(BaseModel):
    name: str = ""
    type_: Any = Field(None, alias="type")

    model_config = {"populate_by_name": True}


class NormalizedStruct(BaseModel):
    abilities: NormalizedAbilities = Field(default_factory=NormalizedAbilities)
    type_parameters: List[Any] = Field(default_factory=list, alias="typeParameters")
    fields: List[NormalizedField] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("fields", mode="before")
    @classmethod
    def _keep_field_dicts(cls, value: Any) -> Any:
        # 非 dict 的字段描述整体丢弃，其余字段照常解析
        if isinstance(value, list):
            return [f for f in value if isinstance(f, dict)]
        return value


class NormalizedFunction(BaseModel):
    visibility: str = "Public"
    is_entry: bool = Field(False, alias="isEntry")
    type_parameters: List[Any] = Field(default_factory=list, alias="typeParameters")
    parameters: List[Any] = Field(default_factory=list)
    return_: List[Any] = Field(default_factory=list, alias="return")

    model_config = {"populate_by_name": True}

    @field_validator("return_", mode="before")
    @classmethod
    def _wrap_single_return(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return [value]
        return value


class NormalizedConstant(BaseModel):
    name: str
    type_: Any = Field(None, alias="type")
    value: Any = None

    model_config = {"populate_by_name": True}


class NormalizedModule(BaseModel):
    file_format_version: Optional[int] = Field(None, alias="fileFormatVersion")
    address: Optional[str] = None
    name: Optional[str] = None
    friends: List[NormalizedFriend] = Field(default_factory=list)
    structs: Dict[str, NormalizedStruct] = Field(default_factory=dict)
    exposed_functions: Dict[str, NormalizedFunction] = Field(default_factory=dict, alias="exposedFunctions")
    constants: Optional[List[NormalizedConstant]] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("friends", mode="before")
    @classmethod
    def _keep_friend_dicts(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [f for f in value if isinstance(f, dict)]
        return value


# =============================================================================
# GraphQL objects(filter: {type})
# =============================================================================

class GraphQLAddressRef(BaseModel):
    address: str


class GraphQLOwner(BaseModel):
    typename: str = Field(alias="__typename")
    owner: Optional[GraphQLAddressRef] = None       # AddressOwner
    parent: Optional[GraphQLAddressRef] = None      # Parent (ObjectOwner)
    initial_shared_version: Optional[int] = Field(None, alias="initialSharedVersion")

    model_config = {"populate_by_name": True}


class GraphQLContents(BaseModel):
    type: Optional[Dict[str, Any]] = None
    json_data: Any = Field(None, alias="json")

    model_config = {"populate_by_name": True}


class GraphQLMoveObject(BaseModel):
    contents: Optional[GraphQLContents] = None


class GraphQLObject(BaseModel):
    address: str
    version: Optional[int] = None
    digest: Optional[str] = None
    owner: Optional[GraphQLOwner] = None
    as_move_object: Optional[GraphQLMoveObject] = Field(None, alias="asMoveObject")

    model_config = {"populate_by_name": True}

    def snapshot(self) -> Dict[str, Any]:
        if self.as_move_object and self.as_move_object.contents:
            data = self.as_move_object.contents.json_data
            if isinstance(data, dict):
                return data
        return {}


def decode_graphql_owner(owner: Optional[GraphQLOwner]) -> ObjectOwner:
    """GraphQL owner -> ObjectOwner；未知类型按 Shared 处理 (shared 标记由调用方判定)"""
    if owner is None:
        return ObjectOwner.shared()
    if owner.typename == "AddressOwner":
        if owner.owner is None:
            raise ValueError("AddressOwner without owner address")
        return ObjectOwner.address_owner(owner.owner.address)
    if owner.typename in ("Parent", "ObjectOwner"):
        if owner.parent is None:
            raise ValueError("ObjectOwner without parent address")
        return ObjectOwner.object_owner(owner.parent.address)
    if owner.typename == "Immutable":
        return ObjectOwner.immutable()
    return ObjectOwner.shared()


# =============================================================================
# JSON-RPC objects (sui_getObject) & dynamic fields (suix_getDynamicFields)
# =============================================================================

class RpcObjectData(BaseModel):
    object_id: str = Field(alias="objectId")
    version: Optional[str] = None
    digest: Optional[str] = None
    type: Optional[str] = None
    owner: Any = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("version", mode="before")
    @classmethod
    def _version_to_str(cls, value: Any) -> Any:
        return str(value) if value is not None else None


class RpcDynamicField(BaseModel):
    object_id: str = Field(alias="objectId")
    object_type: Optional[str] = Field(None, alias="objectType")

    model_config = {"populate_by_name": True, "extra": "ignore"}


def decode_rpc_owner(owner: Any) -> ObjectOwner:
    """
    JSON-RPC owner -> ObjectOwner

    形态: {"AddressOwner": "0x.."} | {"ObjectOwner": "0x.."} |
          {"Shared": {...}} | "Immutable"
    """
    if owner == "Immutable":
        return ObjectOwner.immutable()
    if isinstance(owner, dict):
        if "AddressOwner" in owner:
            return ObjectOwner.address_owner(owner["AddressOwner"])
        if "ObjectOwner" in owner:
            return ObjectOwner.object_owner(owner["ObjectOwner"])
        if "Immutable" in owner:
            return ObjectOwner.immutable()
    return ObjectOwner.shared()


def is_rpc_shared(owner: Any) -> bool:
    return isinstance(owner, dict) and "Shared" in owner


# =============================================================================
# Events (suix_queryEvents)
# =============================================================================

class SuiEventId(BaseModel):
    tx_digest: str = Field(alias="txDigest")
    event_seq: str = Field(alias="eventSeq")

    model_config = {"populate_by_name": True}

    @field_validator("event_seq", mode="before")
    @classmethod
    def _seq_to_str(cls, value: Any) -> Any:
        return str(value) if value is not None else value


class SuiEvent(BaseModel):
    id: SuiEventId
    type: str
    timestamp_ms: Optional[int] = Field(None, alias="timestampMs")
    parsed_json: Any = Field(None, alias="parsedJson")
    sender: Optional[str] = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def event_key(self) -> str:
        return f"{self.id.tx_digest}:{self.id.event_seq}"
