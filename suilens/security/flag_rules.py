"""
安全标记规则表 (Security Flag Rules)

对模块 / 类型 / 对象做纯扫描，规则相互独立、结果叠加。
每条规则是一条 FlagRule 记录，新增规则只需在表中追加一行。

Usage:
    from suilens.security import detect_security_flags

    flags = detect_security_flags(modules, types, objects)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..graph.models import Flag, FlagLevel, FlagScope, ModuleNode, ObjectNode, OwnerKind, TypeNode

logger = logging.getLogger(__name__)

# 规则表版本，规则增删时递增
FLAG_RULES_VERSION = 1


@dataclass(frozen=True)
class FlagRule:
    """一条安全规则"""
    kind: str
    level: FlagLevel
    scope: FlagScope
    predicate: Callable[[Any], bool]
    message: str
    # 除 message 外的附加详情
    extra_details: Optional[Callable[[Any], Dict[str, Any]]] = None

    def evaluate(self, node: Any) -> Optional[Flag]:
        if not self.predicate(node):
            return None
        details: Dict[str, Any] = {"message": self.message}
        if self.extra_details is not None:
            details.update(self.extra_details(node))
        return Flag(
            level=self.level,
            kind=self.kind,
            scope=self.scope,
            ref_id=node.id,
            details=details,
        )


# ==============================================================================
# 谓词
# ==============================================================================

def _defines_type(fragment: str) -> Callable[[ModuleNode], bool]:
    return lambda mod: any(fragment in t for t in mod.types_defined)


def _function_name_contains(*fragments: str) -> Callable[[ModuleNode], bool]:
    return lambda mod: any(
        frag in f.name.lower() for f in mod.functions for frag in fragments
    )


def _function_name_is(*names: str) -> Callable[[ModuleNode], bool]:
    return lambda mod: any(f.name.lower() in names for f in mod.functions)


SINGLE_OWNER_CAP_TYPES = ("AdminCap", "UpgradeCap", "TreasuryCap")


def _single_owner_cap(obj: ObjectNode) -> bool:
    return obj.owner.kind == OwnerKind.ADDRESS_OWNER and any(
        cap in obj.type_fqn for cap in SINGLE_OWNER_CAP_TYPES
    )


def _unsafe_shared(obj: ObjectNode) -> bool:
    return obj.shared and "Treasury" in obj.type_fqn


# ==============================================================================
# 规则表
# ==============================================================================

MODULE_RULES: List[FlagRule] = [
    FlagRule("AdminCap", FlagLevel.HIGH, FlagScope.MODULE,
             _defines_type("AdminCap"), "Module defines AdminCap type"),
    FlagRule("UpgradeCap", FlagLevel.HIGH, FlagScope.MODULE,
             _defines_type("UpgradeCap"), "Module defines UpgradeCap type"),
    FlagRule("MintFunction", FlagLevel.MED, FlagScope.MODULE,
             _function_name_contains("mint"), "Module has mint function"),
    FlagRule("BurnFunction", FlagLevel.MED, FlagScope.MODULE,
             _function_name_contains("burn"), "Module has burn function"),
    FlagRule("PauseFunction", FlagLevel.MED, FlagScope.MODULE,
             _function_name_is("pause", "unpause", "set_pause"), "Module has pause/unpause function"),
    FlagRule("SetFeeFunction", FlagLevel.LOW, FlagScope.MODULE,
             _function_name_contains("set_fee", "update_fee"), "Module has fee-setting function"),
    FlagRule("BlacklistFunction", FlagLevel.MED, FlagScope.MODULE,
             _function_name_contains("blacklist", "whitelist"), "Module has blacklist/whitelist function"),
]

TYPE_RULES: List[FlagRule] = [
    FlagRule("StoreWithoutKey", FlagLevel.LOW, FlagScope.TYPE,
             lambda t: not t.has_key and "Store" in t.abilities, "Type has store but not key ability"),
    FlagRule("Droppable", FlagLevel.LOW, FlagScope.TYPE,
             lambda t: "Drop" in t.abilities, "Type has drop ability"),
]

OBJECT_RULES: List[FlagRule] = [
    FlagRule("SingleOwnerCap", FlagLevel.HIGH, FlagScope.OBJECT,
             _single_owner_cap, "Critical capability owned by single address",
             extra_details=lambda o: {"owner": o.owner.address, "type": o.type_fqn}),
    FlagRule("UnsafeShared", FlagLevel.HIGH, FlagScope.OBJECT,
             _unsafe_shared, "Treasury object is shared (potential security risk)",
             extra_details=lambda o: {"type": o.type_fqn}),
]


def _apply(rules: List[FlagRule], nodes: Iterable[Any]) -> List[Flag]:
    flags = []
    for node in nodes:
        if getattr(node, "placeholder", False):
            continue
        for rule in rules:
            flag = rule.evaluate(node)
            if flag is not None:
                flags.append(flag)
    return flags


def detect_security_flags(
    modules: Iterable[ModuleNode],
    types: Iterable[TypeNode],
    objects: Iterable[ObjectNode],
) -> List[Flag]:
    """
    对当前图执行全部规则

    Args:
        modules: 模块节点
        types: 类型节点
        objects: 对象节点

    Returns:
        新产生的标记 (不修改输入)
    """
    flags = _apply(MODULE_RULES, modules)
    flags.extend(_apply(TYPE_RULES, types))
    flags.extend(_apply(OBJECT_RULES, objects))
    logger.info(f"Generated {len(flags)} security flags (rules v{FLAG_RULES_VERSION})")
    return flags
