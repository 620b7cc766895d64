"""
硬编码值启发式检测

对模块常量做三类检查，全部是模块级标记:
- HardcodedAddress (MED): 地址类型常量指向非系统地址
- HardcodedFee (LOW): u64/u128 常量名包含 fee / amount / price
- HardcodedRole (MED): 常量名包含 role / admin / owner
"""

from typing import List

from ..graph.models import Flag, FlagLevel, FlagScope, ModuleConstant

# 0x0 / 0x1 / 0x2 为系统地址
SYSTEM_ADDRESSES = {"0x0", "0x1", "0x2"}

FEE_CONSTANT_TYPES = {"u64", "u128", "U64", "U128"}
FEE_NAME_HINTS = ("fee", "amount", "price")
ROLE_NAME_HINTS = ("role", "admin", "owner")


def _module_flag(level: FlagLevel, kind: str, module_ref: str, constant: ModuleConstant, message: str) -> Flag:
    return Flag(
        level=level,
        kind=kind,
        scope=FlagScope.MODULE,
        ref_id=module_ref,
        details={
            "constName": constant.name,
            "value": constant.value,
            "message": message,
        },
    )


def detect_hardcoded_flags(module_ref: str, constants: List[ModuleConstant]) -> List[Flag]:
    """
    检测硬编码常量

    Args:
        module_ref: 模块节点 ID (mod:0xP::m)
        constants: extract_module_constants 的结果

    Returns:
        标记列表，一条常量可能触发多条
    """
    flags: List[Flag] = []

    for constant in constants:
        lowered = constant.name.lower()

        if "address" in constant.type or "Address" in constant.type:
            value = str(constant.value)
            if value.startswith("0x") and value not in SYSTEM_ADDRESSES:
                flags.append(_module_flag(
                    FlagLevel.MED, "HardcodedAddress", module_ref, constant,
                    "Hardcoded address detected - potential centralization risk",
                ))

        if constant.type in FEE_CONSTANT_TYPES and any(h in lowered for h in FEE_NAME_HINTS):
            flags.append(_module_flag(
                FlagLevel.LOW, "HardcodedFee", module_ref, constant,
                "Hardcoded fee or amount - consider making it configurable",
            ))

        if any(h in lowered for h in ROLE_NAME_HINTS):
            flags.append(_module_flag(
                FlagLevel.MED, "HardcodedRole", module_ref, constant,
                "Hardcoded role detected - verify access control",
            ))

    return flags
