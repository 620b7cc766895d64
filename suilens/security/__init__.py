"""
安全标记模块

- flag_rules: 模块 / 类型 / 对象规则表
- hardcoded: 模块常量的硬编码值启发式
"""

from .flag_rules import (
    FLAG_RULES_VERSION,
    MODULE_RULES,
    OBJECT_RULES,
    TYPE_RULES,
    FlagRule,
    detect_security_flags,
)
from .hardcoded import detect_hardcoded_flags

__all__ = [
    "FLAG_RULES_VERSION",
    "FlagRule",
    "MODULE_RULES",
    "TYPE_RULES",
    "OBJECT_RULES",
    "detect_security_flags",
    "detect_hardcoded_flags",
]
