"""
Move 类型表达式工具

normalized 类型描述的形态:
    "U64" / "Address" / "Bool"                      基础类型
    {"Struct": {"address", "module", "name", "typeArguments"}}
    {"Reference": T} / {"MutableReference": T} / {"Vector": T}
    {"TypeParameter": 0}
    "0x2::coin::Coin<0x2::sui::SUI>"                字符串形式的全名
"""

import json
import re
from typing import Any, List, Optional

_PACKAGE_ADDRESS_RE = re.compile(r"^(0x[a-fA-F0-9]+)::")
_MODULE_NAME_RE = re.compile(r"^0x[a-fA-F0-9]+::([^:]+)::")

# 单层包装类型
_WRAPPER_KEYS = ("Reference", "MutableReference", "Vector")


def extract_fully_qualified_types(type_expr: Any) -> List[str]:
    """
    递归提取类型表达式中引用的全部结构体全名 (去重，保持首次出现顺序)

    TypeParameter 不产生依赖。字符串形式的泛型会拆成外层类型与各个类型参数。
    """
    found: List[str] = []
    seen = set()

    def add(fqn: str) -> None:
        if fqn not in seen:
            seen.add(fqn)
            found.append(fqn)

    # 显式栈代替递归，避免极深的嵌套表达式
    stack = [type_expr]
    while stack:
        current = stack.pop()
        if not current:
            continue

        if isinstance(current, str):
            if "::" in current:
                outer, _, args = current.partition("<")
                add(outer.strip())
                if args:
                    stack.extend(reversed(_split_generic_args(args.rstrip(">"))))
            continue

        if isinstance(current, list):
            stack.extend(reversed(current))
            continue

        if not isinstance(current, dict):
            continue

        struct = current.get("Struct")
        if isinstance(struct, dict):
            address, module, name = struct.get("address"), struct.get("module"), struct.get("name")
            if address and module and name:
                add(f"{address}::{module}::{name}")
            stack.extend(reversed(struct.get("typeArguments") or []))
            continue

        wrapper = next((k for k in _WRAPPER_KEYS if k in current), None)
        if wrapper is not None:
            stack.append(current[wrapper])
            continue

        if "TypeParameter" in current:
            continue

        stack.extend(reversed(list(current.values())))

    return found


def _split_generic_args(args: str) -> List[str]:
    """按顶层逗号拆分泛型参数: "A, B<C, D>" -> ["A", "B<C, D>"]"""
    parts = []
    depth = 0
    start = 0
    for i, ch in enumerate(args):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(args[start:i].strip())
            start = i + 1
    parts.append(args[start:].strip())
    return [p for p in parts if p]


def extract_package_address(fq_type: str) -> Optional[str]:
    """"0x2::coin::Coin" -> "0x2" """
    match = _PACKAGE_ADDRESS_RE.match(fq_type)
    return match.group(1) if match else None


def extract_module_name(fq_type: str) -> Optional[str]:
    """"0x2::coin::Coin" -> "coin" """
    match = _MODULE_NAME_RE.match(fq_type)
    return match.group(1) if match else None


def module_fqn_of(fq_type: str) -> Optional[str]:
    """"0x2::coin::Coin" -> "0x2::coin" """
    address = extract_package_address(fq_type)
    module = extract_module_name(fq_type)
    if address is None or module is None:
        return None
    return f"{address}::{module}"


def stringify_type(type_expr: Any) -> str:
    """类型描述转字符串；非字符串形态按 JSON 序列化"""
    if isinstance(type_expr, str):
        return type_expr
    return json.dumps(type_expr, separators=(",", ":"), ensure_ascii=False)
