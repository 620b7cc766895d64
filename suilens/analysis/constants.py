"""
模块常量提取

normalized 元数据里通常没有常量表，这里用三种来源拼出常量记录:
1. 模块自带的 constants 表 (部分节点会返回)
2. 名称全大写或包含 CONST 的结构体: 每个字段一条
3. get_* / constant_* / 全大写的函数: 有返回值时一条
"""

import logging
from typing import Any, List, Union

from ..graph.models import ModuleConstant
from ..sui.schemas import NormalizedModule
from ..sui.type_refs import stringify_type

logger = logging.getLogger(__name__)

CONSTANT_FUNCTION_PREFIXES = ("get_", "constant_")


def _is_constant_like_struct(name: str) -> bool:
    return name.upper() == name or "CONST" in name


def _is_constant_like_function(name: str) -> bool:
    return name.startswith(CONSTANT_FUNCTION_PREFIXES) or name.upper() == name


def _scalar(value: Any) -> Union[str, int, bool]:
    if isinstance(value, (str, int, bool)):
        return value
    return stringify_type(value)


def extract_module_constants(module: NormalizedModule) -> List[ModuleConstant]:
    """
    提取模块级常量

    Args:
        module: 已校验的 normalized 模块

    Returns:
        常量记录列表 (可能为空)
    """
    constants: List[ModuleConstant] = []

    for const in module.constants or []:
        constants.append(ModuleConstant(
            name=const.name,
            type=stringify_type(const.type_) if const.type_ is not None else "unknown",
            value=_scalar(const.value),
        ))

    for struct_name, struct in module.structs.items():
        if not _is_constant_like_struct(struct_name):
            continue
        for f in struct.fields:
            constants.append(ModuleConstant(
                name=f"{struct_name}::{f.name or 'value'}",
                type=stringify_type(f.type_),
                value=f.name or struct_name,
            ))

    for func_name, func in module.exposed_functions.items():
        if _is_constant_like_function(func_name) and func.return_:
            constants.append(ModuleConstant(
                name=func_name,
                type=stringify_type(func.return_[0]),
                value=f"<from function {func_name}>",
            ))

    return constants
