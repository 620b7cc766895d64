"""
模块解析器 (Module Parser)

把一个包的 normalized modules 转成模块 / 类型 / 函数记录和包内的边:
- PKG_CONTAINS / MOD_DEFINES_TYPE / TYPE_USES_TYPE / MOD_FRIEND_ALLOW
- MOD_CALLS: 由函数签名中的跨包类型引用推断 (normalized 元数据没有调用信息)
- CriticalType / Hardcoded* 标记

Usage:
    parser = ModuleParser(builder, package_id, config, network="mainnet")
    result = parser.parse(raw_modules)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ..config import AnalysisConfig
from ..graph.builder import GraphBuilder
from ..graph.models import (
    CallEvidence,
    CallType,
    Edge,
    EdgeKind,
    Flag,
    FlagLevel,
    FlagScope,
    FunctionParam,
    FunctionSummary,
    ModuleNode,
    TypeField,
    TypeNode,
    Visibility,
    mod_id,
    pkg_id,
    type_id,
)
from ..security.hardcoded import detect_hardcoded_flags
from ..sui.explorers import module_explorer_links
from ..sui.schemas import NormalizedFunction, NormalizedModule, NormalizedStruct
from ..sui.type_refs import (
    extract_fully_qualified_types,
    extract_module_name,
    extract_package_address,
    stringify_type,
)
from .constants import extract_module_constants

logger = logging.getLogger(__name__)

# 调用证据中的占位标记
CALLER_DETECTED = "detected"
CALLEE_VIA_TYPE_REFERENCE = "<via type reference>"
CALLEE_INFERRED = "<inferred>"

DEFAULT_PARAM_NAME = "param"
VOID_RETURN = "void"


@dataclass
class ParseResult:
    """一次包解析的汇总"""
    modules_parsed: int = 0
    modules_skipped: int = 0
    # 按首次出现顺序去重的外部依赖包地址
    package_dependencies: List[str] = field(default_factory=list)


@dataclass
class _ModuleDeps:
    """单个模块的依赖累积"""
    modules: List[str] = field(default_factory=list)
    evidence: Dict[str, List[CallEvidence]] = field(default_factory=dict)

    def add(self, module_fqn: str) -> None:
        if module_fqn not in self.modules:
            self.modules.append(module_fqn)

    def add_evidence(self, module_fqn: str) -> None:
        self.evidence.setdefault(module_fqn, []).append(CallEvidence(
            caller_func=CALLER_DETECTED,
            callee_module=module_fqn,
            callee_func=CALLEE_VIA_TYPE_REFERENCE,
        ))


def split_module_key(key: str, package_id: str) -> Optional[Tuple[str, str]]:
    """
    解析模块键

    "0xP::m" -> ("0xP", "m")；不含 "::" 时使用包地址；缺段返回 None
    """
    if "::" in key:
        address, _, module = key.partition("::")
    else:
        address, module = package_id, key
    if not address or not module:
        return None
    return address, module


def function_visibility(func: NormalizedFunction) -> Visibility:
    """isEntry 优先，其次 Friend / Private，其余按 Public"""
    if func.is_entry:
        return Visibility.ENTRY
    if func.visibility == "Friend":
        return Visibility.FRIEND
    if func.visibility == "Private":
        return Visibility.PRIVATE
    return Visibility.PUBLIC


class ModuleParser:
    """单包模块解析"""

    def __init__(
        self,
        builder: GraphBuilder,
        package_id: str,
        config: AnalysisConfig,
        network: Optional[str] = None,
    ):
        self.builder = builder
        self.package_id = package_id
        self.config = config
        self.network = network
        self._critical_substrings = config.critical_substrings()
        self._package_deps: List[str] = []

    def parse(self, raw_modules: Dict[str, Any]) -> ParseResult:
        """
        解析包内全部模块

        Args:
            raw_modules: 模块名 -> normalized 模块 JSON

        Returns:
            ParseResult
        """
        result = ParseResult()

        for key, raw in raw_modules.items():
            parts = split_module_key(key, self.package_id)
            if parts is None:
                logger.warning(f"Skipping invalid module name: {key}")
                result.modules_skipped += 1
                continue

            try:
                module = NormalizedModule.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed module {key}: {e.error_count()} validation errors")
                result.modules_skipped += 1
                continue

            address, name = parts
            self._parse_module(address, name, module)
            result.modules_parsed += 1

        result.package_dependencies = list(self._package_deps)
        logger.info(
            f"Parsed {result.modules_parsed} modules for {self.package_id} "
            f"(skipped {result.modules_skipped}, {len(self._package_deps)} external packages)"
        )
        return result

    # ------------------------------------------------------------------
    # 单个模块
    # ------------------------------------------------------------------

    def _parse_module(self, address: str, name: str, module: NormalizedModule) -> None:
        full_name = f"{address}::{name}"
        module_ref = mod_id(full_name)
        self.builder.ensure_package(address)

        deps = _ModuleDeps()
        functions = [
            self._parse_function(func_name, func, address, deps)
            for func_name, func in module.exposed_functions.items()
        ]

        friends: List[str] = []
        for friend in module.friends:
            if friend.address and friend.name:
                friend_fqn = f"{friend.address}::{friend.name}"
                friends.append(friend_fqn)
                self.builder.add_edge(Edge(EdgeKind.MOD_FRIEND_ALLOW, module_ref, mod_id(friend_fqn)))

        types_defined: List[str] = []
        module_flags: List[str] = []
        for struct_name, struct in module.structs.items():
            type_fqn = self._parse_struct(full_name, struct_name, struct, module_flags)
            types_defined.append(type_fqn)

        constants = extract_module_constants(module)
        logger.debug(f"Extracted {len(constants)} constants from {full_name}")
        hardcoded = detect_hardcoded_flags(module_ref, constants)
        self.builder.add_flags(hardcoded)
        module_flags.extend(flag.kind for flag in hardcoded)

        self.builder.add_module(ModuleNode(
            full_name=full_name,
            package=pkg_id(address),
            name=name,
            functions=functions,
            types_defined=types_defined,
            friends=friends,
            flags=module_flags,
            constants=constants,
            explorer_links=module_explorer_links(address, name, self.network) if self.network else None,
        ))
        logger.debug(f"Added module: {full_name} ({len(functions)} functions, {len(types_defined)} types)")

        self.builder.add_edge(Edge(EdgeKind.PKG_CONTAINS, pkg_id(address), module_ref))

        for dep_fqn in deps.modules:
            self.builder.add_edge(Edge(
                kind=EdgeKind.MOD_CALLS,
                from_id=module_ref,
                to_id=mod_id(dep_fqn),
                call_type=self._call_type(dep_fqn, address, friends),
                calls=deps.evidence.get(dep_fqn) or [
                    CallEvidence(caller_func=CALLER_DETECTED, callee_module=dep_fqn, callee_func=CALLEE_INFERRED)
                ],
            ))

    def _parse_function(
        self,
        func_name: str,
        func: NormalizedFunction,
        address: str,
        deps: _ModuleDeps,
    ) -> FunctionSummary:
        parameters = []
        for param in func.parameters:
            name = param.get("name") if isinstance(param, dict) else None
            parameters.append(FunctionParam(name=name or DEFAULT_PARAM_NAME, type=stringify_type(param)))

            for dep_fqn in self._external_modules(param, address):
                deps.add(dep_fqn)
                deps.add_evidence(dep_fqn)

        # 返回类型只记录依赖，不产生调用证据
        for dep_fqn in self._external_modules(func.return_, address):
            deps.add(dep_fqn)

        return FunctionSummary(
            name=func_name,
            visibility=function_visibility(func),
            is_entry=func.is_entry,
            parameters=parameters,
            return_type=stringify_type(func.return_) if func.return_ else VOID_RETURN,
        )

    def _external_modules(self, type_expr: Any, address: str) -> List[str]:
        """类型表达式中引用的外部模块 FQN，同时登记包依赖"""
        found = []
        for fqn in extract_fully_qualified_types(type_expr):
            dep_package = extract_package_address(fqn)
            dep_module = extract_module_name(fqn)
            if not dep_package or not dep_module or dep_package == address:
                continue
            if dep_package not in self._package_deps:
                self._package_deps.append(dep_package)
            found.append(f"{dep_package}::{dep_module}")
        return found

    def _parse_struct(
        self,
        module_fqn: str,
        struct_name: str,
        struct: NormalizedStruct,
        module_flags: List[str],
    ) -> str:
        type_fqn = f"{module_fqn}::{struct_name}"
        abilities = tuple(struct.abilities.abilities)
        has_key = "Key" in abilities
        if abilities:
            logger.debug(f"Type {type_fqn} has abilities: {', '.join(abilities)}{' [HAS KEY]' if has_key else ''}")

        self.builder.add_type(TypeNode(
            fqn=type_fqn,
            module=mod_id(module_fqn),
            fields=tuple(TypeField(name=f.name, type=stringify_type(f.type_)) for f in struct.fields),
            abilities=abilities,
            has_key=has_key,
        ))
        self.builder.add_edge(Edge(EdgeKind.MOD_DEFINES_TYPE, mod_id(module_fqn), type_id(type_fqn)))

        # 每个被引用的类型只连一条边，取第一个引用它的字段名
        used = set()
        for f in struct.fields:
            if f.type_ is None:
                continue
            for used_fqn in extract_fully_qualified_types(f.type_):
                if used_fqn in used:
                    continue
                used.add(used_fqn)
                self.builder.add_edge(Edge(
                    kind=EdgeKind.TYPE_USES_TYPE,
                    from_id=type_id(type_fqn),
                    to_id=type_id(used_fqn),
                    field_name=f.name,
                ))

        if any(ct in struct_name for ct in self._critical_substrings):
            module_flags.append(struct_name)
            self.builder.add_flag(Flag(
                level=FlagLevel.MED,
                kind="CriticalType",
                scope=FlagScope.TYPE,
                ref_id=type_fqn,
                details={"structName": struct_name, "hasKey": has_key, "abilities": list(abilities)},
            ))

        return type_fqn

    @staticmethod
    def _call_type(dep_fqn: str, address: str, friends: List[str]) -> CallType:
        if dep_fqn in friends:
            return CallType.FRIEND
        if dep_fqn.partition("::")[0] == address:
            return CallType.SAME_PACKAGE
        return CallType.EXTERNAL


def parse_package_modules(
    builder: GraphBuilder,
    package_id: str,
    raw_modules: Dict[str, Any],
    config: AnalysisConfig,
    network: Optional[str] = None,
) -> ParseResult:
    """ModuleParser 的函数式入口"""
    return ModuleParser(builder, package_id, config, network).parse(raw_modules)
