"""
包分析模块

- module_parser: normalized modules -> 模块 / 类型 / 函数记录与包内边
- constants: 模块常量提取
- dependencies: 包级依赖边
- objects: 对象发现与采样
- events: 最近事件收集
- engine: 单包 / 递归分析入口
"""

from .module_parser import ModuleParser, ParseResult, parse_package_modules
from .constants import extract_module_constants
from .dependencies import add_package_dependencies
from .objects import (
    FetchMode,
    FetchStrategy,
    ObjectDiscovery,
    compute_type_count,
    discover_objects,
    is_critical_type,
    scan_snapshot_for_object_ids,
    select_fetch_strategy,
)
from .events import classify_event, collect_events
from .engine import (
    AnalysisResult,
    ProgressCallback,
    analyze_package,
    analyze_package_recursive,
    analyze_single_package,
    dependencies_of,
)

__all__ = [
    # Module parsing
    "ModuleParser",
    "ParseResult",
    "parse_package_modules",
    "extract_module_constants",
    "add_package_dependencies",
    # Objects
    "FetchMode",
    "FetchStrategy",
    "ObjectDiscovery",
    "compute_type_count",
    "discover_objects",
    "is_critical_type",
    "scan_snapshot_for_object_ids",
    "select_fetch_strategy",
    # Events
    "classify_event",
    "collect_events",
    # Engine
    "AnalysisResult",
    "ProgressCallback",
    "analyze_package",
    "analyze_package_recursive",
    "analyze_single_package",
    "dependencies_of",
]
