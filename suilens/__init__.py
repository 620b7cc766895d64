"""
SuiLens - Sui Move 包结构分析引擎

包含:
- graph: 图数据模型、构建器 (GraphBuilder) 与合并 (merge_graphs)
- sui: Sui RPC / GraphQL 客户端、网络探测、浏览器链接
- analysis: 模块解析、依赖、对象发现、事件收集、递归分析
- security: 安全标记规则表
- storage: 分析结果持久化
- api / cli: 对外接口
"""

import logging
import os

__version__ = "0.2.0"

# 配置 suilens 命名空间下的日志
# 默认 INFO 级别，可通过环境变量 SUILENS_LOG_LEVEL 覆盖
_log_level = os.environ.get("SUILENS_LOG_LEVEL", "INFO").upper()
_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_suilens_logger = logging.getLogger("suilens")
if not _suilens_logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(_log_format, datefmt="%H:%M:%S"))
    _suilens_logger.addHandler(_handler)
    _suilens_logger.setLevel(getattr(logging, _log_level, logging.INFO))

from .errors import SuiLensError, SuiRpcError, PackageNotFoundError, AnalysisError
from .config import AnalysisConfig
from .graph import GraphData, GraphBuilder, merge_graphs
from .analysis import analyze_package, analyze_single_package, analyze_package_recursive

__all__ = [
    "__version__",
    # Errors
    "SuiLensError",
    "SuiRpcError",
    "PackageNotFoundError",
    "AnalysisError",
    # Config
    "AnalysisConfig",
    # Graph
    "GraphData",
    "GraphBuilder",
    "merge_graphs",
    # Engine
    "analyze_package",
    "analyze_single_package",
    "analyze_package_recursive",
]
