"""
SuiLens 配置模块

包含:
- 内置关键类型表 (版本化常量)
- 对象发现 / 事件收集的硬上限
- 进度里程碑
- AnalysisConfig: 单次分析的用户可调参数
"""

from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


# ============================================================================
# 关键类型 (Critical Types)
# ============================================================================

# 内置关键类型表，按版本维护；用户配置的 critical_types 与之取并集
CRITICAL_TYPES_VERSION = 2

BUILTIN_CRITICAL_TYPES = (
    "AdminCap",
    "UpgradeCap",
    "TreasuryCap",
    "State",
    "Config",
    "Treasury",
    "Vault",
    "Registry",
)

# 短名以该后缀结尾的类型一律视为关键类型 (任意 *Cap)
CRITICAL_TYPE_SUFFIX = "Cap"

# 模块解析阶段 CriticalType 标记使用的默认子串表 (内置表 + "Cap")
DEFAULT_CRITICAL_SUBSTRINGS = BUILTIN_CRITICAL_TYPES + (CRITICAL_TYPE_SUFFIX,)


# ============================================================================
# 对象发现配置
# ============================================================================

OBJECT_DISCOVERY_CONFIG = {
    "page_size": 50,               # 固定分页大小
    "max_pages": 100,              # 单类型最多翻页数 (安全上限)
    "snapshot_scan_max_depth": 4,  # 快照中扫描对象 ID 的最大递归深度
    "snapshot_scan_max_hits": 20,  # 单个快照最多提取的对象引用数
}

# Sui 对象 ID: 0x + 64 位十六进制
SUI_OBJECT_ID_PATTERN = r"^0x[a-fA-F0-9]{64}$"

# 占位对象的类型名
UNKNOWN_TYPE_FQN = "unknown"


# ============================================================================
# 事件收集配置
# ============================================================================

EVENT_QUERY_LIMIT = 100

EVENT_KIND_MARKERS = (
    ("::publish::", "Publish"),
    ("::upgrade::", "Upgrade"),
    ("::mint::", "Mint"),
    ("::burn::", "Burn"),
)


# ============================================================================
# 进度里程碑 (单包分析)
# ============================================================================

PROGRESS_MILESTONES = {
    "start": 5,
    "modules_fetched": 15,
    "modules_parsed": 35,
    "dependencies": 45,
    "objects": 65,
    "events": 80,
    "flags": 90,
    "done": 100,
}

# 递归分析: 所有包共享 0-90，合并后 95，完成 100
RECURSIVE_PROGRESS_RANGE = 90
RECURSIVE_PROGRESS_CAP = 95

# 依次尝试的候选网络
CANDIDATE_NETWORKS = ("mainnet", "testnet")
SUPPORTED_NETWORKS = ("mainnet", "testnet", "devnet")


# ============================================================================
# 分析参数
# ============================================================================

class AnalysisConfig(BaseModel):
    """单次分析配置 (接受 camelCase 别名，兼容前端请求体)"""

    network: Optional[str] = Field(None, description="首选网络; 为空时依次尝试 mainnet / testnet")
    max_pkg_depth: int = Field(1, ge=1, alias="maxPkgDepth", description="依赖递归深度")
    max_obj_depth: int = Field(1, ge=0, alias="maxObjDepth", description="动态字段遍历深度")

    # 对象抓取阈值
    type_count_threshold: int = Field(100, ge=0, alias="typeCountThreshold")
    sample_large_types: bool = Field(True, alias="sampleLargeTypes")
    object_sample_size: int = Field(10, ge=0, alias="objectSampleSize")
    hard_cap_critical: int = Field(5000, ge=0, alias="hardCapCritical")
    # 渲染保护上限，默认关闭；设置后只统计真实对象 (不含占位)
    global_object_node_cap: Optional[int] = Field(None, ge=0, alias="globalObjectNodeCap")
    discover_objects: bool = Field(True, alias="discoverObjects")

    # 类型分类 (用户扩展，与内置表取并集)
    critical_types: List[str] = Field(default_factory=list, alias="criticalTypes")

    # 事件 (仅作为元数据，不在查询层过滤)
    events_window_days: int = Field(7, ge=0, alias="eventsWindowDays")

    # 递归并发
    parallel_siblings: bool = Field(False, alias="parallelSiblings")
    max_concurrency: int = Field(4, ge=1, alias="maxConcurrency")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("network")
    @classmethod
    def check_network(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in SUPPORTED_NETWORKS:
            raise ValueError(f"network must be one of {', '.join(SUPPORTED_NETWORKS)}")
        return value

    def critical_substrings(self) -> List[str]:
        """模块解析阶段使用的关键类型子串: 用户配置 ∪ 内置默认"""
        merged = list(DEFAULT_CRITICAL_SUBSTRINGS)
        for name in self.critical_types:
            if name and name not in merged:
                merged.append(name)
        return merged
