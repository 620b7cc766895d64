"""
分析引擎测试 (单包流水线 / 递归分析 / 入口)
"""
import asyncio

import pytest

from suilens.analysis import engine
from suilens.analysis.dependencies import add_package_dependencies
from suilens.analysis.engine import (
    analyze_package,
    analyze_package_recursive,
    analyze_single_package,
    dependencies_of,
)
from suilens.analysis.module_parser import parse_package_modules
from suilens.config import AnalysisConfig
from suilens.errors import AnalysisError, PackageNotFoundError
from suilens.graph.builder import GraphBuilder
from suilens.graph.models import EdgeKind, FlagLevel

from conftest import (
    ADMIN_PACKAGE,
    FakeEventSource,
    FakeObjectSource,
    address_owner,
    admin_package_modules,
    gql_object,
    make_clients,
    make_event,
    make_function,
    make_module,
    make_struct,
    oid,
    struct_ref,
)


def _package(address: str, name: str, uses: tuple = ()):
    """一个模块，函数参数引用 uses 中每个包的类型"""
    params = [struct_ref(dep, "lib", "Thing") for dep in uses]
    return {
        f"{address}::{name}": make_module(
            address,
            name,
            structs={"Thing": make_struct(["Store"])},
            functions={"run": make_function(parameters=params)},
        ),
    }


class ProgressRecorder:
    def __init__(self):
        self.values = []

    async def __call__(self, percent: int) -> None:
        self.values.append(percent)


# =============================================================================
# 单包
# =============================================================================

async def test_single_package_admin_cap():
    objects = FakeObjectSource({
        "0xa::admin::AdminCap": [gql_object(oid(1), address_owner("0xdeployer"))],
    })
    events = FakeEventSource([make_event("tx1", 0, "0xa::admin::Minted")])
    clients = make_clients({ADMIN_PACKAGE: admin_package_modules()}, objects=objects, events=events)
    progress = ProgressRecorder()

    graph = await analyze_single_package(ADMIN_PACKAGE, clients, AnalysisConfig(), progress)

    assert progress.values == [5, 15, 35, 45, 65, 80, 90, 100]

    key_types = [t for t in graph.types if t.has_key]
    assert [t.fqn for t in key_types] == ["0xa::admin::AdminCap"]

    by_kind = {}
    for flag in graph.flags:
        by_kind.setdefault(flag.kind, []).append(flag)
    assert len(by_kind["CriticalType"]) == 1
    assert by_kind["CriticalType"][0].level == FlagLevel.MED
    assert len(by_kind["AdminCap"]) == 1
    assert by_kind["AdminCap"][0].level == FlagLevel.HIGH
    assert by_kind["SingleOwnerCap"][0].ref_id == f"obj:{oid(1)}"

    root = next(p for p in graph.packages if p.address == ADMIN_PACKAGE)
    assert root.stats == {"modules": 1, "types": 1, "recentEvents": 1}
    assert root.explorer_links["suivision"] == "https://suivision.xyz/package/0xa"

    assert graph.type_stats["0xa::admin::AdminCap"].sampled == 1
    assert [e.to_id for e in graph.edges_of(EdgeKind.PKG_DEPENDS)] == ["pkg:0x2"]
    assert graph.dangling_edges() == []


async def test_single_package_without_object_discovery():
    objects = FakeObjectSource()
    clients = make_clients({ADMIN_PACKAGE: admin_package_modules()}, objects=objects)

    graph = await analyze_single_package(ADMIN_PACKAGE, clients, AnalysisConfig(discoverObjects=False))

    assert objects.estimate_calls == []
    assert graph.objects == []


async def test_single_package_not_found():
    with pytest.raises(PackageNotFoundError):
        await analyze_single_package("0xdead", make_clients({}))


async def test_unexpected_error_is_wrapped():
    clients = make_clients({}, errors={"0xa": RuntimeError("socket closed")})
    with pytest.raises(AnalysisError) as exc_info:
        await analyze_single_package("0xa", clients)
    assert exc_info.value.package_id == "0xa"
    assert isinstance(exc_info.value.cause, RuntimeError)


# =============================================================================
# 递归
# =============================================================================

async def test_cycle_is_analyzed_once_per_package():
    packages = {
        "0xa": _package("0xa", "core", uses=("0xb",)),
        "0xb": _package("0xb", "lib", uses=("0xa",)),
    }
    clients = make_clients(packages)
    progress = ProgressRecorder()

    result = await analyze_package_recursive("0xa", clients, AnalysisConfig(maxPkgDepth=3), progress)

    assert clients.modules.calls == ["0xa", "0xb"]
    assert result.packages_analyzed == ["0xa", "0xb"]
    assert result.failed_packages == {}

    ids = result.graph.node_ids()
    assert {"mod:0xa::core", "mod:0xb::lib"} <= ids
    assert len(result.graph.edge_keys()) == len(result.graph.edges)

    assert progress.values == sorted(progress.values)
    assert progress.values[-1] == 100
    assert 95 in progress.values
    assert max(progress.values[:-2]) <= 95


async def test_depth_limits_traversal():
    packages = {
        "0xa": _package("0xa", "core", uses=("0xb",)),
        "0xb": _package("0xb", "lib", uses=("0xc",)),
        "0xc": _package("0xc", "leaf"),
    }
    clients = make_clients(packages)

    result = await analyze_package_recursive("0xa", clients, AnalysisConfig(maxPkgDepth=2))

    assert result.packages_analyzed == ["0xa", "0xb"]
    assert "0xc" not in clients.modules.calls


async def test_failed_dependency_drops_branch():
    packages = {"0xa": _package("0xa", "core", uses=("0xb", "0xc"))}
    packages["0xb"] = _package("0xb", "lib")
    clients = make_clients(packages)

    result = await analyze_package_recursive("0xa", clients, AnalysisConfig(maxPkgDepth=2))

    assert result.packages_analyzed == ["0xa", "0xb"]
    assert list(result.failed_packages) == ["0xc"]
    assert "pkg:0xc" in result.graph.node_ids()


async def test_root_failure_is_fatal():
    with pytest.raises(PackageNotFoundError):
        await analyze_package_recursive("0xa", make_clients({}), AnalysisConfig(maxPkgDepth=2))


async def test_parallel_siblings():
    packages = {
        "0xa": _package("0xa", "core", uses=("0xb", "0xc")),
        "0xb": _package("0xb", "lib"),
        "0xc": _package("0xc", "lib"),
    }
    clients = make_clients(packages)
    config = AnalysisConfig(maxPkgDepth=2, parallelSiblings=True, maxConcurrency=2)

    result = await analyze_package_recursive("0xa", clients, config)

    assert sorted(result.packages_analyzed) == ["0xa", "0xb", "0xc"]
    assert sorted(clients.modules.calls) == ["0xa", "0xb", "0xc"]


@pytest.mark.parametrize("parallel", [True, False])
async def test_crashing_sibling_drops_only_its_branch(monkeypatch, parallel):
    packages = {
        "0xa": _package("0xa", "core", uses=("0xb", "0xc")),
        "0xb": _package("0xb", "lib"),
        "0xc": _package("0xc", "lib"),
    }
    clients = make_clients(packages)
    real_analyze = engine.analyze_single_package
    finished = []

    async def flaky(package_id, clients, config=None, on_progress=None, raw_modules=None):
        if package_id == "0xb":
            raise RuntimeError("worker crashed")
        await asyncio.sleep(0)
        graph = await real_analyze(package_id, clients, config, on_progress, raw_modules=raw_modules)
        finished.append(package_id)
        return graph

    monkeypatch.setattr(engine, "analyze_single_package", flaky)
    config = AnalysisConfig(maxPkgDepth=2, parallelSiblings=parallel, maxConcurrency=2)

    result = await analyze_package_recursive("0xa", clients, config)

    assert finished == ["0xa", "0xc"]
    assert result.packages_analyzed == ["0xa", "0xc"]
    assert result.failed_packages == {"0xb": "RuntimeError: worker crashed"}


def test_dependencies_of():
    builder = GraphBuilder("0xa")
    parsed = parse_package_modules(builder, "0xa", _package("0xa", "core", uses=("0xb", "0xc")), AnalysisConfig())
    add_package_dependencies(builder, "0xa", parsed.package_dependencies)

    assert dependencies_of(builder.build()) == ["0xb", "0xc"]


# =============================================================================
# 入口
# =============================================================================

async def test_analyze_package_detects_network():
    by_network = {
        "mainnet": make_clients({}, network="mainnet"),
        "testnet": make_clients({ADMIN_PACKAGE: admin_package_modules()}, network="testnet"),
    }

    result = await analyze_package(ADMIN_PACKAGE, clients_factory=by_network.__getitem__)

    assert result.network == "testnet"
    assert result.packages_analyzed == [ADMIN_PACKAGE]
    assert by_network["testnet"].modules.calls == [ADMIN_PACKAGE]
    root = next(p for p in result.graph.packages if p.address == ADMIN_PACKAGE)
    assert root.explorer_links["suiscan"] == "https://testnet.suiscan.xyz/object/0xa"


async def test_analyze_package_recursive_mode():
    packages = {
        "0xa": _package("0xa", "core", uses=("0xb",)),
        "0xb": _package("0xb", "lib"),
    }
    clients = make_clients(packages)
    progress = ProgressRecorder()

    result = await analyze_package(
        "0xa",
        AnalysisConfig(maxPkgDepth=2, network="mainnet"),
        on_progress=progress,
        clients_factory=lambda network: clients,
    )

    assert result.packages_analyzed == ["0xa", "0xb"]
    assert progress.values[-1] == 100
    # 网络探测取得的模块直接复用
    assert clients.modules.calls == ["0xa", "0xb"]


async def test_analyze_package_not_found_anywhere():
    with pytest.raises(PackageNotFoundError) as exc_info:
        await analyze_package("0xdead", clients_factory=lambda network: make_clients({}, network=network))
    assert exc_info.value.networks == ["mainnet", "testnet"]
