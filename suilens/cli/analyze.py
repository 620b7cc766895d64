"""
SuiLens Package Analysis CLI

分析链上 Sui Move 包，输出结构图 JSON。

Usage:
    # 分析单个包 (自动探测网络)
    python -m suilens.cli.analyze --package 0x2

    # 递归分析依赖 (深度 2)，输出到文件
    python -m suilens.cli.analyze --package 0xabc... --depth 2 --out graph.json

    # 指定网络，并保存到数据库
    python -m suilens.cli.analyze --package 0xabc... --network testnet --save
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..analysis.engine import AnalysisResult, analyze_package
from pydantic import ValidationError

from ..config import SUPPORTED_NETWORKS, AnalysisConfig
from ..errors import PackageNotFoundError, SuiLensError


def build_config(args: argparse.Namespace) -> AnalysisConfig:
    """命令行参数 -> AnalysisConfig"""
    return AnalysisConfig(
        network=args.network,
        max_pkg_depth=args.depth,
        max_obj_depth=args.obj_depth,
        sample_large_types=not args.no_sample,
        object_sample_size=args.sample_size,
        discover_objects=not args.no_objects,
        critical_types=args.critical_type or [],
    )


async def _print_progress(percent: int) -> None:
    print(f"\r⏳ 分析进度: {percent:3d}%", end="", file=sys.stderr, flush=True)
    if percent >= 100:
        print(file=sys.stderr)


async def save_result(result: AnalysisResult, config: AnalysisConfig, user_id: Optional[str]) -> str:
    """保存分析结果到数据库，返回 slug"""
    from ..storage.analysis_store import save_analysis
    from ..storage.database import _get_session_factory, init_db

    await init_db()
    session_factory = _get_session_factory()
    async with session_factory() as session:
        _, slug = await save_analysis(
            session,
            package_id=result.package_id,
            network=result.network,
            depth=config.max_pkg_depth,
            config=config.model_copy(update={"network": result.network}),
            graph=result.graph,
            user_id=user_id,
        )
        await session.commit()
    return slug


async def run_analysis(args: argparse.Namespace) -> int:
    on_progress = None if args.quiet else _print_progress

    try:
        config = build_config(args)
        result = await analyze_package(args.package, config, on_progress=on_progress)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        print(f"❌ 参数无效: {problems}", file=sys.stderr)
        return 1
    except PackageNotFoundError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    except SuiLensError as e:
        print(f"❌ 分析失败: {e}", file=sys.stderr)
        return 1

    payload = json.dumps(result.graph.to_dict(), indent=2, ensure_ascii=False)
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload, encoding="utf-8")
        print(f"✅ 结果已写入: {out_path}", file=sys.stderr)
    else:
        print(payload)

    summary = result.graph.summary()
    node_count = sum(v for k, v in summary.items() if k not in ("edges", "flags"))
    print(
        f"📊 网络: {result.network} | 包: {len(result.packages_analyzed)} | "
        f"节点: {node_count} | 边: {summary['edges']} | 标记: {summary['flags']}",
        file=sys.stderr,
    )
    if result.failed_packages:
        print(f"⚠️  以下依赖分析失败: {', '.join(result.failed_packages)}", file=sys.stderr)

    if args.save:
        slug = await save_result(result, config, args.user)
        print(f"💾 已保存, slug: {slug}", file=sys.stderr)

    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="SuiLens - Sui Move 包结构分析",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--package", "-p", required=True, help="包地址 (0x...)")
    parser.add_argument("--network", "-n", choices=SUPPORTED_NETWORKS, help="首选网络")
    parser.add_argument("--depth", "-d", type=int, default=1, help="依赖递归深度 (默认 1)")
    parser.add_argument("--obj-depth", type=int, default=1, help="动态字段遍历深度 (默认 1)")
    parser.add_argument("--no-sample", action="store_true", help="大类型不采样，完整拉取")
    parser.add_argument("--sample-size", type=int, default=10, help="采样数量 (默认 10)")
    parser.add_argument("--no-objects", action="store_true", help="跳过对象发现")
    parser.add_argument(
        "--critical-type",
        action="append",
        metavar="FQN",
        help="额外的关键类型 (可重复)",
    )
    parser.add_argument("--out", "-o", help="输出文件 (默认 stdout)")
    parser.add_argument("--save", action="store_true", help="保存结果到数据库")
    parser.add_argument("--user", help="保存时使用的用户标识")
    parser.add_argument("--quiet", "-q", action="store_true", help="不显示进度")
    parser.add_argument("--verbose", "-v", action="store_true", help="详细日志")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger("suilens").setLevel(logging.DEBUG)
    return asyncio.run(run_analysis(args))


if __name__ == "__main__":
    sys.exit(main())
