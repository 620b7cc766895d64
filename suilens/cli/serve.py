"""
SuiLens API 启动命令

监听地址、端口与节点配置都来自 Settings (.env / 环境变量)，
命令行参数只做临时覆盖。

Usage:
    suilens-serve
    suilens-serve --port 9000 --reload
"""

import argparse
import sys
from typing import List, Optional

import uvicorn

from ..api.config import Settings, get_settings
from ..config import SUPPORTED_NETWORKS


def describe_endpoints(settings: Settings) -> List[str]:
    """每个网络一行: RPC 地址，以及 GraphQL (对象发现) 是否可用"""
    lines = []
    for network in SUPPORTED_NETWORKS:
        graphql = settings.graphql_url_for(network)
        objects = f"GraphQL {graphql}" if graphql else "未配置 GraphQL, 跳过对象发现"
        lines.append(f"{network:<8} RPC {settings.rpc_url_for(network)} | {objects}")
    return lines


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SuiLens - 启动分析 API 服务")
    parser.add_argument("--host", help="监听地址 (默认取 API_HOST)")
    parser.add_argument("--port", type=int, help="监听端口 (默认取 API_PORT)")
    parser.add_argument("--reload", action="store_true", help="代码变更时自动重启 (开发用)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    host = args.host or settings.api_host
    port = args.port or settings.api_port

    print("=" * 60)
    print(f"🚀 {settings.app_name} v{settings.app_version}")
    print("=" * 60)
    print(f"📦 数据库: {settings.database_url}")
    for line in describe_endpoints(settings):
        print(f"🌐 {line}")
    print(f"📍 API 文档: http://{host}:{port}/docs")
    print("=" * 60)

    # 数据表在应用 lifespan 中创建
    uvicorn.run(
        "suilens.api.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
