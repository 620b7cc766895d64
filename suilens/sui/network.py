"""
网络选择

包只会部署在某一个网络上；未指定网络时依次尝试 mainnet / testnet，
以第一个能取到 normalized modules 的网络为准。
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..config import CANDIDATE_NETWORKS, OBJECT_DISCOVERY_CONFIG
from ..errors import PackageNotFoundError, SuiLensError
from .graphql import SuiGraphQLClient
from .rpc import SuiRpcClient
from .sources import SuiClients

logger = logging.getLogger(__name__)

ClientsFactory = Callable[[str], SuiClients]


def get_sui_clients(network: str, settings=None) -> SuiClients:
    """
    按网络构建默认数据源 (RPC + GraphQL)

    Args:
        network: mainnet / testnet / devnet
        settings: 服务配置，默认读取 get_settings()
    """
    if settings is None:
        from ..api.config import get_settings
        settings = get_settings()

    rpc = SuiRpcClient(
        rpc_url=settings.rpc_url_for(network),
        network=network,
        timeout=settings.sui_request_timeout,
    )
    graphql = SuiGraphQLClient(
        endpoint=settings.graphql_url_for(network),
        network=network,
        timeout=settings.sui_request_timeout,
        page_size=OBJECT_DISCOVERY_CONFIG["page_size"],
    )
    return SuiClients(
        network=network,
        modules=rpc,
        objects=graphql,
        dynamic_fields=rpc,
        events=rpc,
    )


@dataclass
class PackageLocation:
    """探测结果: 网络、该网络的数据源以及已取得的 normalized modules"""
    network: str
    clients: SuiClients
    modules: Dict[str, Any]


async def locate_package(
    package_id: str,
    preferred: Optional[str] = None,
    clients_factory: ClientsFactory = get_sui_clients,
) -> PackageLocation:
    """
    探测包所在网络

    Args:
        package_id: 包地址
        preferred: 首选网络；指定时只尝试该网络
        clients_factory: network -> SuiClients

    Returns:
        PackageLocation (模块数据可直接交给分析引擎，避免重复请求)

    Raises:
        PackageNotFoundError: 所有候选网络都无法解析该包
    """
    candidates = [preferred] if preferred else list(CANDIDATE_NETWORKS)
    last_error: Optional[Exception] = None

    for network in candidates:
        try:
            clients = clients_factory(network)
            modules = await clients.modules.get_normalized_modules(package_id)
        except SuiLensError as e:
            logger.info(f"Package {package_id} not resolved on {network}: {e}")
            last_error = e
            continue

        if modules:
            logger.info(f"Package {package_id} found on {network}")
            return PackageLocation(network=network, clients=clients, modules=modules)

    raise PackageNotFoundError(package_id, candidates) from last_error


async def detect_package_network(
    package_id: str,
    preferred: Optional[str] = None,
    clients_factory: ClientsFactory = get_sui_clients,
) -> str:
    """只返回包所在的网络名"""
    location = await locate_package(package_id, preferred, clients_factory)
    return location.network
