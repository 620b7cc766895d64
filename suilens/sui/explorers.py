"""
区块浏览器链接 (SuiScan / Sui Explorer / SuiVision)
"""

from typing import Dict


def _suiscan_domain(network: str) -> str:
    return "suiscan.xyz" if network == "mainnet" else f"{network}.suiscan.xyz"


def _suivision_domain(network: str) -> str:
    return "suivision.xyz" if network == "mainnet" else f"{network}.suivision.xyz"


def _suiexplorer_query(network: str) -> str:
    return "" if network == "mainnet" else f"?network={network}"


# =============================================================================
# 单个链接
# =============================================================================

def suiscan_object_url(object_id: str, network: str = "mainnet") -> str:
    # 包和对象在 SuiScan 上共用 /object/ 路径
    return f"https://{_suiscan_domain(network)}/object/{object_id}"


def suiscan_module_url(package_id: str, module: str, network: str = "mainnet") -> str:
    return f"https://{_suiscan_domain(network)}/object/{package_id}/contracts?module={module}"


def suiscan_tx_url(tx_digest: str, network: str = "mainnet") -> str:
    return f"https://{_suiscan_domain(network)}/tx/{tx_digest}"


def suiexplorer_object_url(object_id: str, network: str = "mainnet") -> str:
    return f"https://suiexplorer.com/object/{object_id}{_suiexplorer_query(network)}"


def suiexplorer_module_url(package_id: str, module: str, network: str = "mainnet") -> str:
    return f"{suiexplorer_object_url(package_id, network)}#{module}"


def suiexplorer_tx_url(tx_digest: str, network: str = "mainnet") -> str:
    return f"https://suiexplorer.com/txblock/{tx_digest}{_suiexplorer_query(network)}"


def suivision_package_url(package_id: str, network: str = "mainnet") -> str:
    return f"https://{_suivision_domain(network)}/package/{package_id}"


def suivision_object_url(object_id: str, network: str = "mainnet") -> str:
    return f"https://{_suivision_domain(network)}/object/{object_id}"


def suivision_tx_url(tx_digest: str, network: str = "mainnet") -> str:
    return f"https://{_suivision_domain(network)}/txblock/{tx_digest}"


# =============================================================================
# 链接集合 (挂到节点的 explorerLinks 上)
# =============================================================================

def package_explorer_links(package_id: str, network: str = "mainnet") -> Dict[str, str]:
    return {
        "suiscan": suiscan_object_url(package_id, network),
        "suiexplorer": suiexplorer_object_url(package_id, network),
        "suivision": suivision_package_url(package_id, network),
    }


def module_explorer_links(package_id: str, module: str, network: str = "mainnet") -> Dict[str, str]:
    return {
        "suiscan": suiscan_module_url(package_id, module, network),
        "suiexplorer": suiexplorer_module_url(package_id, module, network),
    }


def object_explorer_links(object_id: str, network: str = "mainnet") -> Dict[str, str]:
    return {
        "suiscan": suiscan_object_url(object_id, network),
        "suiexplorer": suiexplorer_object_url(object_id, network),
        "suivision": suivision_object_url(object_id, network),
    }


def tx_explorer_links(tx_digest: str, network: str = "mainnet") -> Dict[str, str]:
    return {
        "suiscan": suiscan_tx_url(tx_digest, network),
        "suiexplorer": suiexplorer_tx_url(tx_digest, network),
        "suivision": suivision_tx_url(tx_digest, network),
    }
