"""
网络探测 / 客户端工厂 / 浏览器链接测试
"""
import pytest
from pydantic import ValidationError

from suilens.api.config import Settings
from suilens.config import AnalysisConfig
from suilens.errors import PackageNotFoundError, SuiRpcError
from suilens.sui.explorers import (
    module_explorer_links,
    object_explorer_links,
    package_explorer_links,
    tx_explorer_links,
)
from suilens.sui.graphql import SuiGraphQLClient
from suilens.sui.network import detect_package_network, get_sui_clients, locate_package
from suilens.sui.rpc import SuiRpcClient

from conftest import make_clients


class TestDetectPackageNetwork:
    async def test_mainnet_first(self):
        factory = {
            "mainnet": make_clients({"0xa": {"0xa::m": {}}}, network="mainnet"),
            "testnet": make_clients({"0xa": {"0xa::m": {}}}, network="testnet"),
        }
        assert await detect_package_network("0xa", clients_factory=factory.__getitem__) == "mainnet"
        assert factory["testnet"].modules.calls == []

    async def test_falls_back_to_testnet(self):
        factory = {
            "mainnet": make_clients({}, errors={"0xa": SuiRpcError("sui_getNormalizedMoveModulesByPackage", "503")}),
            "testnet": make_clients({"0xa": {"0xa::m": {}}}, network="testnet"),
        }
        assert await detect_package_network("0xa", clients_factory=factory.__getitem__) == "testnet"

    async def test_preferred_network_only(self):
        calls = []

        def factory(network):
            calls.append(network)
            return make_clients({"0xa": {"0xa::m": {}}}, network=network)

        assert await detect_package_network("0xa", "devnet", factory) == "devnet"
        assert calls == ["devnet"]

    async def test_not_found(self):
        with pytest.raises(PackageNotFoundError) as exc_info:
            await detect_package_network("0xa", clients_factory=lambda n: make_clients({}, network=n))
        assert exc_info.value.networks == ["mainnet", "testnet"]
        assert "0xa" in str(exc_info.value)

    async def test_empty_modules_is_not_found(self):
        with pytest.raises(PackageNotFoundError):
            await detect_package_network(
                "0xa", "mainnet", lambda n: make_clients({"0xa": {}}, network=n),
            )


async def test_locate_package_returns_fetched_modules():
    modules = {"0xa::m": {}}
    clients = make_clients({"0xa": modules}, network="testnet")

    location = await locate_package("0xa", "testnet", lambda n: clients)

    assert location.network == "testnet"
    assert location.clients is clients
    assert location.modules == modules
    assert clients.modules.calls == ["0xa"]


def test_analysis_config_rejects_unknown_network():
    with pytest.raises(ValidationError):
        AnalysisConfig(network="localnet")
    assert AnalysisConfig(network="devnet").network == "devnet"


def test_get_sui_clients_uses_settings():
    settings = Settings(
        sui_rpc_url_testnet="http://rpc.test",
        sui_graphql_url_testnet=None,
        sui_request_timeout=5.0,
    )
    clients = get_sui_clients("testnet", settings)

    assert clients.network == "testnet"
    assert isinstance(clients.modules, SuiRpcClient)
    assert clients.modules.rpc_url == "http://rpc.test"
    assert clients.modules.timeout == 5.0
    assert clients.events is clients.modules
    assert isinstance(clients.objects, SuiGraphQLClient)
    assert clients.objects.endpoint is None


def test_settings_reject_unknown_network():
    with pytest.raises(ValueError):
        Settings().rpc_url_for("localnet")
    assert Settings().graphql_url_for("devnet") is None


class TestExplorerLinks:
    def test_mainnet(self):
        links = package_explorer_links("0xabc", "mainnet")
        assert links == {
            "suiscan": "https://suiscan.xyz/object/0xabc",
            "suiexplorer": "https://suiexplorer.com/object/0xabc",
            "suivision": "https://suivision.xyz/package/0xabc",
        }

    def test_testnet(self):
        links = object_explorer_links("0x1", "testnet")
        assert links["suiscan"] == "https://testnet.suiscan.xyz/object/0x1"
        assert links["suiexplorer"] == "https://suiexplorer.com/object/0x1?network=testnet"
        assert links["suivision"] == "https://testnet.suivision.xyz/object/0x1"

    def test_module_and_tx(self):
        module = module_explorer_links("0xabc", "pool", "devnet")
        assert module["suiscan"] == "https://devnet.suiscan.xyz/object/0xabc/contracts?module=pool"
        assert module["suiexplorer"] == "https://suiexplorer.com/object/0xabc?network=devnet#pool"

        tx = tx_explorer_links("Dig3st", "mainnet")
        assert tx["suivision"] == "https://suivision.xyz/txblock/Dig3st"
        assert tx["suiexplorer"] == "https://suiexplorer.com/txblock/Dig3st"
