"""
Sui JSON-RPC 客户端

负责：
1. 获取包的 normalized modules
2. 查询对象详情 / 动态字段
3. 查询包事件

所有调用都带超时；传输错误与 JSON-RPC 错误统一转换为 SuiRpcError。
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import PackageNotFoundError, SuiRpcError

logger = logging.getLogger(__name__)

# 包不存在时 RPC 错误信息中常见的片段
_NOT_FOUND_MARKERS = ("does not exist", "not found", "notexists", "deleted")


class SuiRpcClient:
    """Sui JSON-RPC 客户端"""

    def __init__(
        self,
        rpc_url: str,
        network: str = "mainnet",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        初始化客户端

        Args:
            rpc_url: Sui RPC 节点 URL
            network: 网络名 (仅用于日志和错误信息)
            timeout: 单次请求超时 (秒)
            http_client: 可选的共享 httpx 客户端 (测试注入 MockTransport)
        """
        self.rpc_url = rpc_url
        self.network = network
        self.timeout = timeout
        self._http_client = http_client
        self._request_id = 0

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.rpc_url, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.rpc_url, json=payload)

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        发送一次 JSON-RPC 请求

        Returns:
            result 字段

        Raises:
            SuiRpcError: 传输失败或 RPC 返回 error
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        try:
            response = await self._post(payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise SuiRpcError(method, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise SuiRpcError(method, f"invalid JSON response: {e}") from e

        if "error" in data:
            error = data["error"] or {}
            raise SuiRpcError(method, str(error.get("message", error)), error.get("code"))

        return data.get("result")

    # ------------------------------------------------------------------
    # ModuleSource
    # ------------------------------------------------------------------

    async def get_normalized_modules(self, package_id: str) -> Dict[str, Any]:
        """获取包内全部模块的 normalized 描述"""
        try:
            result = await self.call("sui_getNormalizedMoveModulesByPackage", [package_id])
        except SuiRpcError as e:
            if e.code is not None and any(m in str(e).lower() for m in _NOT_FOUND_MARKERS):
                raise PackageNotFoundError(package_id, [self.network]) from e
            raise

        if not result:
            raise PackageNotFoundError(package_id, [self.network])
        return result

    # ------------------------------------------------------------------
    # DynamicFieldSource
    # ------------------------------------------------------------------

    async def list_dynamic_fields(self, object_id: str) -> List[Dict[str, Any]]:
        """对象的直接动态字段 (仅第一页)"""
        result = await self.call("suix_getDynamicFields", [object_id])
        return (result or {}).get("data", [])

    async def get_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        """对象的 owner 与类型；对象不存在时返回 None"""
        result = await self.call(
            "sui_getObject",
            [object_id, {"showOwner": True, "showType": True}],
        )
        if not result or "data" not in result:
            logger.debug(f"Object {object_id} not available on {self.network}: {result}")
            return None
        return result["data"]

    # ------------------------------------------------------------------
    # EventSource
    # ------------------------------------------------------------------

    async def query_events(self, query: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
        """按过滤条件查询最近的事件 (倒序)"""
        result = await self.call("suix_queryEvents", [query, None, limit, True])
        return (result or {}).get("data", [])
