"""
Sui GraphQL 客户端

按 StructType 分页查询链上对象。
注意: GraphQL 端点目前只在 mainnet 配置，其他网络返回空结果。
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import SuiRpcError
from .sources import CountEstimate, ObjectPage

logger = logging.getLogger(__name__)

OBJECTS_BY_TYPE_QUERY = """
query ObjectsByType($type: String!, $first: Int!, $after: String) {
  objects(filter: { type: $type }, first: $first, after: $after) {
    nodes {
      address
      version
      digest
      owner {
        __typename
        ... on AddressOwner {
          owner {
            address
          }
        }
        ... on Parent {
          parent {
            address
          }
        }
        ... on Shared {
          initialSharedVersion
        }
      }
      asMoveObject {
        contents {
          type {
            repr
          }
          json
        }
      }
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""


class SuiGraphQLClient:
    """Sui GraphQL 对象查询客户端"""

    def __init__(
        self,
        endpoint: Optional[str],
        network: str = "mainnet",
        timeout: float = 30.0,
        page_size: int = 50,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.network = network
        self.timeout = timeout
        self.page_size = page_size
        self._http_client = http_client

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(self.endpoint, json=payload, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint, json=payload)

    async def query_page(self, type_fqn: str, limit: int, cursor: Optional[str] = None) -> ObjectPage:
        """
        查询一页指定类型的对象

        Args:
            type_fqn: 类型全名 (0xP::m::S)
            limit: 页大小
            cursor: 上一页的 endCursor

        Returns:
            ObjectPage (objects 为原始 GraphQL 节点)
        """
        if not self.endpoint:
            logger.warning(f"GraphQL not available for {self.network}, returning empty result")
            return ObjectPage()

        payload = {
            "query": OBJECTS_BY_TYPE_QUERY,
            "variables": {"type": type_fqn, "first": limit, "after": cursor},
        }
        logger.debug(f"Querying objects for type: {type_fqn} (limit={limit}, cursor={(cursor or 'none')[:20]})")

        try:
            response = await self._post(payload)
            response.raise_for_status()
            result = response.json()
        except httpx.TimeoutException as e:
            raise SuiRpcError("graphql.objects", f"query timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise SuiRpcError("graphql.objects", f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise SuiRpcError("graphql.objects", f"invalid JSON response: {e}") from e

        if result.get("errors"):
            raise SuiRpcError("graphql.objects", str(result["errors"][0].get("message", result["errors"])))

        objects = ((result.get("data") or {}).get("objects"))
        if objects is None:
            raise SuiRpcError("graphql.objects", "Invalid GraphQL response: missing data.objects")

        page_info = objects.get("pageInfo") or {}
        nodes = objects.get("nodes") or []
        logger.debug(f"Found {len(nodes)} objects for type {type_fqn} (hasNextPage={page_info.get('hasNextPage', False)})")

        return ObjectPage(
            objects=nodes,
            next_cursor=page_info.get("endCursor"),
            has_next_page=bool(page_info.get("hasNextPage", False)),
        )

    async def estimate_count(self, type_fqn: str) -> CountEstimate:
        """只取第一页估算数量"""
        page = await self.query_page(type_fqn, self.page_size)
        return CountEstimate(estimated_count=len(page.objects), has_more=page.has_next_page)
