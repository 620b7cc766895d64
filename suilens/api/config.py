"""
服务配置模块
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """服务配置 (环境变量 / .env)"""

    # 应用信息
    app_name: str = "SuiLens API"
    app_version: str = "0.2.0"
    debug: bool = True

    # 服务监听
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # 数据库
    database_url: str = "sqlite+aiosqlite:///./data/suilens.db"

    # Sui 节点
    sui_rpc_url_mainnet: str = "https://fullnode.mainnet.sui.io:443"
    sui_rpc_url_testnet: str = "https://fullnode.testnet.sui.io:443"
    sui_rpc_url_devnet: str = "https://fullnode.devnet.sui.io:443"
    # GraphQL 只配置了 mainnet；其他网络的对象发现返回空结果
    sui_graphql_url_mainnet: str = "https://sui-mainnet.mystenlabs.com/graphql"
    sui_graphql_url_testnet: Optional[str] = None
    sui_request_timeout: float = 30.0

    # 日志
    log_level: str = "INFO"

    # 已结束任务在内存中保留的秒数 (之后只能通过 analysisId 查询结果)
    job_retention_seconds: int = 3600

    # CORS 配置
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # 忽略 .env 中的额外字段

    def rpc_url_for(self, network: str) -> str:
        urls = {
            "mainnet": self.sui_rpc_url_mainnet,
            "testnet": self.sui_rpc_url_testnet,
            "devnet": self.sui_rpc_url_devnet,
        }
        if network not in urls:
            raise ValueError(f"Unsupported network: {network}")
        return urls[network]

    def graphql_url_for(self, network: str) -> Optional[str]:
        if network == "mainnet":
            return self.sui_graphql_url_mainnet
        if network == "testnet":
            return self.sui_graphql_url_testnet
        return None


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
