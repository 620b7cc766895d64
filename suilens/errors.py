"""
异常类

- SuiRpcError: RPC / GraphQL 传输或协议错误
- PackageNotFoundError: 包在候选网络上都不存在 (致命)
- AnalysisError: 单包分析中未处理的异常
"""
from typing import Optional, Sequence


class SuiLensError(Exception):
    """SuiLens 异常基类"""
    pass


class SuiRpcError(SuiLensError):
    """Sui RPC 调用失败"""
    def __init__(self, method: str, message: str, code: Optional[int] = None):
        self.method = method
        self.code = code
        super().__init__(f"RPC 错误 [{method}]: {message}")


class PackageNotFoundError(SuiLensError):
    """包不存在于任何候选网络"""
    def __init__(self, package_id: str, networks: Sequence[str]):
        self.package_id = package_id
        self.networks = list(networks)
        super().__init__(
            f"Package {package_id} not found on any network (tried: {', '.join(self.networks)})"
        )


class AnalysisError(SuiLensError):
    """单包分析失败"""
    def __init__(self, package_id: str, cause: BaseException):
        self.package_id = package_id
        self.cause = cause
        super().__init__(f"Failed to analyze package {package_id}: {cause}")
