"""
SuiLens 命令行工具

- analyze: 分析单个包并输出图数据 JSON
- serve: 按 Settings 启动 API 服务
"""
