"""
Shulkers - Minecraft 服务器插件/模组管理工具

跨仓库搜索、解析 source:id@version、下载并在 project.yml 中记录依赖。
"""

__version__ = "1.0.0"
__author__ = "Shulkers Team"

__all__ = [
    "__version__",
    "__author__",
]
