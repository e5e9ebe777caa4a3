"""
Shulkers 下载层

包含插件/模组文件下载和目标目录计算。
"""

from shulkers.download.manager import DownloadManager, DownloadResult, plugin_directory

__all__ = [
    "DownloadManager",
    "DownloadResult",
    "plugin_directory",
]
