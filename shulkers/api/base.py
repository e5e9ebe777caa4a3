"""
仓库能力接口

所有仓库（Modrinth、Spiget、通用 JSON、GitHub Releases）都实现同一个 Protocol，
注册表只依赖这个接口，不关心具体后端。
"""

from typing import List, Optional, Protocol, runtime_checkable

from shulkers.models import (
    AssetType,
    DetailedResource,
    SearchResult,
    VersionEntry,
    VersionInfo,
)


@runtime_checkable
class Repository(Protocol):
    """插件/模组仓库"""

    id: str
    name: str
    base_url: str
    asset_types: List[AssetType]

    async def search(
        self, query: str, loaders: Optional[List[str]] = None
    ) -> List[SearchResult]:
        """
        搜索插件/模组。

        上游明确返回“无结果”时返回空列表，其他错误向上抛出。
        """
        ...

    async def get_resource(self, idx: str) -> DetailedResource:
        """获取资源详情"""
        ...

    async def get_versions(self, idx: str) -> List[VersionEntry]:
        """获取版本列表（顺序由来源决定）"""
        ...

    async def get_latest_version(
        self, idx: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        """获取最新版本的下载信息"""
        ...

    async def get_version_download(
        self, idx: str, version: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        """获取指定版本的下载信息"""
        ...

    async def close(self):
        """释放仓库持有的连接"""
        ...