"""
Shulkers 数据模型包

包含 API 模型、项目模型和仓库配置模型定义。
"""

from shulkers.models.api import (
    AssetType,
    SearchResult,
    DetailedResource,
    VersionEntry,
    VersionInfo,
)
from shulkers.models.project import (
    DependencySource,
    DependencyRecord,
    ServerCategory,
    ServerConfig,
    ProjectConfig,
    server_category,
)
from shulkers.models.config import (
    GenericMappings,
    GenericVersionMappings,
    GenericRepositoryConfig,
    ReleaseHostEntry,
    parse_release_entries,
)

__all__ = [
    # API 模型
    "AssetType",
    "SearchResult",
    "DetailedResource",
    "VersionEntry",
    "VersionInfo",
    # 项目模型
    "DependencySource",
    "DependencyRecord",
    "ServerCategory",
    "ServerConfig",
    "ProjectConfig",
    "server_category",
    # 仓库配置
    "GenericMappings",
    "GenericVersionMappings",
    "GenericRepositoryConfig",
    "ReleaseHostEntry",
    "parse_release_entries",
]
