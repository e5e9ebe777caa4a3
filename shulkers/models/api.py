"""
API 数据模型

定义各仓库统一返回的数据类：搜索结果、资源详情、版本条目和可下载版本。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class AssetType(Enum):
    """资源类型"""

    MOD = "mod"
    PLUGIN = "plugin"


@dataclass
class SearchResult:
    """
    搜索结果。

    id 只在其来源仓库内唯一。
    """

    id: str
    name: str
    description: str
    author: str
    version: str
    downloads: int
    source: str
    url: str
    types: List[AssetType] = field(default_factory=list)


@dataclass
class DetailedResource(SearchResult):
    """
    资源详情。

    external 表示无法通过程序下载（需要用户在网页上手动下载），
    premium 表示需要付费。两者都意味着不能自动安装。
    """

    tested_versions: List[str] = field(default_factory=list)
    external: bool = False
    premium: bool = False

    @property
    def installable(self) -> bool:
        """是否可以自动下载安装"""
        return not (self.external or self.premium)


@dataclass
class VersionEntry:
    """
    版本历史中的一项。

    列表顺序由来源决定，调用方不能假设是按时间倒序。
    """

    id: str
    name: str
    release_date: float
    downloads: int
    game_versions: Optional[List[str]] = None


@dataclass
class VersionInfo:
    """已解析、可直接下载的版本"""

    id: str
    version: str
    download_url: str
    file_name: str
