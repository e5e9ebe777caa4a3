from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from shulkers.exceptions import NotFoundError
from shulkers.models import (
    AssetType,
    DetailedResource,
    ProjectConfig,
    SearchResult,
    ServerCategory,
    ServerConfig,
    VersionEntry,
    VersionInfo,
)


def make_get_json(responses: Dict[str, Any]) -> AsyncMock:
    """
    按请求路径返回预置数据的 get_json 替身

    未登记的路径抛 NotFoundError，值为异常时抛出该异常。
    """

    async def get_json(path: str, params: Optional[Dict[str, Any]] = None):
        if path not in responses:
            raise NotFoundError(f"资源不存在: {path}")
        value = responses[path]
        if isinstance(value, Exception):
            raise value
        return value

    return AsyncMock(side_effect=get_json)


@pytest.fixture
def fake_api():
    return make_get_json


class FakeRepository:
    """记录调用的内存仓库"""

    def __init__(
        self,
        id: str = "fake",
        name: str = "Fake",
        asset_types: Optional[List[AssetType]] = None,
        search_results: Optional[List[SearchResult]] = None,
        resource: Optional[DetailedResource] = None,
        versions: Optional[List[VersionEntry]] = None,
    ):
        self.id = id
        self.name = name
        self.base_url = f"https://{id}.example.com"
        self.asset_types = asset_types or [AssetType.PLUGIN]
        self.search = AsyncMock(return_value=search_results or [])
        self.get_resource = AsyncMock(return_value=resource)
        self.get_versions = AsyncMock(return_value=versions or [])
        self.get_latest_version = AsyncMock(side_effect=self._latest)
        self.get_version_download = AsyncMock(side_effect=self._download)
        self.close = AsyncMock()

    async def _latest(self, idx, loaders=None):
        return VersionInfo(
            id=idx,
            version="latest",
            download_url=f"{self.base_url}/{idx}/latest.jar",
            file_name=f"{idx}-latest.jar",
        )

    async def _download(self, idx, version, loaders=None):
        return VersionInfo(
            id=idx,
            version=version,
            download_url=f"{self.base_url}/{idx}/{version}.jar",
            file_name=f"{idx}-{version}.jar",
        )


def make_result(idx: str, name: str, source: str = "fake", types=None) -> SearchResult:
    return SearchResult(
        id=idx,
        name=name,
        description="",
        author="someone",
        version="1.0.0",
        downloads=0,
        source=source,
        url=f"https://example.com/{idx}",
        types=types or [AssetType.PLUGIN],
    )


def make_resource(idx: str, name: str, source: str = "spigot", **kwargs) -> DetailedResource:
    return DetailedResource(
        id=idx,
        name=name,
        description="",
        author="someone",
        version="1.0.0",
        downloads=0,
        source=source,
        url=f"https://example.com/{idx}",
        types=[AssetType.PLUGIN],
        **kwargs,
    )


def make_versions(*names: str, game_versions=None) -> List[VersionEntry]:
    return [
        VersionEntry(
            id=f"v-{name}",
            name=name,
            release_date=0.0,
            downloads=0,
            game_versions=game_versions,
        )
        for name in names
    ]


@pytest.fixture
def paper_project() -> ProjectConfig:
    return ProjectConfig(
        name="survival",
        server=ServerConfig(type="paper", version="1.20.1"),
        server_category=ServerCategory.PLUGIN,
    )
