"""
通用 JSON 仓库

完全由配置驱动：URL 模板加点路径字段映射，适配任意结构的 JSON API。
不支持真正的版本历史，版本列表只包含由最新版本生成的一项。
"""

import time
from typing import Any, List, Optional
from urllib.parse import quote

import aiohttp

from shulkers.api.http import DEFAULT_TIMEOUT, JSONClient
from shulkers.exceptions import NoFilesFoundError, NotFoundError
from shulkers.models import (
    AssetType,
    DetailedResource,
    GenericRepositoryConfig,
    SearchResult,
    VersionEntry,
    VersionInfo,
)


def resolve_path(obj: Any, path: str) -> Any:
    """
    按点路径取值，例如 "data.items.0.name"

    任一中间键不存在时返回 None，不抛异常。空路径返回对象本身。
    """
    if not path:
        return obj
    current = obj
    for key in path.split("."):
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None
    return current


def to_safe_string(value: Any) -> str:
    """
    转为字符串

    对象和数组一律返回空字符串，而不是它们的字符串表示。
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def render_template(template: str, **values: str) -> str:
    """替换 {{name}} 占位符"""
    for key, value in values.items():
        template = template.replace("{{" + key + "}}", value)
    return template


class GenericRepository:
    """配置驱动的通用 JSON 仓库"""

    asset_types = [AssetType.PLUGIN]

    def __init__(
        self,
        config: GenericRepositoryConfig,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = "shulkers-cli/1.0.0",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.config = config
        self.id = config.id
        self.name = config.name
        self.base_url = config.base_url
        self.client = JSONClient(
            self.base_url,
            session=session,
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )

    async def close(self):
        """关闭自有的 session，共用的 session 由注册表关闭"""
        await self.client.close()

    async def search(
        self, query: str, loaders: Optional[List[str]] = None
    ) -> List[SearchResult]:
        path = render_template(self.config.search_path, query=quote(query, safe=""))
        try:
            response = await self.client.get_json(path)
        except NotFoundError:
            return []

        mappings = self.config.mappings
        results = resolve_path(response, mappings.results_path)
        if not isinstance(results, list):
            return []

        items = []
        for item in results:
            item_id = to_safe_string(resolve_path(item, mappings.id))
            items.append(
                SearchResult(
                    id=item_id,
                    name=to_safe_string(resolve_path(item, mappings.name)) or "Unknown",
                    description=to_safe_string(resolve_path(item, mappings.description)),
                    author=to_safe_string(resolve_path(item, mappings.author)) or "Unknown",
                    version="latest",
                    downloads=0,
                    source=self.id,
                    url=f"{self.base_url}/{item_id}",
                    types=[AssetType.PLUGIN],
                )
            )
        return items

    async def get_resource(self, idx: str) -> DetailedResource:
        """只能返回最少的信息"""
        latest = await self.get_latest_version(idx)
        return DetailedResource(
            id=idx,
            name=idx,
            description="",
            author="Unknown",
            version=latest.version,
            downloads=0,
            source=self.id,
            url=f"{self.base_url}/{idx}",
            types=[AssetType.PLUGIN],
        )

    async def get_versions(self, idx: str) -> List[VersionEntry]:
        latest = await self.get_latest_version(idx)
        return [
            VersionEntry(
                id=latest.version,
                name=latest.version,
                release_date=time.time(),
                downloads=0,
            )
        ]

    async def get_latest_version(
        self, idx: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        response = await self.client.get_json(
            render_template(self.config.version_path, id=idx)
        )

        mappings = self.config.version_mappings
        version = to_safe_string(resolve_path(response, mappings.version))
        file_name = ""
        if mappings.file_name:
            file_name = to_safe_string(resolve_path(response, mappings.file_name))
        download_url = to_safe_string(resolve_path(response, mappings.download_url))

        if not download_url:
            raise NoFilesFoundError(
                f"{self.name} 没有返回 {idx} 的下载地址",
                context={"repository": self.id, "id": idx},
            )

        return VersionInfo(
            id=idx,
            version=version,
            download_url=self.client.url(download_url),
            file_name=file_name or f"{idx}-{version}.jar",
        )

    async def get_version_download(
        self, idx: str, version: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        """配置了 downloadPath 时直接拼出下载地址，否则退回最新版本"""
        if not self.config.download_path:
            return await self.get_latest_version(idx)

        file_name = f"{idx}-{version}.jar"
        path = render_template(
            self.config.download_path,
            id=idx,
            version=quote(version, safe=""),
            fileName=quote(file_name, safe=""),
        )
        return VersionInfo(
            id=idx,
            version=version,
            download_url=self.client.url(path),
            file_name=file_name,
        )
