"""
Spiget 仓库

SpigotMC 资源站的 Spiget 镜像 API，只提供插件。
"""

import asyncio
import re
from typing import List, Optional
from urllib.parse import quote

import aiohttp
from loguru import logger

from shulkers.api.http import DEFAULT_TIMEOUT, JSONClient
from shulkers.exceptions import NotFoundError, ShulkersError
from shulkers.models import (
    AssetType,
    DetailedResource,
    SearchResult,
    VersionEntry,
    VersionInfo,
)

SPIGET_BASE_URL = "https://api.spiget.org/v2"
SPIGOT_SITE_URL = "https://www.spigotmc.org/resources"

SEARCH_FIELDS = "id,name,tag,author,version,downloads,testedVersions,external,premium"
VERSION_LOOKUP_LIMIT = 10


def sanitize_file_name(name: str) -> str:
    """空白替换为下划线，去掉其他非法字符"""
    return re.sub(r"[^\w.-]", "", re.sub(r"\s+", "_", name))


class SpigetRepository:
    """Spiget (SpigotMC) 仓库"""

    id = "spiget"
    name = "Spiget (SpigotMC)"
    base_url = SPIGET_BASE_URL
    asset_types = [AssetType.PLUGIN]

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = "shulkers-cli/1.0.0",
        timeout: float = DEFAULT_TIMEOUT,
        search_limit: int = 20,
    ):
        self.client = JSONClient(
            self.base_url,
            session=session,
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )
        self.search_limit = search_limit

    async def close(self):
        """关闭自有的 session，共用的 session 由注册表关闭"""
        await self.client.close()

    async def search(
        self, query: str, loaders: Optional[List[str]] = None
    ) -> List[SearchResult]:
        try:
            results = await self.client.get_json(
                f"search/resources/{quote(query, safe='')}",
                {"size": self.search_limit, "fields": SEARCH_FIELDS},
            )
        except NotFoundError:
            # Spiget 没有结果时返回 404
            return []

        latest = await asyncio.gather(
            *(self._latest_version_name(res["id"]) for res in results[:VERSION_LOOKUP_LIMIT])
        )
        version_map = {
            res["id"]: name for res, name in zip(results[:VERSION_LOOKUP_LIMIT], latest)
        }

        return [
            SearchResult(
                id=str(res["id"]),
                name=res.get("name", ""),
                description=res.get("tag") or "",
                author=str((res.get("author") or {}).get("id", "")),
                version=version_map.get(res["id"]) or "latest",
                downloads=res.get("downloads", 0),
                source="spigot",
                url=f"{SPIGOT_SITE_URL}/{res['id']}",
                types=[AssetType.PLUGIN],
            )
            for res in results
        ]

    async def _latest_version_name(self, resource_id) -> Optional[str]:
        try:
            version = await self.client.get_json(f"resources/{resource_id}/versions/latest")
        except ShulkersError as e:
            logger.debug(f"获取 {resource_id} 的最新版本失败: {e}")
            return None
        return version.get("name")

    async def get_resource(self, idx: str) -> DetailedResource:
        res = await self.client.get_json(f"resources/{idx}")
        version_id = (res.get("version") or {}).get("id")

        return DetailedResource(
            id=str(res["id"]),
            name=res.get("name", ""),
            description=res.get("tag") or "",
            author=str((res.get("author") or {}).get("id", "")),
            version=str(version_id) if version_id is not None else "unknown",
            downloads=res.get("downloads", 0),
            source="spigot",
            url=f"{SPIGOT_SITE_URL}/{res['id']}",
            types=[AssetType.PLUGIN],
            tested_versions=res.get("testedVersions") or [],
            external=bool(res.get("external", False)),
            premium=bool(res.get("premium", False)),
        )

    async def get_versions(self, idx: str) -> List[VersionEntry]:
        # 默认按 ID 升序返回，这里要求按发布时间倒序
        versions = await self.client.get_json(
            f"resources/{idx}/versions", {"size": 20, "sort": "-releaseDate"}
        )
        return [
            VersionEntry(
                id=str(v["id"]),
                name=v.get("name", ""),
                release_date=float(v.get("releaseDate", 0)),
                downloads=v.get("downloads", 0),
            )
            for v in versions
        ]

    async def get_latest_version(
        self, idx: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        resource, latest = await asyncio.gather(
            self.client.get_json(f"resources/{idx}"),
            self.client.get_json(f"resources/{idx}/versions/latest"),
        )
        return VersionInfo(
            id=idx,
            version=latest.get("name", ""),
            download_url=f"{self.base_url}/resources/{idx}/download",
            file_name=sanitize_file_name(resource.get("name", idx)) + ".jar",
        )

    async def get_version_download(
        self, idx: str, version: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        resource, versions = await asyncio.gather(
            self.client.get_json(f"resources/{idx}"),
            self.get_versions(idx),
        )

        target = next((v for v in versions if version in (v.name, v.id)), None)
        if target is None:
            raise NotFoundError(
                f"资源 {idx} 不存在版本 {version}",
                context={"id": idx, "version": version},
            )

        return VersionInfo(
            id=idx,
            version=target.name,
            download_url=f"{self.base_url}/resources/{idx}/versions/{target.id}/download",
            file_name=sanitize_file_name(resource.get("name", idx)) + ".jar",
        )
