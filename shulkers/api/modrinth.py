"""
Modrinth 仓库

固定结构的插件/模组市场，带加载器分类体系。
"""

import asyncio
import json
from typing import Dict, List, Optional

import aiohttp
from loguru import logger

from shulkers.api.http import DEFAULT_TIMEOUT, JSONClient
from shulkers.exceptions import NoFilesFoundError, NotFoundError, ShulkersError
from shulkers.models import (
    AssetType,
    DetailedResource,
    SearchResult,
    VersionEntry,
    VersionInfo,
)
from shulkers.loaders import (
    MOD_LOADERS,
    PLUGIN_LOADERS,
    asset_types_from_loaders,
)
from shulkers.utils import parse_timestamp

MODRINTH_BASE_URL = "https://api.modrinth.com/v2"
MODRINTH_SITE_URL = "https://modrinth.com/project"

# 搜索时额外拉取版本历史的结果数量上限
VERSION_LOOKUP_LIMIT = 10


def build_facets(loaders: Optional[List[str]]) -> Optional[str]:
    """
    根据加载器生成搜索分面

    同一组内为 OR，组与组之间为 AND。只有插件加载器或只有模组加载器时
    额外加上 project_type 分面，混合或为空时不加。
    """
    if not loaders:
        return None

    loader_facets: List[str] = []
    has_plugin_loader = False
    has_mod_loader = False

    for loader in loaders:
        loader = loader.lower()
        if loader in PLUGIN_LOADERS:
            has_plugin_loader = True
            if loader == "spigot":
                # Spigot 插件在 Modrinth 上通常标为 bukkit 或 paper
                loader_facets.extend(["categories:bukkit", "categories:paper"])
            else:
                loader_facets.append(f"categories:{loader}")
        elif loader in MOD_LOADERS:
            has_mod_loader = True
            loader_facets.append(f"categories:{loader}")

    if has_plugin_loader and "categories:bukkit" not in loader_facets:
        loader_facets.append("categories:bukkit")

    facets: List[List[str]] = []
    unique = list(dict.fromkeys(loader_facets))
    if unique:
        facets.append(unique)

    if has_plugin_loader and not has_mod_loader:
        facets.append(["project_type:plugin"])
    elif has_mod_loader and not has_plugin_loader:
        facets.append(["project_type:mod"])

    return json.dumps(facets) if facets else None


def filter_by_loaders(versions: List[dict], loaders: Optional[List[str]]) -> List[dict]:
    """按加载器过滤版本，过滤后为空时退回完整列表"""
    if not loaders:
        return versions
    wanted = {loader.lower() for loader in loaders}
    filtered = [
        version
        for version in versions
        if any(loader.lower() in wanted for loader in version.get("loaders", []))
    ]
    return filtered or versions


def primary_file(version: dict) -> Optional[dict]:
    """获取主文件，没有标记 primary 时取第一个"""
    files = version.get("files") or []
    for file in files:
        if file.get("primary", False):
            return file
    return files[0] if files else None


class ModrinthRepository:
    """Modrinth API 仓库"""

    id = "modrinth"
    name = "Modrinth"
    base_url = MODRINTH_BASE_URL
    asset_types = [AssetType.MOD, AssetType.PLUGIN]

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = "shulkers-cli/1.0.0 (https://github.com/Crysta1221/shulkers)",
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
        params = {"query": query, "limit": self.search_limit, "index": "relevance"}
        facets = build_facets(loaders)
        if facets:
            params["facets"] = facets

        try:
            response = await self.client.get_json("search", params)
        except NotFoundError:
            return []

        hits = response.get("hits") or []

        # 搜索结果中的 latest_version 不可靠（可能是旧版本或其他加载器的版本），
        # 这里逐个拉取版本历史重新计算
        latest = await asyncio.gather(
            *(
                self._find_latest_version_number(hit["project_id"], loaders)
                for hit in hits[:VERSION_LOOKUP_LIMIT]
            )
        )
        version_map: Dict[str, Optional[str]] = {
            hit["project_id"]: version
            for hit, version in zip(hits[:VERSION_LOOKUP_LIMIT], latest)
        }

        return [
            SearchResult(
                id=hit["project_id"],
                name=hit.get("title", ""),
                description=hit.get("description", ""),
                author=hit.get("author", ""),
                version=version_map.get(hit["project_id"]) or "latest",
                downloads=hit.get("downloads", 0),
                source="modrinth",
                url=f"{MODRINTH_SITE_URL}/{hit.get('slug') or hit['project_id']}",
                types=asset_types_from_loaders(hit.get("categories") or []),
            )
            for hit in hits
        ]

    async def _find_latest_version_number(
        self, project_id: str, loaders: Optional[List[str]]
    ) -> Optional[str]:
        """按发布时间找出最新（兼容）版本号，失败时返回 None"""
        try:
            versions = await self.client.get_json(f"project/{project_id}/version")
        except ShulkersError as e:
            logger.debug(f"获取 {project_id} 的版本历史失败: {e}")
            return None

        if not versions:
            return None
        candidates = sorted(
            filter_by_loaders(versions, loaders),
            key=lambda v: parse_timestamp(v.get("date_published")),
            reverse=True,
        )
        return candidates[0].get("version_number")

    async def get_resource(self, idx: str) -> DetailedResource:
        project = await self.client.get_json(f"project/{idx}")

        author = "Unknown"
        try:
            members = await self.client.get_json(f"project/{idx}/members")
            owner = next((m for m in members if m.get("role") == "Owner"), None)
            if owner:
                author = owner["user"]["username"]
        except (ShulkersError, KeyError, TypeError) as e:
            logger.debug(f"获取 {idx} 的团队成员失败: {e}")

        return DetailedResource(
            id=project["id"],
            name=project.get("title", ""),
            description=project.get("description", ""),
            author=author,
            version="latest",
            downloads=project.get("downloads", 0),
            source="modrinth",
            url=f"{MODRINTH_SITE_URL}/{project.get('slug') or project['id']}",
            types=asset_types_from_loaders(project.get("loaders") or []),
            tested_versions=project.get("game_versions") or [],
            external=False,
            premium=False,
        )

    async def get_versions(self, idx: str) -> List[VersionEntry]:
        versions = await self.client.get_json(f"project/{idx}/version")
        return [
            VersionEntry(
                id=version["id"],
                name=version["version_number"],
                release_date=parse_timestamp(version.get("date_published")),
                downloads=version.get("downloads", 0),
                game_versions=version.get("game_versions"),
            )
            for version in versions
        ]

    async def get_latest_version(
        self, idx: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        versions = await self.client.get_json(f"project/{idx}/version")
        compatible = filter_by_loaders(versions or [], loaders)
        if not compatible:
            raise NotFoundError(f"项目 {idx} 没有任何版本", context={"id": idx})

        return self._to_version_info(idx, compatible[0])

    async def get_version_download(
        self, idx: str, version: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        versions = await self.client.get_json(f"project/{idx}/version")

        matches = [
            v
            for v in versions or []
            if v.get("version_number") == version or v.get("id") == version
        ]
        if not matches:
            raise NotFoundError(
                f"项目 {idx} 不存在版本 {version}",
                context={"id": idx, "version": version},
            )

        # 同一个版本号可能按加载器拆分为多个版本，优先选择兼容的那个
        return self._to_version_info(idx, filter_by_loaders(matches, loaders)[0])

    def _to_version_info(self, idx: str, version: dict) -> VersionInfo:
        file = primary_file(version)
        if file is None:
            raise NoFilesFoundError(
                f"版本 {version.get('version_number')} 没有可下载的文件",
                context={"id": idx, "version": version.get("version_number")},
            )
        return VersionInfo(
            id=idx,
            version=version["version_number"],
            download_url=file["url"],
            file_name=file["filename"],
        )
