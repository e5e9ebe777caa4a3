"""
GitHub Releases 仓库

把用户维护的 GitHub 仓库列表当作分发渠道：版本即 Release 标签，文件即 Release 附件。
"""

import asyncio
import re
from typing import Dict, List, Optional, Tuple

import aiohttp
from loguru import logger

from shulkers.api.http import DEFAULT_TIMEOUT, JSONClient
from shulkers.exceptions import (
    ConfigValidationError,
    NoFilesFoundError,
    NotFoundError,
    ShulkersError,
)
from shulkers.models import (
    AssetType,
    DetailedResource,
    ReleaseHostEntry,
    SearchResult,
    VersionEntry,
    VersionInfo,
)
from shulkers.utils import parse_timestamp

GITHUB_API_URL = "https://api.github.com"
ASSET_EXTENSION = ".jar"
TAG_PREFIX = "v"

_GITHUB_URL_RE = re.compile(r"github\.com/([^/]+)/([^/]+)")


def parse_github_url(url: str) -> Tuple[str, str]:
    """从 GitHub URL 解析 (owner, repo)"""
    match = _GITHUB_URL_RE.search(url)
    if not match:
        raise ConfigValidationError(f"无效的 GitHub URL: {url}", context={"url": url})
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return owner, repo


def tag_candidates(version: str) -> List[str]:
    """按顺序尝试的标签：原样、补上 v 前缀、去掉 v 前缀"""
    candidates = [version]
    if not version.startswith(TAG_PREFIX):
        candidates.append(TAG_PREFIX + version)
    else:
        candidates.append(version[len(TAG_PREFIX) :])
    return list(dict.fromkeys(c for c in candidates if c))


def find_asset(release: dict) -> Optional[dict]:
    return next(
        (a for a in release.get("assets") or [] if a.get("name", "").endswith(ASSET_EXTENSION)),
        None,
    )


class GitHubRepository:
    """GitHub Releases 仓库"""

    id = "github"
    name = "GitHub Releases"
    base_url = GITHUB_API_URL
    asset_types = [AssetType.PLUGIN]

    def __init__(
        self,
        entries: Optional[List[ReleaseHostEntry]] = None,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = "shulkers-cli/1.0.0",
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.client = JSONClient(
            self.base_url,
            session=session,
            headers={
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": user_agent,
            },
            timeout=timeout,
        )
        self.repositories: Dict[str, ReleaseHostEntry] = {}
        self.load_repositories(entries or [])

    def load_repositories(self, entries: List[ReleaseHostEntry]):
        """载入仓库条目，ID 为 owner/repo"""
        self.repositories.clear()
        for entry in entries:
            try:
                owner, repo = parse_github_url(entry.url)
            except ConfigValidationError as e:
                logger.warning(f"跳过 GitHub 仓库条目: {e}")
                continue
            self.repositories[f"{owner}/{repo}"] = entry

    def _entry(self, idx: str) -> Tuple[ReleaseHostEntry, str]:
        entry = self.repositories.get(idx)
        if entry is None:
            raise NotFoundError(f"未配置 GitHub 仓库: {idx}", context={"id": idx})
        owner, repo = parse_github_url(entry.url)
        return entry, f"repos/{owner}/{repo}"

    async def close(self):
        """关闭自有的 session，共用的 session 由注册表关闭"""
        await self.client.close()

    async def search(
        self, query: str, loaders: Optional[List[str]] = None
    ) -> List[SearchResult]:
        lowered = query.lower()
        matched = [
            idx
            for idx, entry in self.repositories.items()
            if lowered in entry.name.lower() or lowered in idx.lower()
        ]
        results = await asyncio.gather(*(self._search_result(idx) for idx in matched))
        return [result for result in results if result is not None]

    async def _search_result(self, idx: str) -> Optional[SearchResult]:
        entry, path = self._entry(idx)
        try:
            info = await self.client.get_json(path)
        except ShulkersError as e:
            logger.debug(f"无法访问 GitHub 仓库 {idx}: {e}")
            return None
        return SearchResult(
            id=idx,
            name=entry.name,
            description=info.get("description") or "",
            author=idx.split("/")[0],
            version="latest",
            downloads=0,
            source="github",
            url=entry.url,
            types=[AssetType.PLUGIN],
        )

    async def get_resource(self, idx: str) -> DetailedResource:
        entry, path = self._entry(idx)
        info = await self.client.get_json(path)
        return DetailedResource(
            id=idx,
            name=entry.name,
            description=info.get("description") or "",
            author=idx.split("/")[0],
            version="latest",
            downloads=0,
            source="github",
            url=entry.url,
            types=[AssetType.PLUGIN],
        )

    async def get_versions(self, idx: str) -> List[VersionEntry]:
        _, path = self._entry(idx)
        releases = await self.client.get_json(f"{path}/releases", {"per_page": 20})
        return [
            VersionEntry(
                id=release["tag_name"],
                name=release["tag_name"].removeprefix(TAG_PREFIX),
                release_date=parse_timestamp(release.get("published_at")),
                downloads=sum(a.get("download_count", 0) for a in release.get("assets") or []),
            )
            for release in releases
        ]

    async def get_latest_version(
        self, idx: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        _, path = self._entry(idx)
        release = await self.client.get_json(f"{path}/releases/latest")
        return self._to_version_info(idx, release)

    async def get_version_download(
        self, idx: str, version: str, loaders: Optional[List[str]] = None
    ) -> VersionInfo:
        _, path = self._entry(idx)

        for tag in tag_candidates(version):
            try:
                release = await self.client.get_json(f"{path}/releases/tags/{tag}")
            except NotFoundError:
                logger.debug(f"{idx} 没有标签 {tag}")
                continue
            return self._to_version_info(idx, release)

        raise NotFoundError(
            f"{idx} 不存在版本 {version}", context={"id": idx, "version": version}
        )

    def _to_version_info(self, idx: str, release: dict) -> VersionInfo:
        asset = find_asset(release)
        if asset is None:
            raise NoFilesFoundError(
                f"{idx} 的 Release {release.get('tag_name')} 中没有 {ASSET_EXTENSION} 文件",
                context={"id": idx, "tag": release.get("tag_name")},
            )
        return VersionInfo(
            id=idx,
            version=release["tag_name"],
            download_url=asset["browser_download_url"],
            file_name=asset["name"],
        )
