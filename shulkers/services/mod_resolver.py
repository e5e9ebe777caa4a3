"""
安装解析服务

把来源描述解析为具体仓库中的资源和下载信息，返回标准化的安装目标。
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from shulkers.api import Repository
from shulkers.exceptions import (
    ExternalOrPremiumResourceError,
    NotFoundError,
    ResolveError,
    ShulkersError,
    UnsupportedSourceError,
)
from shulkers.loaders import compatible_loaders
from shulkers.models import (
    AssetType,
    DependencyRecord,
    DependencySource,
    DetailedResource,
    ProjectConfig,
    SearchResult,
    ServerCategory,
    VersionEntry,
    VersionInfo,
)
from shulkers.services.registry import RepositoryRegistry
from shulkers.services.source_resolver import (
    SOURCE_ALIASES,
    ParsedSource,
    format_source_id,
)

# 每个仓库参与候选的结果数
CANDIDATES_PER_REPOSITORY = 5

_NUMERIC_ID_RE = re.compile(r"^\d+$")
_BUILD_SUFFIX_RE = re.compile(r"[-+]")


@dataclass
class ResolvedInstall:
    """解析完成的安装目标"""

    source: DependencySource
    resource_id: str
    repository: Repository
    resource: DetailedResource
    version_info: VersionInfo
    # 通用仓库的 ID，只在 source 为 private 时存在
    repository_id: Optional[str] = None

    @property
    def source_id(self) -> str:
        if self.repository_id:
            return f"{self.repository_id}:{self.resource_id}"
        return format_source_id(self.source, self.resource_id)

    def to_dependency(self) -> DependencyRecord:
        return DependencyRecord(
            source=self.source,
            id=self.resource_id,
            version=self.version_info.version,
            file_name=self.version_info.file_name,
            repository=self.repository_id,
        )


class ModResolver:
    """安装解析器"""

    def __init__(self, registry: RepositoryRegistry, project: ProjectConfig):
        self.registry = registry
        self.project = project

    @property
    def loaders(self) -> List[str]:
        return compatible_loaders(self.project.server.type)

    @property
    def expected_type(self) -> AssetType:
        if self.project.server_category is ServerCategory.MOD:
            return AssetType.MOD
        return AssetType.PLUGIN

    async def resolve(self, parsed: ParsedSource) -> ResolvedInstall:
        """
        解析 `source:id[@version]`

        Raises:
            ResolveError: 只有搜索关键词，没有来源
            UnsupportedSourceError: 来源没有对应的仓库
            ExternalOrPremiumResourceError: 外部托管或付费资源，不能直接下载
            NotFoundError: 资源或版本不存在
        """
        if parsed.source is None:
            raise ResolveError(
                f"'{parsed.query}' 没有指定来源，请先搜索", context={"query": parsed.query}
            )
        return await self._resolve(parsed.source, parsed.resource_id or "", parsed.version)

    async def resolve_result(
        self, result: SearchResult, version: Optional[str] = None
    ) -> ResolvedInstall:
        """
        解析搜索结果

        内置来源按别名解析；其他结果的来源是通用仓库的 ID，
        安装后记为 private 依赖并保存仓库 ID。
        """
        source = SOURCE_ALIASES.get(result.source.lower())
        if source is not None:
            return await self._resolve(source, result.id, version)

        repository = self.registry.get(result.source)
        if repository is None:
            raise UnsupportedSourceError(
                f"不支持从 {result.source} 安装", context={"source": result.source}
            )
        return await self._resolve(DependencySource.PRIVATE, result.id, version, repository)

    async def _resolve(
        self,
        source: DependencySource,
        idx: str,
        version: Optional[str],
        repository: Optional[Repository] = None,
    ) -> ResolvedInstall:
        if repository is None:
            repository = self.registry.for_source(source)
        if repository is None:
            raise UnsupportedSourceError(
                f"未知来源: {source.value}", context={"source": source.value}
            )

        if source is DependencySource.SPIGOT and not _NUMERIC_ID_RE.match(idx):
            idx = await self._search_spigot_id(repository, idx)

        resource = await repository.get_resource(idx)

        # 外部托管和付费资源必须在请求下载地址之前拦截
        if resource.external or resource.premium:
            raise ExternalOrPremiumResourceError(
                f"{resource.name} 无法直接下载",
                url=resource.url,
                external=resource.external,
                premium=resource.premium,
            )

        if version:
            version_info = await repository.get_version_download(idx, version, self.loaders)
        else:
            version_info = await repository.get_latest_version(idx, self.loaders)

        resolved = ResolvedInstall(
            source=source,
            resource_id=idx,
            repository=repository,
            resource=resource,
            version_info=version_info,
            repository_id=repository.id if source is DependencySource.PRIVATE else None,
        )
        logger.debug(f"解析完成: {resolved.source_id} -> v{version_info.version}")
        return resolved

    async def _search_spigot_id(self, repository: Repository, name: str) -> str:
        """按名称搜索 Spigot 资源 ID：优先完全同名，否则取第一个结果"""
        results = await repository.search(name)
        if not results:
            raise NotFoundError(
                f"在 {repository.name} 上没有找到 '{name}'", context={"query": name}
            )
        exact = next((r for r in results if r.name.lower() == name.lower()), None)
        match = exact or results[0]
        logger.info(f"找到 {match.name} (ID: {match.id})")
        return match.id

    async def search_candidates(self, query: str) -> List[SearchResult]:
        """
        在支持当前服务器类别的仓库中搜索安装候选

        Returns:
            每个仓库最多 5 个类型匹配的结果
        """
        expected = self.expected_type
        candidates: List[SearchResult] = []

        for repository in self.registry.all():
            if expected not in repository.asset_types:
                continue
            try:
                results = await repository.search(query)
            except ShulkersError as e:
                logger.warning(f"搜索 {repository.name} 失败: {e}")
                continue
            candidates.extend(
                r for r in results[:CANDIDATES_PER_REPOSITORY] if expected in r.types
            )

        return candidates

    @staticmethod
    def exact_matches(query: str, candidates: List[SearchResult]) -> List[SearchResult]:
        return [c for c in candidates if c.name.lower() == query.lower()]

    async def suggest_versions(
        self, source: DependencySource, idx: str, version: str
    ) -> List[VersionEntry]:
        """
        指定版本不存在时给出候选版本

        先取以该版本开头的版本（最多 10 个），没有则取最新的 5 个；
        按去掉 -/+ 后缀的基础版本号去重。
        """
        repository = self.registry.for_source(source)
        if repository is None:
            return []
        try:
            versions = await repository.get_versions(idx)
        except ShulkersError as e:
            logger.debug(f"获取 {idx} 的版本列表失败: {e}")
            return []

        matching = _dedupe_by_base(v for v in versions if v.name.startswith(version))
        if matching:
            return matching[:10]
        return _dedupe_by_base(versions)[:5]


def _dedupe_by_base(versions) -> List[VersionEntry]:
    seen: Dict[str, VersionEntry] = {}
    for entry in versions:
        base = _BUILD_SUFFIX_RE.split(entry.name, 1)[0] or entry.name
        seen.setdefault(base, entry)
    return list(seen.values())
