"""
仓库注册表

每次命令执行时创建一个实例，显式传给需要访问仓库的组件。
"""

import asyncio
from typing import Dict, Iterable, List, Optional

import aiohttp
from loguru import logger

from shulkers.api import (
    GenericRepository,
    GitHubRepository,
    ModrinthRepository,
    Repository,
    SpigetRepository,
)
from shulkers.config import Settings
from shulkers.models import (
    DependencyRecord,
    DependencySource,
    GenericRepositoryConfig,
    ReleaseHostEntry,
    SearchResult,
)
from shulkers.services.source_resolver import get_repository_id


class RepositoryRegistry:
    """仓库注册表"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self._session = session
        self._repositories: Dict[str, Repository] = {}

    @property
    def session(self) -> Optional[aiohttp.ClientSession]:
        """仓库共用的 session"""
        return self._session

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        generic_configs: Iterable[GenericRepositoryConfig] = (),
        github_entries: Iterable[ReleaseHostEntry] = (),
    ) -> "RepositoryRegistry":
        """
        创建注册表并注册内置仓库与配置中的仓库

        需要在事件循环中调用，所有仓库共用一个 aiohttp session。
        """
        settings = settings or Settings()
        registry = cls(session=aiohttp.ClientSession(), settings=settings)

        registry.register(
            SpigetRepository(
                session=registry.session,
                user_agent=settings.user_agent,
                timeout=settings.timeout,
                search_limit=settings.search_limit,
            )
        )
        registry.register(
            ModrinthRepository(
                session=registry.session,
                user_agent=settings.user_agent,
                timeout=settings.timeout,
                search_limit=settings.search_limit,
            )
        )
        registry.register(
            GitHubRepository(
                list(github_entries),
                session=registry.session,
                user_agent=settings.user_agent,
                timeout=settings.timeout,
            )
        )
        registry.load_from_config(generic_configs)
        return registry

    def register(self, repository: Repository):
        """注册仓库，相同 ID 的后注册者覆盖先注册者"""
        if repository.id in self._repositories:
            logger.debug(f"仓库 {repository.id} 已存在，将被覆盖")
        self._repositories[repository.id] = repository

    def add_generic_repository(self, config: GenericRepositoryConfig) -> GenericRepository:
        repository = GenericRepository(
            config,
            session=self._session,
            user_agent=self.settings.user_agent,
            timeout=self.settings.timeout,
        )
        self.register(repository)
        return repository

    def load_from_config(self, configs: Iterable[GenericRepositoryConfig]):
        for config in configs:
            self.add_generic_repository(config)

    def get(self, idx: str) -> Optional[Repository]:
        return self._repositories.get(idx)

    def all(self) -> List[Repository]:
        return list(self._repositories.values())

    def for_dependency(self, dependency: DependencyRecord) -> Optional[Repository]:
        """依赖对应的仓库，记录了仓库 ID 的依赖（通用仓库）按 ID 查找"""
        if dependency.repository:
            return self.get(dependency.repository)
        return self.for_source(dependency.source)

    def for_source(self, source: Optional[DependencySource]) -> Optional[Repository]:
        """依赖来源对应的仓库，local/private 等没有仓库的来源返回 None"""
        repo_id = get_repository_id(source)
        return self.get(repo_id) if repo_id else None

    async def search_all(
        self, query: str, loaders: Optional[List[str]] = None
    ) -> List[SearchResult]:
        """
        并发搜索所有仓库

        单个仓库失败只记录警告，不影响其他仓库的结果。
        """
        results = await asyncio.gather(
            *(self._search_one(repo, query, loaders) for repo in self.all())
        )
        return [item for items in results for item in items]

    async def _search_one(
        self, repository: Repository, query: str, loaders: Optional[List[str]]
    ) -> List[SearchResult]:
        try:
            return await repository.search(query, loaders)
        except Exception as e:
            logger.warning(f"搜索 {repository.name} 失败: {e}")
            return []

    async def aclose(self):
        """关闭所有仓库和共用的 session"""
        for repository in self.all():
            await repository.close()
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
