"""
更新计划服务

根据依赖记录和仓库版本列表计算更新目标。只给出计划，下载和写回
project.yml 由调用方负责。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from loguru import logger

from shulkers.exceptions import ShulkersError
from shulkers.models import DependencyRecord, VersionEntry, VersionInfo
from shulkers.services.registry import RepositoryRegistry
from shulkers.services.version_matcher import VersionMatcher, compare_versions

# 仓库调用失败或返回了无法识别的数据
ADAPTER_ERRORS = (ShulkersError, KeyError, TypeError, ValueError)


class UpdateStatus(Enum):
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    SKIPPED = "skipped"


@dataclass
class UpdatePolicy:
    """
    更新策略

    latest: 更新到最新版本，而不只是同主版本内的更新
    safe: 只接受支持服务器游戏版本的目标
    """

    latest: bool = False
    safe: bool = False


@dataclass
class UpdatePlan:
    """单个依赖的更新计划"""

    name: str
    dependency: DependencyRecord
    status: UpdateStatus
    target: Optional[VersionEntry] = None
    version_info: Optional[VersionInfo] = None
    reason: Optional[str] = None

    @property
    def has_update(self) -> bool:
        return self.status is UpdateStatus.UPDATE_AVAILABLE


@dataclass
class OutdatedInfo:
    """过时依赖的信息"""

    name: str
    dependency: DependencyRecord
    current: str
    update: Optional[str]
    latest: str


class UpdatePlanner:
    """更新计划器"""

    def __init__(
        self,
        registry: RepositoryRegistry,
        server_version: str,
        loaders: Optional[List[str]] = None,
    ):
        self.registry = registry
        self.server_version = server_version
        self.loaders = loaders

    async def plan(
        self, name: str, dependency: DependencyRecord, policy: UpdatePolicy
    ) -> UpdatePlan:
        """
        计算单个依赖的更新计划

        不跟踪远程版本的依赖（local 等）视为最新；仓库不可用或仓库错误
        不会抛出，而是转为 SKIPPED 并附带原因。
        """
        if not dependency.tracked:
            return UpdatePlan(name, dependency, UpdateStatus.UP_TO_DATE)

        repository = self.registry.for_dependency(dependency)
        if repository is None:
            return UpdatePlan(
                name,
                dependency,
                UpdateStatus.SKIPPED,
                reason=f"来源 {_describe_source(dependency)} 不可用",
            )

        try:
            versions = await repository.get_versions(dependency.id)
        except ADAPTER_ERRORS as e:
            logger.debug(f"获取 {name} 的版本列表失败: {e}")
            return UpdatePlan(name, dependency, UpdateStatus.SKIPPED, reason=str(e))

        if policy.latest:
            target = VersionMatcher.find_latest_update(dependency.version, versions)
        else:
            target = VersionMatcher.find_minor_update(dependency.version, versions)

        if target is None:
            return UpdatePlan(name, dependency, UpdateStatus.UP_TO_DATE)

        if policy.safe and not VersionMatcher.supports_server_version(
            target.game_versions, self.server_version
        ):
            return UpdatePlan(
                name,
                dependency,
                UpdateStatus.SKIPPED,
                target=target,
                reason=f"v{target.name} does not support server {self.server_version}",
            )

        try:
            version_info = await repository.get_version_download(
                dependency.id, target.name, self.loaders
            )
        except ADAPTER_ERRORS as e:
            logger.debug(f"获取 {name} v{target.name} 的下载信息失败: {e}")
            return UpdatePlan(
                name, dependency, UpdateStatus.SKIPPED, target=target, reason=str(e)
            )

        return UpdatePlan(
            name,
            dependency,
            UpdateStatus.UPDATE_AVAILABLE,
            target=target,
            version_info=version_info,
        )

    async def plan_all(
        self, dependencies: Dict[str, DependencyRecord], policy: UpdatePolicy
    ) -> List[UpdatePlan]:
        """并发计算所有依赖的更新计划，顺序与输入一致"""
        return list(
            await asyncio.gather(
                *(self.plan(name, dep, policy) for name, dep in dependencies.items())
            )
        )

    async def check_outdated(
        self, name: str, dependency: DependencyRecord
    ) -> Optional[OutdatedInfo]:
        """
        检查依赖是否过时

        Returns:
            OutdatedInfo，已是最新、来源不支持或查询失败时为 None
        """
        if not dependency.tracked:
            return None
        repository = self.registry.for_dependency(dependency)
        if repository is None:
            logger.warning(f"检查 {name} 失败: 来源 {_describe_source(dependency)} 不可用")
            return None

        try:
            versions = await repository.get_versions(dependency.id)
        except ADAPTER_ERRORS as e:
            logger.warning(f"检查 {name} 失败: {e}")
            return None

        if not versions:
            return None

        latest = versions[0].name
        if compare_versions(dependency.version, latest) >= 0:
            return None

        minor = VersionMatcher.find_minor_update(dependency.version, versions)
        return OutdatedInfo(
            name=name,
            dependency=dependency,
            current=dependency.version,
            update=minor.name if minor else None,
            latest=latest,
        )

    async def check_all_outdated(
        self, dependencies: Dict[str, DependencyRecord]
    ) -> List[OutdatedInfo]:
        results = await asyncio.gather(
            *(self.check_outdated(name, dep) for name, dep in dependencies.items())
        )
        return [info for info in results if info is not None]


def _describe_source(dependency: DependencyRecord) -> str:
    return dependency.repository or dependency.source.value
