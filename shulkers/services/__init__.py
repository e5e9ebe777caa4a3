"""
Shulkers 服务层

包含业务逻辑服务：仓库注册表、来源解析、版本匹配、更新计划、安装解析。
"""

from shulkers.services.version_matcher import (
    ParsedVersion,
    VersionMatcher,
    compare_versions,
    major_minor,
    parse_version,
)
from shulkers.services.source_resolver import (
    ParsedSource,
    format_source_id,
    get_repository_id,
    parse_source,
)
from shulkers.services.registry import RepositoryRegistry
from shulkers.services.update_planner import (
    OutdatedInfo,
    UpdatePlan,
    UpdatePlanner,
    UpdatePolicy,
    UpdateStatus,
)
from shulkers.services.mod_resolver import ModResolver, ResolvedInstall

__all__ = [
    "ParsedVersion",
    "VersionMatcher",
    "compare_versions",
    "major_minor",
    "parse_version",
    "ParsedSource",
    "format_source_id",
    "get_repository_id",
    "parse_source",
    "RepositoryRegistry",
    "OutdatedInfo",
    "UpdatePlan",
    "UpdatePlanner",
    "UpdatePolicy",
    "UpdateStatus",
    "ModResolver",
    "ResolvedInstall",
]
