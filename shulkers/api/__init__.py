"""
Shulkers 仓库层

统一的仓库接口及 Modrinth、Spiget、通用 JSON、GitHub Releases 四种实现。
"""

from shulkers.api.base import Repository
from shulkers.api.http import JSONClient
from shulkers.api.modrinth import ModrinthRepository
from shulkers.api.spiget import SpigetRepository
from shulkers.api.generic import GenericRepository, resolve_path, to_safe_string
from shulkers.api.github import GitHubRepository, parse_github_url

__all__ = [
    "Repository",
    "JSONClient",
    "ModrinthRepository",
    "SpigetRepository",
    "GenericRepository",
    "GitHubRepository",
    "resolve_path",
    "to_safe_string",
    "parse_github_url",
]
