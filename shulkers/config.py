"""
配置模块

全局设置（~/.shulkers/config.toml）以及 repository 目录下的仓库配置读写。
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import toml
import yaml
from loguru import logger

from shulkers import __version__
from shulkers.exceptions import ConfigError, ConfigParseError, ShulkersError
from shulkers.models import (
    GenericRepositoryConfig,
    ReleaseHostEntry,
    parse_release_entries,
)

SHULKERS_DIR = ".shulkers"
REPOSITORY_DIR = "repository"
SETTINGS_FILE = "config.toml"
GITHUB_FILE = "github.yml"


def global_dir() -> Path:
    """用户主目录下的 .shulkers"""
    return Path.home() / SHULKERS_DIR


def local_dir(root: Optional[Path] = None) -> Path:
    """项目目录下的 .shulkers"""
    return (root or Path.cwd()) / SHULKERS_DIR


def repository_dir(global_: bool, root: Optional[Path] = None) -> Path:
    base = global_dir() if global_ else local_dir(root)
    return base / REPOSITORY_DIR


@dataclass
class Settings:
    """运行时设置"""

    user_agent: str = f"shulkers-cli/{__version__} (https://github.com/Crysta1221/shulkers)"
    timeout: float = 30.0
    search_limit: int = 20
    max_concurrent: int = 5
    max_retries: int = 3
    retry_delay: float = 1.0

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        """
        加载设置

        先读取 config.toml（不存在则使用默认值），再应用环境变量覆盖。
        """
        settings = cls()
        path = path or global_dir() / SETTINGS_FILE

        if path.exists():
            try:
                data = toml.load(path)
            except (toml.TomlDecodeError, OSError) as e:
                raise ConfigParseError(
                    f"无法解析设置文件: {path}", context={"error": str(e)}
                ) from e
            for key, value in data.items():
                if not hasattr(settings, key):
                    logger.warning(f"忽略未知设置项: {key}")
                    continue
                setattr(settings, key, type(getattr(settings, key))(value))

        if timeout := os.environ.get("SHULKERS_TIMEOUT"):
            settings.timeout = float(timeout)
        if user_agent := os.environ.get("SHULKERS_USER_AGENT"):
            settings.user_agent = user_agent

        if settings.max_concurrent <= 0:
            logger.warning("max_concurrent 配置无效，将使用默认值 5")
            settings.max_concurrent = 5

        return settings


def _read_yaml(path: Path):
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def read_repositories_from_dir(directory: Path) -> List[GenericRepositoryConfig]:
    """读取目录中所有通用仓库配置，无效文件会被跳过"""
    configs: List[GenericRepositoryConfig] = []
    if not directory.is_dir():
        return configs

    for path in sorted(directory.iterdir()):
        if path.suffix not in (".yml", ".yaml") or path.name == GITHUB_FILE:
            continue
        try:
            data = _read_yaml(path)
            if not isinstance(data, dict):
                raise ConfigParseError(f"仓库配置必须是映射: {path.name}")
            configs.append(GenericRepositoryConfig.from_dict(data))
        except (yaml.YAMLError, OSError, ShulkersError) as e:
            logger.warning(f"跳过无效的仓库配置 {path}: {e}")

    return configs


def read_github_repos(directory: Path) -> List[ReleaseHostEntry]:
    """读取 github.yml"""
    path = directory / GITHUB_FILE
    if not path.exists():
        return []
    try:
        return parse_release_entries(_read_yaml(path))
    except (yaml.YAMLError, OSError, ShulkersError) as e:
        logger.warning(f"无法读取 {path}: {e}")
        return []


def _scopes(global_: Optional[bool], root: Optional[Path]) -> List[Path]:
    """按加载顺序返回仓库目录：先全局，再本地"""
    dirs = []
    if global_ is None or global_:
        dirs.append(repository_dir(True))
    if global_ is None or not global_:
        if (local_dir(root) / "project.yml").exists():
            dirs.append(repository_dir(False, root))
    return dirs


def load_repositories(
    global_: Optional[bool] = None, root: Optional[Path] = None
) -> List[GenericRepositoryConfig]:
    """
    获取所有通用仓库配置

    Args:
        global_: True 只读全局，False 只读本地，None 两者都读（本地覆盖全局同 ID）
        root: 项目根目录
    """
    merged: dict[str, GenericRepositoryConfig] = {}
    for directory in _scopes(global_, root):
        for config in read_repositories_from_dir(directory):
            merged[config.id] = config
    return list(merged.values())


def load_github_repos(
    global_: Optional[bool] = None, root: Optional[Path] = None
) -> List[ReleaseHostEntry]:
    """获取所有 GitHub 仓库条目"""
    entries: List[ReleaseHostEntry] = []
    for directory in _scopes(global_, root):
        entries.extend(read_github_repos(directory))
    return entries


def repository_exists(
    repo_id: str, global_: Optional[bool] = None, root: Optional[Path] = None
) -> bool:
    return any(config.id == repo_id for config in load_repositories(global_, root))


def save_repository(
    config: GenericRepositoryConfig, global_: bool, root: Optional[Path] = None
) -> Path:
    """保存通用仓库配置"""
    directory = repository_dir(global_, root)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{config.id}.yml"
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, indent=2, sort_keys=False, allow_unicode=True)
    logger.debug(f"仓库配置已保存: {path}")
    return path


def remove_repository(repo_id: str, global_: bool, root: Optional[Path] = None) -> bool:
    """删除通用仓库配置，返回是否找到"""
    directory = repository_dir(global_, root)
    for ext in (".yml", ".yaml"):
        path = directory / f"{repo_id}{ext}"
        if path.exists():
            path.unlink()
            return True
    return False


def save_github_repos(
    entries: List[ReleaseHostEntry], global_: bool, root: Optional[Path] = None
) -> None:
    directory = repository_dir(global_, root)
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / GITHUB_FILE, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            {"repositories": [entry.to_dict() for entry in entries]},
            f,
            indent=2,
            sort_keys=False,
            allow_unicode=True,
        )


def add_github_repo(url: str, name: str, global_: bool, root: Optional[Path] = None) -> None:
    """添加 GitHub 仓库条目"""
    entries = load_github_repos(global_, root)
    if any(entry.url == url for entry in entries):
        raise ConfigError(f"GitHub 仓库 {url} 已存在")
    entries.append(ReleaseHostEntry(url=url, name=name))
    save_github_repos(entries, global_, root)


def remove_github_repo(url: str, global_: bool, root: Optional[Path] = None) -> bool:
    """按 URL 删除 GitHub 仓库条目"""
    entries = load_github_repos(global_, root)
    remaining = [entry for entry in entries if entry.url != url]
    if len(remaining) == len(entries):
        return False
    save_github_repos(remaining, global_, root)
    return True
