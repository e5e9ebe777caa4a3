"""
项目存储

读写 .shulkers/project.yml。核心逻辑只读取项目信息，写回由命令行负责。
"""

from pathlib import Path
from typing import Dict, Optional

import yaml
from loguru import logger

from shulkers.config import local_dir
from shulkers.exceptions import ConfigError, ConfigParseError, ConfigValidationError
from shulkers.models import (
    DependencyRecord,
    ProjectConfig,
    ServerConfig,
    server_category,
)

PROJECT_FILE = "project.yml"

DEFAULT_SERVER_TYPE = "paper"
DEFAULT_SERVER_VERSION = "1.21"


class ProjectStore:
    """project.yml 读写"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else Path.cwd()
        self.path = local_dir(self.root) / PROJECT_FILE

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> ProjectConfig:
        """
        读取项目配置

        Raises:
            ConfigError: 项目文件不存在
            ConfigParseError: YAML 无法解析
        """
        if not self.path.exists():
            raise ConfigError(
                "没有找到 project.yml，请先运行 'shulkers init'",
                context={"path": str(self.path)},
            )
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigParseError(
                f"无法解析 {self.path}", context={"error": str(e)}
            ) from e

        if not isinstance(data, dict):
            raise ConfigValidationError(f"{self.path} 的内容必须是映射")
        try:
            return ProjectConfig.from_dict(data)
        except (KeyError, ValueError) as e:
            raise ConfigValidationError(
                f"{self.path} 中的配置无效: {e}", context={"error": str(e)}
            ) from e

    def write(self, config: ProjectConfig):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config.to_dict(), f, indent=2, sort_keys=False, allow_unicode=True)
        logger.debug(f"项目配置已保存: {self.path}")

    def init(
        self,
        name: str,
        server_type: str = DEFAULT_SERVER_TYPE,
        server_version: str = DEFAULT_SERVER_VERSION,
    ) -> ProjectConfig:
        """创建默认项目配置，已存在时报错"""
        if self.exists():
            raise ConfigError(f"项目已存在: {self.path}")
        config = ProjectConfig(
            name=name,
            server=ServerConfig(type=server_type, version=server_version),
            server_category=server_category(server_type),
        )
        self.write(config)
        return config

    def dependencies(self) -> Dict[str, DependencyRecord]:
        return self.read().dependencies

    def add_dependency(self, name: str, dependency: DependencyRecord):
        config = self.read()
        config.dependencies[name] = dependency
        self.write(config)

    def remove_dependency(self, name: str) -> Optional[DependencyRecord]:
        """删除依赖，返回被删除的记录，不存在时为 None"""
        config = self.read()
        removed = config.dependencies.pop(name, None)
        if removed is not None:
            self.write(config)
        return removed

    def update_dependency_version(
        self, name: str, version: str, file_name: Optional[str] = None
    ) -> bool:
        """更新依赖版本（以及文件名），依赖不存在时返回 False"""
        config = self.read()
        dependency = config.dependencies.get(name)
        if dependency is None:
            return False
        dependency.version = version
        if file_name:
            dependency.file_name = file_name
        self.write(config)
        return True
