"""
项目数据模型

project.yml 中的服务器信息和依赖记录。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class DependencySource(Enum):
    """依赖来源"""

    SPIGOT = "spigot"
    MODRINTH = "modrinth"
    GITHUB = "github"
    LOCAL = "local"
    PRIVATE = "private"


class ServerCategory(Enum):
    """服务器类别"""

    PLUGIN = "plugin"
    MOD = "mod"
    PROXY = "proxy"


PROXY_SERVERS = {"velocity", "bungeecord", "waterfall"}
MOD_SERVERS = {"forge", "fabric", "neoforge", "quilt"}


def server_category(server_type: str) -> ServerCategory:
    """根据服务器类型获取服务器类别"""
    server_type = server_type.lower()
    if server_type in PROXY_SERVERS:
        return ServerCategory.PROXY
    if server_type in MOD_SERVERS:
        return ServerCategory.MOD
    # vanilla / spigot / paper / purpur 以及未知类型都按插件服处理
    return ServerCategory.PLUGIN


@dataclass
class DependencyRecord:
    """
    已安装的依赖

    repository 只在来源为 private 时使用，记录通用仓库的 ID。
    """

    source: DependencySource
    id: str
    version: str
    file_name: Optional[str] = None
    repository: Optional[str] = None

    @property
    def tracked(self) -> bool:
        """是否跟踪远程版本，local 依赖和没有仓库 ID 的 private 依赖不跟踪"""
        if self.source is DependencySource.LOCAL:
            return False
        if self.source is DependencySource.PRIVATE:
            return bool(self.repository)
        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencyRecord":
        return cls(
            source=DependencySource(data["source"]),
            id=str(data["id"]),
            version=str(data.get("version", "")),
            file_name=data.get("fileName"),
            repository=data.get("repository"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "source": self.source.value,
            "id": self.id,
            "version": self.version,
        }
        if self.file_name:
            data["fileName"] = self.file_name
        if self.repository:
            data["repository"] = self.repository
        return data


@dataclass
class ServerConfig:
    """服务器配置"""

    type: str
    version: str
    jar_path: Optional[str] = None
    memory: Dict[str, str] = field(
        default_factory=lambda: {"min": "1G", "max": "2G"}
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        return cls(
            type=str(data.get("type", "paper")),
            version=str(data.get("version", "")),
            jar_path=data.get("jarPath"),
            memory=dict(data.get("memory") or {"min": "1G", "max": "2G"}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type, "version": self.version}
        if self.jar_path:
            data["jarPath"] = self.jar_path
        data["memory"] = dict(self.memory)
        return data


@dataclass
class ProjectConfig:
    """.shulkers/project.yml 的内容"""

    name: str
    server: ServerConfig
    description: str = ""
    server_category: ServerCategory = ServerCategory.PLUGIN
    dependencies: Dict[str, DependencyRecord] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfig":
        server = ServerConfig.from_dict(data.get("server") or {})
        category = data.get("serverType")
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            server=server,
            server_category=(
                ServerCategory(category) if category else server_category(server.type)
            ),
            dependencies={
                name: DependencyRecord.from_dict(dep)
                for name, dep in (data.get("dependencies") or {}).items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "serverType": self.server_category.value,
            "server": self.server.to_dict(),
        }
        if self.dependencies:
            data["dependencies"] = {
                name: dep.to_dict() for name, dep in self.dependencies.items()
            }
        return data
