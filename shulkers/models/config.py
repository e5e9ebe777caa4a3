"""
仓库配置模型

通用 JSON 仓库与 GitHub Releases 仓库的配置项，对应 repository 目录下的 YAML 文件。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from shulkers.exceptions import ConfigValidationError


@dataclass
class GenericMappings:
    """搜索结果字段的 JSON 路径映射"""

    results_path: str = ""  # 为空表示响应根节点就是数组
    id: str = "id"
    name: str = "name"
    description: str = "description"
    author: str = "author"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenericMappings":
        return cls(
            results_path=data.get("resultsPath", ""),
            id=data.get("id", "id"),
            name=data.get("name", "name"),
            description=data.get("description", "description"),
            author=data.get("author", "author"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resultsPath": self.results_path,
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "author": self.author,
        }


@dataclass
class GenericVersionMappings:
    """版本信息字段的 JSON 路径映射"""

    version: str = "version"
    download_url: str = "downloadUrl"
    file_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenericVersionMappings":
        return cls(
            version=data.get("version", "version"),
            download_url=data.get("downloadUrl", "downloadUrl"),
            file_name=data.get("fileName"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"version": self.version, "downloadUrl": self.download_url}
        if self.file_name:
            data["fileName"] = self.file_name
        return data


@dataclass
class GenericRepositoryConfig:
    """
    通用 JSON 仓库配置。

    路径模板支持 {{query}}、{{id}}、{{version}}、{{fileName}} 占位符。
    """

    id: str
    name: str
    base_url: str
    search_path: str
    version_path: str
    download_path: Optional[str] = None
    mappings: GenericMappings = field(default_factory=GenericMappings)
    version_mappings: GenericVersionMappings = field(
        default_factory=GenericVersionMappings
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenericRepositoryConfig":
        missing = [key for key in ("id", "name", "baseUrl") if not data.get(key)]
        if missing:
            raise ConfigValidationError(
                f"仓库配置缺少必填字段: {', '.join(missing)}",
                context={"missing": missing},
            )
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            base_url=str(data["baseUrl"]).rstrip("/"),
            search_path=data.get("searchPath", ""),
            version_path=data.get("versionPath", ""),
            download_path=data.get("downloadPath"),
            mappings=GenericMappings.from_dict(data.get("mappings") or {}),
            version_mappings=GenericVersionMappings.from_dict(
                data.get("versionMappings") or {}
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "baseUrl": self.base_url,
            "searchPath": self.search_path,
            "versionPath": self.version_path,
        }
        if self.download_path:
            data["downloadPath"] = self.download_path
        data["mappings"] = self.mappings.to_dict()
        data["versionMappings"] = self.version_mappings.to_dict()
        return data


@dataclass
class ReleaseHostEntry:
    """GitHub 仓库条目，例如 https://github.com/owner/repo"""

    url: str
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReleaseHostEntry":
        if not data.get("url"):
            raise ConfigValidationError("GitHub 仓库条目缺少 url")
        return cls(url=str(data["url"]), name=str(data.get("name") or data["url"]))

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "name": self.name}


def parse_release_entries(data: Optional[Dict[str, Any]]) -> List[ReleaseHostEntry]:
    """解析 github.yml 的内容"""
    if not data:
        return []
    return [ReleaseHostEntry.from_dict(item) for item in data.get("repositories") or []]
