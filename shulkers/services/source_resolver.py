"""
来源解析服务

解析 `spigot:12345`、`modrinth:sodium@1.2.0`、`github:owner/repo` 这类来源描述。
"""

from dataclasses import dataclass
from typing import Dict, Optional

from shulkers.models import DependencySource

# 来源别名（不区分大小写），多个别名可以指向同一来源
SOURCE_ALIASES: Dict[str, DependencySource] = {
    "spigot": DependencySource.SPIGOT,
    "spiget": DependencySource.SPIGOT,
    "modrinth": DependencySource.MODRINTH,
    "github": DependencySource.GITHUB,
}

# 来源到仓库 ID 的映射
REPOSITORY_IDS: Dict[DependencySource, str] = {
    DependencySource.SPIGOT: "spiget",
    DependencySource.MODRINTH: "modrinth",
    DependencySource.GITHUB: "github",
}


@dataclass(frozen=True)
class ParsedSource:
    """
    解析结果

    source 和 resource_id 同时存在，或者只有 query；version 与两者独立。
    """

    source: Optional[DependencySource] = None
    resource_id: Optional[str] = None
    query: Optional[str] = None
    version: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """没有任何可用于查找的内容"""
        if self.source is not None:
            return not self.resource_id
        return not (self.query or "").strip()


def parse_source(text: str) -> ParsedSource:
    """
    解析来源描述，从不抛出异常

    Args:
        text: 用户输入

    Returns:
        ParsedSource
    """
    version: Optional[str] = None
    main_part = text

    # 位于开头的 @ 保留给以后的 scope 语法，不作为版本分隔符
    at_index = text.rfind("@")
    if at_index > 0:
        version = text[at_index + 1 :]
        main_part = text[:at_index]

    colon_index = main_part.find(":")
    if colon_index > 0:
        source = SOURCE_ALIASES.get(main_part[:colon_index].lower())
        if source is not None:
            return ParsedSource(
                source=source,
                resource_id=main_part[colon_index + 1 :],
                version=version,
            )

    return ParsedSource(query=main_part, version=version)


def get_repository_id(source: Optional[DependencySource]) -> str:
    """来源对应的仓库 ID，未知来源返回空字符串"""
    if source is None:
        return ""
    return REPOSITORY_IDS.get(source, "")


def format_source_id(source: Optional[DependencySource], idx: str) -> str:
    """格式化为 `source:id`，没有来源时只返回 id"""
    if source is None:
        return idx
    return f"{source.value}:{idx}"
