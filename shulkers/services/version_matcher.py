"""
版本匹配服务

版本号解析与比较、同主版本更新选择、服务器版本兼容检查。

这里的比较只是尽力而为，不是完整的语义化版本实现：
- 缺失的数字部分按 0 处理，剩余尾部原样保留为预发布标记；
- 完全无法解析的版本号视为 0.0.0 并把原字符串作为预发布标记，排在任何正常版本之后；
- 数字部分相同时，正式版大于预发布版，两个预发布版之间不再细分。
已有的 project.yml 依赖这些行为，不要“修正”。
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from shulkers.models import VersionEntry

_VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(.*)$", re.DOTALL)


@dataclass(frozen=True)
class ParsedVersion:
    major: int
    minor: int
    patch: int
    prerelease: str


def parse_version(raw: str) -> ParsedVersion:
    """解析版本号，去掉开头的 v/V"""
    cleaned = raw[1:] if raw[:1] in ("v", "V") else raw
    match = _VERSION_RE.match(cleaned)
    if not match:
        return ParsedVersion(0, 0, 0, raw)
    return ParsedVersion(
        major=int(match.group(1)),
        minor=int(match.group(2) or 0),
        patch=int(match.group(3) or 0),
        prerelease=match.group(4) or "",
    )


def major_minor(version: str) -> str:
    """取版本号的 major.minor 部分，如 1.20.1 -> 1.20"""
    return ".".join(version.split(".")[:2])


def _cmp(a: int, b: int) -> int:
    return (a > b) - (a < b)


def compare_versions(a: str, b: str) -> int:
    """比较两个版本号，a < b 返回 -1，相等返回 0，a > b 返回 1"""
    va = parse_version(a)
    vb = parse_version(b)

    for x, y in ((va.major, vb.major), (va.minor, vb.minor), (va.patch, vb.patch)):
        if x != y:
            return _cmp(x, y)

    # 正式版 > 预发布版
    if va.prerelease == "" and vb.prerelease != "":
        return 1
    if va.prerelease != "" and vb.prerelease == "":
        return -1
    return 0


class VersionMatcher:
    """版本匹配器"""

    @staticmethod
    def find_minor_update(
        current: str, versions: Sequence[VersionEntry]
    ) -> Optional[VersionEntry]:
        """
        在同一主版本内找出比当前版本新的最大版本

        Args:
            current: 当前版本
            versions: 候选版本（任意顺序）

        Returns:
            最佳候选，没有则为 None
        """
        major = parse_version(current).major
        best: Optional[VersionEntry] = None

        for entry in versions:
            if parse_version(entry.name).major != major:
                continue
            if compare_versions(entry.name, current) <= 0:
                continue
            if best is None or compare_versions(entry.name, best.name) > 0:
                best = entry

        return best

    @staticmethod
    def find_latest_update(
        current: str, versions: Sequence[VersionEntry]
    ) -> Optional[VersionEntry]:
        """列表第一项比当前版本新时返回它（信任来源的顺序）"""
        if not versions:
            return None
        head = versions[0]
        return head if compare_versions(current, head.name) < 0 else None

    @staticmethod
    def supports_server_version(
        game_versions: Optional[List[str]], server_version: str
    ) -> bool:
        """
        检查版本是否支持服务器的游戏版本

        按 major.minor 比较（1.20.4 与 1.20.1 兼容，1.2 与 1.20.1 不兼容）；
        没有声明游戏版本时视为全部兼容。
        """
        if not game_versions:
            return True
        server = major_minor(server_version)
        return any(major_minor(version) == server for version in game_versions)
