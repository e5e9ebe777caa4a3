"""
加载器兼容性

服务器实现到兼容加载器标签的映射，供 Modrinth 分面过滤和安全更新模式使用。
"""

from typing import Dict, Iterable, List

from shulkers.models import AssetType

# Bukkit 系插件服务端与代理端
PLUGIN_LOADERS = frozenset(
    {
        "bukkit",
        "spigot",
        "paper",
        "purpur",
        "folia",
        "bungeecord",
        "waterfall",
        "velocity",
    }
)

MOD_LOADERS = frozenset({"fabric", "forge", "neoforge", "quilt", "liteloader", "rift"})

# 最具体的在前
COMPATIBLE_LOADERS: Dict[str, List[str]] = {
    # 插件服
    "paper": ["paper", "purpur", "folia", "spigot", "bukkit"],
    "purpur": ["purpur", "paper", "spigot", "bukkit"],
    "folia": ["folia", "paper", "spigot", "bukkit"],
    "spigot": ["spigot", "bukkit"],
    "bukkit": ["bukkit"],
    # 代理
    "bungeecord": ["bungeecord", "waterfall"],
    "waterfall": ["waterfall", "bungeecord"],
    "velocity": ["velocity"],
    # 模组服
    "fabric": ["fabric", "quilt"],
    "quilt": ["quilt", "fabric"],
    "forge": ["forge"],
    "neoforge": ["neoforge", "forge"],
}


def compatible_loaders(server_type: str) -> List[str]:
    """
    获取服务器实现兼容的加载器列表

    未知实现返回只包含其自身（小写）的列表。
    """
    server_type = server_type.lower()
    return list(COMPATIBLE_LOADERS.get(server_type, [server_type]))


def asset_types_from_loaders(loaders: Iterable[str]) -> List[AssetType]:
    """根据加载器/分类推断资源类型，都不认识时按模组处理"""
    lowered = {loader.lower() for loader in loaders}
    types = []
    if lowered & MOD_LOADERS:
        types.append(AssetType.MOD)
    if lowered & PLUGIN_LOADERS:
        types.append(AssetType.PLUGIN)
    return types or [AssetType.MOD]
