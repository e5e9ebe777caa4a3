"""
CLI 模块

命令行接口实现。
"""

import asyncio
import functools
from pathlib import Path
from typing import List, Optional, Tuple

import click
import yaml
from loguru import logger

from shulkers import __version__
from shulkers.api import parse_github_url
from shulkers.config import (
    Settings,
    add_github_repo,
    load_github_repos,
    load_repositories,
    remove_github_repo,
    remove_repository,
    repository_exists,
    save_repository,
)
from shulkers.download import DownloadManager, plugin_directory
from shulkers.exceptions import (
    ConfigValidationError,
    ExternalOrPremiumResourceError,
    NotFoundError,
    ShulkersError,
)
from shulkers.loaders import compatible_loaders
from shulkers.logger import setup_logger
from shulkers.models import (
    DependencySource,
    GenericRepositoryConfig,
    ProjectConfig,
    SearchResult,
)
from shulkers.project import ProjectStore
from shulkers.services import (
    ModResolver,
    ParsedSource,
    RepositoryRegistry,
    UpdatePlanner,
    UpdatePolicy,
    UpdateStatus,
    VersionMatcher,
    format_source_id,
    parse_source,
)
from shulkers.services.mod_resolver import ResolvedInstall
from shulkers.services.source_resolver import SOURCE_ALIASES
from shulkers.utils import format_bytes


class AppContext:
    """单次命令执行的上下文"""

    def __init__(self, root: Path, settings: Settings):
        self.root = root
        self.settings = settings
        self.store = ProjectStore(root)

    def project(self) -> Optional[ProjectConfig]:
        return self.store.read() if self.store.exists() else None

    def registry(self) -> RepositoryRegistry:
        """创建仓库注册表，需要在事件循环中调用"""
        return RepositoryRegistry.create(
            self.settings,
            load_repositories(root=self.root),
            load_github_repos(root=self.root),
        )

    def downloader(self, registry: RepositoryRegistry) -> DownloadManager:
        return DownloadManager(
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            session=registry.session,
            user_agent=self.settings.user_agent,
        )


def run_async(func):
    """在事件循环中运行异步命令，并把 ShulkersError 转为 ClickException"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(func(*args, **kwargs))
        except ShulkersError as e:
            logger.debug(f"命令失败: {e.to_dict()}")
            raise click.ClickException(str(e)) from e

    return wrapper


def tested_range(versions: List[str]) -> str:
    """把测试过的游戏版本列表显示为 "最低 - 最高" """
    if not versions:
        return ""
    if len(versions) == 1:
        return versions[0]

    def key(version: str):
        return [int(part) if part.isdigit() else 0 for part in version.split(".")]

    ordered = sorted(versions, key=key)
    return f"{ordered[0]} - {ordered[-1]}"


def echo_results(results: List[SearchResult]):
    for result in results:
        click.echo(
            f"  {_source_id_of(result):<30} "
            f"{result.name:<28} v{result.version:<12} {result.downloads:>10}"
        )


def _source_id_of(result: SearchResult) -> str:
    """内置来源显示为 spigot:123，通用仓库显示为 仓库ID:资源ID"""
    source = SOURCE_ALIASES.get(result.source.lower())
    if source is None:
        return f"{result.source}:{result.id}"
    return format_source_id(source, result.id)


@click.group()
@click.option(
    "-C",
    "--directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="项目目录",
)
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, directory: Path, debug: bool):
    """Shulkers - Minecraft 服务器插件/模组管理工具"""
    setup_logger(level="DEBUG" if debug else None)
    try:
        settings = Settings.load()
    except ShulkersError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj = AppContext(directory.resolve(), settings)


pass_app = click.make_pass_decorator(AppContext)


@main.command()
@click.argument("name", required=False)
@click.option("--type", "server_type", default="paper", show_default=True, help="服务器类型")
@click.option("--version", "server_version", default="1.21", show_default=True, help="游戏版本")
@pass_app
def init(app: AppContext, name: Optional[str], server_type: str, server_version: str):
    """创建 .shulkers/project.yml"""
    try:
        config = app.store.init(name or app.root.name, server_type, server_version)
    except ShulkersError as e:
        raise click.ClickException(str(e)) from e
    click.echo(
        f"已创建项目 {config.name} ({config.server.type} {config.server.version})"
    )


@main.command()
@click.argument("query")
@pass_app
@run_async
async def search(app: AppContext, query: str):
    """在所有仓库中搜索"""
    project = app.project()
    loaders = compatible_loaders(project.server.type) if project else None

    async with app.registry() as registry:
        results = await registry.search_all(query, loaders)

    if not results:
        click.echo("没有找到结果")
        return
    click.echo(f"找到 {len(results)} 个结果:")
    echo_results(results)


@main.command()
@click.argument("target")
@pass_app
@run_async
async def info(app: AppContext, target: str):
    """查看资源详情，TARGET 形如 modrinth:sodium"""
    parsed = parse_source(target)
    if parsed.source is None or parsed.is_empty:
        raise click.UsageError("请使用 source:id 格式，例如 modrinth:sodium")

    async with app.registry() as registry:
        repository = registry.for_source(parsed.source)
        if repository is None:
            raise click.ClickException(f"未知来源: {parsed.source.value}")
        resource = await repository.get_resource(parsed.resource_id)
        versions = await repository.get_versions(parsed.resource_id)

    click.echo(f"名称:     {resource.name}")
    click.echo(f"来源:     {format_source_id(parsed.source, resource.id)}")
    click.echo(f"作者:     {resource.author}")
    click.echo(f"下载量:   {resource.downloads}")
    click.echo(f"地址:     {resource.url}")
    if resource.tested_versions:
        click.echo(f"支持版本: {tested_range(resource.tested_versions)}")
    if not resource.installable:
        click.echo("该资源为外部托管或付费资源，需要手动下载")
    if resource.description:
        click.echo("")
        click.echo(resource.description)
    if versions:
        click.echo("")
        click.echo("最近版本:")
        for entry in versions[:10]:
            click.echo(f"  - {entry.name}")


@main.command()
@click.argument("targets", nargs=-1, required=True)
@pass_app
@run_async
async def install(app: AppContext, targets: Tuple[str, ...]):
    """
    安装插件/模组

    TARGETS 可以是搜索关键词，也可以是 source:id[@version]，可以一次指定多个。
    """
    parsed_targets = [(target, parse_source(target)) for target in targets]
    if any(parsed.is_empty for _, parsed in parsed_targets):
        raise click.UsageError("请指定要安装的插件或模组")

    project = app.store.read()
    failed = 0

    async with app.registry() as registry:
        resolver = ModResolver(registry, project)
        async with app.downloader(registry) as downloader:
            for target, parsed in parsed_targets:
                try:
                    await _install_target(app, resolver, downloader, project, parsed)
                except ShulkersError as e:
                    failed += 1
                    logger.debug(f"安装 {target} 失败: {e.to_dict()}")
                    click.echo(f"✗ {target}: {e}", err=True)

    if failed:
        raise click.ClickException(f"{failed} 个目标安装失败")


async def _install_target(
    app: AppContext,
    resolver: ModResolver,
    downloader: DownloadManager,
    project: ProjectConfig,
    parsed: ParsedSource,
):
    try:
        if parsed.source is None:
            resolved = await _resolve_query(resolver, parsed.query, parsed.version)
            if resolved is None:
                return
        else:
            resolved = await resolver.resolve(parsed)
    except ExternalOrPremiumResourceError as e:
        kind = "付费资源" if e.premium else "外部托管资源"
        click.echo(f"这是{kind}，无法自动下载。请手动前往: {e.url}")
        return
    except NotFoundError:
        if not (parsed.version and parsed.source):
            raise
        suggestions = await resolver.suggest_versions(
            parsed.source, parsed.resource_id, parsed.version
        )
        if suggestions:
            click.echo("可用版本:")
            for entry in suggestions:
                click.echo(f"  - {entry.name}")
        raise

    _warn_incompatible(resolved, project)

    result = await downloader.download(
        resolved.version_info,
        plugin_directory(project.server_category, app.root),
    )
    app.store.add_dependency(resolved.resource.name, resolved.to_dependency())
    click.echo(
        f"+ {resolved.resource.name} v{resolved.version_info.version} "
        f"({resolved.source_id}, {format_bytes(result.size)})"
    )


async def _resolve_query(
    resolver: ModResolver, query: str, version: Optional[str]
) -> Optional[ResolvedInstall]:
    candidates = await resolver.search_candidates(query)
    if not candidates:
        click.echo("没有找到结果")
        return None

    exact = resolver.exact_matches(query, candidates)
    if len(exact) == 1:
        logger.info(f"找到完全匹配: {exact[0].name}")
        return await resolver.resolve_result(exact[0], version)

    click.echo(f"'{query}' 有多个候选，请使用 source:id 指定:")
    echo_results(exact or candidates)
    return None


def _warn_incompatible(resolved: ResolvedInstall, project: ProjectConfig):
    server_version = project.server.version
    if not VersionMatcher.supports_server_version(
        resolved.resource.tested_versions, server_version
    ):
        logger.warning(
            f"{resolved.resource.name} 可能不兼容当前服务器版本 ({server_version})"
        )


@main.command()
@pass_app
@run_async
async def outdated(app: AppContext):
    """列出有新版本的依赖"""
    project = app.store.read()
    if not project.dependencies:
        click.echo("没有安装任何依赖")
        return

    async with app.registry() as registry:
        planner = UpdatePlanner(registry, project.server.version)
        results = await planner.check_all_outdated(project.dependencies)

    if not results:
        click.echo("所有依赖都是最新的")
        return

    click.echo(f"{'名称':<24} {'当前':<14} {'更新':<14} {'最新':<14}")
    for item in results:
        click.echo(
            f"{item.name:<24} {item.current:<14} {item.update or '-':<14} {item.latest:<14}"
        )
    click.echo("")
    click.echo("运行 'shulkers update' 更新到同主版本的最新版本")
    click.echo("运行 'shulkers update --latest' 更新到最新版本")


@main.command()
@click.option("--latest", is_flag=True, help="更新到最新版本（不限主版本）")
@click.option("--safe", is_flag=True, help="只更新到支持当前服务器版本的版本")
@pass_app
@run_async
async def update(app: AppContext, latest: bool, safe: bool):
    """更新依赖"""
    project = app.store.read()
    if not project.dependencies:
        click.echo("没有安装任何依赖")
        return

    directory = plugin_directory(project.server_category, app.root)

    async with app.registry() as registry:
        planner = UpdatePlanner(
            registry,
            project.server.version,
            compatible_loaders(project.server.type),
        )
        plans = await planner.plan_all(
            project.dependencies, UpdatePolicy(latest=latest, safe=safe)
        )

        updates = [plan for plan in plans if plan.has_update]
        skipped = [plan for plan in plans if plan.status is UpdateStatus.SKIPPED]

        if not updates and not skipped:
            click.echo("所有依赖都是最新的")
            return

        failed = 0
        async with app.downloader(registry) as downloader:
            for plan in updates:
                try:
                    result = await downloader.download(plan.version_info, directory)
                except ShulkersError as e:
                    failed += 1
                    logger.debug(f"更新 {plan.name} 失败: {e.to_dict()}")
                    click.echo(f"✗ {plan.name}: {e}", err=True)
                    continue
                old_file = plan.dependency.file_name
                if old_file and old_file != plan.version_info.file_name:
                    (directory / old_file).unlink(missing_ok=True)
                app.store.update_dependency_version(
                    plan.name, plan.version_info.version, plan.version_info.file_name
                )
                click.echo(
                    f"↑ {plan.name} {plan.dependency.version} -> "
                    f"{plan.version_info.version} ({format_bytes(result.size)})"
                )

    for plan in skipped:
        click.echo(f"- 跳过 {plan.name}: {plan.reason}")
    if failed:
        raise click.ClickException(f"{failed} 个依赖更新失败")


@main.command()
@click.argument("name")
@click.option("--keep-file", is_flag=True, help="保留插件文件")
@pass_app
def remove(app: AppContext, name: str, keep_file: bool):
    """删除依赖"""
    try:
        project = app.store.read()
        removed = app.store.remove_dependency(name)
    except ShulkersError as e:
        raise click.ClickException(str(e)) from e

    if removed is None:
        raise click.ClickException(f"依赖 {name} 不存在")

    if removed.file_name and not keep_file:
        path = plugin_directory(project.server_category, app.root) / removed.file_name
        if path.exists():
            path.unlink()
            logger.debug(f"已删除文件: {path}")
    click.echo(f"- {name}")


@main.command("list")
@pass_app
def list_dependencies(app: AppContext):
    """列出已安装的依赖，以及插件目录中未登记的 JAR 文件"""
    try:
        project = app.store.read()
    except ShulkersError as e:
        raise click.ClickException(str(e)) from e

    dependencies = project.dependencies
    directory = plugin_directory(project.server_category, app.root)
    registered = {
        dep.file_name.lower() for dep in dependencies.values() if dep.file_name
    }
    untracked = [name for name in _jar_files(directory) if name.lower() not in registered]

    if dependencies:
        click.echo("已安装:")
        for source in DependencySource:
            entries = [
                (name, dep) for name, dep in dependencies.items() if dep.source is source
            ]
            if not entries:
                continue
            click.echo(f"  {source.value}:")
            for name, dep in entries:
                origin = f", {dep.repository}" if dep.repository else ""
                click.echo(f"    ● {name} (v{dep.version}{origin})")
    else:
        click.echo("没有安装任何依赖")

    if untracked:
        click.echo("")
        click.echo("未登记:")
        for name in untracked:
            click.echo(f"  ○ {name}")

    click.echo("")
    click.echo(f"{len(dependencies)} 个已登记，{len(untracked)} 个未登记")


def _jar_files(directory: Path) -> List[str]:
    if not directory.is_dir():
        return []
    return sorted(
        path.name
        for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() == ".jar"
    )


@main.group()
def repo():
    """管理仓库配置"""


@repo.command("list")
@pass_app
def repo_list(app: AppContext):
    """列出所有仓库"""
    click.echo("内置仓库:")
    click.echo("  spiget     Spiget (SpigotMC)")
    click.echo("  modrinth   Modrinth")

    configs = load_repositories(root=app.root)
    if configs:
        click.echo("通用仓库:")
        for config in configs:
            click.echo(f"  {config.id:<10} {config.name} ({config.base_url})")

    entries = load_github_repos(root=app.root)
    if entries:
        click.echo("GitHub 仓库:")
        for entry in entries:
            click.echo(f"  {entry.name:<10} {entry.url}")


@repo.command("add")
@click.argument("source")
@click.option("--name", help="显示名称（仅 GitHub 仓库）")
@click.option("-g", "--global", "global_", is_flag=True, help="添加到 ~/.shulkers/repository")
@pass_app
def repo_add(app: AppContext, source: str, name: Optional[str], global_: bool):
    """
    添加仓库

    SOURCE 为 GitHub 仓库地址，或通用仓库的 YAML 配置文件路径。
    """
    if not global_ and not app.store.exists():
        raise click.ClickException("当前目录不是 shulkers 项目，请先运行 init 或使用 --global")

    try:
        if "github.com/" in source:
            _, repo_name = parse_github_url(source)
            add_github_repo(source, name or repo_name, global_, app.root)
            click.echo(f"已添加 GitHub 仓库 {name or repo_name}")
            return

        path = Path(source)
        if not path.exists():
            raise click.ClickException(f"文件不存在: {source}")
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ConfigValidationError(f"仓库配置必须是映射: {source}")
        config = GenericRepositoryConfig.from_dict(data)
        if config.id in ("spiget", "modrinth", "github"):
            raise ConfigValidationError(f"仓库 ID {config.id} 与内置仓库冲突")
        saved = save_repository(config, global_, app.root)
    except (ShulkersError, yaml.YAMLError, OSError) as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"已添加仓库 {config.id} ({saved})")


@repo.command("remove")
@click.argument("target")
@click.option("-g", "--global", "global_", is_flag=True, help="从 ~/.shulkers/repository 删除")
@pass_app
def repo_remove(app: AppContext, target: str, global_: bool):
    """按 ID 删除通用仓库，或按地址删除 GitHub 仓库"""
    if "github.com/" in target:
        removed = remove_github_repo(target, global_, app.root)
    else:
        if not repository_exists(target, global_, app.root):
            raise click.ClickException(f"仓库 {target} 不存在")
        removed = remove_repository(target, global_, app.root)

    if not removed:
        raise click.ClickException(f"仓库 {target} 不存在")
    click.echo(f"已删除仓库 {target}")


if __name__ == "__main__":
    main()
