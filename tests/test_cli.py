from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import yaml
from click.testing import CliRunner
from loguru import logger

from shulkers import cli
from shulkers.download import DownloadResult
from shulkers.exceptions import DownloadNetworkError, NotFoundError
from shulkers.models import DependencyRecord, DependencySource
from shulkers.project import ProjectStore
from shulkers.services.registry import RepositoryRegistry

from conftest import FakeRepository, make_resource, make_result, make_versions


class FakeDownloader:
    def __init__(self):
        self.download = AsyncMock(side_effect=self._download)

    async def _download(self, version_info, directory):
        path = Path(directory) / version_info.file_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"jar")
        return DownloadResult(file_path=path, size=3)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger.remove()


@pytest.fixture
def root(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    path = tmp_path / "server"
    path.mkdir()
    return path


@pytest.fixture
def repos(monkeypatch):
    """替换注册表和下载器，返回可按 ID 配置的仓库"""
    registry = RepositoryRegistry()
    downloader = FakeDownloader()
    monkeypatch.setattr(cli.AppContext, "registry", lambda self: registry)
    monkeypatch.setattr(cli.AppContext, "downloader", lambda self, reg: downloader)
    registry.downloader = downloader
    return registry


def invoke(root, *args):
    return CliRunner().invoke(cli.main, ["-C", str(root), *args])


def test_init_creates_project(root):
    result = invoke(root, "init", "survival", "--type", "purpur", "--version", "1.20.4")
    assert result.exit_code == 0, result.output

    project = ProjectStore(root).read()
    assert project.name == "survival"
    assert project.server.type == "purpur"

    again = invoke(root, "init")
    assert again.exit_code != 0


def test_install_records_dependency(root, repos):
    ProjectStore(root).init("survival")
    repos.register(
        FakeRepository("modrinth", resource=make_resource("lp", "LuckPerms", "modrinth"))
    )

    result = invoke(root, "install", "modrinth:lp@5.4.0")

    assert result.exit_code == 0, result.output
    dependency = ProjectStore(root).dependencies()["LuckPerms"]
    assert dependency == DependencyRecord(
        source=DependencySource.MODRINTH, id="lp", version="5.4.0", file_name="lp-5.4.0.jar"
    )
    assert (root / "plugins" / "lp-5.4.0.jar").exists()


def test_install_stops_on_premium_resource(root, repos):
    ProjectStore(root).init("survival")
    spiget = FakeRepository("spiget", resource=make_resource("1", "Paid", premium=True))
    repos.register(spiget)

    result = invoke(root, "install", "spigot:1")

    assert result.exit_code == 0
    assert "https://example.com/1" in result.output
    spiget.get_latest_version.assert_not_awaited()
    repos.downloader.download.assert_not_awaited()
    assert ProjectStore(root).dependencies() == {}


def test_install_requires_project(root, repos):
    result = invoke(root, "install", "modrinth:lp")
    assert result.exit_code != 0
    assert "project.yml" in result.output


def test_install_rejects_empty_target(root, repos):
    ProjectStore(root).init("survival")
    result = invoke(root, "install", "")
    assert result.exit_code == 2


def test_update_and_outdated(root, repos):
    store = ProjectStore(root)
    store.init("survival", server_version="1.20.1")
    store.add_dependency(
        "Proj",
        DependencyRecord(
            source=DependencySource.MODRINTH, id="proj", version="1.0.0", file_name="proj-1.0.0.jar"
        ),
    )
    (root / "plugins").mkdir()
    (root / "plugins" / "proj-1.0.0.jar").write_bytes(b"old")
    repos.register(FakeRepository("modrinth", versions=make_versions("2.0.0", "1.2.0", "1.0.0")))

    outdated = invoke(root, "outdated")
    assert outdated.exit_code == 0, outdated.output
    assert "1.2.0" in outdated.output
    assert "2.0.0" in outdated.output

    updated = invoke(root, "update")
    assert updated.exit_code == 0, updated.output
    assert store.dependencies()["Proj"].version == "1.2.0"
    assert (root / "plugins" / "proj-1.2.0.jar").exists()
    assert not (root / "plugins" / "proj-1.0.0.jar").exists()


def test_update_safe_reports_skipped(root, repos):
    store = ProjectStore(root)
    store.init("survival", server_version="1.20.1")
    store.add_dependency(
        "Proj", DependencyRecord(source=DependencySource.MODRINTH, id="proj", version="1.0.0")
    )
    repos.register(
        FakeRepository("modrinth", versions=make_versions("1.1.0", game_versions=["1.19"]))
    )

    result = invoke(root, "update", "--safe")

    assert result.exit_code == 0, result.output
    assert "v1.1.0 does not support server 1.20.1" in result.output
    assert store.dependencies()["Proj"].version == "1.0.0"


def test_remove_deletes_file(root):
    store = ProjectStore(root)
    store.init("survival")
    store.add_dependency(
        "Vault",
        DependencyRecord(
            source=DependencySource.SPIGOT, id="34315", version="1.7.3", file_name="Vault.jar"
        ),
    )
    (root / "plugins").mkdir()
    (root / "plugins" / "Vault.jar").write_bytes(b"jar")

    result = invoke(root, "remove", "Vault")

    assert result.exit_code == 0, result.output
    assert store.dependencies() == {}
    assert not (root / "plugins" / "Vault.jar").exists()
    assert invoke(root, "remove", "Vault").exit_code != 0


def test_repo_add_list_remove(root, tmp_path):
    ProjectStore(root).init("survival")
    config_file = tmp_path / "hangar.yml"
    config_file.write_text(
        yaml.safe_dump({"id": "hangar", "name": "Hangar", "baseUrl": "https://hangar.example.com"}),
        encoding="utf-8",
    )

    assert invoke(root, "repo", "add", str(config_file)).exit_code == 0
    github = invoke(root, "repo", "add", "https://github.com/EssentialsX/Essentials")
    assert github.exit_code == 0, github.output

    listing = invoke(root, "repo", "list")
    assert "hangar" in listing.output
    assert "https://github.com/EssentialsX/Essentials" in listing.output

    assert invoke(root, "repo", "remove", "hangar").exit_code == 0
    assert invoke(root, "repo", "remove", "hangar").exit_code != 0
    assert invoke(root, "repo", "remove", "https://github.com/EssentialsX/Essentials").exit_code == 0


def test_repo_add_requires_project_for_local_scope(root):
    result = invoke(root, "repo", "add", "https://github.com/owner/repo")
    assert result.exit_code != 0


def test_install_multiple_targets_isolates_failures(root, repos):
    ProjectStore(root).init("survival")
    spiget = FakeRepository("spiget")
    spiget.get_resource.side_effect = NotFoundError("资源不存在: resources/999")
    repos.register(spiget)
    repos.register(
        FakeRepository("modrinth", resource=make_resource("lp", "LuckPerms", "modrinth"))
    )

    result = invoke(root, "install", "spigot:999", "modrinth:lp@5.4.0")

    assert result.exit_code == 1
    assert "spigot:999" in result.output
    assert "1 个目标安装失败" in result.output
    assert set(ProjectStore(root).dependencies()) == {"LuckPerms"}


def test_install_generic_search_hit(root, repos):
    ProjectStore(root).init("survival")
    repos.register(
        FakeRepository(
            "hangar",
            search_results=[make_result("x", "Chunky", "hangar")],
            resource=make_resource("x", "Chunky", "hangar"),
        )
    )

    result = invoke(root, "install", "chunky")

    assert result.exit_code == 0, result.output
    assert "hangar:x" in result.output
    dependency = ProjectStore(root).dependencies()["Chunky"]
    assert dependency.source is DependencySource.PRIVATE
    assert dependency.repository == "hangar"
    assert (root / "plugins" / "x-latest.jar").exists()


def test_update_continues_after_download_failure(root, repos):
    store = ProjectStore(root)
    store.init("survival", server_version="1.20.1")
    for idx in ("a", "b"):
        store.add_dependency(
            idx.upper(),
            DependencyRecord(source=DependencySource.MODRINTH, id=idx, version="1.0.0"),
        )
    store.add_dependency(
        "Gone",
        DependencyRecord(
            source=DependencySource.PRIVATE, id="g", version="1.0.0", repository="removed"
        ),
    )
    store.add_dependency(
        "Handmade", DependencyRecord(source=DependencySource.LOCAL, id="h", version="1.0.0")
    )
    repos.register(FakeRepository("modrinth", versions=make_versions("1.2.0", "1.0.0")))

    download = repos.downloader.download.side_effect

    async def fail_for_a(version_info, directory):
        if version_info.id == "a":
            raise DownloadNetworkError("boom")
        return await download(version_info, directory)

    repos.downloader.download.side_effect = fail_for_a

    result = invoke(root, "update")

    assert result.exit_code == 1
    assert "boom" in result.output
    assert "1 个依赖更新失败" in result.output
    assert "来源 removed 不可用" in result.output
    assert "Handmade" not in result.output
    dependencies = store.dependencies()
    assert dependencies["A"].version == "1.0.0"
    assert dependencies["B"].version == "1.2.0"


def test_list_shows_dependencies_and_untracked_jars(root):
    store = ProjectStore(root)
    store.init("survival")
    store.add_dependency(
        "Vault",
        DependencyRecord(
            source=DependencySource.SPIGOT, id="34315", version="1.7.3", file_name="Vault.jar"
        ),
    )
    store.add_dependency(
        "Chunky",
        DependencyRecord(
            source=DependencySource.PRIVATE, id="x", version="1.3.0", repository="hangar"
        ),
    )
    plugins = root / "plugins"
    plugins.mkdir()
    (plugins / "vault.JAR").write_bytes(b"jar")
    (plugins / "Extra.jar").write_bytes(b"jar")
    (plugins / "notes.txt").write_text("x")

    result = invoke(root, "list")

    assert result.exit_code == 0, result.output
    assert "● Vault (v1.7.3)" in result.output
    assert "● Chunky (v1.3.0, hangar)" in result.output
    assert result.output.index("spigot:") < result.output.index("private:")
    assert "○ Extra.jar" in result.output
    assert "vault.JAR" not in result.output
    assert "notes.txt" not in result.output
    assert "2 个已登记，1 个未登记" in result.output


def test_list_requires_project(root):
    result = invoke(root, "list")
    assert result.exit_code != 0
    assert "project.yml" in result.output
