import aiohttp
import pytest

from shulkers.api import (
    GenericRepository,
    GitHubRepository,
    ModrinthRepository,
    Repository,
    SpigetRepository,
)
from shulkers.config import Settings
from shulkers.exceptions import UpstreamUnavailableError
from shulkers.models import (
    DependencyRecord,
    DependencySource,
    GenericRepositoryConfig,
    ReleaseHostEntry,
)
from shulkers.services.registry import RepositoryRegistry

from conftest import FakeRepository, make_result


def test_register_get_all():
    registry = RepositoryRegistry()
    first = FakeRepository("a")
    second = FakeRepository("b")
    registry.register(first)
    registry.register(second)

    assert registry.get("a") is first
    assert registry.get("missing") is None
    assert registry.all() == [first, second]


def test_register_replaces_same_id():
    registry = RepositoryRegistry()
    registry.register(FakeRepository("a"))
    replacement = FakeRepository("a")
    registry.register(replacement)
    assert registry.all() == [replacement]


def test_for_source_maps_spigot_to_spiget():
    registry = RepositoryRegistry()
    spiget = FakeRepository("spiget")
    registry.register(spiget)

    assert registry.for_source(DependencySource.SPIGOT) is spiget
    assert registry.for_source(DependencySource.MODRINTH) is None
    assert registry.for_source(DependencySource.LOCAL) is None


def test_for_dependency_prefers_recorded_repository():
    registry = RepositoryRegistry()
    spiget = FakeRepository("spiget")
    hangar = FakeRepository("hangar")
    registry.register(spiget)
    registry.register(hangar)

    def record(source, repository=None):
        return DependencyRecord(source=source, id="1", version="1.0", repository=repository)

    assert registry.for_dependency(record(DependencySource.SPIGOT)) is spiget
    assert registry.for_dependency(record(DependencySource.PRIVATE, "hangar")) is hangar
    assert registry.for_dependency(record(DependencySource.PRIVATE, "gone")) is None
    assert registry.for_dependency(record(DependencySource.PRIVATE)) is None


def test_load_from_config_registers_generic_repositories():
    registry = RepositoryRegistry()
    registry.load_from_config(
        [
            GenericRepositoryConfig.from_dict(
                {"id": "hangar", "name": "Hangar", "baseUrl": "https://hangar.example.com"}
            )
        ]
    )
    repository = registry.get("hangar")
    assert isinstance(repository, GenericRepository)
    assert isinstance(repository, Repository)


@pytest.mark.asyncio
async def test_search_all_flattens_results():
    registry = RepositoryRegistry()
    registry.register(FakeRepository("a", search_results=[make_result("1", "One")]))
    registry.register(
        FakeRepository("b", search_results=[make_result("2", "Two"), make_result("3", "Three")])
    )

    results = await registry.search_all("o", loaders=["paper"])

    assert [r.id for r in results] == ["1", "2", "3"]
    registry.get("a").search.assert_awaited_once_with("o", ["paper"])


@pytest.mark.asyncio
async def test_search_all_survives_failing_repository():
    registry = RepositoryRegistry()
    broken = FakeRepository("broken")
    broken.search.side_effect = UpstreamUnavailableError("timeout")
    crashing = FakeRepository("crashing")
    crashing.search.side_effect = KeyError("hits")
    registry.register(broken)
    registry.register(crashing)
    registry.register(FakeRepository("ok", search_results=[make_result("1", "One")]))

    results = await registry.search_all("one")

    assert [r.id for r in results] == ["1"]


@pytest.mark.asyncio
async def test_search_all_with_no_repositories():
    assert await RepositoryRegistry().search_all("x") == []


@pytest.mark.asyncio
async def test_create_registers_builtins_and_config():
    config = GenericRepositoryConfig.from_dict(
        {"id": "hangar", "name": "Hangar", "baseUrl": "https://hangar.example.com"}
    )
    entry = ReleaseHostEntry(url="https://github.com/owner/repo", name="Repo")

    async with RepositoryRegistry.create(Settings(), [config], [entry]) as registry:
        ids = [repo.id for repo in registry.all()]
        assert ids == ["spiget", "modrinth", "github", "hangar"]
        assert "owner/repo" in registry.get("github").repositories
        assert registry.get("modrinth").client.session is registry.session

    assert registry.session.closed


@pytest.mark.asyncio
async def test_aclose_closes_every_repository():
    registry = RepositoryRegistry()
    repos = [FakeRepository("a"), FakeRepository("b")]
    for repo in repos:
        registry.register(repo)

    await registry.aclose()

    for repo in repos:
        repo.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_adapters_close_their_own_sessions():
    config = GenericRepositoryConfig.from_dict(
        {"id": "hangar", "name": "Hangar", "baseUrl": "https://hangar.example.com"}
    )
    adapters = [
        ModrinthRepository(),
        SpigetRepository(),
        GitHubRepository(),
        GenericRepository(config),
    ]
    sessions = [adapter.client.session for adapter in adapters]

    for adapter in adapters:
        await adapter.close()

    assert all(session.closed for session in sessions)


@pytest.mark.asyncio
async def test_adapter_leaves_shared_session_open():
    async with aiohttp.ClientSession() as session:
        adapter = ModrinthRepository(session=session)
        await adapter.close()
        assert not session.closed
