import pytest
import yaml

from shulkers import config
from shulkers.config import Settings
from shulkers.exceptions import ConfigError, ConfigParseError, ConfigValidationError
from shulkers.models import GenericRepositoryConfig


@pytest.fixture
def home(tmp_path, monkeypatch):
    path = tmp_path / "home"
    path.mkdir()
    monkeypatch.setenv("HOME", str(path))
    monkeypatch.delenv("SHULKERS_TIMEOUT", raising=False)
    monkeypatch.delenv("SHULKERS_USER_AGENT", raising=False)
    return path


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "server"
    (root / ".shulkers").mkdir(parents=True)
    (root / ".shulkers" / "project.yml").write_text("name: server\n", encoding="utf-8")
    return root


def write_repo(directory, name, data):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / name).write_text(yaml.safe_dump(data), encoding="utf-8")


def test_settings_defaults(home):
    settings = Settings.load()
    assert settings.timeout == 30.0
    assert settings.user_agent.startswith("shulkers-cli/")


def test_settings_from_toml_and_env(home, monkeypatch):
    (home / ".shulkers").mkdir()
    (home / ".shulkers" / "config.toml").write_text(
        'timeout = 10\nsearch_limit = 5\nunknown = "x"\n', encoding="utf-8"
    )
    monkeypatch.setenv("SHULKERS_USER_AGENT", "custom/1.0")

    settings = Settings.load()

    assert settings.timeout == 10.0
    assert settings.search_limit == 5
    assert settings.user_agent == "custom/1.0"


def test_settings_env_timeout(home, monkeypatch):
    monkeypatch.setenv("SHULKERS_TIMEOUT", "2.5")
    assert Settings.load().timeout == 2.5


def test_settings_invalid_toml(home, tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text("timeout = = 1", encoding="utf-8")
    with pytest.raises(ConfigParseError):
        Settings.load(path)


def test_generic_config_validation():
    with pytest.raises(ConfigValidationError):
        GenericRepositoryConfig.from_dict({"id": "x", "name": "X"})

    parsed = GenericRepositoryConfig.from_dict(
        {
            "id": "x",
            "name": "X",
            "baseUrl": "https://x.example.com/",
            "searchPath": "/search?q={{query}}",
            "versionPath": "/r/{{id}}",
            "mappings": {"resultsPath": "data"},
            "versionMappings": {"downloadUrl": "file.url", "fileName": "file.name"},
        }
    )
    assert parsed.base_url == "https://x.example.com"
    assert parsed.mappings.results_path == "data"
    assert parsed.mappings.name == "name"
    assert parsed.version_mappings.file_name == "file.name"
    assert GenericRepositoryConfig.from_dict(parsed.to_dict()) == parsed


def test_local_repositories_override_global(home, project_root):
    write_repo(
        home / ".shulkers" / "repository",
        "hangar.yml",
        {"id": "hangar", "name": "Global Hangar", "baseUrl": "https://global"},
    )
    write_repo(
        home / ".shulkers" / "repository",
        "other.yaml",
        {"id": "other", "name": "Other", "baseUrl": "https://other"},
    )
    write_repo(
        project_root / ".shulkers" / "repository",
        "hangar.yml",
        {"id": "hangar", "name": "Local Hangar", "baseUrl": "https://local"},
    )

    configs = {c.id: c for c in config.load_repositories(root=project_root)}

    assert configs["hangar"].name == "Local Hangar"
    assert configs["other"].name == "Other"


def test_local_scope_requires_project(home, tmp_path):
    root = tmp_path / "not-a-project"
    write_repo(
        root / ".shulkers" / "repository",
        "x.yml",
        {"id": "x", "name": "X", "baseUrl": "https://x"},
    )
    assert config.load_repositories(root=root) == []


def test_invalid_repository_files_are_skipped(home, project_root):
    directory = project_root / ".shulkers" / "repository"
    write_repo(directory, "missing.yml", {"name": "No id"})
    (directory / "broken.yml").write_text("id: [unclosed", encoding="utf-8")
    (directory / "notes.txt").write_text("ignored", encoding="utf-8")
    write_repo(directory, "good.yml", {"id": "good", "name": "Good", "baseUrl": "https://good"})

    assert [c.id for c in config.load_repositories(root=project_root)] == ["good"]


def test_github_file_is_not_a_generic_repository(home, project_root):
    write_repo(
        project_root / ".shulkers" / "repository",
        "github.yml",
        {"repositories": [{"url": "https://github.com/owner/repo", "name": "Repo"}]},
    )
    assert config.load_repositories(root=project_root) == []
    [entry] = config.load_github_repos(root=project_root)
    assert entry.name == "Repo"


def test_save_and_remove_repository(home, project_root):
    repo_config = GenericRepositoryConfig.from_dict(
        {"id": "hangar", "name": "Hangar", "baseUrl": "https://hangar"}
    )
    path = config.save_repository(repo_config, global_=False, root=project_root)

    assert path == project_root / ".shulkers" / "repository" / "hangar.yml"
    assert config.repository_exists("hangar", root=project_root)
    assert config.remove_repository("hangar", global_=False, root=project_root)
    assert not config.remove_repository("hangar", global_=False, root=project_root)


def test_add_and_remove_github_repo(home, project_root):
    url = "https://github.com/owner/repo"
    config.add_github_repo(url, "Repo", global_=False, root=project_root)
    with pytest.raises(ConfigError):
        config.add_github_repo(url, "Repo", global_=False, root=project_root)

    assert [e.url for e in config.load_github_repos(False, project_root)] == [url]
    assert config.remove_github_repo(url, global_=False, root=project_root)
    assert config.load_github_repos(False, project_root) == []
    assert not config.remove_github_repo(url, global_=False, root=project_root)
