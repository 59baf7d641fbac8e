"""
Unit Tests for Configuration Management.

Black box tests against the public interface of config.py.
Tests run against the real project YAML files. Secrets are supplied
through environment variables; failure scenarios use tmp_path.
"""

import pytest

from notesapp.backend.core.config import (
    AppConfig,
    Settings,
    find_project_root,
    get_app_config,
    get_database_url,
    get_server_base_url,
    get_settings,
    load_yaml_config,
    validate_project_root,
)
from notesapp.backend.core.config_schema import (
    ApplicationSchema,
    FeaturesSchema,
    SecuritySchema,
    StorageSchema,
)


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Clear lru_cache between tests so each test gets a fresh load."""
    get_settings.cache_clear()
    get_app_config.cache_clear()
    yield
    get_settings.cache_clear()
    get_app_config.cache_clear()


@pytest.fixture
def secrets_env(monkeypatch):
    monkeypatch.setenv("DB_PASSWORD", "s3cret")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role")
    monkeypatch.setenv("IDENTITY_JWT_SECRET", "jwt-secret")


class TestFindProjectRoot:
    """Tests for .project_root marker discovery."""

    def test_finds_root_from_project_directory(self):
        root = find_project_root()
        assert (root / ".project_root").exists()
        assert (root / "config" / "settings").is_dir()

    def test_raises_when_no_marker_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(RuntimeError, match="Project root not found"):
            find_project_root()

    def test_validate_exits_when_marker_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit):
            validate_project_root()


class TestLoadYamlConfig:
    """Tests for YAML file loading from config/settings/."""

    def test_loads_all_config_files(self):
        filenames = [
            "application.yaml",
            "database.yaml",
            "logging.yaml",
            "features.yaml",
            "security.yaml",
            "storage.yaml",
            "observability.yaml",
            "concurrency.yaml",
        ]
        for filename in filenames:
            data = load_yaml_config(filename)
            assert isinstance(data, dict), f"{filename} did not return a dict"
            assert data, f"{filename} returned empty dict"

    def test_raises_for_nonexistent_file(self):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_config("does_not_exist.yaml")


class TestAppConfig:
    """Tests for validated YAML configuration loading."""

    def test_sections_are_typed(self):
        config = AppConfig()
        assert isinstance(config.application, ApplicationSchema)
        assert isinstance(config.features, FeaturesSchema)
        assert isinstance(config.security, SecuritySchema)
        assert isinstance(config.storage, StorageSchema)

    def test_note_limits(self):
        notes = AppConfig().application.notes
        assert notes.title_max_length == 30
        assert notes.content_max_length == 300

    def test_signed_url_ttl_is_one_day(self):
        assert AppConfig().storage.signed_url_ttl_seconds == 86400

    def test_semaphores_cover_storage_and_identity(self):
        semaphores = AppConfig().concurrency.semaphores.model_dump()
        assert semaphores == {"storage": 10, "identity": 5}

    def test_timeouts_only_external_api(self):
        assert AppConfig().application.timeouts.model_dump() == {"external_api": 30}

    def test_rejects_yaml_with_missing_required_fields(self, tmp_path, monkeypatch):
        (tmp_path / ".project_root").touch()
        settings_dir = tmp_path / "config" / "settings"
        settings_dir.mkdir(parents=True)
        (settings_dir / "application.yaml").write_text("name: 'Incomplete'")
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ValueError, match="Invalid configuration"):
            AppConfig()

    def test_rejects_unknown_fields(self):
        from pydantic import ValidationError as PydanticValidationError

        data = load_yaml_config("storage.yaml")
        data["unknown_field"] = "oops"
        with pytest.raises(PydanticValidationError, match="Extra inputs are not permitted"):
            StorageSchema(**data)

    def test_caching_returns_same_instance(self):
        assert get_app_config() is get_app_config()


class TestSettings:
    """Tests for secrets."""

    def test_reads_environment(self, secrets_env):
        settings = get_settings()
        assert isinstance(settings, Settings)
        assert settings.db_password == "s3cret"
        assert settings.supabase_service_role_key == "service-role"
        assert settings.identity_jwt_secret == "jwt-secret"


class TestUrlBuilders:
    """Tests for database and server URL construction."""

    def test_async_url_uses_asyncpg_driver(self, secrets_env):
        url = get_database_url(async_driver=True)
        db = get_app_config().database
        assert url.startswith("postgresql+asyncpg://")
        assert f"{db.user}:s3cret@{db.host}:{db.port}/{db.name}" in url

    def test_sync_url(self, secrets_env):
        assert get_database_url(async_driver=False).startswith("postgresql://")

    def test_server_base_url(self):
        base_url, timeout = get_server_base_url()
        server = get_app_config().application.server
        assert base_url == f"http://{server.host}:{server.port}"
        assert timeout > 0
