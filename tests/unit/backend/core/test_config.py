"""
Unit Tests for Configuration Management.

Black box tests against the public interface of config.py.
Tests run against the real project files (YAML configs).
Failure scenarios use tmp_path to create controlled filesystems.
No mocking: the config loader is the system under test.
"""

import pytest

from slate.backend.core.config import (
    AppConfig,
    Settings,
    find_project_root,
    get_app_config,
    get_database_url,
    get_settings,
    load_yaml_config,
    validate_project_root,
)
from slate.backend.core.config_schema import (
    ApplicationSchema,
    ConcurrencySchema,
    DatabaseSchema,
    EmbeddingsSchema,
    FeaturesSchema,
    IntakeSchema,
    LoggingSchema,
    SecuritySchema,
)

CONFIG_FILES = [
    "application.yaml",
    "database.yaml",
    "logging.yaml",
    "features.yaml",
    "security.yaml",
    "concurrency.yaml",
    "intake.yaml",
    "embeddings.yaml",
]


# =============================================================================
# find_project_root
# =============================================================================


class TestFindProjectRoot:
    """Tests for .project_root marker discovery."""

    def test_finds_root_from_project_directory(self):
        root = find_project_root()
        assert root.is_dir()
        assert (root / ".project_root").exists()

    def test_config_directory_exists_at_root(self):
        root = find_project_root()
        assert (root / "config" / "settings").is_dir()

    def test_raises_when_no_marker_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(RuntimeError, match="Project root not found"):
            find_project_root()


class TestValidateProjectRoot:
    """Tests for the SystemExit wrapper around find_project_root."""

    def test_returns_path_when_marker_exists(self):
        root = validate_project_root()
        assert (root / ".project_root").exists()

    def test_exits_when_marker_missing(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit):
            validate_project_root()


# =============================================================================
# load_yaml_config
# =============================================================================


class TestLoadYamlConfig:
    """Tests for YAML file loading from config/settings/."""

    def test_loads_application_yaml_as_dict(self):
        data = load_yaml_config("application.yaml")
        assert isinstance(data, dict)
        assert "name" in data
        assert "notes" in data

    @pytest.mark.parametrize("filename", CONFIG_FILES)
    def test_loads_every_config_file(self, filename):
        data = load_yaml_config(filename)
        assert isinstance(data, dict)
        assert len(data) > 0

    def test_raises_for_nonexistent_file(self):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_config("does_not_exist.yaml")

    def test_returns_empty_dict_for_empty_yaml(self, tmp_path, monkeypatch):
        """An empty YAML file should return {} rather than None."""
        (tmp_path / ".project_root").touch()
        settings_dir = tmp_path / "config" / "settings"
        settings_dir.mkdir(parents=True)
        (settings_dir / "empty.yaml").write_text("")
        monkeypatch.chdir(tmp_path)

        assert load_yaml_config("empty.yaml") == {}


# =============================================================================
# Settings (secrets)
# =============================================================================


class TestSettings:
    """Tests for secret loading."""

    def test_loads_settings(self):
        assert isinstance(get_settings(), Settings)

    def test_required_secrets_are_present(self):
        settings = get_settings()
        assert len(settings.db_password) > 0
        assert len(settings.jwt_secret) > 0

    def test_optional_keys_default_to_empty(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("EMBEDDING_API_KEY", raising=False)

        settings = Settings(_env_file=None)

        assert isinstance(settings.openai_api_key, str)
        assert isinstance(settings.embedding_api_key, str)

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "from-the-environment")

        assert get_settings().jwt_secret == "from-the-environment"

    def test_missing_required_secret_fails(self, monkeypatch):
        from pydantic import ValidationError as PydanticValidationError

        monkeypatch.delenv("DB_PASSWORD", raising=False)

        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None)


# =============================================================================
# AppConfig (validated YAML)
# =============================================================================


class TestAppConfig:
    """Tests for validated YAML configuration loading."""

    @pytest.mark.parametrize(
        ("attribute", "schema"),
        [
            ("application", ApplicationSchema),
            ("database", DatabaseSchema),
            ("logging", LoggingSchema),
            ("features", FeaturesSchema),
            ("security", SecuritySchema),
            ("concurrency", ConcurrencySchema),
            ("intake", IntakeSchema),
            ("embeddings", EmbeddingsSchema),
        ],
    )
    def test_sections_return_typed_schema(self, attribute, schema):
        assert isinstance(getattr(AppConfig(), attribute), schema)

    def test_note_limits_are_consistent(self):
        notes = AppConfig().application.notes
        assert 1 <= notes.default_limit <= notes.max_limit

    def test_security_has_attribute_access(self):
        security = AppConfig().security
        assert isinstance(security.jwt.algorithm, str)
        assert isinstance(security.jwt.access_token_expire_minutes, int)
        assert security.api_keys.prefix == "sk_live_"
        assert security.api_keys.random_bytes == 32

    def test_rejects_yaml_with_missing_required_fields(self, tmp_path, monkeypatch):
        """A YAML file missing required fields should fail Pydantic validation."""
        (tmp_path / ".project_root").touch()
        settings_dir = tmp_path / "config" / "settings"
        settings_dir.mkdir(parents=True)
        for filename in CONFIG_FILES:
            (settings_dir / filename).write_text("name: 'Incomplete'")
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ValueError, match="Invalid configuration"):
            AppConfig()

    def test_rejects_yaml_with_unknown_fields(self):
        """extra='forbid' on schemas should reject unknown YAML keys."""
        from pydantic import ValidationError as PydanticValidationError

        data = load_yaml_config("application.yaml")
        data["unknown_field"] = "oops"
        with pytest.raises(PydanticValidationError, match="Extra inputs are not permitted"):
            ApplicationSchema(**data)


# =============================================================================
# Cached accessors
# =============================================================================


class TestCachedAccessors:
    """Tests for the cached get_settings() and get_app_config() accessors."""

    def test_settings_cached(self):
        assert get_settings() is get_settings()

    def test_app_config_cached(self):
        assert get_app_config() is get_app_config()


# =============================================================================
# URL builders
# =============================================================================


class TestGetDatabaseUrl:
    """Tests for database URL construction."""

    def test_async_url_uses_asyncpg_driver(self):
        assert get_database_url(async_driver=True).startswith("postgresql+asyncpg://")

    def test_sync_url_uses_postgresql_driver(self):
        url = get_database_url(async_driver=False)
        assert url.startswith("postgresql://")
        assert "+asyncpg" not in url

    def test_url_contains_config_values(self):
        url = get_database_url()
        db = get_app_config().database
        assert f"@{db.host}:{db.port}/{db.name}" in url
        assert f":{get_settings().db_password}@" in url
