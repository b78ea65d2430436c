"""Tests for configuration models, loading and change notification."""

import json
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError
from site2md.core.config_manager import (
    CONFIG_JSON_ENV,
    CONFIG_PATH_ENV,
    ConfigManager,
    load_config,
)
from site2md.models.config import CustomSettings, GlobalSettings, SiteConfig, Website

YAML_CONFIG = """\
websites:
  - name: fastapi
    url: https://fastapi.tiangolo.com
    description: FastAPI documentation
    custom_settings:
      timeout: 10
      retries: 0
      preserve_images: true
      custom_headers:
        X-Docs: "1"
  - name: retired
    url: https://retired.dev
    enabled: false
settings:
  default_retries: 5
  content_processing:
    min_text_length: 50
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep configuration environment variables out of every test."""
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    monkeypatch.delenv(CONFIG_JSON_ENV, raising=False)


class TestModels:
    """Tests for the pydantic configuration models."""

    def test_defaults(self):
        settings = GlobalSettings()

        assert settings.default_timeout == 30.0
        assert settings.default_retries == 3
        assert settings.max_concurrent_requests == 5
        assert settings.global_rate_limit.requests_per_second == 2.0
        assert settings.global_rate_limit.burst_limit == 10
        assert settings.global_rate_limit.adaptive is False
        assert settings.stealth_browser.enabled is False

    def test_invalid_url_rejected(self):
        with pytest.raises(ValidationError):
            Website(name="bad", url="ftp://example.com")
        with pytest.raises(ValidationError):
            Website(name="bad", url="not a url")

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            Website(name="x", url="https://x.dev", colour="red")

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate website name"):
            SiteConfig(websites=[Website(name="a", url="https://a.dev"), Website(name="a", url="https://b.dev")])

    def test_yaml_round_trip(self):
        config = SiteConfig.from_yaml(YAML_CONFIG)
        assert SiteConfig.from_yaml(config.to_yaml()) == config

    def test_fetch_options_merge(self):
        """Test that explicit site overrides win, including falsy ones."""
        config = SiteConfig.from_yaml(YAML_CONFIG)
        options = config.settings.fetch_options(config.websites[0])

        assert options.timeout == 10
        assert options.retries == 0
        assert options.preserve_images is True
        assert options.headers == {"X-Docs": "1"}
        assert options.min_text_length == 50
        assert options.user_agent == config.settings.default_user_agent

    def test_fetch_options_without_site(self):
        options = GlobalSettings(default_retries=5).fetch_options()
        assert options.retries == 5
        assert options.use_stealth_browser is False

    def test_custom_user_agent(self):
        site = Website(
            name="ua", url="https://ua.dev", custom_settings=CustomSettings(custom_user_agent="Bot/1.0")
        )
        options = GlobalSettings().fetch_options(site)
        assert options.request_headers()["User-Agent"] == "Bot/1.0"


class TestLoadConfig:
    """Tests for load_config source resolution."""

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "sites.yaml"
        path.write_text(YAML_CONFIG)

        config = load_config(path)
        assert [site.name for site in config.websites] == ["fastapi", "retired"]

    def test_relative_path_resolved_against_cwd(self, tmp_path):
        (tmp_path / "sites.yaml").write_text(YAML_CONFIG)
        assert load_config("sites.yaml", cwd=tmp_path).websites[0].name == "fastapi"

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "env.json"
        path.write_text(json.dumps({"websites": [{"name": "env", "url": "https://env.dev"}]}))
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))

        assert load_config(cwd=tmp_path).websites[0].name == "env"

    def test_inline_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_JSON_ENV, json.dumps({"websites": [{"name": "inline", "url": "https://i.dev"}]}))
        assert load_config(cwd=tmp_path).websites[0].name == "inline"

    def test_invalid_sources_fall_through(self, tmp_path, monkeypatch):
        """Test that missing and invalid sources are skipped in order."""
        monkeypatch.setenv(CONFIG_PATH_ENV, str(tmp_path / "missing.yaml"))
        monkeypatch.setenv(CONFIG_JSON_ENV, "{not json")
        (tmp_path / "site2md.yaml").write_text(YAML_CONFIG)

        assert load_config(cwd=tmp_path).websites[0].name == "fastapi"

    def test_invalid_file_falls_back_to_defaults(self, tmp_path):
        (tmp_path / "site2md.yaml").write_text("websites:\n  - name: x\n    url: nope\n")

        config = load_config(cwd=tmp_path)
        assert [site.name for site in config.websites] == ["tailwind_css", "nextjs", "react"]

    def test_builtin_defaults(self, tmp_path):
        config = load_config(cwd=tmp_path)
        assert config.websites[2].url == "https://react.dev"
        assert config.settings == GlobalSettings()


class TestConfigManager:
    """Tests for ConfigManager."""

    @pytest.fixture
    def manager(self):
        return ConfigManager(SiteConfig.from_yaml(YAML_CONFIG))

    def test_enabled_sites_only(self, manager):
        assert [site.name for site in manager.get_websites()] == ["fastapi"]
        assert manager.get_website("retired") is None
        assert manager.get_website("fastapi").description == "FastAPI documentation"

    def test_effective_options_by_name(self, manager):
        assert manager.get_effective_options("fastapi").timeout == 10
        assert manager.get_effective_options("unknown").timeout == 30.0
        assert manager.get_effective_options().retries == 5

    def test_reload_notifies_subscribers(self, manager):
        callback = MagicMock()
        manager.subscribe(callback)
        new_config = SiteConfig(websites=[Website(name="new", url="https://new.dev")])

        manager.reload(new_config)

        callback.assert_called_once_with(new_config)
        assert manager.get_websites()[0].name == "new"

    def test_unsubscribe_is_idempotent(self, manager):
        callback = MagicMock()
        unsubscribe = manager.subscribe(callback)

        unsubscribe()
        unsubscribe()
        manager.reload(SiteConfig())

        callback.assert_not_called()

    def test_failing_subscriber_does_not_block_others(self, manager):
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        manager.subscribe(failing)
        manager.subscribe(healthy)

        manager.reload(SiteConfig())

        failing.assert_called_once()
        healthy.assert_called_once()

    def test_reload_from_path(self, tmp_path):
        path = tmp_path / "sites.yaml"
        path.write_text(YAML_CONFIG)
        manager = ConfigManager(path=path)
        assert manager.get_websites()[0].name == "fastapi"

        path.write_text("websites:\n  - name: changed\n    url: https://changed.dev\n")
        manager.reload()

        assert manager.get_websites()[0].name == "changed"
