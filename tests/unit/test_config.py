"""Unit tests for configuration models, YAML loading and environment overrides."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from fitfetch.config import Config, ExtractionSettings, load_config
from fitfetch.config.config import KNOWN_STRATEGIES, find_config_file


@pytest.mark.unit
class TestExtractionSettings:
    def test_defaults(self):
        settings = ExtractionSettings()

        assert settings.max_retries == 2
        assert settings.timeout_ms == 10000
        assert settings.timeout_seconds == 10.0
        assert settings.validate_content is True
        assert settings.retry_policy == "single_pass"
        assert settings.strategy_order == list(KNOWN_STRATEGIES)

    def test_backoff_schedule(self):
        settings = ExtractionSettings()

        assert [settings.backoff_seconds(i) for i in range(7)] == [0.5, 0.7, 0.9, 1.1, 1.3, 1.5, 1.5]

    @pytest.mark.parametrize(
        "order",
        [[], ["direct_fetch", "teleport"], ["direct_fetch", "direct_fetch"]],
    )
    def test_invalid_strategy_order(self, order):
        with pytest.raises(ValidationError):
            ExtractionSettings(strategy_order=order)

    def test_rejects_unknown_retry_policy(self):
        with pytest.raises(ValidationError):
            ExtractionSettings(retry_policy="forever")

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            ExtractionSettings(timeout_ms=0)


@pytest.mark.unit
class TestConfigLoading:
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "fitfetch.yaml"
        path.write_text(
            "extraction:\n"
            "  timeout_ms: 2500\n"
            "  strategy_order: [direct_fetch, image_proxy]\n"
            "validation:\n"
            "  allowed_mime_types: [IMAGE/PNG]\n"
            "portfolio:\n"
            f"  path: {tmp_path / 'portfolio.json'}\n",
            encoding="utf-8",
        )

        config = Config.from_yaml(path)

        assert config.extraction.timeout_ms == 2500
        assert config.extraction.strategy_order == ["direct_fetch", "image_proxy"]
        assert config.validation.allowed_mime_types == ["image/png"]
        assert config.portfolio.path == tmp_path / "portfolio.json"

    def test_empty_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / "fitfetch.yaml"
        path.write_text("", encoding="utf-8")

        assert Config.from_yaml(path).extraction.timeout_ms == 10000

    def test_missing_yaml(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.from_yaml(tmp_path / "absent.yaml")

    def test_load_config_discovers_file_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "fitfetch.yml").write_text("extraction:\n  max_retries: 5\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        assert find_config_file() == Path.cwd() / "fitfetch.yml"
        assert load_config().extraction.max_retries == 5

    def test_load_config_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert load_config().extraction.max_retries == 2

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FITFETCH_EXTRACTION__TIMEOUT_MS", "1234")
        monkeypatch.setenv("FITFETCH_GENERATION__ENABLE_UPLOAD_FALLBACK", "false")

        config = Config()

        assert config.extraction.timeout_ms == 1234
        assert config.generation.enable_upload_fallback is False

    def test_default_relays(self):
        proxies = Config().proxies

        assert [r.name for r in proxies.reliable] == ["allorigins", "codetabs"]
        assert [r.name for r in proxies.image] == ["weserv", "imageproxy"]
        assert all(not r.encode_target for r in proxies.cors_bypass)
