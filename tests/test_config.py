"""Tests for Settings."""

import pytest
from pydantic import ValidationError

from ecr_scanner.config import Settings, load_settings


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self) -> None:
        settings = load_settings()

        assert settings.log_format == "logfmt"
        assert settings.log_level == "info"
        assert settings.cron_schedule == "0 35 */3 * * *"
        assert settings.cron_allow_overlap is False
        assert settings.web_host == "127.0.0.1"
        assert settings.web_port == 2112
        assert settings.metrics_path == "/metrics"
        assert settings.scan_concurrency == 10
        assert settings.aws_region is None
        assert settings.aws_registry_id is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_ECR_SCANNER_WEB_HOST", "0.0.0.0")
        monkeypatch.setenv("AWS_ECR_SCANNER_WEB_PORT", "9102")
        monkeypatch.setenv("AWS_ECR_SCANNER_METRICS_PATH", "/prom")
        monkeypatch.setenv("AWS_ECR_SCANNER_LOG_FORMAT", "JSON")
        monkeypatch.setenv("AWS_ECR_SCANNER_CRON_SCHEDULE", "0 0 * * * *")
        monkeypatch.setenv("AWS_ECR_SCANNER_CRON_ALLOW_OVERLAP", "true")
        monkeypatch.setenv("AWS_ECR_SCANNER_SCAN_CONCURRENCY", "3")

        settings = load_settings()

        assert settings.web_host == "0.0.0.0"
        assert settings.web_port == 9102
        assert settings.metrics_path == "/prom"
        assert settings.log_format == "json"
        assert settings.cron_schedule == "0 0 * * * *"
        assert settings.cron_allow_overlap is True
        assert settings.scan_concurrency == 3

    def test_unprefixed_variables_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEB_PORT", "9999")
        assert load_settings().web_port == 2112

    def test_metrics_path_gets_leading_slash(self) -> None:
        assert Settings(metrics_path="metrics").metrics_path == "/metrics"

    def test_blank_aws_values_are_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_ECR_SCANNER_AWS_REGION", "  ")
        assert load_settings().aws_region is None

    @pytest.mark.parametrize(
        "key,value",
        [
            ("AWS_ECR_SCANNER_WEB_PORT", "70000"),
            ("AWS_ECR_SCANNER_WEB_PORT", "http"),
            ("AWS_ECR_SCANNER_SCAN_CONCURRENCY", "0"),
        ],
    )
    def test_invalid_values(self, monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
        monkeypatch.setenv(key, value)
        with pytest.raises(ValidationError):
            load_settings()

    def test_dotted_keys(self) -> None:
        dotted = Settings(web_port=8080).dotted()

        assert dotted["web.port"] == 8080
        assert dotted["log.format"] == "logfmt"
        assert dotted["cron.schedule"] == "0 35 */3 * * *"
        assert dotted["cron.allow_overlap"] is False
        assert dotted["metrics.path"] == "/metrics"
        assert dotted["aws.registry_id"] is None
