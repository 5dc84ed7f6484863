"""Tests for RunConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from sweeper.config import DEFAULT_MAX_RETRIES, DEFAULT_WORKERS, RunConfig
from sweeper.errors import ConfigError
from sweeper.wipe.reporter import OutputFormat


class TestRunConfig:
    """Test suite for RunConfig."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = RunConfig(filter_path="filter.yaml")

        assert config.filter_path == Path("filter.yaml")
        assert config.dry_run is False
        assert config.force_delete is False
        assert config.output_format == OutputFormat.STRING
        assert config.max_retries == DEFAULT_MAX_RETRIES
        assert config.workers == DEFAULT_WORKERS

    def test_output_format_from_string(self) -> None:
        """Test a format name is parsed."""
        assert RunConfig(filter_path="f.yaml", output_format="JSON").output_format == OutputFormat.JSON

    def test_invalid_output_format(self) -> None:
        """Test an unknown format is a configuration error."""
        with pytest.raises(ConfigError, match="Unsupported output format"):
            RunConfig(filter_path="f.yaml", output_format="xml")

    def test_invalid_numbers(self) -> None:
        """Test negative retries and an empty pool are rejected."""
        with pytest.raises(ConfigError, match="max_retries"):
            RunConfig(filter_path="f.yaml", max_retries=-1)
        with pytest.raises(ConfigError, match="workers"):
            RunConfig(filter_path="f.yaml", workers=0)

    def test_is_immutable(self) -> None:
        """Test the config cannot be modified."""
        config = RunConfig(filter_path="f.yaml")

        with pytest.raises(AttributeError):
            config.dry_run = True  # type: ignore[misc]

    def test_from_options_env_fallback(self, monkeypatch) -> None:
        """Test region and profile fall back to AWS environment variables."""
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
        monkeypatch.setenv("AWS_PROFILE", "sandbox")

        config = RunConfig.from_options(filter_path="f.yaml")

        assert config.region == "eu-west-1"
        assert config.profile == "sandbox"

    def test_from_options_prefers_explicit_values(self, monkeypatch) -> None:
        """Test explicit options win over the environment."""
        monkeypatch.setenv("AWS_REGION", "us-east-2")
        monkeypatch.setenv("AWS_PROFILE", "sandbox")

        config = RunConfig.from_options(filter_path="f.yaml", region="ap-south-1", profile="prod")

        assert config.region == "ap-south-1"
        assert config.profile == "prod"

    def test_from_options_aws_region_first(self, monkeypatch) -> None:
        """Test AWS_REGION takes precedence over AWS_DEFAULT_REGION."""
        monkeypatch.setenv("AWS_REGION", "us-east-2")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")

        assert RunConfig.from_options(filter_path="f.yaml").region == "us-east-2"
