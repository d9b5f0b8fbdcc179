"""Tests for configuration loading and validation."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from repohealth.config import DEFAULT_API_URL, load_config
from repohealth.errors import AuthenticationError, ConfigurationError


def test_load_config_reads_token_and_defaults(monkeypatch):
    """Verify a valid configuration picks up the token and the default API URL."""
    monkeypatch.setenv("GITHUB_TOKEN", "  secret  ")
    monkeypatch.delenv("GITHUB_API_URL", raising=False)

    config = load_config(owner=" octo ", repo="widgets", time_range="3months")

    assert config.owner == "octo"
    assert config.repo == "widgets"
    assert config.time_range == "3months"
    assert config.token == "secret"
    assert config.api_url == DEFAULT_API_URL


def test_load_config_honors_custom_api_url(monkeypatch):
    """Verify GITHUB_API_URL overrides the API base without a trailing slash."""
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3/")

    config = load_config(owner="octo", repo="widgets", time_range="1week")

    assert config.api_url == "https://ghe.example.com/api/v3"


def test_load_config_missing_token_raises_authentication_error(monkeypatch):
    """Verify a missing token is an authentication error."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    with pytest.raises(AuthenticationError):
        load_config(owner="octo", repo="widgets", time_range="1month")


def test_load_config_invalid_time_range_raises_configuration_error(monkeypatch):
    """Verify unknown time ranges are rejected before the token is checked."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    with pytest.raises(ConfigurationError):
        load_config(owner="octo", repo="widgets", time_range="2weeks")


def test_load_config_blank_repository_raises_configuration_error(monkeypatch):
    """Verify blank owner or repository names are rejected."""
    monkeypatch.setenv("GITHUB_TOKEN", "secret")

    with pytest.raises(ConfigurationError):
        load_config(owner="octo", repo="   ", time_range="1month")
