from __future__ import annotations

import dataclasses

import pytest

from trustpilot_client.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_INVITATION_API_BASE_URL,
    DEFAULT_TOKEN_URL,
    ClientConfig,
    PasswordGrantConfig,
)


def _creds():
    return PasswordGrantConfig(
        client_id="id", client_secret="secret", username="user@example.com", password="pw"
    )


def test_defaults():
    config = ClientConfig()
    assert config.api_base_url == "https://api.trustpilot.com/v1/"
    assert config.invitation_api_base_url == "https://invitations-api.trustpilot.com/v1/"
    assert config.token_url == (
        "https://api.trustpilot.com/v1/oauth/oauth-business-users-for-applications/accesstoken"
    )
    assert config.timeout == 30
    assert config.debug is False
    assert config.auth is None


def test_config_is_immutable():
    config = ClientConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.debug = True  # type: ignore[misc]


@pytest.mark.parametrize("url", ["api.trustpilot.com/v1/", "ftp://example.com/", "/v1/"])
def test_rejects_non_absolute_urls(url):
    with pytest.raises(ValueError, match="api_base_url"):
        ClientConfig(api_base_url=url)


@pytest.mark.parametrize("timeout", [0, -1])
def test_rejects_non_positive_timeout(timeout):
    with pytest.raises(ValueError, match="timeout"):
        ClientConfig(timeout=timeout)


def test_password_grant_requires_every_credential():
    with pytest.raises(ValueError, match="password"):
        PasswordGrantConfig(client_id="id", client_secret="s", username="u", password="")


def test_password_grant_repr_hides_secrets():
    text = repr(_creds())
    assert "secret" not in text
    assert "pw" not in text
    assert "user@example.com" in text


def test_from_env_without_credentials():
    config = ClientConfig.from_env({})
    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.invitation_api_base_url == DEFAULT_INVITATION_API_BASE_URL
    assert config.token_url == DEFAULT_TOKEN_URL
    assert config.auth is None


def test_from_env_reads_all_settings():
    config = ClientConfig.from_env(
        {
            "TRUSTPILOT_API_BASE_URL": "http://localhost:8080/v1/",
            "TRUSTPILOT_INVITATION_API_BASE_URL": "http://localhost:8081/v1/",
            "TRUSTPILOT_TOKEN_URL": "http://localhost:8080/v1/token",
            "TRUSTPILOT_TIMEOUT": "5",
            "TRUSTPILOT_DEBUG": "true",
            "TRUSTPILOT_CLIENT_ID": "id",
            "TRUSTPILOT_CLIENT_SECRET": "secret",
            "TRUSTPILOT_USERNAME": "user@example.com",
            "TRUSTPILOT_PASSWORD": "pw",
        }
    )
    assert config.api_base_url == "http://localhost:8080/v1/"
    assert config.invitation_api_base_url == "http://localhost:8081/v1/"
    assert config.token_url == "http://localhost:8080/v1/token"
    assert config.timeout == 5.0
    assert config.debug is True
    assert config.auth == _creds()


def test_from_env_uses_process_environment(monkeypatch):
    monkeypatch.setenv("TRUSTPILOT_DEBUG", "1")
    monkeypatch.delenv("TRUSTPILOT_CLIENT_ID", raising=False)
    assert ClientConfig.from_env().debug is True
