"""Tests for fail-fast settings validation."""

import pytest

from mintline.core.config import Settings

REQUIRED = {
    "RPC_URL": "https://sepolia.base.org",
    "SIGNER_PRIVATE_KEY": "0x" + "12" * 32,
    "REGISTRY_CONTRACT_ADDRESS": "0x" + "11" * 20,
    "COLLECTION_ADDRESS": "0x" + "22" * 20,
    "PINATA_JWT": "jwt",
    "CONTENT_BASE_URL": "https://storage.example.com/bucket",
}


@pytest.fixture
def clean_env(monkeypatch):
    for name in REQUIRED:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_ENV", "production")
    return monkeypatch


def test_missing_variables_are_listed_together(clean_env):
    with pytest.raises(ValueError) as exc_info:
        Settings(_env_file=None)  # type: ignore[call-arg]

    message = str(exc_info.value)
    for name in REQUIRED:
        assert name in message


def test_complete_configuration_passes(clean_env):
    for name, value in REQUIRED.items():
        clean_env.setenv(name, value)

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.rpc_url == REQUIRED["RPC_URL"]
    assert settings.mint_max_retries == 5
    assert settings.mint_retry_backoff_seconds == 2.0


def test_validation_skipped_in_test_env(clean_env):
    clean_env.setenv("APP_ENV", "test")

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.rpc_url == ""


def test_retry_bound_from_environment(clean_env):
    clean_env.setenv("APP_ENV", "test")
    clean_env.setenv("MINT_MAX_RETRIES", "2")

    assert Settings(_env_file=None).mint_max_retries == 2  # type: ignore[call-arg]


def test_cors_origins_list(clean_env):
    clean_env.setenv("APP_ENV", "test")
    clean_env.setenv("CORS_ORIGINS", "http://localhost:3000, https://app.example.com")

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.cors_origins_list == ["http://localhost:3000", "https://app.example.com"]
