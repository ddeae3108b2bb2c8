"""Tests for VaultClient with hvac mocked out."""

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, get_database_url


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "http://vault.test:8200")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client():
    with patch("clients.vault_client.hvac.Client") as client_cls:
        client = MagicMock()
        client.auth.approle.login.return_value = {"auth": {"client_token": "tok"}}
        client.is_authenticated.return_value = True
        client_cls.return_value = client
        yield client


@pytest.fixture(autouse=True)
def reset_singleton():
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()
    yield
    vault_module._vault_client_instance = None
    vault_module._secret_cache.clear()


class TestVaultClientInit:

    def test_missing_vault_addr_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)

        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, vault_env, monkeypatch):
        monkeypatch.delenv("VAULT_SECRET_ID")

        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_logs_in_with_approle(self, vault_env, hvac_client):
        VaultClient()

        hvac_client.auth.approle.login.assert_called_once_with(role_id="role", secret_id="secret")
        assert hvac_client.token == "tok"

    def test_failed_login_raises_permission_error(self, vault_env, hvac_client):
        hvac_client.auth.approle.login.side_effect = Forbidden("denied")

        with pytest.raises(PermissionError, match="AppRole"):
            VaultClient()

    def test_unauthenticated_raises(self, vault_env, hvac_client):
        hvac_client.is_authenticated.return_value = False

        with pytest.raises(PermissionError):
            VaultClient()


class TestGetSecret:

    def test_reads_scoped_path(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {
            "data": {"data": {"url": "postgresql://db/backoffice"}}
        }

        value = VaultClient().get_secret("database", "url")

        assert value == "postgresql://db/backoffice"
        kwargs = hvac_client.secrets.kv.v2.read_secret_version.call_args.kwargs
        assert kwargs["path"] == "backoffice/database"

    def test_missing_field_raises_key_error(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"admin_url": "x"}}}

        with pytest.raises(KeyError, match="admin_url"):
            VaultClient().get_secret("database", "url")

    def test_missing_path_raises_permission_error(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("nope")

        with pytest.raises(PermissionError, match="not found"):
            VaultClient().get_secret("nowhere", "url")


class TestGetDatabaseUrl:

    def test_cached_after_first_read(self, vault_env, hvac_client):
        hvac_client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"url": "postgresql://db"}}}

        assert get_database_url() == "postgresql://db"
        assert get_database_url() == "postgresql://db"

        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1
