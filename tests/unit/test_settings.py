"""Unit tests for settings and credentials management."""

import json
import pytest
from unittest.mock import patch

from ftpclient.config import paths
from ftpclient.config.settings import ClientSettings, SettingsManager
from ftpclient.config.credentials import CredentialManager


class TestClientSettings:
    """Tests for ClientSettings dataclass."""

    def test_default_values(self):
        """Test default settings values."""
        settings = ClientSettings()
        assert settings.host == ""
        assert settings.port == 21
        assert settings.username == "anonymous"
        assert settings.timeout == 30.0
        assert settings.transfer_mode == "binary"
        assert settings.encoding == "utf-8"
        assert settings.download_path == ""
        assert settings.log_level == "INFO"

    def test_to_dict(self):
        """Test converting settings to dictionary."""
        settings = ClientSettings(host="ftp.example.com", port=2121)
        data = settings.to_dict()

        assert isinstance(data, dict)
        assert data["host"] == "ftp.example.com"
        assert data["port"] == 2121
        assert "transfer_mode" in data

    def test_from_dict_ignores_unknown_keys(self):
        """Test that from_dict ignores unknown keys."""
        data = {
            "host": "ftp.example.com",
            "unknown_field": "should be ignored",
        }
        settings = ClientSettings.from_dict(data)

        assert settings.host == "ftp.example.com"
        assert not hasattr(settings, "unknown_field")

    def test_from_dict_with_missing_keys(self):
        """Test that from_dict uses defaults for missing keys."""
        settings = ClientSettings.from_dict({"host": "partial.local"})

        assert settings.host == "partial.local"
        assert settings.port == 21

    def test_validate_accepts_good_settings(self):
        """Test a complete configuration validates."""
        settings = ClientSettings(host="192.168.1.10", port=21, timeout=0)
        assert settings.validate() == (True, None)

    def test_validate_requires_host(self):
        """Test an empty host is rejected."""
        is_valid, error = ClientSettings().validate()
        assert is_valid is False
        assert "Host is required" in error

    def test_validate_rejects_bad_port(self):
        """Test an out of range port is rejected."""
        is_valid, error = ClientSettings(host="ftp.local", port=70000).validate()
        assert is_valid is False
        assert "Port must be between" in error

    def test_validate_rejects_negative_timeout(self):
        """Test a negative timeout is rejected."""
        is_valid, error = ClientSettings(host="ftp.local", timeout=-1).validate()
        assert is_valid is False
        assert "Timeout must be between" in error

    def test_validate_rejects_unknown_transfer_mode(self):
        """Test transfer mode must be ascii or binary."""
        is_valid, error = ClientSettings(host="ftp.local", transfer_mode="ebcdic").validate()
        assert is_valid is False
        assert "Transfer mode" in error

    def test_validate_rejects_unknown_log_level(self):
        """Test log level must be a logging level name."""
        is_valid, error = ClientSettings(host="ftp.local", log_level="LOUD").validate()
        assert is_valid is False
        assert "Unknown log level" in error

    def test_validate_rejects_unknown_encoding(self):
        """Test encoding must be known to Python."""
        is_valid, error = ClientSettings(host="ftp.local", encoding="no-such-codec").validate()
        assert is_valid is False
        assert "Unknown encoding" in error


class TestSettingsManager:
    """Tests for SettingsManager class."""

    @pytest.fixture
    def manager(self, temp_settings_file):
        """Create a SettingsManager with temp path."""
        return SettingsManager(config_path=temp_settings_file)

    def test_load_returns_defaults_when_file_missing(self, manager, temp_settings_file):
        """Test loading settings when file doesn't exist."""
        assert not temp_settings_file.exists()

        settings = manager.load()

        assert isinstance(settings, ClientSettings)
        assert settings.host == ""

    def test_save_creates_file(self, manager, temp_settings_file):
        """Test saving settings creates the file."""
        manager.save(ClientSettings(host="saved.local", port=5555))

        with open(temp_settings_file, "r") as f:
            data = json.load(f)
        assert data["host"] == "saved.local"
        assert data["port"] == 5555

    def test_save_creates_parent_directories(self, tmp_path):
        """Test that save creates parent directories if needed."""
        nested_path = tmp_path / "deep" / "nested" / "settings.json"
        manager = SettingsManager(config_path=nested_path)

        manager.save(ClientSettings(host="nested.local"))

        assert nested_path.exists()

    def test_load_restores_saved_settings(self, manager, temp_settings_file):
        """Test that load restores previously saved settings."""
        manager.save(ClientSettings(
            host="restore.local",
            port=7777,
            username="testuser",
            transfer_mode="ascii",
        ))

        loaded = SettingsManager(config_path=temp_settings_file).load()

        assert loaded.host == "restore.local"
        assert loaded.port == 7777
        assert loaded.username == "testuser"
        assert loaded.transfer_mode == "ascii"

    def test_load_handles_corrupted_file(self, manager, temp_settings_file):
        """Test loading settings from corrupted file returns defaults."""
        temp_settings_file.write_text("not valid json {{{")

        settings = manager.load()

        assert settings.host == ""

    def test_load_handles_non_object_json(self, manager, temp_settings_file):
        """Test a JSON list instead of an object falls back to defaults."""
        temp_settings_file.write_text("[1, 2, 3]")

        settings = manager.load()

        assert settings == ClientSettings()

    def test_reset_removes_file(self, manager, temp_settings_file):
        """Test reset removes the settings file."""
        manager.save(ClientSettings(host="to.delete"))
        assert temp_settings_file.exists()

        settings = manager.reset()

        assert settings == ClientSettings()
        assert not temp_settings_file.exists()

    def test_update_modifies_specific_fields(self, manager):
        """Test update modifies only specified fields."""
        manager.load()

        updated = manager.update(host="updated.local", port=8888, nonexistent_field="ignored")

        assert updated.host == "updated.local"
        assert updated.port == 8888
        assert updated.username == "anonymous"

    def test_update_loads_if_not_loaded(self, manager):
        """Test update loads settings if not already loaded."""
        updated = manager.update(host="auto.loaded")

        assert updated.host == "auto.loaded"


class TestCredentialManager:
    """Tests for CredentialManager class."""

    @pytest.fixture
    def credential_manager(self):
        """Create a CredentialManager instance."""
        return CredentialManager()

    def test_account_name(self):
        """Test the keyring account combines user, host and port."""
        assert CredentialManager.account_name("FTP.example.com", "admin") == "admin@ftp.example.com:21"
        assert CredentialManager.account_name("ftp.example.com", "admin", 2121) == "admin@ftp.example.com:2121"

    @patch("keyring.set_password")
    def test_same_user_on_different_ports(self, mock_set, credential_manager):
        """Test two servers on one host keep separate passwords."""
        credential_manager.save_password("host.local", "user", "first", 21)
        credential_manager.save_password("host.local", "user", "second", 2121)

        accounts = [call.args[1] for call in mock_set.call_args_list]
        assert accounts == ["user@host.local:21", "user@host.local:2121"]

    @patch("keyring.set_password")
    def test_save_password_success(self, mock_set, credential_manager):
        """Test successful password save."""
        result = credential_manager.save_password("host.local", "user", "secret123")

        assert result is True
        mock_set.assert_called_once_with("ftpclient", "user@host.local:21", "secret123")

    @patch("keyring.set_password")
    def test_save_password_failure(self, mock_set, credential_manager):
        """Test password save failure."""
        from keyring.errors import KeyringError
        mock_set.side_effect = KeyringError("Backend error")

        assert credential_manager.save_password("host.local", "user", "secret") is False

    @patch("keyring.get_password")
    def test_get_password_found(self, mock_get, credential_manager):
        """Test retrieving existing password."""
        mock_get.return_value = "my_secret"

        result = credential_manager.get_password("host.local", "user")

        assert result == "my_secret"
        mock_get.assert_called_once_with("ftpclient", "user@host.local:21")

    @patch("keyring.get_password")
    def test_get_password_error(self, mock_get, credential_manager):
        """Test get_password returns None on error."""
        from keyring.errors import KeyringError
        mock_get.side_effect = KeyringError("Backend error")

        assert credential_manager.get_password("host.local", "user") is None

    @patch("keyring.delete_password")
    def test_delete_password_failure(self, mock_delete, credential_manager):
        """Test password deletion failure."""
        from keyring.errors import PasswordDeleteError
        mock_delete.side_effect = PasswordDeleteError("Not found")

        assert credential_manager.delete_password("host.local", "user") is False

    @patch("keyring.delete_password")
    def test_delete_password_success(self, mock_delete, credential_manager):
        """Test password deletion uses the same account name."""
        assert credential_manager.delete_password("host.local", "user", 2121) is True
        mock_delete.assert_called_once_with("ftpclient", "user@host.local:2121")


class TestPaths:
    """Tests for app data path discovery."""

    def test_linux_paths_follow_xdg(self, tmp_path, monkeypatch):
        """Test settings and logs live under XDG_CONFIG_HOME/ftpclient."""
        monkeypatch.setattr(paths.sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert paths.get_app_data_dir() == tmp_path / "ftpclient"
        assert paths.get_settings_path() == tmp_path / "ftpclient" / "settings.json"
        assert paths.get_log_file_path() == tmp_path / "ftpclient" / "logs" / "ftpclient.log"
        assert (tmp_path / "ftpclient" / "logs").is_dir()

    def test_default_manager_uses_app_data(self, tmp_path, monkeypatch):
        """Test SettingsManager defaults to the app data settings file."""
        monkeypatch.setattr(paths.sys, "platform", "linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        SettingsManager().save(ClientSettings(host="default.local"))

        assert (tmp_path / "ftpclient" / "settings.json").exists()
