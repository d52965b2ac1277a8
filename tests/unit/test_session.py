"""Unit tests for session bootstrap and logging configuration."""

import logging
from pathlib import Path

import pytest
from unittest.mock import Mock, patch

from ftpclient.config.credentials import CredentialManager
from ftpclient.config.settings import ClientSettings
from ftpclient.ftp.client import TransferMode
from ftpclient.ftp.exceptions import FTPConnectionError
from ftpclient.ftp.response import ResponseStatus
from ftpclient.session import configure_logging, open_session

from tests.fakes import GREETING, TEST_FTP_HOST, TEST_FTP_PORT, FakeNetwork, FakeTransport


LOGIN_REPLIES = [b"331 Password required\r\n", b"230 Logged in\r\n"]


@pytest.fixture
def settings():
    """Settings pointing at the scripted server."""
    return ClientSettings(host=TEST_FTP_HOST, port=TEST_FTP_PORT, username="alice", timeout=5)


@pytest.fixture
def credentials():
    """Credential store with a saved password."""
    manager = Mock(spec=CredentialManager)
    manager.get_password.return_value = "from-keyring"
    return manager


class TestOpenSession:
    """Tests for open_session()."""

    def test_uses_stored_password(self, settings, credentials):
        """Test the keyring password is used when none is given."""
        control = FakeTransport(incoming=GREETING, replies=LOGIN_REPLIES)
        network = FakeNetwork(control)

        client, response = open_session(settings, credentials=credentials, transport_factory=network)

        assert response.status == 230
        assert client.is_connected
        assert control.commands == ["USER alice", "PASS from-keyring"]
        assert network.opened == [(TEST_FTP_HOST, TEST_FTP_PORT, 5)]
        credentials.get_password.assert_called_once_with(TEST_FTP_HOST, "alice", TEST_FTP_PORT)

    def test_explicit_password_wins(self, settings, credentials):
        """Test a given password skips the keyring."""
        control = FakeTransport(incoming=GREETING, replies=LOGIN_REPLIES)

        open_session(settings, "given", credentials, transport_factory=FakeNetwork(control))

        assert control.commands == ["USER alice", "PASS given"]
        credentials.get_password.assert_not_called()

    def test_anonymous_without_password(self, settings, credentials):
        """Test anonymous login when no password is stored."""
        credentials.get_password.return_value = None
        control = FakeTransport(incoming=GREETING, replies=LOGIN_REPLIES)

        _, response = open_session(settings, credentials=credentials, transport_factory=FakeNetwork(control))

        assert response.is_ok
        assert control.commands == ["USER anonymous", "PASS anonymous@"]

    def test_invalid_settings(self):
        """Test settings are validated before connecting."""
        network = FakeNetwork(FakeTransport(incoming=GREETING))

        with pytest.raises(ValueError, match="Host is required"):
            open_session(ClientSettings(), transport_factory=network)

        assert network.opened == []

    def test_connect_failure_skips_login(self, settings, credentials):
        """Test a failed connection is returned without logging in."""
        error = FTPConnectionError(TEST_FTP_HOST, TEST_FTP_PORT, OSError("Connection refused"))

        client, response = open_session(
            settings, credentials=credentials, transport_factory=FakeNetwork(error)
        )

        assert response.status == ResponseStatus.CONNECTION_FAILED
        assert client.is_connected is False
        credentials.get_password.assert_not_called()

    def test_encoding_from_settings(self, settings):
        """Test the configured encoding reaches the control channel."""
        settings.encoding = "latin-1"
        control = FakeTransport(incoming=GREETING, replies=[b"230 Logged in\r\n"])

        client, _ = open_session(settings, "pw", transport_factory=FakeNetwork(control))

        assert client.control.encoding == "latin-1"

    def test_transfer_defaults_from_settings(self, settings, tmp_path):
        """Test the configured transfer mode and download path reach the client."""
        settings.transfer_mode = "ascii"
        settings.download_path = str(tmp_path)
        control = FakeTransport(incoming=GREETING, replies=[b"230 Logged in\r\n"])

        client, _ = open_session(settings, "pw", transport_factory=FakeNetwork(control))

        assert client.default_mode is TransferMode.ASCII
        assert client.download_dir == Path(tmp_path)


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_level_and_file_from_settings(self, tmp_path):
        """Test the configured level is applied and the file is written."""
        log_file = tmp_path / "client.log"

        logger = configure_logging(ClientSettings(log_level="debug"), log_file, console=False)
        logging.getLogger("ftpclient.session").debug("debug line")
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

        assert logger.level == logging.DEBUG
        assert "debug line" in log_file.read_text(encoding="utf-8")

    def test_default_log_file(self, tmp_path):
        """Test the app data log file is used when none is given."""
        default_file = tmp_path / "logs" / "ftpclient.log"

        with patch("ftpclient.session.get_log_file_path", return_value=default_file):
            logger = configure_logging(ClientSettings(), console=False)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

        assert logger.level == logging.INFO
        assert default_file.exists()
