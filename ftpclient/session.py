"""Session bootstrap for ftpclient.

Opens a logged-in FtpClient from saved ClientSettings, looking the
password up in the system keyring when the caller does not pass one,
and configures logging from the same settings.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from ftpclient.config.credentials import CredentialManager
from ftpclient.config.paths import get_log_file_path
from ftpclient.config.settings import ClientSettings
from ftpclient.ftp.client import FtpClient, TransferMode
from ftpclient.ftp.response import FtpResponse
from ftpclient.ftp.transport import SocketTransport, TransportFactory
from ftpclient.utils.logging import setup_logging

logger = logging.getLogger("ftpclient.session")


def open_session(
    settings: ClientSettings,
    password: Optional[str] = None,
    credentials: Optional[CredentialManager] = None,
    transport_factory: TransportFactory = SocketTransport.open
) -> Tuple[FtpClient, FtpResponse]:
    """
    Connect and log in using saved settings.

    Anonymous login is used when no password is given or stored. The
    client downloads and uploads in the configured transfer mode and
    saves downloads to the configured download path by default.

    Args:
        settings: Connection settings
        password: Password, overrides any stored one
        credentials: Keyring-backed password store
        transport_factory: Callable opening control and data transports

    Returns:
        Tuple of (client, last response). The client stays connected
        even if login fails, so the caller can retry or disconnect.

    Raises:
        ValueError: If the settings are invalid
    """
    is_valid, error = settings.validate()
    if not is_valid:
        raise ValueError(error)

    client = FtpClient(
        transport_factory=transport_factory,
        encoding=settings.encoding,
        default_mode=TransferMode.from_name(settings.transfer_mode),
        download_dir=settings.download_path,
    )
    response = client.connect(settings.host, settings.port, settings.timeout)
    if not response.is_ok:
        return client, response

    if password is None and credentials is not None:
        password = credentials.get_password(settings.host, settings.username, settings.port)

    if password is None:
        logger.debug(f"No password for {settings.username}, logging in anonymously")
        response = client.login()
    else:
        response = client.login(settings.username, password)

    return client, response


def configure_logging(
    settings: ClientSettings,
    log_file: Optional[Path] = None,
    console: bool = True
) -> logging.Logger:
    """
    Set up the ftpclient loggers at the configured level.

    Args:
        settings: Settings providing log_level
        log_file: Log file, defaults to the one in the app data directory
        console: Whether to also log to stdout

    Returns:
        The configured package logger
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    return setup_logging(level, log_file or get_log_file_path(), console)
