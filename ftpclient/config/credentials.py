"""Secure credential storage for ftpclient.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) to store FTP passwords. Entries are keyed like
the authority part of an FTP URL, so the same user on two ports of one
host keeps two passwords.
"""

from typing import Optional

import keyring
from keyring.errors import KeyringError

from ftpclient.ftp.control import DEFAULT_PORT


class CredentialManager:
    """FTP passwords in the system keyring."""

    SERVICE_NAME = "ftpclient"

    @staticmethod
    def account_name(host: str, username: str, port: int = DEFAULT_PORT) -> str:
        """Keyring account for a login, e.g. "alice@ftp.example.com:21"."""
        return f"{username}@{host.lower()}:{port}"

    def save_password(
        self,
        host: str,
        username: str,
        password: str,
        port: int = DEFAULT_PORT
    ) -> bool:
        """
        Store the password for username on host:port.

        Returns:
            True if the keyring accepted it, False otherwise
        """
        try:
            keyring.set_password(self.SERVICE_NAME, self.account_name(host, username, port), password)
        except KeyringError:
            return False
        return True

    def get_password(self, host: str, username: str, port: int = DEFAULT_PORT) -> Optional[str]:
        """Stored password, or None if there is none or the keyring fails."""
        try:
            return keyring.get_password(self.SERVICE_NAME, self.account_name(host, username, port))
        except KeyringError:
            return None

    def delete_password(self, host: str, username: str, port: int = DEFAULT_PORT) -> bool:
        """
        Forget the stored password.

        Returns:
            True if an entry was removed, False otherwise
        """
        try:
            keyring.delete_password(self.SERVICE_NAME, self.account_name(host, username, port))
        except KeyringError:
            return False
        return True
