"""Configuration module for ftpclient.

This module handles client settings and credentials:
- SettingsManager: JSON-based settings persistence
- CredentialManager: Secure credential storage via keyring
- Paths: Application data directory discovery
- ClientSettings: Settings dataclass
"""
