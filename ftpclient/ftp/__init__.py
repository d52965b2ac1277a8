"""FTP protocol module for ftpclient.

This module handles all FTP-related functionality:
- ControlChannel: Control connection, command/reply exchange state
- ResponseParser: RFC 959 reply framing
- DataChannelNegotiator: Passive-mode data connections
- FtpClient: Listings, downloads, uploads and directory operations
- Exceptions: FTP-specific error types
"""
