"""FTP-specific exceptions for ftpclient.

Network failures raised by a transport are caught at the control and data
channel boundary and turned into FtpResponse values, so callers of the
public client only see these for API misuse or when they opt in through
FtpResponse.raise_for_status().
"""


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPConnectionError(FTPError):
    """Failed to establish a connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPNotConnectedError(FTPError):
    """Operation attempted on a transport that is already closed."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} requires an open connection"
        super().__init__(message)


class FTPTimeoutError(FTPError):
    """Socket operation timed out."""

    def __init__(self, operation: str = "Operation", timeout: float = 0.0):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout} seconds"
        super().__init__(message)


class FTPWriteError(FTPError):
    """Writing to a socket failed."""

    def __init__(self, original_error: Exception = None):
        super().__init__("Failed to send data", original_error)


class FTPReadError(FTPError):
    """Reading from a socket failed."""

    def __init__(self, original_error: Exception = None):
        super().__init__("Failed to receive data", original_error)


class FTPSessionStateError(FTPError):
    """A command was issued while another exchange is still in flight."""

    def __init__(self, command: str, state: str):
        self.command = command
        self.state = state
        message = f"Cannot send {command} while the session is {state}"
        super().__init__(message)


class FTPResponseError(FTPError):
    """Server or client reported a failure status."""

    def __init__(self, response):
        self.response = response
        super().__init__(f"FTP request failed with status {response}")
