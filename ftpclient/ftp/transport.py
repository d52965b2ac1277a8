"""Socket transport for ftpclient.

Blocking TCP byte stream shared by the control and data connections.
Anything with the same open/send/receive/close surface can be passed to
the client as a transport factory.
"""

import socket
from typing import Callable, Optional, Protocol

from ftpclient.ftp.exceptions import (
    FTPConnectionError,
    FTPNotConnectedError,
    FTPReadError,
    FTPTimeoutError,
    FTPWriteError,
)


class Transport(Protocol):
    """Byte stream used by the control and data channels."""

    def send(self, data: bytes) -> None:
        ...

    def receive(self, size: int = ...) -> bytes:
        ...

    def close(self) -> None:
        ...


# Called as factory(address, port, timeout)
TransportFactory = Callable[[str, int, float], Transport]


class SocketTransport:
    """Transport backed by a connected TCP socket."""

    # Receive size for a single recv() call
    RECEIVE_SIZE = 8192

    def __init__(self, sock: socket.socket, timeout: float = 0.0):
        """
        Wrap an already connected socket.

        Args:
            sock: Connected socket
            timeout: Timeout the socket was configured with (0 = default)
        """
        self._sock: Optional[socket.socket] = sock
        self._timeout = timeout

    @classmethod
    def open(cls, address: str, port: int, timeout: float = 0.0) -> "SocketTransport":
        """
        Connect to address:port.

        Args:
            address: Host name or IP address
            port: TCP port
            timeout: Seconds to wait on connect and each read/write,
                0 for the socket module default

        Returns:
            Connected transport

        Raises:
            FTPTimeoutError: If the connection attempt times out
            FTPConnectionError: If the connection cannot be established
        """
        sock_timeout = timeout if timeout else socket.getdefaulttimeout()
        try:
            sock = socket.create_connection((address, port), timeout=sock_timeout)
        except socket.timeout:
            raise FTPTimeoutError("Connection", timeout)
        except OSError as e:
            raise FTPConnectionError(address, port, e)
        return cls(sock, timeout)

    @property
    def is_open(self) -> bool:
        """True until close() is called."""
        return self._sock is not None

    def send(self, data: bytes) -> None:
        """
        Write all of data to the socket.

        Raises:
            FTPNotConnectedError: If the transport is closed
            FTPTimeoutError: If the write times out
            FTPWriteError: If the write fails
        """
        if self._sock is None:
            raise FTPNotConnectedError("Send")
        try:
            self._sock.sendall(data)
        except socket.timeout:
            raise FTPTimeoutError("Send", self._timeout)
        except OSError as e:
            raise FTPWriteError(e)

    def receive(self, size: int = RECEIVE_SIZE) -> bytes:
        """
        Read up to size bytes.

        Returns:
            Received bytes, empty once the peer has closed the stream

        Raises:
            FTPNotConnectedError: If the transport is closed
            FTPTimeoutError: If no data arrives within the timeout
            FTPReadError: If the read fails
        """
        if self._sock is None:
            raise FTPNotConnectedError("Receive")
        try:
            return self._sock.recv(size)
        except socket.timeout:
            raise FTPTimeoutError("Receive", self._timeout)
        except OSError as e:
            raise FTPReadError(e)

    def close(self) -> None:
        """Release the socket. Safe to call more than once."""
        if self._sock is None:
            return
        try:
            self._sock.close()
        except OSError:
            # Best effort close
            pass
        self._sock = None
