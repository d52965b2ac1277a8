"""Passive-mode data connections for ftpclient.

DataChannelNegotiator asks the server for a passive endpoint and opens
DataChannel instances, each of which lives for exactly one transfer.
"""

import logging
import re
from typing import Callable, Optional, Tuple

from ftpclient.ftp.control import ControlChannel
from ftpclient.ftp.exceptions import FTPError
from ftpclient.ftp.response import FtpResponse, PassiveModeResponse, ResponseStatus
from ftpclient.ftp.transport import SocketTransport, Transport, TransportFactory

logger = logging.getLogger("ftpclient.data")

# h1,h2,h3,h4,p1,p2 with optional surrounding parentheses
PASSIVE_ADDRESS_PATTERN = re.compile(
    r"\(?\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)?"
)

# Servers behind NAT sometimes advertise the wildcard address
UNSPECIFIED_ADDRESS = "0.0.0.0"

# Called with the byte count of each block moved
ChunkCallback = Callable[[int], None]


def parse_passive_address(message: str) -> Optional[Tuple[str, int]]:
    """
    Decode the data endpoint from a 227 reply message.

    Args:
        message: Reply text containing "(h1,h2,h3,h4,p1,p2)"

    Returns:
        Tuple of (ip, port), or None if absent or out of range
    """
    match = PASSIVE_ADDRESS_PATTERN.search(message)
    if not match:
        return None

    fields = [int(value) for value in match.groups()]
    if any(value > 255 for value in fields):
        return None

    host = ".".join(str(value) for value in fields[:4])
    port = fields[4] * 256 + fields[5]
    return host, port


class DataChannel:
    """A single data connection, closed when its transfer ends."""

    def __init__(self, transport: Transport):
        """
        Wrap an open transport.

        Args:
            transport: Connected data transport
        """
        self._transport: Optional[Transport] = transport

    @property
    def is_open(self) -> bool:
        """True until close() is called."""
        return self._transport is not None

    def read_all(self, on_chunk: Optional[ChunkCallback] = None) -> bytes:
        """
        Read until the server closes the data connection.

        Args:
            on_chunk: Called with the size of each block received

        Returns:
            Everything received

        Raises:
            FTPError: If the connection fails or times out
        """
        if self._transport is None:
            raise FTPError("Data connection is closed")

        received = bytearray()
        while True:
            chunk = self._transport.receive()
            if not chunk:
                break
            received += chunk
            if on_chunk:
                on_chunk(len(chunk))
        return bytes(received)

    def send_all(
        self,
        data: bytes,
        block_size: int = 8192,
        on_chunk: Optional[ChunkCallback] = None
    ) -> int:
        """
        Write data in blocks.

        Args:
            data: Payload to send
            block_size: Bytes per write
            on_chunk: Called with the size of each block sent

        Returns:
            Number of bytes sent

        Raises:
            FTPError: If the connection fails or times out
        """
        if self._transport is None:
            raise FTPError("Data connection is closed")

        sent = 0
        view = memoryview(data)
        while sent < len(data):
            block = view[sent:sent + block_size]
            self._transport.send(bytes(block))
            sent += len(block)
            if on_chunk:
                on_chunk(len(block))
        return sent

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._transport is None:
            return
        try:
            self._transport.close()
        except Exception as e:
            # Closing must not hide the transfer result
            logger.debug(f"Error closing data connection: {e}")
        self._transport = None

    def __enter__(self) -> "DataChannel":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class DataChannelNegotiator:
    """Negotiates passive-mode endpoints over the control channel."""

    def __init__(
        self,
        control: ControlChannel,
        transport_factory: TransportFactory = SocketTransport.open
    ):
        """
        Initialize the negotiator.

        Args:
            control: Control channel used to send PASV
            transport_factory: Callable opening data transports
        """
        self._control = control
        self._transport_factory = transport_factory

    def enter_passive_mode(self) -> PassiveModeResponse:
        """
        Send PASV and decode the endpoint from the reply.

        Returns:
            PassiveModeResponse with host and port set on success. A failed
            server reply is passed through; an undecodable one becomes
            INVALID_RESPONSE.
        """
        response = self._control.send_command("PASV")
        if not response.is_ok:
            return PassiveModeResponse(status=response.status, message=response.message)

        endpoint = parse_passive_address(response.message)
        if endpoint is None:
            logger.warning(f"Unrecognized passive mode reply: {response}")
            return PassiveModeResponse(
                status=ResponseStatus.INVALID_RESPONSE,
                message=response.message,
            )

        host, port = endpoint
        if host == UNSPECIFIED_ADDRESS and self._control.address:
            host = self._control.address

        return PassiveModeResponse(
            status=response.status,
            message=response.message,
            host=host,
            port=port,
        )

    def open_data_connection(
        self,
        host: str,
        port: int,
        timeout: float = 0.0
    ) -> Tuple[FtpResponse, Optional[DataChannel]]:
        """
        Connect to a negotiated passive endpoint.

        Args:
            host: Data endpoint address
            port: Data endpoint port
            timeout: Seconds to wait on each socket operation, 0 for default

        Returns:
            Tuple of (response, channel). The channel is None and the
            response is CONNECTION_FAILED if the connection cannot be made.
        """
        try:
            transport = self._transport_factory(host, port, timeout)
        except FTPError as e:
            logger.warning(f"Data connection to {host}:{port} failed: {e}")
            return FtpResponse(ResponseStatus.CONNECTION_FAILED, str(e)), None

        logger.debug(f"Data connection open to {host}:{port}")
        return FtpResponse(ResponseStatus.OK, "Data connection established"), DataChannel(transport)
