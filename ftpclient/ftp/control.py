"""Control connection for ftpclient.

Provides the ConnectionState and ExchangeState enums and the
ControlChannel class, which owns the control socket, writes commands and
frames the server's replies.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Optional

from ftpclient.ftp.exceptions import FTPError, FTPSessionStateError, FTPTimeoutError
from ftpclient.ftp.parser import ResponseParser
from ftpclient.ftp.response import FtpResponse, ResponseStatus
from ftpclient.ftp.transport import SocketTransport, Transport, TransportFactory

logger = logging.getLogger("ftpclient.control")

DEFAULT_PORT = 21


class ConnectionState(Enum):
    """Control connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ExchangeState(Enum):
    """Where the session is within a command/reply exchange."""
    IDLE = "idle"
    COMMAND_SENT = "command_sent"
    AWAITING_DATA = "awaiting_data"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


def _loggable(command: str, parameter: str) -> str:
    """Command line as it may appear in logs."""
    if command.upper() == "PASS":
        return "PASS ****"
    return f"{command} {parameter}" if parameter else command


class ControlChannel:
    """Owns the control connection and serializes command exchanges."""

    def __init__(
        self,
        transport_factory: TransportFactory = SocketTransport.open,
        encoding: str = "utf-8"
    ):
        """
        Initialize the control channel.

        Args:
            transport_factory: Callable opening a transport to (address, port, timeout)
            encoding: Text encoding for commands and replies
        """
        self._transport_factory = transport_factory
        self._encoding = encoding
        self._parser = ResponseParser(encoding)
        self._transport: Optional[Transport] = None
        self._buffer = b""
        self._state = ConnectionState.DISCONNECTED
        self._exchange = ExchangeState.IDLE
        self._lock = threading.RLock()
        self._address: Optional[str] = None
        self._timeout = 0.0
        self._connected_at: Optional[datetime] = None
        self._last_activity: Optional[datetime] = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def exchange_state(self) -> ExchangeState:
        """Current position in the command/reply exchange."""
        return self._exchange

    @property
    def is_connected(self) -> bool:
        """True while the control socket is open."""
        return self._transport is not None

    @property
    def address(self) -> Optional[str]:
        """Address of the server, as given to connect()."""
        return self._address

    @property
    def timeout(self) -> float:
        """Timeout passed to connect(), reused for data connections."""
        return self._timeout

    @property
    def encoding(self) -> str:
        """Text encoding for commands and replies."""
        return self._encoding

    @property
    def lock(self) -> threading.RLock:
        """Session lock; hold it across a multi-step operation."""
        return self._lock

    @property
    def connected_at(self) -> Optional[datetime]:
        """Timestamp when the connection was established."""
        return self._connected_at

    @property
    def last_activity(self) -> Optional[datetime]:
        """Timestamp of the last reply received."""
        return self._last_activity

    def connect(
        self,
        address: str,
        port: int = DEFAULT_PORT,
        timeout: float = 0.0
    ) -> FtpResponse:
        """
        Connect to a server and read its greeting.

        Args:
            address: Host name or IP address of the server
            port: Control port
            timeout: Seconds to wait on each socket operation, 0 for the
                transport default

        Returns:
            The greeting, or CONNECTION_FAILED if the socket cannot connect
        """
        with self._lock:
            if self._transport is not None:
                self.close()

            self._state = ConnectionState.CONNECTING
            self._address = address
            self._timeout = timeout
            try:
                self._transport = self._transport_factory(address, port, timeout)
            except FTPError as e:
                logger.warning(f"Connection to {address}:{port} failed: {e}")
                self._state = ConnectionState.DISCONNECTED
                return FtpResponse(ResponseStatus.CONNECTION_FAILED, str(e))

            self._buffer = b""
            self._exchange = ExchangeState.IDLE
            self._state = ConnectionState.CONNECTED
            self._connected_at = datetime.now()
            logger.info(f"Connected to {address}:{port}")
            return self.get_response()

    def disconnect(self) -> FtpResponse:
        """
        Send QUIT and close the connection.

        The socket is closed whatever the server answers. During a
        transfer no QUIT is sent, since its reply could not be matched.

        Returns:
            Reply to QUIT, or CONNECTION_CLOSED if not connected or a
            transfer was interrupted
        """
        with self._lock:
            if self._transport is None:
                return FtpResponse(ResponseStatus.CONNECTION_CLOSED, "Not connected")
            if self._exchange is not ExchangeState.IDLE:
                logger.warning(f"Closing control connection while {self._exchange.value}")
                self.close()
                return FtpResponse(
                    ResponseStatus.CONNECTION_CLOSED,
                    "Connection closed during a transfer"
                )
            try:
                return self.send_command("QUIT")
            finally:
                self.close()

    def close(self) -> None:
        """Release the control socket without any protocol traffic."""
        with self._lock:
            if self._transport is not None:
                self._transport.close()
                logger.debug(f"Control connection to {self._address} closed")
            self._transport = None
            self._buffer = b""
            self._state = ConnectionState.DISCONNECTED
            self._exchange = ExchangeState.IDLE
            self._connected_at = None

    def keep_alive(self) -> FtpResponse:
        """Send NOOP so the server does not drop an idle session."""
        return self.send_command("NOOP")

    def send_command(self, command: str, parameter: str = "") -> FtpResponse:
        """
        Send a command and read its reply.

        Args:
            command: FTP command, e.g. "CWD"
            parameter: Optional argument

        Returns:
            Server reply, CONNECTION_CLOSED if the socket is closed or the
            write fails, or INVALID_RESPONSE without any write if the line
            contains a line break or cannot be encoded

        Raises:
            FTPSessionStateError: If another exchange is still in flight
        """
        with self._lock:
            if self._exchange is not ExchangeState.IDLE:
                raise FTPSessionStateError(command, self._exchange.value)
            if self._transport is None:
                return FtpResponse(ResponseStatus.CONNECTION_CLOSED, "Not connected")

            text = f"{command} {parameter}" if parameter else command
            if "\r" in text or "\n" in text:
                logger.warning(f"Refusing {command}: line break in command line")
                return FtpResponse(
                    ResponseStatus.INVALID_RESPONSE,
                    "Illegal line break in command or parameter"
                )
            try:
                line = f"{text}\r\n".encode(self._encoding)
            except UnicodeEncodeError as e:
                logger.warning(f"Cannot encode {command} as {self._encoding}: {e}")
                return FtpResponse(
                    ResponseStatus.INVALID_RESPONSE,
                    f"Cannot encode command as {self._encoding}: {e}"
                )

            self._exchange = ExchangeState.COMMAND_SENT
            try:
                logger.debug(f">>> {_loggable(command, parameter)}")
                try:
                    self._transport.send(line)
                except FTPError as e:
                    logger.warning(f"Failed to send {command}: {e}")
                    self.close()
                    return FtpResponse(ResponseStatus.CONNECTION_CLOSED, str(e))
                return self.get_response()
            finally:
                if self._exchange is ExchangeState.COMMAND_SENT:
                    self._exchange = ExchangeState.IDLE

    def get_response(self) -> FtpResponse:
        """
        Read one complete reply from the server.

        Returns:
            Parsed reply. INVALID_RESPONSE if the bytes cannot be framed,
            CONNECTION_CLOSED if the connection drops or times out first.
        """
        with self._lock:
            if self._transport is None:
                return FtpResponse(ResponseStatus.CONNECTION_CLOSED, "Not connected")

            while True:
                response, consumed = self._parser.parse(self._buffer)
                if response is not None:
                    self._buffer = self._buffer[consumed:]
                    self._last_activity = datetime.now()
                    logger.debug(f"<<< {response}")
                    return response

                try:
                    chunk = self._transport.receive()
                except FTPTimeoutError as e:
                    # Replies can no longer be matched to commands
                    logger.warning(f"Timed out waiting for reply: {e}")
                    self.close()
                    return FtpResponse(ResponseStatus.CONNECTION_CLOSED, str(e))
                except FTPError as e:
                    logger.warning(f"Failed to read reply: {e}")
                    self.close()
                    return FtpResponse(ResponseStatus.CONNECTION_CLOSED, str(e))

                if not chunk:
                    partial = self._buffer.strip()
                    self.close()
                    if partial:
                        return FtpResponse(
                            ResponseStatus.INVALID_RESPONSE,
                            "Connection closed before a complete reply was received"
                        )
                    return FtpResponse(
                        ResponseStatus.CONNECTION_CLOSED,
                        "Connection closed by server"
                    )

                self._buffer += chunk

    def open_transfer(self, command: str, parameter: str = "") -> FtpResponse:
        """
        Send the command that starts a data transfer.

        A 1xx reply leaves the session waiting for the data connection to
        finish; finish_transfer() must be called once it is closed.

        Returns:
            Reply to the command
        """
        with self._lock:
            response = self.send_command(command, parameter)
            if response.is_preliminary and self._transport is not None:
                self._exchange = ExchangeState.AWAITING_DATA
            return response

    def finish_transfer(self) -> FtpResponse:
        """
        Read the reply that confirms a data transfer.

        Returns:
            Final reply, or CONNECTION_CLOSED without reading if the
            control connection is already gone

        Raises:
            FTPSessionStateError: If no transfer is in progress
        """
        with self._lock:
            if self._transport is None:
                return FtpResponse(ResponseStatus.CONNECTION_CLOSED, "Not connected")
            if self._exchange is not ExchangeState.AWAITING_DATA:
                raise FTPSessionStateError("transfer confirmation", self._exchange.value)

            self._exchange = ExchangeState.AWAITING_CONFIRMATION
            try:
                return self.get_response()
            finally:
                self._exchange = ExchangeState.IDLE

    def __del__(self):
        # Must never raise during interpreter teardown
        transport = getattr(self, "_transport", None)
        if transport is None:
            return
        try:
            transport.send(b"QUIT\r\n")
        except Exception:
            pass
        try:
            transport.close()
        except Exception:
            pass
