"""FTP client for ftpclient.

FtpClient ties the control channel and the data channel negotiator
together: session commands, directory navigation and the
listing/download/upload transfer sequence.
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from ftpclient.ftp.control import DEFAULT_PORT, ControlChannel, ExchangeState
from ftpclient.ftp.data_channel import DataChannel, DataChannelNegotiator
from ftpclient.ftp.exceptions import FTPError, FTPSessionStateError
from ftpclient.ftp.parser import extract_directory, parse_transfer_size, split_listing
from ftpclient.ftp.response import (
    DirectoryResponse,
    FtpResponse,
    ListingResponse,
    ResponseStatus,
)
from ftpclient.ftp.transport import SocketTransport, TransportFactory

logger = logging.getLogger("ftpclient.client")

LINE_ENDING_PATTERN = re.compile(rb"\r?\n")


class TransferMode(Enum):
    """Representation type sent with TYPE."""
    ASCII = "A"
    BINARY = "I"

    @classmethod
    def from_name(cls, name: str) -> "TransferMode":
        """Look up a mode by name ("ascii"/"binary") or TYPE code ("A"/"I")."""
        for mode in cls:
            if name.upper() in (mode.name, mode.value):
                return mode
        raise ValueError(f"Unknown transfer mode: {name}")


@dataclass
class TransferProgress:
    """Progress information for a transfer."""
    remote_path: str
    bytes_transferred: int
    bytes_total: int

    @property
    def percent(self) -> float:
        """Transfer progress as percentage (0-100), 0 if the size is unknown."""
        if self.bytes_total == 0:
            return 0.0
        return (self.bytes_transferred / self.bytes_total) * 100.0


# Type alias for progress callback
ProgressCallback = Callable[[TransferProgress], None]

# Moves the payload over an open data channel
TransferHandler = Callable[[DataChannel, FtpResponse], None]


class FtpClient:
    """A blocking FTP client for one session."""

    # Block size for uploads (8KB)
    BLOCK_SIZE = 8192

    ANONYMOUS_USER = "anonymous"
    ANONYMOUS_PASSWORD = "anonymous@"

    def __init__(
        self,
        transport_factory: TransportFactory = SocketTransport.open,
        encoding: str = "utf-8",
        default_mode: TransferMode = TransferMode.BINARY,
        download_dir: Union[str, Path] = ""
    ):
        """
        Initialize the client.

        Args:
            transport_factory: Callable opening control and data transports
            encoding: Text encoding for commands, replies and listings
            default_mode: Mode for downloads and uploads that do not name one
            download_dir: Where downloads go when no local path is given,
                "" for the working directory
        """
        self._control = ControlChannel(transport_factory, encoding)
        self._negotiator = DataChannelNegotiator(self._control, transport_factory)
        self._transfer_mode: Optional[TransferMode] = None
        self._default_mode = default_mode
        self._download_dir = Path(download_dir)

    @property
    def control(self) -> ControlChannel:
        """Underlying control channel."""
        return self._control

    @property
    def is_connected(self) -> bool:
        """True while the control connection is open."""
        return self._control.is_connected

    @property
    def default_mode(self) -> TransferMode:
        """Mode used by download() and upload() when none is given."""
        return self._default_mode

    @property
    def download_dir(self) -> Path:
        """Default download directory."""
        return self._download_dir

    @property
    def transfer_mode(self) -> Optional[TransferMode]:
        """Mode last accepted by the server, None until TYPE has been sent."""
        return self._transfer_mode

    # Session

    def connect(
        self,
        address: str,
        port: int = DEFAULT_PORT,
        timeout: float = 0.0
    ) -> FtpResponse:
        """
        Connect to an FTP server.

        Args:
            address: Host name or IP address
            port: Control port, 21 unless the server says otherwise
            timeout: Seconds to wait on each socket operation, 0 for the
                system default

        Returns:
            Server greeting, or CONNECTION_FAILED
        """
        self._transfer_mode = None
        return self._control.connect(address, port, timeout)

    def disconnect(self) -> FtpResponse:
        """Send QUIT and close the connection."""
        self._transfer_mode = None
        return self._control.disconnect()

    def login(self, name: Optional[str] = None, password: Optional[str] = None) -> FtpResponse:
        """
        Log in, anonymously when no name is given.

        PASS is only sent when the server asks for it with 331.

        Args:
            name: User name
            password: Password

        Returns:
            Reply to the last command sent
        """
        if name is None:
            name, password = self.ANONYMOUS_USER, self.ANONYMOUS_PASSWORD

        response = self._control.send_command("USER", name)
        if response.status == ResponseStatus.NEED_PASSWORD:
            response = self._control.send_command("PASS", password or "")
        if response.is_ok:
            logger.info(f"Logged in as {name}")
        return response

    def keep_alive(self) -> FtpResponse:
        """Send NOOP."""
        return self._control.keep_alive()

    def send_command(self, command: str, parameter: str = "") -> FtpResponse:
        """
        Send an arbitrary command that does not use a data connection.

        Args:
            command: FTP command
            parameter: Optional argument

        Returns:
            Server reply
        """
        return self._control.send_command(command, parameter)

    def set_transfer_mode(self, mode: TransferMode) -> FtpResponse:
        """
        Switch the representation type if it differs from the current one.

        Returns:
            Reply to TYPE, or a synthetic OK when no command was needed
        """
        with self._control.lock:
            if mode is self._transfer_mode and self._control.is_connected:
                return FtpResponse(ResponseStatus.OK, f"Transfer mode already {mode.name}")

            response = self._control.send_command("TYPE", mode.value)
            if response.is_ok:
                self._transfer_mode = mode
            return response

    # Navigation

    def get_working_directory(self) -> DirectoryResponse:
        """Send PWD and extract the current directory."""
        return self._directory_response(self._control.send_command("PWD"))

    def change_directory(self, directory: str) -> FtpResponse:
        """Change the working directory, relative to the current one."""
        return self._control.send_command("CWD", directory)

    def parent_directory(self) -> FtpResponse:
        """Go to the parent of the working directory."""
        return self._control.send_command("CDUP")

    def create_directory(self, name: str) -> DirectoryResponse:
        """Create a directory; the reply carries the created path."""
        return self._directory_response(self._control.send_command("MKD", name))

    def delete_directory(self, name: str) -> FtpResponse:
        """Remove a directory permanently."""
        return self._control.send_command("RMD", name)

    def rename_file(self, file: str, new_name: str) -> FtpResponse:
        """
        Rename a remote file.

        Args:
            file: Current name
            new_name: New name

        Returns:
            Reply to RNTO, or to RNFR if the server refused it
        """
        with self._control.lock:
            response = self._control.send_command("RNFR", file)
            if response.is_ok:
                response = self._control.send_command("RNTO", new_name)
            return response

    def delete_file(self, name: str) -> FtpResponse:
        """Remove a file permanently."""
        return self._control.send_command("DELE", name)

    @staticmethod
    def _directory_response(response: FtpResponse) -> DirectoryResponse:
        directory = extract_directory(response.message) if response.is_ok else ""
        return DirectoryResponse(
            status=response.status,
            message=response.message,
            directory=directory,
        )

    # Transfers

    def get_directory_listing(
        self,
        directory: str = "",
        on_progress: Optional[ProgressCallback] = None
    ) -> ListingResponse:
        """
        List a directory with LIST.

        Args:
            directory: Directory relative to the working one, "" for itself
            on_progress: Optional progress callback

        Returns:
            ListingResponse with one entry per line sent by the server
        """
        return self._listing("LIST", directory, on_progress)

    def get_name_listing(
        self,
        directory: str = "",
        on_progress: Optional[ProgressCallback] = None
    ) -> ListingResponse:
        """List a directory with NLST, which returns bare names."""
        return self._listing("NLST", directory, on_progress)

    def _listing(
        self,
        command: str,
        directory: str,
        on_progress: Optional[ProgressCallback]
    ) -> ListingResponse:
        payload = bytearray()

        def receive(channel: DataChannel, started: FtpResponse) -> None:
            payload.extend(
                channel.read_all(self._progress_reporter(directory, 0, on_progress))
            )

        response = self._transfer(command, directory, TransferMode.ASCII, receive)
        listing: List[str] = []
        if response.is_ok:
            listing = split_listing(bytes(payload), self._control.encoding)
        return ListingResponse.from_response(response, listing)

    def download(
        self,
        remote_file: str,
        local_path: Optional[Union[str, Path]] = None,
        mode: Optional[TransferMode] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> FtpResponse:
        """
        Download a file.

        The local file is only written once the server has confirmed the
        transfer, and any existing file is overwritten.

        Args:
            remote_file: Remote file, relative to the working directory
            local_path: Local directory to put the file in, or target file.
                Defaults to the client's download directory
            mode: Transfer mode, defaults to the client's default mode
            on_progress: Optional progress callback

        Returns:
            Final server reply, or INVALID_FILE if the local file cannot be
            written
        """
        mode = mode or self._default_mode
        payload = bytearray()

        def receive(channel: DataChannel, started: FtpResponse) -> None:
            total = parse_transfer_size(started.message)
            payload.extend(
                channel.read_all(self._progress_reporter(remote_file, total, on_progress))
            )

        response = self._transfer("RETR", remote_file, mode, receive)
        if not response.is_ok:
            return response

        data = bytes(payload)
        if mode is TransferMode.ASCII:
            data = data.replace(b"\r\n", b"\n")

        name = posixpath.basename(remote_file)
        if local_path is None:
            destination = self._download_dir / name
        else:
            destination = Path(local_path)
            if destination.is_dir():
                destination = destination / name
        try:
            destination.write_bytes(data)
        except OSError as e:
            logger.error(f"Cannot write {destination}: {e}")
            return FtpResponse(ResponseStatus.INVALID_FILE, f"Cannot write {destination}: {e}")

        logger.info(f"Downloaded {remote_file} to {destination} ({len(data)} bytes)")
        return response

    def upload(
        self,
        local_file: Union[str, Path],
        remote_path: str = "",
        mode: Optional[TransferMode] = None,
        append: bool = False,
        on_progress: Optional[ProgressCallback] = None
    ) -> FtpResponse:
        """
        Upload a file.

        The remote file keeps the local file's name and is placed in
        remote_path.

        Args:
            local_file: Local file to upload
            remote_path: Remote directory, "" for the working directory
            mode: Transfer mode, defaults to the client's default mode
            append: Append to the remote file instead of overwriting it
            on_progress: Optional progress callback

        Returns:
            Final server reply, or INVALID_FILE if the local file cannot be
            read
        """
        mode = mode or self._default_mode
        local_file = Path(local_file)
        try:
            data = local_file.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read {local_file}: {e}")
            return FtpResponse(ResponseStatus.INVALID_FILE, f"Cannot read {local_file}: {e}")

        if mode is TransferMode.ASCII:
            data = LINE_ENDING_PATTERN.sub(b"\r\n", data)

        target = posixpath.join(remote_path, local_file.name) if remote_path else local_file.name

        def send(channel: DataChannel, started: FtpResponse) -> None:
            channel.send_all(
                data,
                self.BLOCK_SIZE,
                self._progress_reporter(target, len(data), on_progress)
            )

        response = self._transfer("APPE" if append else "STOR", target, mode, send)
        if response.is_ok:
            logger.info(f"Uploaded {local_file} to {target} ({len(data)} bytes)")
        return response

    def _transfer(
        self,
        command: str,
        parameter: str,
        mode: TransferMode,
        handler: TransferHandler
    ) -> FtpResponse:
        """
        Run one data-connection operation.

        TYPE (if needed), PASV, connect, command, payload, close, then the
        final reply. The data connection is closed on every path before
        the final reply is read.

        Returns:
            Final reply, or the first failing step's response. A
            completion reply to the transfer command itself, with no data
            connection used, is returned as INVALID_RESPONSE.
        """
        with self._control.lock:
            response = self.set_transfer_mode(mode)
            if not response.is_ok:
                return response

            passive = self._negotiator.enter_passive_mode()
            if not passive.is_ok:
                return passive

            response, channel = self._negotiator.open_data_connection(
                passive.host, passive.port, self._control.timeout
            )
            if channel is None:
                return response

            failure: Optional[FtpResponse] = None
            try:
                with channel:
                    started = self._control.open_transfer(command, parameter)
                    if not started.is_preliminary:
                        if started.is_ok:
                            # No data connection will follow a completion reply
                            logger.warning(f"{command} {parameter} answered without a transfer: {started}")
                            return FtpResponse(
                                ResponseStatus.INVALID_RESPONSE,
                                f"Expected a 1xx reply to {command}, got {started}"
                            )
                        return started
                    try:
                        handler(channel, started)
                    except FTPSessionStateError:
                        raise
                    except FTPError as e:
                        logger.warning(f"{command} {parameter} data transfer failed: {e}")
                        failure = FtpResponse(
                            ResponseStatus.CONNECTION_CLOSED,
                            f"Data transfer failed: {e}"
                        )
            except Exception:
                # Drain the confirmation so the session stays usable
                if self._control.exchange_state is ExchangeState.AWAITING_DATA:
                    self._control.finish_transfer()
                raise

            response = self._control.finish_transfer()
            if failure is not None and response.is_ok:
                return failure
            return response

    @staticmethod
    def _progress_reporter(
        remote_path: str,
        total: int,
        on_progress: Optional[ProgressCallback]
    ) -> Optional[Callable[[int], None]]:
        """Adapt a ProgressCallback to the per-block byte counts of a DataChannel."""
        if on_progress is None:
            return None

        transferred = 0

        def report(size: int) -> None:
            nonlocal transferred
            transferred += size
            on_progress(TransferProgress(
                remote_path=remote_path,
                bytes_transferred=transferred,
                bytes_total=total,
            ))

        return report

    # Context manager

    def __enter__(self) -> "FtpClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.is_connected:
            self.disconnect()
