"""FTP response values for ftpclient.

Provides the ResponseStatus catalog, the immutable FtpResponse value
and the derived DirectoryResponse, ListingResponse and
PassiveModeResponse types.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from ftpclient.ftp.exceptions import FTPResponseError


class ResponseStatus(IntEnum):
    """Documented FTP reply codes plus client-local codes."""

    # 1xx: action initiated, expect another reply
    RESTART_MARKER_REPLY = 110
    SERVICE_READY_SOON = 120
    DATA_CONNECTION_ALREADY_OPENED = 125
    OPENING_DATA_CONNECTION = 150

    # 2xx: action completed
    OK = 200
    POINTLESS_COMMAND = 202
    SYSTEM_STATUS = 211
    DIRECTORY_STATUS = 212
    FILE_STATUS = 213
    HELP_MESSAGE = 214
    SYSTEM_TYPE = 215
    SERVICE_READY = 220
    CLOSING_CONNECTION = 221
    DATA_CONNECTION_OPENED = 225
    CLOSING_DATA_CONNECTION = 226
    ENTERING_PASSIVE_MODE = 227
    LOGGED_IN = 230
    FILE_ACTION_OK = 250
    DIRECTORY_OK = 257

    # 3xx: accepted, waiting for more information
    NEED_PASSWORD = 331
    NEED_ACCOUNT_TO_LOGIN = 332
    NEED_INFORMATION = 350

    # 4xx: transient failure
    SERVICE_UNAVAILABLE = 421
    DATA_CONNECTION_UNAVAILABLE = 425
    TRANSFER_ABORTED = 426
    FILE_ACTION_ABORTED = 450
    LOCAL_ERROR = 451
    INSUFFICIENT_STORAGE_SPACE = 452

    # 5xx: permanent failure
    COMMAND_UNKNOWN = 500
    PARAMETERS_UNKNOWN = 501
    COMMAND_NOT_IMPLEMENTED = 502
    BAD_COMMAND_SEQUENCE = 503
    PARAMETER_NOT_IMPLEMENTED = 504
    NOT_LOGGED_IN = 530
    NEED_ACCOUNT_TO_STORE = 532
    FILE_UNAVAILABLE = 550
    PAGE_TYPE_UNKNOWN = 551
    NOT_ENOUGH_MEMORY = 552
    FILENAME_NOT_ALLOWED = 553

    # Client-local codes, never sent by a server
    INVALID_RESPONSE = 1000
    CONNECTION_FAILED = 1001
    CONNECTION_CLOSED = 1002
    INVALID_FILE = 1003


LOCAL_STATUSES = frozenset({
    ResponseStatus.INVALID_RESPONSE,
    ResponseStatus.CONNECTION_FAILED,
    ResponseStatus.CONNECTION_CLOSED,
    ResponseStatus.INVALID_FILE,
})


@dataclass(frozen=True)
class FtpResponse:
    """A single reply from the server, or a locally generated failure.

    The status is kept as a plain int so that codes outside the
    ResponseStatus catalog still round-trip and compare correctly.
    """
    status: int = ResponseStatus.INVALID_RESPONSE
    message: str = ""

    def __post_init__(self):
        object.__setattr__(self, "status", int(self.status))

    @property
    def is_ok(self) -> bool:
        """True if the status means success (code below 400)."""
        return self.status < 400

    @property
    def is_preliminary(self) -> bool:
        """True for 1xx replies, which announce a further reply."""
        return 100 <= self.status < 200

    @property
    def is_local(self) -> bool:
        """True if the client produced this response itself."""
        return self.status in LOCAL_STATUSES

    @property
    def status_name(self) -> Optional[str]:
        """Catalog name of the status, or None for undocumented codes."""
        try:
            return ResponseStatus(self.status).name
        except ValueError:
            return None

    def raise_for_status(self) -> None:
        """
        Raise if this response reports a failure.

        Raises:
            FTPResponseError: If is_ok is False
        """
        if not self.is_ok:
            raise FTPResponseError(self)

    def __str__(self) -> str:
        return f"{self.status} {self.message}".rstrip()


@dataclass(frozen=True)
class DirectoryResponse(FtpResponse):
    """Response carrying the path quoted in a 257 reply."""
    directory: str = ""


@dataclass(frozen=True)
class ListingResponse(FtpResponse):
    """Response carrying the entries received over the data connection."""
    listing: List[str] = field(default_factory=list)

    @classmethod
    def from_response(
        cls,
        response: FtpResponse,
        listing: Optional[List[str]] = None
    ) -> "ListingResponse":
        return cls(
            status=response.status,
            message=response.message,
            listing=list(listing or []),
        )


@dataclass(frozen=True)
class PassiveModeResponse(FtpResponse):
    """Response to PASV with the decoded data endpoint."""
    host: str = ""
    port: int = 0
