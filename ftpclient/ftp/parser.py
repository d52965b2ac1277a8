"""Reply parsing for ftpclient.

Frames RFC 959 replies out of the control-channel receive buffer and
extracts the structured bits some replies carry (quoted paths, listing
lines, transfer sizes).
"""

import re
from typing import List, Optional, Tuple

from ftpclient.ftp.response import FtpResponse, ResponseStatus


# Three-digit code followed by a space, a hyphen, or nothing at all
REPLY_CODE_PATTERN = re.compile(r"^(\d{3})([ -]|$)")

# Quoted pathname in a 257 reply; embedded quotes are doubled
QUOTED_PATH_PATTERN = re.compile(r'"((?:[^"]|"")*)"')

# Size hint some servers put in 150 replies
TRANSFER_SIZE_PATTERN = re.compile(r"\((\d+) bytes\)", re.IGNORECASE)

LINE_BREAK_PATTERN = re.compile(r"\r?\n")


class ResponseParser:
    """Turns buffered control-channel bytes into FtpResponse values."""

    def __init__(self, encoding: str = "utf-8"):
        """
        Initialize the parser.

        Args:
            encoding: Text encoding used by the control connection
        """
        self._encoding = encoding

    @property
    def encoding(self) -> str:
        """Text encoding used to decode reply lines."""
        return self._encoding

    def _decode(self, line: bytes) -> str:
        return line.decode(self._encoding, errors="replace")

    @staticmethod
    def _next_line(buffer: bytes, start: int) -> Optional[Tuple[bytes, int]]:
        """Return the line starting at start and the offset past its terminator."""
        end = buffer.find(b"\n", start)
        if end == -1:
            return None
        line = buffer[start:end]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line, end + 1

    def parse(self, buffer: bytes) -> Tuple[Optional[FtpResponse], int]:
        """
        Frame one reply from the head of buffer.

        A reply whose first line opens with "DDD-" continues until a line
        starting with the same code and a space. Lines in between are kept
        verbatim, even if they happen to start with another code.

        Args:
            buffer: Bytes received and not yet consumed

        Returns:
            Tuple of (response, bytes consumed). The response is None and
            nothing is consumed while the frame is still incomplete.
        """
        first = self._next_line(buffer, 0)
        if first is None:
            return None, 0

        line, position = first
        text = self._decode(line)
        match = REPLY_CODE_PATTERN.match(text)
        if not match:
            return FtpResponse(ResponseStatus.INVALID_RESPONSE, text), position

        code = match.group(1)
        if match.group(2) != "-":
            return FtpResponse(int(code), text[4:]), position

        bodies = [text[4:]]
        terminator = code + " "
        while True:
            following = self._next_line(buffer, position)
            if following is None:
                return None, 0

            line, position = following
            text = self._decode(line)
            if text.startswith(terminator) or text == code:
                bodies.append(text[4:])
                return FtpResponse(int(code), "\n".join(bodies)), position

            bodies.append(text)


def extract_directory(message: str) -> str:
    """
    Extract the quoted pathname from a 257 reply message.

    Args:
        message: Reply message, e.g. '"/home/user" created'

    Returns:
        Unquoted path, or an empty string if the message has none
    """
    match = QUOTED_PATH_PATTERN.search(message)
    if not match:
        return ""
    return match.group(1).replace('""', '"')


def split_listing(data: bytes, encoding: str = "utf-8") -> List[str]:
    """
    Split a directory listing payload into entries.

    Args:
        data: Raw bytes read from the data connection
        encoding: Text encoding of the payload

    Returns:
        Non-empty lines in the order received
    """
    text = data.decode(encoding, errors="replace")
    return [line for line in LINE_BREAK_PATTERN.split(text) if line]


def parse_transfer_size(message: str) -> int:
    """Byte count announced in a 150 reply, or 0 when absent."""
    match = TRANSFER_SIZE_PATTERN.search(message)
    if not match:
        return 0
    return int(match.group(1))
