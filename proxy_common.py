#Filename: proxy_common.py
"""
PROXY PARSE COMMON DEFINITIONS
Shared constants, error kinds and the logging capability for the parser core.
Single Source of Truth (SSOT) for wire-format constants and grammar patterns.
"""

import enum
import logging
import re
from typing import Callable, Dict, Optional

# -- Constants --
CRLF = "\r\n"
HEAD_TERMINATOR = "\r\n\r\n"
WIRE_ENCODING = "iso-8859-1"  # 1 byte <-> 1 char, keeps lengths byte-exact
MAX_HEAD_SIZE = 262144
SCHEME_SEPARATOR = "://"

# RFC 7230 Section 3.2.6 tchar
TOKEN_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
VERSION_PATTERN = re.compile(r"HTTP/[0-9]+\.[0-9]+")
SCHEME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+\-.]*")
PORT_PATTERN = re.compile(r"[0-9]+")

DEFAULT_PORTS: Dict[str, str] = {
    'http': '80',
    'https': '443',
    'ws': '80',
    'wss': '443',
    'ftp': '21',
}

# Values that must never reach the wire inside a field.
FORBIDDEN_VALUE_CHARS = frozenset("\r\n\x00")

LogFunc = Callable[[str], None]

logger = logging.getLogger("proxy_parse")


def _log_to_module_logger(message: str) -> None:
    logger.debug("%s", message)


def _null_log(message: str) -> None:
    """Discards the message."""


DEFAULT_LOG: LogFunc = _log_to_module_logger
NULL_LOG: LogFunc = _null_log


def default_port_for(protocol: str) -> str:
    """Returns the well-known port for a scheme, or '' when none is known."""
    return DEFAULT_PORTS.get(protocol.lower(), "")


def is_valid_value(value: str) -> bool:
    """Field values MUST NOT contain CR, LF, or NUL."""
    return not any(ch in FORBIDDEN_VALUE_CHARS for ch in value)


# -- Errors --

class ErrorKind(enum.Enum):
    """Distinguishable failure reasons surfaced to the caller."""
    MALFORMED_LINE = "MalformedLine"
    MISSING_METHOD = "MissingMethod"
    INVALID_URI = "InvalidURI"
    INVALID_HOST = "InvalidHost"
    INVALID_PORT = "InvalidPort"
    INVALID_VERSION = "InvalidVersion"
    MALFORMED_HEADER_LINE = "MalformedHeaderLine"
    INVALID_HEADER_NAME = "InvalidHeaderName"
    INVALID_HEADER_VALUE = "InvalidHeaderValue"
    HEADER_NOT_FOUND = "HeaderNotFound"
    INVALID_ENCODING = "InvalidEncoding"
    HEAD_TOO_LARGE = "HeadTooLarge"
    BUFFER_TOO_SMALL = "BufferTooSmall"


class ProxyParseError(Exception):
    """Base exception for parser core operations."""

    def __init__(self, kind: ErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {self.message}" if message else kind.value)


class ParseError(ProxyParseError):
    """
    Raised when a request head cannot be parsed.
    line_no is 0 for the request line, 1.. for header lines, None when the
    failure is not tied to a line.
    """

    def __init__(self, kind: ErrorKind, message: str = "", line_no: Optional[int] = None):
        super().__init__(kind, message)
        self.line_no = line_no

    @property
    def status_code(self) -> int:
        """HTTP status a proxy would answer the client with."""
        if self.kind is ErrorKind.HEAD_TOO_LARGE:
            return 431
        return 400


class HeaderError(ProxyParseError):
    """Raised by header CRUD operations on invalid input."""


class HeaderNotFoundError(HeaderError, KeyError):
    """Raised when removing a header that is not present."""

    def __init__(self, name: str):
        super().__init__(ErrorKind.HEADER_NOT_FOUND, f"no header named {name!r}")
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return f"{self.kind.value}: {self.message}"


class BufferTooSmallError(ProxyParseError):
    """Raised when a caller-supplied transmit buffer cannot hold the head."""

    def __init__(self, needed: int, available: int):
        super().__init__(
            ErrorKind.BUFFER_TOO_SMALL,
            f"need {needed} bytes, buffer has {available}"
        )
        self.needed = needed
        self.available = available
