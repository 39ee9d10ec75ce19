#Filename: proxy_parse.py
"""
PROXY PARSE - REQUEST HEAD PARSER
Parses a raw HTTP/1.x request head into a mutable ParsedRequest and
re-serializes it for forwarding.

Invariants:
- total_len() == len(unparse()) and headers_len() == len(unparse_headers()).
- An unmodified request re-serializes byte-for-byte (header order preserved).
"""

import re
from typing import Any, List, Optional, Tuple, Union

from proxy_common import (
    CRLF, HEAD_TERMINATOR, MAX_HEAD_SIZE, WIRE_ENCODING, TOKEN_PATTERN,
    DEFAULT_LOG, LogFunc, ErrorKind, ParseError, HeaderError, BufferTooSmallError,
    is_valid_value
)
from structures import HeaderEntry, HeaderTable, SENSITIVE_HEADERS, parse_header_lines
from request_line import (
    RequestLine, parse_request_line, render_request_line, render_uri, request_line_len
)

Buffer = Union[bytes, bytearray, memoryview, str]

# Lenient framing: bare LF accepted wherever CRLF is expected.
_LENIENT_LINE_SPLIT = re.compile(r"\r?\n")
_LENIENT_HEAD_END = re.compile(r"\r?\n\r?\n")


class ParsedRequest:
    """
    Structured request line + ordered header table.
    Not safe for concurrent mutation; confine an instance to one task.
    """
    __slots__ = (
        'method', 'protocol', 'host', 'port', 'path', 'version', 'headers',
        'buf', 'head_len', 'strict_mode', 'max_head_size', '_log'
    )

    def __init__(
        self,
        log: Optional[LogFunc] = None,
        strict_mode: bool = True,
        max_head_size: int = MAX_HEAD_SIZE
    ) -> None:
        self.method = ""
        self.protocol = ""
        self.host = ""
        self.port = ""
        self.path = ""
        self.version = ""
        self.headers = HeaderTable()
        self.buf = ""
        self.head_len = 0
        self.strict_mode = strict_mode
        self.max_head_size = max_head_size
        self._log: LogFunc = log if log is not None else DEFAULT_LOG

    @classmethod
    def from_buffer(cls, buffer: Buffer, **kwargs: Any) -> "ParsedRequest":
        """Creates and parses in one step."""
        return cls(**kwargs).parse(buffer)

    def log(self, message: str) -> None:
        """Emits a trace message via the injected capability. Never raises."""
        try:
            self._log(message)
        except Exception: # pylint: disable=broad-exception-caught
            pass

    # -- Parsing --

    def _split_head(self, text: str) -> Tuple[str, int]:
        """Returns (head without its blank-line terminator, consumed length)."""
        if self.strict_mode:
            end = text.find(HEAD_TERMINATOR)
            if end != -1:
                return text[:end], end + len(HEAD_TERMINATOR)
        else:
            match = _LENIENT_HEAD_END.search(text)
            if match:
                return text[:match.start()], match.end()
        return text, len(text)

    def _split_lines(self, head: str) -> List[str]:
        if self.strict_mode:
            return head.split(CRLF)
        return _LENIENT_LINE_SPLIT.split(head)

    def parse(self, buffer: Buffer) -> "ParsedRequest":
        """
        Fully repopulates this request from a raw head.
        Raises ParseError on the first problem; the object is then in an
        unspecified state and must be re-parsed before use.
        Anything after the blank line is ignored; head_len marks where it starts.
        """
        if isinstance(buffer, (bytes, bytearray, memoryview)):
            text = bytes(buffer).decode(WIRE_ENCODING)
        elif isinstance(buffer, str):
            text = buffer
        else:
            raise TypeError(f"buffer must be bytes or str, got {type(buffer).__name__}")

        try:
            self._parse_text(text)
        except ParseError as e:
            self.log(f"parse failed: {e} (line {e.line_no})")
            raise
        self.log(f"parsed {self.method} {self.url} with {len(self.headers)} headers")
        return self

    def _parse_text(self, text: str) -> None:
        if not text:
            raise ParseError(ErrorKind.MALFORMED_LINE, "empty buffer", line_no=0)
        try:
            text.encode(WIRE_ENCODING)
        except UnicodeEncodeError as e:
            raise ParseError(
                ErrorKind.INVALID_ENCODING,
                f"character {text[e.start]!r} is not {WIRE_ENCODING}",
                line_no=text.count('\n', 0, e.start)
            ) from e

        head, consumed = self._split_head(text)
        if len(head) > self.max_head_size:
            raise ParseError(
                ErrorKind.HEAD_TOO_LARGE,
                f"request head exceeds {self.max_head_size} bytes"
            )

        lines = self._split_lines(head)
        first = lines[0]
        if '\r' in first or '\n' in first:
            raise ParseError(ErrorKind.MALFORMED_LINE, "stray line terminator", line_no=0)

        rl = parse_request_line(first)
        self.method, self.protocol, self.host, self.port, self.path, self.version = rl

        self.headers.clear()
        parse_header_lines(lines[1:], self.headers)

        self.buf = head
        self.head_len = consumed

    # -- Serialization --

    @property
    def url(self) -> str:
        return render_uri(self.protocol, self.host, self.port, self.path)

    def request_line(self) -> RequestLine:
        return RequestLine(
            self.method, self.protocol, self.host, self.port, self.path, self.version
        )

    def unparse(self) -> str:
        """Request line + CRLF + header lines + the closing blank line."""
        line = render_request_line(
            self.method, self.protocol, self.host, self.port, self.path, self.version
        )
        return line + CRLF + self.unparse_headers() + CRLF

    def unparse_headers(self) -> str:
        return self.headers.render()

    def to_bytes(self) -> bytes:
        return self.unparse().encode(WIRE_ENCODING)

    def unparse_into(self, buffer: bytearray, offset: int = 0) -> int:
        """
        Writes the head into a pre-sized transmit buffer at offset.
        Returns the number of bytes written.
        """
        needed = self.total_len()
        available = len(buffer) - offset
        if available < needed:
            raise BufferTooSmallError(needed, max(available, 0))
        buffer[offset:offset + needed] = self.to_bytes()
        return needed

    def total_len(self) -> int:
        """Exact length of unparse(), computed without building it."""
        line_len = request_line_len(
            self.method, self.protocol, self.host, self.port, self.path, self.version
        )
        return line_len + len(CRLF) + self.headers_len() + len(CRLF)

    def headers_len(self) -> int:
        return self.headers.headers_len()

    # -- Header CRUD --

    def set_header(self, name: str, value: str) -> HeaderEntry:
        """Inserts or replaces a header. Existing headers keep their position."""
        if not name or not TOKEN_PATTERN.fullmatch(name):
            raise HeaderError(ErrorKind.INVALID_HEADER_NAME, f"invalid header name {name!r}")
        if not is_valid_value(value):
            raise HeaderError(
                ErrorKind.INVALID_HEADER_VALUE, f"control character in value of {name!r}"
            )
        try:
            value.encode(WIRE_ENCODING)
        except UnicodeEncodeError as e:
            raise HeaderError(
                ErrorKind.INVALID_HEADER_VALUE, f"value of {name!r} is not {WIRE_ENCODING}"
            ) from e

        entry = self.headers.upsert(name, value)
        self.log(f"set header {name}")
        return entry

    def get_header(self, name: str) -> Optional[HeaderEntry]:
        """
        Returns the stored entry or None. Entries are immutable snapshots;
        re-fetch after any set_header/remove_header on the same name.
        """
        return self.headers.lookup(name)

    def remove_header(self, name: str) -> HeaderEntry:
        """Removes a header. Raises HeaderNotFoundError if absent."""
        entry = self.headers.remove(name)
        self.log(f"removed header {name}")
        return entry

    def header_count(self) -> int:
        return self.headers.count()

    # -- Display --

    def _get_redacted_headers(self) -> List[str]:
        lines: List[str] = []
        for k, v in self.headers.items():
            if k.lower() in SENSITIVE_HEADERS:
                lines.append(f"{k}: [REDACTED]")
            else:
                lines.append(f"{k}: {v}")
        return lines

    def debug_str(self) -> str:
        """Multi-line dump with sensitive header values masked."""
        out = [
            f"method:   {self.method}",
            f"protocol: {self.protocol}",
            f"host:     {self.host}",
            f"port:     {self.port}",
            f"path:     {self.path}",
            f"version:  {self.version}",
            f"headers ({len(self.headers)}):",
        ]
        out.extend("  " + line for line in self._get_redacted_headers())
        return "\n".join(out)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParsedRequest):
            return NotImplemented
        return self.request_line() == other.request_line() and self.headers == other.headers

    def __repr__(self) -> str:
        return f"<ParsedRequest {self.method} {self.url} {self.version} ({len(self.headers)} headers)>"
