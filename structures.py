#Filename: structures.py
"""
CORE DATA STRUCTURES
Header storage for the request parser.
Insertion order is the serialization order: an untouched request
re-serializes its header block byte-for-byte.
"""

import logging
from typing import Callable, Dict, Iterable, Iterator, NamedTuple, Optional, Set, Tuple

from proxy_common import (
    CRLF, TOKEN_PATTERN, ErrorKind, ParseError, HeaderNotFoundError, is_valid_value
)

logger = logging.getLogger(__name__)

# -- Constants --

# OpSec: Headers to redact in debug dumps
SENSITIVE_HEADERS: Set[str] = {
    'authorization', 'proxy-authorization', 'cookie', 'set-cookie',
    'x-auth-token', 'x-api-key', 'access_token', 'authentication', 'bearer'
}

# Wire overhead per header line: ": " + CRLF
HEADER_LINE_OVERHEAD = 2 + len(CRLF)

# -- Types --

class HeaderEntry(NamedTuple):
    """A single header. Immutable; replaced wholesale on upsert."""
    name: str
    value: str

    def wire_len(self) -> int:
        """Length of the serialized line, terminator included."""
        return len(self.name) + len(self.value) + HEADER_LINE_OVERHEAD

    def to_line(self) -> str:
        return f"{self.name}: {self.value}{CRLF}"


class HeaderTable:
    """
    Ordered header table keyed by exact (case-sensitive) name.
    Relies on dict insertion order: reassigning an existing key keeps its slot,
    so an upsert never moves a header.
    """
    __slots__ = ('_entries',)

    def __init__(self, entries: Optional[Iterable[Tuple[str, str]]] = None) -> None:
        self._entries: Dict[str, HeaderEntry] = {}
        if entries:
            for name, value in entries:
                self.upsert(name, value)

    def upsert(self, name: str, value: str) -> HeaderEntry:
        """Inserts a header at the end, or replaces the value of an existing one in place."""
        entry = HeaderEntry(name, value)
        self._entries[name] = entry
        return entry

    def lookup(self, name: str) -> Optional[HeaderEntry]:
        return self._entries.get(name)

    def remove(self, name: str) -> HeaderEntry:
        """Erases a header and its position. Raises HeaderNotFoundError if absent."""
        try:
            return self._entries.pop(name)
        except KeyError:
            raise HeaderNotFoundError(name) from None

    def count(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def items(self) -> Iterator[Tuple[str, str]]:
        """Lazy (name, value) pairs in insertion order. Each call starts over."""
        for entry in self._entries.values():
            yield entry.name, entry.value

    def for_each_in_order(self, visit: Callable[[str, str], None]) -> None:
        for name, value in self.items():
            visit(name, value)

    def headers_len(self) -> int:
        return sum(entry.wire_len() for entry in self._entries.values())

    def render(self) -> str:
        return "".join(entry.to_line() for entry in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return self.items()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeaderTable):
            return NotImplemented
        # dict equality ignores order; the wire does not
        return list(self._entries.values()) == list(other._entries.values())

    def __repr__(self) -> str:
        return f"<HeaderTable {len(self._entries)} headers>"


# -- Header Block Parsing --

def parse_header_line(line: str, line_no: Optional[int] = None) -> HeaderEntry:
    """
    Splits one 'Name: Value' line at the first colon.
    The name is taken verbatim and must be a token; the value loses leading
    SP/HT only.
    """
    colon = line.find(':')
    if colon == -1:
        raise ParseError(ErrorKind.MALFORMED_HEADER_LINE, f"no colon in {line!r}", line_no)

    name = line[:colon]
    if not TOKEN_PATTERN.fullmatch(name):
        raise ParseError(
            ErrorKind.MALFORMED_HEADER_LINE, f"invalid header name {name!r}", line_no
        )

    value = line[colon + 1:].lstrip(" \t")
    if not is_valid_value(value):
        raise ParseError(
            ErrorKind.MALFORMED_HEADER_LINE, f"control character in value of {name!r}", line_no
        )
    return HeaderEntry(name, value)


def parse_header_lines(
    lines: Iterable[str], table: HeaderTable, first_line_no: int = 1
) -> int:
    """
    Feeds header lines into the table until the first blank line or the end
    of input. Duplicate names are last-wins at the first-seen position.
    Returns the number of lines consumed, blank terminator included.
    """
    consumed = 0
    for line_no, line in enumerate(lines, start=first_line_no):
        consumed += 1
        if not line:
            break
        entry = parse_header_line(line, line_no)
        if entry.name in table:
            logger.debug("Duplicate header %r on line %d replaces earlier value", entry.name, line_no)
        table.upsert(entry.name, entry.value)
    return consumed
