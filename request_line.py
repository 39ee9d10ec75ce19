#Filename: request_line.py
"""
REQUEST LINE GRAMMAR
Stateless parser/renderer for 'METHOD SP absolute-URI SP HTTP-Version'.
Rendering omits the port when it equals the scheme's well-known port, so a
request parsed without an explicit port does not gain one.
"""

from typing import NamedTuple, Tuple

from proxy_common import (
    SCHEME_SEPARATOR, SCHEME_PATTERN, PORT_PATTERN, VERSION_PATTERN,
    WIRE_ENCODING, ErrorKind, ParseError, default_port_for
)


class RequestLine(NamedTuple):
    """The six fields of a parsed request line."""
    method: str
    protocol: str
    host: str
    port: str
    path: str
    version: str

    def render(self) -> str:
        return render_request_line(*self)


# -- Stateless Helper Functions --

def _fail(kind: ErrorKind, message: str) -> ParseError:
    return ParseError(kind, message, line_no=0)


def _split_authority(rest: str, uri: str) -> Tuple[str, int]:
    """
    Reads the host from the text following '://'.
    Returns (host, index just past the host). Bracketed IPv6 literals are
    returned without their brackets.
    """
    if rest.startswith('['):
        end = rest.find(']')
        if end == -1:
            raise _fail(ErrorKind.INVALID_URI, f"unterminated IPv6 literal in {uri!r}")
        host = rest[1:end]
        if host and ':' not in host:
            # rendered bare, so it would not re-serialize with its brackets
            raise _fail(ErrorKind.INVALID_URI, f"bracketed host without ':' in {uri!r}")
        pos = end + 1
        if pos < len(rest) and rest[pos] not in ':/':
            raise _fail(ErrorKind.INVALID_URI, f"unexpected text after host in {uri!r}")
    else:
        pos = len(rest)
        for delim in '/:':
            idx = rest.find(delim)
            if idx != -1 and idx < pos:
                pos = idx
        host = rest[:pos]

    if not host:
        raise _fail(ErrorKind.INVALID_HOST, f"empty host in {uri!r}")
    return host, pos


def parse_uri(uri: str) -> Tuple[str, str, str, str]:
    """Splits an absolute URI into (protocol, host, port, path)."""
    sep = uri.find(SCHEME_SEPARATOR)
    if sep <= 0:
        raise _fail(ErrorKind.INVALID_URI, f"missing scheme in {uri!r}")

    protocol = uri[:sep]
    if not SCHEME_PATTERN.fullmatch(protocol):
        raise _fail(ErrorKind.INVALID_URI, f"invalid scheme {protocol!r}")

    rest = uri[sep + len(SCHEME_SEPARATOR):]
    host, pos = _split_authority(rest, uri)

    if pos < len(rest) and rest[pos] == ':':
        slash = rest.find('/', pos + 1)
        port_end = slash if slash != -1 else len(rest)
        port = rest[pos + 1:port_end]
        if not PORT_PATTERN.fullmatch(port):
            raise _fail(ErrorKind.INVALID_PORT, f"invalid port {port!r}")
        pos = port_end
    else:
        port = default_port_for(protocol)

    path = rest[pos:] or '/'
    return protocol, host, port, path


def parse_request_line(line: str) -> RequestLine:
    """
    Parses the leading line of a request.
    Exactly two single spaces separate the three tokens; anything else is a
    MalformedLine.
    """
    parts = line.split(' ')
    if len(parts) != 3:
        raise _fail(
            ErrorKind.MALFORMED_LINE,
            f"expected 3 space-separated tokens, got {len(parts)}"
        )
    method, uri, version = parts

    if not method:
        raise _fail(ErrorKind.MISSING_METHOD, "request line starts with a space")
    if not uri:
        raise _fail(ErrorKind.INVALID_URI, "empty request target")

    protocol, host, port, path = parse_uri(uri)

    if not VERSION_PATTERN.fullmatch(version):
        raise _fail(ErrorKind.INVALID_VERSION, f"invalid version {version!r}")

    return RequestLine(method, protocol, host, port, path, version)


def _host_for_wire(host: str) -> str:
    return f"[{host}]" if ':' in host else host


def is_valid_host(host: str) -> bool:
    """True when the host renders into a URI that parses back to the same host."""
    if not host or any(ch.isspace() or ch in '\x00[]' for ch in host):
        return False
    try:
        host.encode(WIRE_ENCODING)
        return parse_uri(render_uri('http', host, '', '/'))[1] == host
    except (UnicodeEncodeError, ParseError):
        return False


def _port_suffix(protocol: str, port: str) -> str:
    if port and port != default_port_for(protocol):
        return ':' + port
    return ''


def render_uri(protocol: str, host: str, port: str, path: str) -> str:
    return f"{protocol}{SCHEME_SEPARATOR}{_host_for_wire(host)}{_port_suffix(protocol, port)}{path}"


def render_request_line(
    method: str, protocol: str, host: str, port: str, path: str, version: str
) -> str:
    """Renders the request line without its terminator."""
    return f"{method} {render_uri(protocol, host, port, path)} {version}"


def request_line_len(
    method: str, protocol: str, host: str, port: str, path: str, version: str
) -> int:
    """len(render_request_line(...)) without building the string."""
    host_len = len(host) + (2 if ':' in host else 0)
    return (
        len(method) + 1
        + len(protocol) + len(SCHEME_SEPARATOR) + host_len
        + len(_port_suffix(protocol, port)) + len(path)
        + 1 + len(version)
    )
