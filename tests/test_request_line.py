# tests/test_request_line.py
"""
Tests for request_line.py (request line grammar and rendering).
"""
import pytest
from request_line import (
    RequestLine, is_valid_host, parse_request_line, parse_uri, render_request_line,
    request_line_len
)
from proxy_common import ErrorKind, ParseError

class TestParseRequestLine:

    def test_explicit_port(self):
        rl = parse_request_line("GET http://www.example.com:8080/path HTTP/1.1")
        assert rl == RequestLine("GET", "http", "www.example.com", "8080", "/path", "HTTP/1.1")

    def test_default_http_port(self):
        rl = parse_request_line("GET http://a.com/ HTTP/1.1")
        assert rl.port == "80"
        assert rl.path == "/"

    def test_default_https_port(self):
        rl = parse_request_line("CONNECT https://a.com/ HTTP/1.1")
        assert rl.port == "443"

    def test_unknown_scheme_without_port(self):
        rl = parse_request_line("GET gopher://a.com/x HTTP/1.0")
        assert rl.port == ""
        assert rl.render() == "GET gopher://a.com/x HTTP/1.0"

    def test_path_defaults_to_slash(self):
        assert parse_request_line("GET http://a.com HTTP/1.1").path == "/"
        assert parse_request_line("GET http://a.com:81 HTTP/1.1").path == "/"

    def test_query_kept_in_path(self):
        rl = parse_request_line("GET http://a.com/search?q=1&r=2 HTTP/1.1")
        assert rl.path == "/search?q=1&r=2"

    def test_method_case_preserved(self):
        assert parse_request_line("get http://a.com/ HTTP/1.1").method == "get"

    def test_scheme_kept_verbatim(self):
        rl = parse_request_line("GET HTTP://a.com/ HTTP/1.1")
        assert rl.protocol == "HTTP"
        assert rl.port == "80"
        assert rl.render() == "GET HTTP://a.com/ HTTP/1.1"

    def test_ipv6_literal(self):
        rl = parse_request_line("GET http://[::1]:8080/x HTTP/1.1")
        assert rl.host == "::1"
        assert rl.port == "8080"
        assert rl.render() == "GET http://[::1]:8080/x HTTP/1.1"

    def test_ipv6_literal_default_port(self):
        rl = parse_request_line("GET http://[2001:db8::1]/ HTTP/1.1")
        assert rl.host == "2001:db8::1"
        assert rl.port == "80"

    @pytest.mark.parametrize("line, kind", [
        ("http://a.com/ HTTP/1.1", ErrorKind.MALFORMED_LINE),
        ("GET  http://a.com/ HTTP/1.1", ErrorKind.MALFORMED_LINE),
        ("GET http://a.com/ HTTP/1.1 extra", ErrorKind.MALFORMED_LINE),
        ("GET http://a.com/ HTTP/1.1 ", ErrorKind.MALFORMED_LINE),
        ("", ErrorKind.MALFORMED_LINE),
        (" http://a.com/ HTTP/1.1", ErrorKind.MISSING_METHOD),
        ("GET /relative HTTP/1.1", ErrorKind.INVALID_URI),
        ("GET ://a.com/ HTTP/1.1", ErrorKind.INVALID_URI),
        ("GET 1http://a.com/ HTTP/1.1", ErrorKind.INVALID_URI),
        ("GET http://[::1/ HTTP/1.1", ErrorKind.INVALID_URI),
        ("GET http://[::1]x/ HTTP/1.1", ErrorKind.INVALID_URI),
        ("GET http://[abc]/ HTTP/1.1", ErrorKind.INVALID_URI),
        ("GET http:///path HTTP/1.1", ErrorKind.INVALID_HOST),
        ("GET http://:8080/ HTTP/1.1", ErrorKind.INVALID_HOST),
        ("GET http://[]/ HTTP/1.1", ErrorKind.INVALID_HOST),
        ("GET http://a.com:/ HTTP/1.1", ErrorKind.INVALID_PORT),
        ("GET http://a.com:80a/ HTTP/1.1", ErrorKind.INVALID_PORT),
        ("GET http://a.com:-1 HTTP/1.1", ErrorKind.INVALID_PORT),
        ("GET http://a.com/ HTTP/1", ErrorKind.INVALID_VERSION),
        ("GET http://a.com/ HTTPS/1.1", ErrorKind.INVALID_VERSION),
        ("GET http://a.com/ http/1.1", ErrorKind.INVALID_VERSION),
        ("GET http://a.com/ HTTP/1.x", ErrorKind.INVALID_VERSION),
    ])
    def test_rejections(self, line, kind):
        with pytest.raises(ParseError) as exc:
            parse_request_line(line)
        assert exc.value.kind is kind
        assert exc.value.line_no == 0
        assert exc.value.status_code == 400

    def test_multi_digit_version(self):
        assert parse_request_line("GET http://a.com/ HTTP/10.12").version == "HTTP/10.12"

class TestParseUri:

    def test_port_before_path(self):
        assert parse_uri("http://h:1/a/b") == ("http", "h", "1", "/a/b")

    def test_colon_in_path_is_not_port(self):
        assert parse_uri("http://h/a:b") == ("http", "h", "80", "/a:b")

class TestRenderRequestLine:

    def test_default_port_omitted(self):
        line = render_request_line("GET", "http", "a.com", "80", "/", "HTTP/1.1")
        assert line == "GET http://a.com/ HTTP/1.1"

    def test_explicit_default_port_normalized(self):
        rl = parse_request_line("GET http://a.com:80/ HTTP/1.1")
        assert rl.render() == "GET http://a.com/ HTTP/1.1"

    def test_non_default_port_kept(self):
        line = render_request_line("GET", "https", "a.com", "8443", "/x", "HTTP/1.1")
        assert line == "GET https://a.com:8443/x HTTP/1.1"

    def test_default_port_depends_on_scheme(self):
        line = render_request_line("GET", "https", "a.com", "80", "/", "HTTP/1.1")
        assert line == "GET https://a.com:80/ HTTP/1.1"

    def test_empty_port_omitted(self):
        line = render_request_line("GET", "http", "a.com", "", "/", "HTTP/1.1")
        assert line == "GET http://a.com/ HTTP/1.1"

    @pytest.mark.parametrize("fields", [
        ("GET", "http", "a.com", "80", "/", "HTTP/1.1"),
        ("POST", "https", "api.example.com", "8443", "/v1/items?x=1", "HTTP/1.0"),
        ("GET", "http", "::1", "8080", "/", "HTTP/1.1"),
        ("GET", "ftp", "files", "", "/pub", "HTTP/1.1"),
        ("GET", "http", "a.com", "", "/", "HTTP/1.1"),
    ])
    def test_len_matches_render(self, fields):
        assert request_line_len(*fields) == len(render_request_line(*fields))

class TestIsValidHost:

    @pytest.mark.parametrize("host", ["a.com", "origin.internal", "10.0.0.1", "::1", "2001:db8::1"])
    def test_accepts(self, host):
        assert is_valid_host(host)

    @pytest.mark.parametrize("host", [
        "", "evil.com /x", "a/b", "a\r\nb", "a\x00b", "[::1]", "€.com", "a.com\t",
    ])
    def test_rejects(self, host):
        assert not is_valid_host(host)
