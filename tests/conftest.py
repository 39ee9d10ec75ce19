# conftest.py
import sys
import os
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

@pytest.fixture
def end_to_end_request() -> bytes:
    return (
        b"GET http://www.example.com:8080/path HTTP/1.1\r\n"
        b"Host: www.example.com\r\n"
        b"User-Agent: test\r\n"
        b"\r\n"
    )

@pytest.fixture
def browser_request() -> bytes:
    return (
        b"GET http://shop.example.org/cart?item=42&qty=1 HTTP/1.1\r\n"
        b"Host: shop.example.org\r\n"
        b"User-Agent: Mozilla/5.0 (X11; Linux x86_64)\r\n"
        b"Accept: text/html,application/xhtml+xml\r\n"
        b"Cookie: session=abc123\r\n"
        b"Proxy-Connection: keep-alive\r\n"
        b"\r\n"
    )

@pytest.fixture
def request_file(tmp_path, end_to_end_request):
    path = tmp_path / "request.txt"
    path.write_bytes(end_to_end_request)
    return str(path)
