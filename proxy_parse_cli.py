# proxy_parse_cli.py
"""
Proxy Parse Inspector -- view and rewrite a raw HTTP request head.

ARCHITECTURE:
- CORE: 'proxy_parse.ParsedRequest' parses, edits and re-serializes.
- UI: argparse one-shot mode, or a PromptToolkit interactive shell.
"""

import sys
import os
import asyncio
import argparse
import logging
from typing import List, Optional, Sequence, Tuple

from colorama import Fore, Style, init as colorama_init
from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.completion import WordCompleter

from proxy_common import PORT_PATTERN, ProxyParseError
from proxy_parse import ParsedRequest
from request_line import is_valid_host

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_PARSE_ERROR = 2

DEBUG_ENV_VAR = "PROXY_PARSE_DEBUG"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"

COMMANDS = ['show', 'raw', 'get', 'set', 'rm', 'host', 'port', 'len', 'help', 'exit', 'quit', 'q']

logger = logging.getLogger(__name__)


def emit(text: str) -> None:
    print_formatted_text(ANSI(text))


def error(text: str) -> None:
    emit(f"{Fore.RED}[ERR] {text}{Style.RESET_ALL}")

# -----------------------------------------------------------------------------
# 1. Request Loading & Editing
# -----------------------------------------------------------------------------

def read_source(path: Optional[str]) -> bytes:
    """Reads the raw head from a file, or stdin when path is None or '-'."""
    if path is None or path == '-':
        return sys.stdin.buffer.read()
    with open(path, 'rb') as fh:
        return fh.read()


def split_assignment(text: str) -> Tuple[str, str]:
    """'Name=Value' -> ('Name', 'Value'). The value may contain '='."""
    name, sep, value = text.partition('=')
    if not sep:
        raise ValueError(f"expected NAME=VALUE, got {text!r}")
    return name, value


def rewrite_host(request: ParsedRequest, host: str) -> None:
    if not is_valid_host(host):
        raise ValueError(f"invalid host {host!r}")
    request.host = host
    request.log(f"rewrote host to {host}")


def rewrite_port(request: ParsedRequest, port: str) -> None:
    if not PORT_PATTERN.fullmatch(port):
        raise ValueError(f"invalid port {port!r}")
    request.port = port
    request.log(f"rewrote port to {port}")


def apply_edits(
    request: ParsedRequest,
    removals: Sequence[str] = (),
    assignments: Sequence[str] = (),
    host: Optional[str] = None,
    port: Optional[str] = None
) -> None:
    """Applies removals, then header sets, then host/port rewrites."""
    for name in removals:
        request.remove_header(name)
    for text in assignments:
        name, value = split_assignment(text)
        request.set_header(name, value)
    if host is not None:
        rewrite_host(request, host)
    if port is not None:
        rewrite_port(request, port)

# -----------------------------------------------------------------------------
# 2. Formatting
# -----------------------------------------------------------------------------

def format_summary(request: ParsedRequest) -> str:
    """Colorized overview of the request line, headers and wire lengths."""
    lines = [
        f"{Fore.CYAN}-- Request Line --{Style.RESET_ALL}",
        f"  {'Method':<9} {Fore.GREEN}{request.method}{Style.RESET_ALL}",
        f"  {'Protocol':<9} {request.protocol}",
        f"  {'Host':<9} {request.host}",
        f"  {'Port':<9} {request.port}",
        f"  {'Path':<9} {request.path}",
        f"  {'Version':<9} {request.version}",
        f"{Fore.CYAN}-- Headers ({request.header_count()}) --{Style.RESET_ALL}",
    ]
    for name, value in request.headers.items():
        lines.append(f"  {Fore.YELLOW}{name}{Style.RESET_ALL}: {value}")
    lines.append(format_lengths(request))
    return "\n".join(lines)


def format_lengths(request: ParsedRequest) -> str:
    return (
        f"{Fore.CYAN}-- Length --{Style.RESET_ALL} "
        f"total={request.total_len()} headers={request.headers_len()}"
    )


def format_raw(request: ParsedRequest) -> str:
    """The re-serialized head with line terminators made visible."""
    return request.unparse().replace("\r\n", "\\r\\n\n")

# -----------------------------------------------------------------------------
# 3. Interactive UI Application
# -----------------------------------------------------------------------------

class InspectorShell:
    """Interactive shell editing a single parsed request."""

    def __init__(self, request: ParsedRequest):
        self.request = request
        self.command_completer = WordCompleter(COMMANDS, ignore_case=True)
        self.session: Optional[PromptSession] = None

    def print_help(self) -> None:
        emit(f"\n{Fore.YELLOW}--- Inspector Commands ---{Style.RESET_ALL}")
        emit(f"  {Fore.CYAN}show{Style.RESET_ALL}                 : Show request line, headers and lengths")
        emit(f"  {Fore.CYAN}raw{Style.RESET_ALL}                  : Show the re-serialized head")
        emit(f"  {Fore.CYAN}get <name>{Style.RESET_ALL}           : Show one header")
        emit(f"  {Fore.CYAN}set <name> <value>{Style.RESET_ALL}   : Insert or replace a header")
        emit(f"  {Fore.CYAN}rm <name>{Style.RESET_ALL}            : Remove a header")
        emit(f"  {Fore.CYAN}host <host>{Style.RESET_ALL}          : Rewrite the target host")
        emit(f"  {Fore.CYAN}port <port>{Style.RESET_ALL}          : Rewrite the target port")
        emit(f"  {Fore.CYAN}len{Style.RESET_ALL}                  : Show wire lengths")
        emit(f"  {Fore.CYAN}exit / quit / q{Style.RESET_ALL}      : Leave the shell")

    def execute(self, line: str) -> bool:
        """Runs one command line. Returns False when the shell should exit."""
        parts = line.strip().split(None, 2)
        if not parts:
            return True
        cmd = parts[0].lower()
        args = parts[1:]

        try:
            if cmd in ('q', 'exit', 'quit'):
                return False
            if cmd in ('help', '?'):
                self.print_help()
            elif cmd == 'show':
                emit(format_summary(self.request))
            elif cmd == 'raw':
                emit(format_raw(self.request))
            elif cmd == 'len':
                emit(format_lengths(self.request))
            elif cmd == 'get':
                self._cmd_get(args)
            elif cmd == 'set':
                if len(args) < 2:
                    emit("usage: set <name> <value>")
                else:
                    entry = self.request.set_header(args[0], args[1])
                    emit(f"{Fore.GREEN}[+] {entry.name}: {entry.value}{Style.RESET_ALL}")
            elif cmd == 'rm':
                if not args:
                    emit("usage: rm <name>")
                else:
                    self.request.remove_header(args[0])
                    emit(f"{Fore.GREEN}[-] {args[0]}{Style.RESET_ALL}")
            elif cmd == 'host':
                if not args:
                    emit("usage: host <host>")
                else:
                    rewrite_host(self.request, args[0])
            elif cmd == 'port':
                if not args:
                    emit("usage: port <port>")
                else:
                    rewrite_port(self.request, args[0])
            else:
                emit(f"Unknown command: {cmd} (try 'help')")
        except (ProxyParseError, ValueError) as e:
            error(str(e))
        return True

    def _cmd_get(self, args: List[str]) -> None:
        if not args:
            emit("usage: get <name>")
            return
        entry = self.request.get_header(args[0])
        if entry is None:
            emit(f"{Fore.YELLOW}(not set){Style.RESET_ALL}")
        else:
            emit(f"{entry.name}: {entry.value}")

    async def run(self) -> None:
        self.session = PromptSession(completer=self.command_completer)
        emit(format_summary(self.request))
        emit(f"{Fore.CYAN}Commands: show, raw, get, set, rm, host, port, len, exit{Style.RESET_ALL}")

        with patch_stdout():
            while True:
                try:
                    line = await self.session.prompt_async("request > ")
                except (KeyboardInterrupt, EOFError):
                    break
                if not self.execute(line):
                    break

# -----------------------------------------------------------------------------
# 4. Entry Point
# -----------------------------------------------------------------------------

def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proxy-parse",
        description="Parse, inspect and rewrite a raw HTTP request head"
    )
    parser.add_argument("file", nargs="?", default=None, help="Raw request file (default: stdin)")
    parser.add_argument("--lenient", action="store_true", help="Accept bare LF line endings")
    parser.add_argument("--set", dest="assignments", action="append", default=[],
                        metavar="NAME=VALUE", help="Insert or replace a header (repeatable)")
    parser.add_argument("--remove", dest="removals", action="append", default=[],
                        metavar="NAME", help="Remove a header (repeatable)")
    parser.add_argument("--host", default=None, help="Rewrite the target host")
    parser.add_argument("--port", default=None, help="Rewrite the target port")
    parser.add_argument("--raw", action="store_true", help="Write the re-serialized head to stdout")
    parser.add_argument("-i", "--interactive", action="store_true", help="Open the interactive shell")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(debug: bool) -> None:
    if os.environ.get(DEBUG_ENV_VAR, "") not in ("", "0"):
        debug = True
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.debug)
    colorama_init(autoreset=True)

    if args.interactive and args.file in (None, '-'):
        error("--interactive needs a FILE; stdin is used for the prompt")
        return EXIT_PARSE_ERROR

    try:
        raw = read_source(args.file)
    except OSError as e:
        error(f"cannot read request: {e}")
        return EXIT_IO_ERROR
    logger.debug("Read %d bytes from %s", len(raw), args.file or "stdin")

    try:
        request = ParsedRequest(strict_mode=not args.lenient).parse(raw)
        apply_edits(request, args.removals, args.assignments, args.host, args.port)
    except (ProxyParseError, ValueError) as e:
        error(str(e))
        return EXIT_PARSE_ERROR

    if args.interactive:
        asyncio.run(InspectorShell(request).run())
    if args.raw:
        sys.stdout.buffer.write(request.to_bytes())
        sys.stdout.buffer.flush()
    elif not args.interactive:
        emit(format_summary(request))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
