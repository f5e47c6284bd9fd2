"""An HTTP server that answers every request with 204 No Content."""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable

DEFAULT_ADDRESS = ":8080"

_LOG = logging.getLogger(__name__)


class NoContentHandler(BaseHTTPRequestHandler):
    """Replies 204 with an empty body to any method and path."""

    protocol_version = "HTTP/1.1"

    def __getattr__(self, name: str) -> Callable[[], None]:
        if name.startswith("do_"):
            return self._respond
        raise AttributeError(name)

    def _respond(self) -> None:
        if self.headers.get("Transfer-Encoding", "").lower() == "chunked":
            self.close_connection = True
        else:
            length = int(self.headers.get("Content-Length") or 0)
            if length > 0:
                self.rfile.read(length)
        self.send_response(204)
        self.end_headers()

    def log_message(self, format: str, *args) -> None:
        """Send access lines to the module logger at debug level instead of stderr."""
        _LOG.debug("%s - %s", self.address_string(), format % args)


class _ReusePortServer(ThreadingHTTPServer):
    address_family = socket.AF_INET
    allow_reuse_address = True
    daemon_threads = True

    def server_bind(self) -> None:
        if hasattr(socket, "SO_REUSEPORT"):
            self.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        super().server_bind()


def _parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {address!r}") from None
    if not 0 <= port_number <= 65535:
        raise ValueError(f"invalid port in address {address!r}")
    return host, port_number


def make_server(address: str = DEFAULT_ADDRESS) -> ThreadingHTTPServer:
    """Bind an IPv4 server to ``host:port``; an empty host means all interfaces."""
    return _ReusePortServer(_parse_address(address), NoContentHandler)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Answer every HTTP request with 204.")
    parser.add_argument(
        "-addr", "--addr", default=DEFAULT_ADDRESS, help="TCP address to listen to"
    )
    args = parser.parse_args(argv)
    try:
        server = make_server(args.addr)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())